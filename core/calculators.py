"""
Module de calcul des cotisations et du revenu net de l'auto-entrepreneur
"""
from datetime import datetime
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union
import logging

import pandas as pd

from core.rates import ZERO, Categorie, RateConfiguration, RoundMode, parse_montant

logger = logging.getLogger(__name__)

CENT = Decimal("100")


class ModeSaisie(Enum):
    """Mode de saisie du chiffre d'affaires."""

    SIMPLE = "simple"
    MIXTE = "mixte"


def appliquer_arrondi(valeur: Decimal, mode: Union[RoundMode, str]) -> Decimal:
    """
    Arrondit un montant pour l'affichage.

    Args:
        valeur: Montant exact
        mode: none, floor, ceil ou nearest (demi vers l'extérieur)

    Returns:
        Montant arrondi à l'euro (ou inchangé pour none)
    """
    valeur = parse_montant(valeur)
    mode = RoundMode(mode)

    if mode is RoundMode.FLOOR:
        return valeur.to_integral_value(rounding=ROUND_FLOOR)
    if mode is RoundMode.CEIL:
        return valeur.to_integral_value(rounding=ROUND_CEILING)
    if mode is RoundMode.NEAREST:
        return valeur.to_integral_value(rounding=ROUND_HALF_UP)
    return valeur


@dataclass(frozen=True)
class RevenueInput:
    """Chiffre d'affaires saisi, ventilé par catégorie."""

    mode: ModeSaisie
    montants: Mapping[Categorie, Decimal]

    def __post_init__(self):
        montants = {cat: parse_montant(self.montants.get(cat)) for cat in Categorie}
        object.__setattr__(self, "montants", MappingProxyType(montants))

    @classmethod
    def simple(cls, montant: Any, categorie: Union[Categorie, str]) -> "RevenueInput":
        """Saisie simple : un seul montant pour une seule catégorie."""
        categorie = Categorie.parse(categorie)
        return cls(ModeSaisie.SIMPLE, {categorie: parse_montant(montant)})

    @classmethod
    def mixte(cls, ventes: Any = 0, bic: Any = 0, bnc: Any = 0) -> "RevenueInput":
        """Saisie mixte : un montant par catégorie."""
        return cls(
            ModeSaisie.MIXTE,
            {Categorie.VENTES: ventes, Categorie.BIC: bic, Categorie.BNC: bnc},
        )


@dataclass(frozen=True)
class CategoryResult:
    """Charges calculées pour une catégorie."""

    categorie: Categorie
    amount: Decimal
    social: Decimal
    vl: Decimal
    cfp: Decimal
    cci: Decimal
    total: Decimal

    def to_dict(self, convert: Callable[[Decimal], Any] = float) -> Dict:
        return {
            "amount": convert(self.amount),
            "social": convert(self.social),
            "vl": convert(self.vl),
            "cfp": convert(self.cfp),
            "cci": convert(self.cci),
            "total": convert(self.total),
        }


@dataclass(frozen=True)
class Totaux:
    """Totaux agrégés sur les trois catégories (valeurs exactes)."""

    ca_total: Decimal
    social_total: Decimal
    vl_total: Decimal
    cfp_total: Decimal
    cci_total: Decimal
    charges_total: Decimal
    net: Decimal

    def to_dict(self, convert: Callable[[Decimal], Any] = float) -> Dict:
        return {
            "caTotal": convert(self.ca_total),
            "socialTotal": convert(self.social_total),
            "vlTotal": convert(self.vl_total),
            "cciTotal": convert(self.cci_total),
            "cfpTotal": convert(self.cfp_total),
            "chargesTotal": convert(self.charges_total),
            "net": convert(self.net),
        }


@dataclass(frozen=True)
class CalculationSnapshot:
    """
    Résultat complet d'un calcul.

    Toutes les valeurs sont exactes ; l'arrondi n'est appliqué qu'à
    l'affichage, ligne par ligne, via display().
    """

    mode: ModeSaisie
    inputs: Mapping[Categorie, Decimal]
    rates: Mapping[Categorie, Mapping[str, Decimal]]
    results: Mapping[Categorie, CategoryResult]
    totaux: Totaux
    round_mode: RoundMode
    include_vl: bool
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_mixte(self) -> bool:
        return self.mode is ModeSaisie.MIXTE

    def display(self, valeur: Decimal) -> Decimal:
        """Applique l'arrondi d'affichage en vigueur à une valeur."""
        return appliquer_arrondi(valeur, self.round_mode)

    def valeurs_affichees(self) -> Dict:
        """Retourne toutes les lignes affichées, arrondies une à une."""
        return {
            "totals": self.totaux.to_dict(self.display),
            "categories": {
                cat.value: self.results[cat].to_dict(self.display) for cat in Categorie
            },
        }

    def to_dict(self, arrondi: bool = False) -> Dict:
        """
        Convertit le snapshot en dictionnaire sérialisable.

        Args:
            arrondi: Si True, les montants sont les valeurs affichées

        Returns:
            Dictionnaire au format d'export
        """
        if arrondi:
            convert = lambda v: float(self.display(v))  # noqa: E731
        else:
            convert = float

        results = {cat.value: self.results[cat].to_dict(convert) for cat in Categorie}
        results["totals"] = self.totaux.to_dict(convert)

        return {
            "mode": self.mode.value,
            "inputs": {cat.value: float(self.inputs[cat]) for cat in Categorie},
            "rates": {
                cat.value: {k: float(v) for k, v in self.rates[cat].items()}
                for cat in Categorie
            },
            "results": results,
            "roundMode": self.round_mode.value,
            "includeVL": self.include_vl,
            "timestamp": self.timestamp.isoformat(),
        }


def taux_effectifs(config: RateConfiguration) -> Dict[Categorie, Dict[str, Decimal]]:
    """
    Convertit les taux en pourcentage en fractions.

    La taxe CCI ne s'applique jamais aux professions libérales (BNC).
    """
    rates = {}
    for cat in Categorie:
        rate_set = config.rate_set(cat)
        rates[cat] = {
            "social": parse_montant(rate_set.social) / CENT,
            "vl": parse_montant(rate_set.vl) / CENT,
            "cfp": parse_montant(rate_set.cfp) / CENT,
            "cci": ZERO if cat is Categorie.BNC else parse_montant(rate_set.cci) / CENT,
        }
    return rates


def calculer_categorie(
    categorie: Categorie,
    amount: Decimal,
    rates: Mapping[str, Decimal],
    include_vl: bool,
) -> CategoryResult:
    """
    Calcule les charges d'une catégorie.

    Args:
        categorie: Catégorie d'activité
        amount: Chiffre d'affaires de la catégorie
        rates: Taux en fraction (social, vl, cfp, cci)
        include_vl: Inclure le versement libératoire

    Returns:
        CategoryResult avec les quatre composantes et leur total
    """
    social = amount * rates["social"]
    vl = amount * rates["vl"] if include_vl else ZERO
    cfp = amount * rates["cfp"]
    cci = amount * rates["cci"] if rates["cci"] else ZERO
    return CategoryResult(
        categorie=categorie,
        amount=amount,
        social=social,
        vl=vl,
        cfp=cfp,
        cci=cci,
        total=social + vl + cfp + cci,
    )


def calculer(
    saisie: RevenueInput,
    config: RateConfiguration,
    timestamp: Optional[datetime] = None,
) -> CalculationSnapshot:
    """
    Calcule cotisations, taxes et revenu net pour une saisie de CA.

    Fonction pure : les totaux sont calculés à partir des composantes exactes,
    l'arrondi est laissé à l'affichage.

    Args:
        saisie: Chiffre d'affaires saisi
        config: Configuration des taux à appliquer
        timestamp: Horodatage du calcul (maintenant par défaut)

    Returns:
        CalculationSnapshot
    """
    rates = taux_effectifs(config)
    include_vl = bool(config.include_vl)

    results = {
        cat: calculer_categorie(cat, saisie.montants[cat], rates[cat], include_vl)
        for cat in Categorie
    }

    ca_total = sum((r.amount for r in results.values()), ZERO)
    social_total = sum((r.social for r in results.values()), ZERO)
    vl_total = sum((r.vl for r in results.values()), ZERO)
    cfp_total = sum((r.cfp for r in results.values()), ZERO)
    cci_total = sum((r.cci for r in results.values()), ZERO)
    charges_total = social_total + vl_total + cfp_total + cci_total

    totaux = Totaux(
        ca_total=ca_total,
        social_total=social_total,
        vl_total=vl_total,
        cfp_total=cfp_total,
        cci_total=cci_total,
        charges_total=charges_total,
        net=ca_total - charges_total,
    )

    return CalculationSnapshot(
        mode=saisie.mode,
        inputs=saisie.montants,
        rates=MappingProxyType({cat: MappingProxyType(r) for cat, r in rates.items()}),
        results=MappingProxyType(results),
        totaux=totaux,
        round_mode=config.round_mode,
        include_vl=include_vl,
        timestamp=timestamp or datetime.now(),
    )


class CalculatorAE:
    """Point d'accès au calcul pour les interfaces (fenêtres, CLI)."""

    def __init__(self, store):
        """
        Args:
            store: SettingsStore fournissant la configuration courante
        """
        self.store = store

    def get_configuration(self) -> RateConfiguration:
        return self.store.get()

    def calculate(self, saisie: RevenueInput) -> CalculationSnapshot:
        """Calcule avec la configuration courante du store."""
        return calculer(saisie, self.store.get())

    def on_configuration_changed(
        self, callback: Callable[[RateConfiguration], None]
    ) -> Callable[[], None]:
        """Abonne callback aux changements de configuration."""
        return self.store.subscribe(callback)


# =============================================
# CALCUL PAR LOT (déclarations périodiques)
# =============================================
LOT_COLUMNS = {
    "ca_total": "caTotal",
    "cotisations_sociales": "socialTotal",
    "versement_liberatoire": "vlTotal",
    "cfp": "cfpTotal",
    "taxe_cci": "cciTotal",
    "total_charges": "chargesTotal",
    "revenu_net": "net",
}


def calculer_lot(df: pd.DataFrame, config: RateConfiguration) -> pd.DataFrame:
    """
    Calcule les charges de chaque ligne d'un tableau de déclarations.

    Colonnes lues : periode, ventes, bic, bnc (absentes = 0). La ligne TOTAL
    est arrondie à partir des sommes exactes, pas des lignes arrondies.

    Args:
        df: DataFrame des déclarations
        config: Configuration des taux

    Returns:
        DataFrame des montants affichés, une ligne par période plus TOTAL
    """
    rows = []
    sums = {key: ZERO for key in LOT_COLUMNS.values()}

    for position, (_, row) in enumerate(df.iterrows(), start=1):
        saisie = RevenueInput.mixte(
            ventes=row.get("ventes"),
            bic=row.get("bic"),
            bnc=row.get("bnc"),
        )
        snapshot = calculer(saisie, config)
        exact = snapshot.totaux.to_dict(lambda v: v)

        periode = row.get("periode")
        if periode is None or pd.isna(periode):
            periode = str(position)

        line = {"periode": str(periode)}
        for column, key in LOT_COLUMNS.items():
            sums[key] += exact[key]
            line[column] = float(snapshot.display(exact[key]))
        rows.append(line)

    total_line = {"periode": "TOTAL"}
    for column, key in LOT_COLUMNS.items():
        total_line[column] = float(appliquer_arrondi(sums[key], config.round_mode))
    rows.append(total_line)

    logger.info(f"Calcul par lot : {len(rows) - 1} période(s)")
    return pd.DataFrame(rows, columns=["periode", *LOT_COLUMNS.keys()])
