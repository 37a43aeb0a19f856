"""
Modèle des taux de cotisation (catégories, jeux de taux, configuration)
"""
import math
import re
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
import logging

# Import des paramètres de configuration
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))
from config.settings import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class Categorie(Enum):
    """Catégories d'activité de l'auto-entrepreneur."""

    VENTES = "VENTES"
    BIC = "BIC"
    BNC = "BNC"

    @classmethod
    def parse(cls, value) -> "Categorie":
        """Accepte une Categorie ou son nom (insensible à la casse)."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().upper())


class RoundMode(Enum):
    """Politique d'arrondi à l'affichage."""

    NONE = "none"
    FLOOR = "floor"
    CEIL = "ceil"
    NEAREST = "nearest"


RATE_FIELDS = ("social", "vl", "cfp", "cci")


def parse_montant(value: Any) -> Decimal:
    """
    Convertit une saisie numérique en Decimal.

    Accepte la virgule ou le point comme séparateur décimal, ignore les espaces
    et le symbole €, et lit le nombre en tête du texte ("12,3 %" → 12.3).
    Toute valeur vide, non numérique, non finie ou hors de la plage d'un
    flottant vaut 0.

    Args:
        value: Nombre ou texte saisi

    Returns:
        Montant en Decimal
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    else:
        text = str(value).strip().replace("€", "").replace(",", ".")
        text = re.sub(r"\s+", "", text)
        match = _NUMBER_RE.match(text)
        if not match:
            return ZERO
        try:
            number = Decimal(match.group(0))
        except InvalidOperation:
            return ZERO

    if not number.is_finite() or not math.isfinite(float(number)):
        return ZERO
    return number


def parse_taux(value: Any) -> float:
    """Convertit une saisie de taux en nombre, avec la même règle que les montants."""
    return float(parse_montant(value))


def parse_bool(value: Any) -> bool:
    """Interprète un booléen venant du JSON ou de la ligne de commande."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "vrai", "oui", "yes", "on"}
    return bool(value)


@dataclass(frozen=True)
class RateSet:
    """Taux d'une catégorie, exprimés en pourcentage (12.3 = 12,3 %)."""

    social: float = 0.0
    vl: float = 0.0
    cfp: float = 0.0
    cci: float = 0.0

    def merge(self, partial: Mapping[str, Any], categorie: str = "") -> "RateSet":
        """Retourne un nouveau jeu de taux où seuls les champs fournis changent."""
        changes = {}
        for key, value in partial.items():
            if key not in RATE_FIELDS:
                logger.warning(f"Taux inconnu ignoré : {categorie}.{key}")
                continue
            changes[key] = parse_taux(value)
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in RATE_FIELDS}


def _freeze(rates: Mapping[Categorie, RateSet]) -> Mapping[Categorie, RateSet]:
    return MappingProxyType({cat: rates[cat] for cat in Categorie})


@dataclass(frozen=True)
class RateConfiguration:
    """
    Configuration complète utilisée par un calcul.

    Les instances sont immuables : toute modification produit une nouvelle
    configuration via merge().
    """

    rates: Mapping[Categorie, RateSet] = field(
        default_factory=lambda: _freeze({cat: RateSet() for cat in Categorie})
    )
    round_mode: RoundMode = RoundMode.NONE
    include_vl: bool = False

    def __post_init__(self):
        missing = [cat.value for cat in Categorie if cat not in self.rates]
        if missing:
            raise ValueError(f"Taux manquants pour : {', '.join(missing)}")
        object.__setattr__(self, "rates", _freeze(self.rates))

    def rate_set(self, categorie: Categorie) -> RateSet:
        return self.rates[Categorie.parse(categorie)]

    def merge(self, partial: Optional[Mapping[str, Any]]) -> "RateConfiguration":
        """
        Fusionne une configuration partielle (format JSON) champ par champ.

        Seuls les champs connus sont pris en compte : roundMode, includeVL et
        rates.<CATEGORIE>.<taux>. Les autres clés sont ignorées.

        Args:
            partial: Dictionnaire partiel au format de persistance

        Returns:
            Nouvelle RateConfiguration
        """
        if not partial:
            return self

        round_mode = self.round_mode
        include_vl = self.include_vl
        rates = dict(self.rates)

        for key, value in partial.items():
            if key == "roundMode":
                try:
                    round_mode = RoundMode(value)
                except ValueError:
                    logger.warning(f"Mode d'arrondi inconnu ignoré : {value!r}")
            elif key == "includeVL":
                include_vl = parse_bool(value)
            elif key == "rates":
                if not isinstance(value, Mapping):
                    logger.warning("Champ 'rates' invalide ignoré")
                    continue
                for cat_name, cat_rates in value.items():
                    try:
                        categorie = Categorie.parse(cat_name)
                    except ValueError:
                        logger.warning(f"Catégorie inconnue ignorée : {cat_name!r}")
                        continue
                    if not isinstance(cat_rates, Mapping):
                        logger.warning(f"Taux invalides ignorés pour {categorie.value}")
                        continue
                    rates[categorie] = rates[categorie].merge(cat_rates, categorie.value)
            else:
                logger.warning(f"Réglage inconnu ignoré : {key!r}")

        return RateConfiguration(rates=rates, round_mode=round_mode, include_vl=include_vl)

    def to_dict(self) -> Dict:
        """Convertit au format de persistance JSON."""
        return {
            "roundMode": self.round_mode.value,
            "includeVL": self.include_vl,
            "rates": {cat.value: self.rates[cat].to_dict() for cat in Categorie},
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "RateConfiguration":
        """Construit une configuration à partir des valeurs par défaut et de data."""
        return DEFAULT_CONFIGURATION.merge(data)


DEFAULT_CONFIGURATION = RateConfiguration().merge(DEFAULT_SETTINGS)
