"""
Tests du module calculators
"""
import pytest
from datetime import datetime
from decimal import Decimal
from pathlib import Path
import pandas as pd
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.calculators import (
    CalculatorAE,
    ModeSaisie,
    RevenueInput,
    appliquer_arrondi,
    calculer,
    calculer_categorie,
    calculer_lot,
    parse_montant,
)
from core.rates import DEFAULT_CONFIGURATION, Categorie, RoundMode
from core.settings_store import SettingsStore


def config(**changes):
    """Configuration par défaut modifiée (format JSON)."""
    return DEFAULT_CONFIGURATION.merge(changes)


class TestParseMontant:
    """Tests de la conversion des saisies."""

    def test_nombre(self):
        """Test nombres entiers et décimaux."""
        assert parse_montant(1000) == Decimal("1000")
        assert parse_montant(12.5) == Decimal("12.5")

    def test_virgule_et_point(self):
        """Test séparateurs décimaux virgule et point."""
        assert parse_montant("1234,56") == Decimal("1234.56")
        assert parse_montant("1234.56") == Decimal("1234.56")

    def test_espaces_et_symbole(self):
        """Test espaces de milliers et symbole euro."""
        assert parse_montant(" 12 500,50 € ") == Decimal("12500.50")

    def test_saisie_invalide(self):
        """Test saisies vides ou non numériques."""
        assert parse_montant("") == 0
        assert parse_montant(None) == 0
        assert parse_montant("abc") == 0

    def test_valeurs_non_finies(self):
        """Test NaN et infini ramenés à 0."""
        assert parse_montant(float("nan")) == 0
        assert parse_montant(float("inf")) == 0
        assert parse_montant("Infinity") == 0
        assert parse_montant(Decimal("NaN")) == 0

    def test_prefixe_numerique(self):
        """Test texte commençant par un nombre."""
        assert parse_montant("150euros") == Decimal("150")

    def test_hors_plage_flottante(self):
        """Test montants au-delà de la plage d'un flottant ramenés à 0."""
        assert parse_montant("1e500") == 0
        assert parse_montant("-1e500") == 0
        assert parse_montant("1e1000000") == 0
        assert parse_montant(10 ** 400) == 0

    def test_calcul_montant_hors_plage(self):
        """Test un montant démesuré ne fait pas échouer le calcul."""
        for saisie in ("1e500", "1e1000000"):
            snapshot = calculer(RevenueInput.simple(saisie, "VENTES"), DEFAULT_CONFIGURATION)

            assert snapshot.totaux.ca_total == 0
            assert snapshot.totaux.net == 0
            assert snapshot.to_dict()["results"]["totals"]["net"] == 0


class TestArrondi:
    """Tests de l'arrondi d'affichage."""

    def test_none(self):
        assert appliquer_arrondi(Decimal("167.5"), RoundMode.NONE) == Decimal("167.5")

    def test_floor(self):
        assert appliquer_arrondi(Decimal("167.9"), RoundMode.FLOOR) == 167
        assert appliquer_arrondi(Decimal("-1.2"), "floor") == -2

    def test_ceil(self):
        assert appliquer_arrondi(Decimal("167.1"), RoundMode.CEIL) == 168

    def test_nearest_demi_vers_exterieur(self):
        """Test arrondi au plus proche, demi vers l'extérieur."""
        assert appliquer_arrondi(Decimal("167.5"), RoundMode.NEAREST) == 168
        assert appliquer_arrondi(Decimal("166.5"), RoundMode.NEAREST) == 167
        assert appliquer_arrondi(Decimal("-2.5"), RoundMode.NEAREST) == -3
        assert appliquer_arrondi(Decimal("124.2"), "nearest") == 124


class TestRevenueInput:
    """Tests de la saisie de chiffre d'affaires."""

    def test_simple(self):
        saisie = RevenueInput.simple("1000", "bic")
        assert saisie.mode is ModeSaisie.SIMPLE
        assert saisie.montants[Categorie.BIC] == Decimal("1000")
        assert saisie.montants[Categorie.VENTES] == 0
        assert saisie.montants[Categorie.BNC] == 0

    def test_mixte(self):
        saisie = RevenueInput.mixte(ventes="500,5", bic="", bnc=None)
        assert saisie.mode is ModeSaisie.MIXTE
        assert saisie.montants[Categorie.VENTES] == Decimal("500.5")
        assert saisie.montants[Categorie.BIC] == 0
        assert saisie.montants[Categorie.BNC] == 0

    def test_categorie_inconnue(self):
        with pytest.raises(ValueError):
            RevenueInput.simple(100, "AGRICOLE")


class TestCalculerCategorie:
    """Tests du calcul par catégorie."""

    RATES = {
        "social": Decimal("0.2"),
        "vl": Decimal("0.02"),
        "cfp": Decimal("0.001"),
        "cci": Decimal("0.0004"),
    }

    def test_total_est_la_somme(self):
        result = calculer_categorie(Categorie.BIC, Decimal("2500"), self.RATES, True)
        assert result.total == result.social + result.vl + result.cfp + result.cci
        assert result.social == Decimal("500")
        assert result.vl == Decimal("50")

    def test_vl_exclu(self):
        result = calculer_categorie(Categorie.BIC, Decimal("2500"), self.RATES, False)
        assert result.vl == 0
        assert result.total == result.social + result.cfp + result.cci


class TestCalculer:
    """Tests du calcul complet."""

    def test_scenario_ventes_sans_vl(self):
        """Test 1000 € de ventes, taux par défaut, VL exclu."""
        snapshot = calculer(RevenueInput.simple(1000, "VENTES"), config(includeVL=False))
        ventes = snapshot.results[Categorie.VENTES]

        assert ventes.social == Decimal("123")
        assert ventes.vl == 0
        assert ventes.cfp == Decimal("1")
        assert ventes.cci == Decimal("0.2")
        assert ventes.total == Decimal("124.2")
        assert snapshot.totaux.net == Decimal("875.8")

    def test_scenario_bnc_avec_vl(self):
        """Test 1000 € en BNC, taux par défaut, VL inclus."""
        snapshot = calculer(RevenueInput.simple(1000, "BNC"), config(includeVL=True))
        bnc = snapshot.results[Categorie.BNC]

        assert bnc.social == Decimal("246")
        assert bnc.vl == Decimal("22")
        assert bnc.cfp == Decimal("1")
        assert bnc.cci == 0
        assert bnc.total == Decimal("269")
        assert snapshot.totaux.net == Decimal("731")

    def test_scenario_mixte_arrondi(self):
        """Test mixte 500/500/0 avec arrondi au plus proche."""
        snapshot = calculer(
            RevenueInput.mixte(ventes=500, bic=500, bnc=0),
            config(includeVL=False, roundMode="nearest"),
        )

        assert snapshot.totaux.ca_total == Decimal("1000")
        assert snapshot.totaux.social_total == Decimal("167.5")
        assert snapshot.display(snapshot.totaux.social_total) == 168

        affiche = snapshot.valeurs_affichees()
        assert affiche["totals"]["socialTotal"] == 168
        assert affiche["categories"]["VENTES"]["social"] == 62
        assert affiche["categories"]["BIC"]["social"] == 106

    def test_arrondi_sur_la_somme_exacte(self):
        """Test : l'arrondi du total diffère de la somme des lignes arrondies."""
        snapshot = calculer(
            RevenueInput.mixte(ventes=500, bic=500, bnc=0),
            config(roundMode="nearest"),
        )
        affiche = snapshot.valeurs_affichees()

        # cfp : 0,5 + 0,5 = 1, alors que chaque ligne arrondie vaut 1
        assert affiche["totals"]["cfpTotal"] == 1
        assert sum(affiche["categories"][c.value]["cfp"] for c in Categorie) == 2

    def test_cci_bnc_toujours_nulle(self):
        """Test CCI forcée à 0 en BNC quel que soit le taux enregistré."""
        cfg = config(rates={"BNC": {"cci": 5}})
        snapshot = calculer(RevenueInput.simple(1000, "BNC"), cfg)

        assert cfg.rate_set(Categorie.BNC).cci == 5
        assert snapshot.results[Categorie.BNC].cci == 0
        assert snapshot.rates[Categorie.BNC]["cci"] == 0

    def test_simple_equivaut_a_mixte(self):
        """Test mode simple = mode mixte avec une seule catégorie."""
        cfg = config(includeVL=True)
        simple = calculer(RevenueInput.simple(4321.5, "VENTES"), cfg)
        mixte = calculer(RevenueInput.mixte(ventes=4321.5), cfg)

        assert simple.totaux == mixte.totaux
        assert simple.results[Categorie.VENTES] == mixte.results[Categorie.VENTES]

    def test_idempotence(self):
        """Test deux calculs identiques donnent les mêmes résultats."""
        saisie = RevenueInput.mixte(ventes="1200,40", bic=800, bnc=300)
        cfg = config(includeVL=True)
        first = calculer(saisie, cfg)
        second = calculer(saisie, cfg)

        assert dict(first.results) == dict(second.results)
        assert first.totaux == second.totaux

    def test_charges_superieures_au_ca(self):
        """Test taux élevés : le revenu net peut être négatif."""
        cfg = config(rates={"VENTES": {"social": 150}})
        snapshot = calculer(RevenueInput.simple(100, "VENTES"), cfg)
        assert snapshot.totaux.net < 0

    def test_totaux(self):
        """Test cohérence des agrégats."""
        snapshot = calculer(RevenueInput.mixte(1000, 2000, 3000), config(includeVL=True))
        t = snapshot.totaux

        assert t.ca_total == Decimal("6000")
        assert t.charges_total == t.social_total + t.vl_total + t.cfp_total + t.cci_total
        assert t.net == t.ca_total - t.charges_total
        assert t.social_total == sum(r.social for r in snapshot.results.values())

    def test_to_dict(self):
        """Test conversion en dictionnaire."""
        moment = datetime(2025, 1, 31, 10, 0)
        snapshot = calculer(
            RevenueInput.simple(1000, "VENTES"), config(roundMode="ceil"), timestamp=moment
        )
        d = snapshot.to_dict()

        assert d["mode"] == "simple"
        assert d["roundMode"] == "ceil"
        assert d["timestamp"] == "2025-01-31T10:00:00"
        assert d["results"]["totals"]["chargesTotal"] == pytest.approx(124.2)
        assert d["rates"]["VENTES"]["social"] == pytest.approx(0.123)

        arrondi = snapshot.to_dict(arrondi=True)
        assert arrondi["results"]["totals"]["chargesTotal"] == 125.0
        assert arrondi["results"]["VENTES"]["cci"] == 1.0


class TestCalculatorAE:
    """Tests de la façade de calcul."""

    def test_calcul_suit_la_configuration(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        calculator = CalculatorAE(store)
        saisie = RevenueInput.simple(1000, "VENTES")

        assert calculator.calculate(saisie).results[Categorie.VENTES].social == 123

        store.set({"rates": {"VENTES": {"social": 15}}})
        assert calculator.calculate(saisie).results[Categorie.VENTES].social == 150

    def test_notification(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        calculator = CalculatorAE(store)
        received = []

        calculator.on_configuration_changed(received.append)
        store.set({"includeVL": True})

        assert len(received) == 1
        assert received[0].include_vl is True


class TestCalculerLot:
    """Tests du calcul par lot."""

    def test_lot(self):
        df = pd.DataFrame({
            "periode": ["2025-01", "2025-02"],
            "ventes": ["500", "500"],
            "bic": ["0", "500"],
            "bnc": ["", "0"],
        })
        result = calculer_lot(df, config(roundMode="nearest"))

        assert list(result["periode"]) == ["2025-01", "2025-02", "TOTAL"]
        assert result["ca_total"].iloc[-1] == 1500
        # 61,5 + 167,5 = 229 exactement ; 62 + 168 = 230 en sommant les arrondis
        assert result["cotisations_sociales"].iloc[0] == 62
        assert result["cotisations_sociales"].iloc[1] == 168
        assert result["cotisations_sociales"].iloc[-1] == 229

    def test_periode_absente(self):
        df = pd.DataFrame({"bnc": [1000]})
        result = calculer_lot(df, config())

        assert result["periode"].iloc[0] == "1"
        assert result["revenu_net"].iloc[0] == pytest.approx(1000 - 246 - 1)
