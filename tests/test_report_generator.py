"""
Tests du module report_generator
"""
import pytest
from datetime import datetime
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.calculators import RevenueInput, calculer
from core.rates import DEFAULT_CONFIGURATION
from core.report_generator import ReportGenerator, export_report, format_euros

MOMENT = datetime(2025, 3, 1, 9, 30)


def snapshot_mixte(**changes):
    config = DEFAULT_CONFIGURATION.merge(changes)
    return calculer(RevenueInput.mixte(ventes=500, bic=500, bnc=0), config, timestamp=MOMENT)


class TestFormatEuros:
    """Tests du formatage monétaire."""

    def test_format(self):
        assert format_euros(1234.5) == "1 234,50 €"
        assert format_euros(0) == "0,00 €"
        assert format_euros(-12) == "-12,00 €"

    def test_valeur_invalide(self):
        assert format_euros("n/a") == "n/a"


class TestReportGenerator:
    """Tests du rendu HTML."""

    def test_valeurs_arrondies(self):
        """Test le rapport reprend les valeurs affichées (arrondies)."""
        html = ReportGenerator().render_html(snapshot_mixte(roundMode="nearest"))

        assert "168,00 €" in html
        assert "1 000,00 €" in html
        assert "À l’euro le plus proche" in html
        assert "VL exclue" in html

    def test_detail_par_categorie_en_mixte(self):
        html = ReportGenerator().render_html(snapshot_mixte())

        assert "Charges sociales VENTES" in html
        assert "Charges sociales BNC" in html
        assert "61,50 €" in html

    def test_pas_de_detail_en_simple(self):
        snapshot = calculer(
            RevenueInput.simple(1000, "BNC"),
            DEFAULT_CONFIGURATION.merge({"includeVL": True}),
            timestamp=MOMENT,
        )
        html = ReportGenerator().render_html(snapshot)

        assert "Charges sociales VENTES" not in html
        assert "VL incluse" in html
        assert "731,00 €" in html
        assert "01/03/2025 09:30" in html

    def test_export_html(self, tmp_path):
        """Test écriture du fichier HTML."""
        path = ReportGenerator(output_dir=tmp_path).export_html(snapshot_mixte())

        assert path == tmp_path / "resultats.html"
        content = path.read_text(encoding="utf-8")
        assert content.startswith("<!doctype html>")
        assert "Revenu net estimé" in content

    def test_export_html_extension(self, tmp_path):
        path = export_report(snapshot_mixte(), "html", tmp_path / "sous" / "rapport")

        assert path.suffix == ".html"
        assert path.exists()

    def test_format_inconnu(self, tmp_path):
        with pytest.raises(ValueError, match="non supporté"):
            export_report(snapshot_mixte(), "docx", tmp_path / "rapport.docx")
