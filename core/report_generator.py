"""
Module de génération des rapports de résultats (HTML, PDF)
"""
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from jinja2 import Environment, FileSystemLoader
import logging

import sys

sys.path.append(str(Path(__file__).parent.parent))
from config.settings import (
    APP_NAME,
    DATE_FORMAT,
    DEFAULT_HTML_FILENAME,
    DEFAULT_PDF_FILENAME,
    OUTPUT_DIR,
    ROUND_LABELS,
    TEMPLATES_DIR,
)
from core.calculators import CalculationSnapshot
from core.rates import Categorie

logger = logging.getLogger(__name__)

# Lignes de détail du rapport : (clé du total, libellé)
TOTAL_LINES: List[Tuple[str, str]] = [
    ("socialTotal", "Charges sociales totales"),
    ("vlTotal", "Impôt (VL total)"),
    ("cciTotal", "Taxe CCI totale"),
    ("cfpTotal", "CFP totale"),
]


def format_euros(value) -> str:
    """Formate un montant en euros à la française (1 234,56 €)."""
    try:
        return f"{float(value):,.2f} €".replace(",", " ").replace(".", ",")
    except (ValueError, TypeError):
        return str(value)


class ReportGenerator:
    """
    Générateur de rapports à partir d'un CalculationSnapshot.

    Les montants affichés sont les valeurs arrondies selon le mode d'arrondi
    du snapshot, comme à l'écran.
    """

    def __init__(self, template_name: str = "rapport.html", output_dir: Optional[Path] = None):
        """
        Args:
            template_name: Nom du template Jinja2
            output_dir: Dossier des exports (OUTPUT_DIR par défaut)
        """
        self.output_dir = Path(output_dir) if output_dir else OUTPUT_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=True,
        )
        self.env.filters["format_euros"] = format_euros
        self.template = self.env.get_template(template_name)

    @staticmethod
    def build_context(snapshot: CalculationSnapshot) -> Dict:
        """Prépare les lignes du rapport (valeurs affichées)."""
        affiche = snapshot.valeurs_affichees()
        totals = affiche["totals"]

        categories = []
        if snapshot.is_mixte:
            categories = [
                (f"Charges sociales {cat.value}", affiche["categories"][cat.value]["social"])
                for cat in Categorie
            ]

        return {
            "app_name": APP_NAME,
            "mode": snapshot.mode.value,
            "is_mixte": snapshot.is_mixte,
            "round_label": ROUND_LABELS.get(snapshot.round_mode.value, ROUND_LABELS["none"]),
            "vl_label": "incluse" if snapshot.include_vl else "exclue",
            "ca_total": totals["caTotal"],
            "categories": categories,
            "lines": [(label, totals[key]) for key, label in TOTAL_LINES],
            "charges_total": totals["chargesTotal"],
            "net": totals["net"],
            "timestamp": snapshot.timestamp.strftime(DATE_FORMAT),
        }

    def render_html(self, snapshot: CalculationSnapshot) -> str:
        """
        Génère le HTML du rapport.

        Args:
            snapshot: Résultat de calcul

        Returns:
            Document HTML complet
        """
        return self.template.render(**self.build_context(snapshot))

    def _resolve_path(self, path: Optional[str | Path], default_name: str, suffix: str) -> Path:
        if path is None:
            output_path = self.output_dir / default_name
        else:
            output_path = Path(path)
            if output_path.suffix.lower() != suffix:
                output_path = output_path.with_suffix(suffix)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        return output_path

    def export_html(self, snapshot: CalculationSnapshot, path: Optional[str | Path] = None) -> Path:
        """
        Enregistre le rapport HTML.

        Args:
            snapshot: Résultat de calcul
            path: Fichier de destination (resultats.html dans OUTPUT_DIR par défaut)

        Returns:
            Chemin du fichier écrit
        """
        output_path = self._resolve_path(path, DEFAULT_HTML_FILENAME, ".html")
        output_path.write_text(self.render_html(snapshot), encoding="utf-8")
        logger.info(f"Rapport HTML généré : {output_path}")
        return output_path

    def export_pdf(self, snapshot: CalculationSnapshot, path: Optional[str | Path] = None) -> Path:
        """
        Enregistre le rapport PDF (rendu WeasyPrint du HTML).

        Args:
            snapshot: Résultat de calcul
            path: Fichier de destination (resultats.pdf dans OUTPUT_DIR par défaut)

        Returns:
            Chemin du fichier écrit
        """
        output_path = self._resolve_path(path, DEFAULT_PDF_FILENAME, ".pdf")

        # Import tardif : WeasyPrint charge Pango à l'import
        import weasyprint

        html = weasyprint.HTML(
            string=self.render_html(snapshot),
            base_url=str(TEMPLATES_DIR),
        )
        css = weasyprint.CSS(filename=str(TEMPLATES_DIR / "styles" / "print.css"))
        html.write_pdf(output_path, stylesheets=[css])

        logger.info(f"Rapport PDF généré : {output_path}")
        return output_path


def export_report(
    snapshot: CalculationSnapshot, fmt: str = "html", path: Optional[str | Path] = None
) -> Path:
    """
    Exporte un rapport dans le format demandé.

    Args:
        snapshot: Résultat de calcul
        fmt: "html" ou "pdf"
        path: Fichier de destination optionnel

    Returns:
        Chemin du fichier écrit
    """
    generator = ReportGenerator()
    fmt = fmt.lower()
    if fmt == "html":
        return generator.export_html(snapshot, path)
    if fmt == "pdf":
        return generator.export_pdf(snapshot, path)
    raise ValueError(f"Format d'export non supporté : {fmt}")
