"""
Configuration globale de CALC-AE
"""
import os
from pathlib import Path

# Chemins du projet
BASE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = BASE_DIR / "templates"
OUTPUT_DIR = Path(os.environ.get("CALCAE_OUTPUT", BASE_DIR / "output"))
LOG_FILE = BASE_DIR / "calcae.log"

# Réglages utilisateur (taux, arrondi, VL)
SETTINGS_FILE = Path(
    os.environ.get("CALCAE_SETTINGS", BASE_DIR / "config" / "user_settings.json")
)

APP_NAME = "Calc AE"

# =============================================
# TAUX PAR DÉFAUT (en pourcentage du CA)
# =============================================
DEFAULT_SETTINGS = {
    "roundMode": "none",  # none | floor | ceil | nearest
    "includeVL": False,
    "rates": {
        "VENTES": {"social": 12.3, "vl": 1.0, "cfp": 0.10, "cci": 0.02},
        "BIC": {"social": 21.2, "vl": 1.7, "cfp": 0.10, "cci": 0.04},
        "BNC": {"social": 24.6, "vl": 2.2, "cfp": 0.10, "cci": 0},
    },
}

# =============================================
# LIBELLÉS
# =============================================
CATEGORY_LABELS = {
    "VENTES": "Ventes de marchandises",
    "BIC": "Prestations de services (BIC)",
    "BNC": "Professions libérales (BNC)",
}

ROUND_LABELS = {
    "none": "Aucun",
    "floor": "À l’euro inférieur",
    "ceil": "À l’euro supérieur",
    "nearest": "À l’euro le plus proche",
}

RATE_LABELS = {
    "social": "Cotisations sociales",
    "vl": "Versement libératoire",
    "cfp": "CFP",
    "cci": "Taxe CCI",
}

# =============================================
# EXPORT
# =============================================
DEFAULT_HTML_FILENAME = "resultats.html"
DEFAULT_PDF_FILENAME = "resultats.pdf"
DATE_FORMAT = "%d/%m/%Y %H:%M"
