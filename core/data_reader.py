"""
Module de lecture des déclarations de chiffre d'affaires (CSV, Excel)
"""
import pandas as pd
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Colonnes reconnues et leurs variantes usuelles
COLUMN_ALIASES = {
    "periode": ["periode", "période", "mois", "trimestre", "date"],
    "ventes": ["ventes", "ca_ventes", "vente", "marchandises"],
    "bic": ["bic", "ca_bic", "prestations", "services"],
    "bnc": ["bnc", "ca_bnc", "liberal", "libéral"],
}
REVENUE_COLUMNS = ("ventes", "bic", "bnc")


class DeclarationReader:
    """
    Lecteur de tableaux de déclarations périodiques.

    Chaque ligne correspond à une période (mois ou trimestre) avec le chiffre
    d'affaires encaissé dans chaque catégorie.
    """

    SUPPORTED_EXTENSIONS = {".csv", ".xlsx", ".xls"}
    SUPPORTED_ENCODINGS = ["utf-8", "latin-1", "cp1252", "iso-8859-1"]

    def __init__(self, file_path: str | Path):
        """
        Args:
            file_path: Chemin vers le fichier CSV ou Excel
        """
        self.file_path = Path(file_path)
        self._validate_file()
        self.data: Optional[pd.DataFrame] = None

    def _validate_file(self) -> None:
        """Vérifie que le fichier existe et a une extension supportée."""
        if not self.file_path.exists():
            raise FileNotFoundError(f"Fichier introuvable : {self.file_path}")

        if self.file_path.suffix.lower() not in self.SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Extension non supportée : {self.file_path.suffix}. "
                f"Extensions acceptées : {', '.join(sorted(self.SUPPORTED_EXTENSIONS))}"
            )

    def read(self, sheet_name: Optional[str] = None) -> pd.DataFrame:
        """
        Lit le fichier et retourne les déclarations normalisées.

        Args:
            sheet_name: Nom de la feuille Excel (ignoré pour CSV)

        Returns:
            DataFrame avec les colonnes periode, ventes, bic, bnc
        """
        if self.file_path.suffix.lower() == ".csv":
            raw = self._read_csv()
        else:
            raw = self._read_excel(sheet_name)

        self.data = self._normalize(raw)

        logger.info(f"Déclarations lues : {len(self.data)} période(s) depuis {self.file_path.name}")
        return self.data

    def _read_csv(self) -> pd.DataFrame:
        """Lit un CSV en essayant successivement les encodages supportés."""
        for encoding in self.SUPPORTED_ENCODINGS:
            try:
                # Montants lus comme texte : la virgule décimale est gérée au calcul
                df = pd.read_csv(
                    self.file_path,
                    encoding=encoding,
                    sep=None,
                    engine="python",
                    dtype=str,
                    keep_default_na=False,
                )
                logger.debug(f"Encodage détecté : {encoding}")
                return df
            except UnicodeDecodeError:
                continue
            except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                raise ValueError(f"CSV illisible : {e}") from e

        raise ValueError(
            f"Impossible de lire le fichier avec les encodages : "
            f"{', '.join(self.SUPPORTED_ENCODINGS)}"
        )

    def _read_excel(self, sheet_name: Optional[str] = None) -> pd.DataFrame:
        """Lit la feuille demandée (première feuille par défaut)."""
        try:
            return pd.read_excel(
                self.file_path,
                sheet_name=sheet_name or 0,
                engine="openpyxl",
            )
        except Exception as e:
            raise ValueError(f"Erreur lors de la lecture Excel : {e}") from e

    @staticmethod
    def _normalize(df: pd.DataFrame) -> pd.DataFrame:
        """Renomme les colonnes reconnues et complète les colonnes de CA manquantes."""
        df = df.copy()
        df.columns = [str(c).strip().lower() for c in df.columns]

        renames = {}
        for target, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                if alias in df.columns and target not in renames.values():
                    renames[alias] = target
                    break
        df = df.rename(columns=renames)

        present = [c for c in REVENUE_COLUMNS if c in df.columns]
        if not present:
            raise ValueError(
                "Aucune colonne de chiffre d'affaires trouvée "
                f"(attendu au moins une parmi : {', '.join(REVENUE_COLUMNS)})"
            )

        for column in REVENUE_COLUMNS:
            if column not in df.columns:
                df[column] = 0

        ignored = set(df.columns) - set(COLUMN_ALIASES)
        if ignored:
            logger.warning(f"Colonnes non reconnues (ignorées) : {', '.join(sorted(ignored))}")

        keep = [c for c in COLUMN_ALIASES if c in df.columns]
        return df[keep]


def read_declarations(
    file_path: str | Path, sheet_name: Optional[str] = None
) -> pd.DataFrame:
    """
    Lit un fichier de déclarations (CSV ou Excel).

    Args:
        file_path: Chemin vers le fichier
        sheet_name: Nom de la feuille Excel (optionnel)

    Returns:
        DataFrame normalisé
    """
    return DeclarationReader(file_path).read(sheet_name)
