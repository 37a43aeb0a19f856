"""
CALC-AE - Calculatrice des charges de l'auto-entrepreneur
Point d'entrée principal de l'application
"""
import sys
import argparse
import json
from pathlib import Path
import logging

from config.settings import LOG_FILE, ROUND_LABELS

# Configuration du logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(LOG_FILE, encoding="utf-8"),
    ],
)
logger = logging.getLogger("CALC-AE")

# Imports des modules
from core.calculators import CalculationSnapshot, CalculatorAE, RevenueInput, calculer_lot
from core.data_reader import read_declarations
from core.rates import Categorie
from core.report_generator import TOTAL_LINES, export_report, format_euros
from core.settings_store import get_store


def build_input(args) -> RevenueInput:
    """Construit la saisie de CA à partir des arguments (simple ou mixte)."""
    if any(v is not None for v in (args.ventes, args.bic, args.bnc)):
        return RevenueInput.mixte(ventes=args.ventes, bic=args.bic, bnc=args.bnc)
    return RevenueInput.simple(args.montant, args.categorie)


def print_snapshot(snapshot: CalculationSnapshot) -> None:
    """Affiche les lignes de résultat arrondies comme à l'écran."""
    affiche = snapshot.valeurs_affichees()
    totals = affiche["totals"]

    print(f"Mode : {snapshot.mode.value} • Arrondi : {ROUND_LABELS[snapshot.round_mode.value]}"
          f" • VL {'incluse' if snapshot.include_vl else 'exclue'}")
    print(f"{'Chiffre d affaires total':<32}{format_euros(totals['caTotal']):>16}")
    if snapshot.is_mixte:
        for categorie in Categorie:
            social = affiche["categories"][categorie.value]["social"]
            print(f"  {'Charges sociales ' + categorie.value:<30}{format_euros(social):>16}")
    for key, label in TOTAL_LINES:
        print(f"{label:<32}{format_euros(totals[key]):>16}")
    print(f"{'Total des charges':<32}{format_euros(totals['chargesTotal']):>16}")
    print(f"{'Revenu net estimé':<32}{format_euros(totals['net']):>16}")


def parse_assignments(assignments: list[str]) -> dict:
    """
    Convertit des affectations cle=valeur en configuration partielle.

    Exemples : rates.VENTES.social=15, roundMode=nearest, includeVL=true
    """
    partial: dict = {}
    for assignment in assignments:
        if "=" not in assignment:
            raise ValueError(f"Affectation invalide (cle=valeur attendu) : {assignment}")
        key, value = assignment.split("=", 1)
        parts = key.strip().split(".")
        if parts[0] == "rates":
            if len(parts) != 3:
                raise ValueError(f"Taux attendu sous la forme rates.CATEGORIE.taux : {key}")
            partial.setdefault("rates", {}).setdefault(parts[1].upper(), {})[parts[2]] = value
        else:
            partial[key.strip()] = value
    return partial


def add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("montant", nargs="?", default="0", help="Chiffre d'affaires (mode simple)")
    parser.add_argument(
        "--categorie", "-c",
        default="VENTES",
        type=str.upper,
        choices=[cat.value for cat in Categorie],
        help="Catégorie d'activité en mode simple",
    )
    parser.add_argument("--ventes", help="CA ventes de marchandises (mode mixte)")
    parser.add_argument("--bic", help="CA prestations BIC (mode mixte)")
    parser.add_argument("--bnc", help="CA BNC (mode mixte)")


def main():
    """Point d'entrée principal avec interface CLI."""
    parser = argparse.ArgumentParser(
        description="CALC-AE - Charges et revenu net de l'auto-entrepreneur",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exemples d'utilisation :
  python main.py calcul 1000 --categorie BNC
  python main.py calcul --ventes 500 --bic 500
  python main.py lot declarations.csv --sortie resultats.csv
  python main.py export pdf 32000 --categorie BIC
  python main.py options --set rates.VENTES.social=12.3 --set roundMode=nearest
  python main.py gui
        """,
    )
    subparsers = parser.add_subparsers(dest="commande", required=True)

    calcul_parser = subparsers.add_parser("calcul", help="Calcule les charges")
    add_input_arguments(calcul_parser)

    lot_parser = subparsers.add_parser("lot", help="Calcule un fichier de déclarations")
    lot_parser.add_argument("input_file", help="Fichier CSV ou Excel (periode, ventes, bic, bnc)")
    lot_parser.add_argument("--sortie", "-o", help="Fichier CSV des résultats")

    export_parser = subparsers.add_parser("export", help="Exporte un rapport HTML ou PDF")
    export_parser.add_argument("format", choices=["html", "pdf"])
    add_input_arguments(export_parser)
    export_parser.add_argument("--output", "-o", help="Fichier de destination")

    options_parser = subparsers.add_parser("options", help="Affiche ou modifie les réglages")
    options_parser.add_argument(
        "--set", dest="assignments", action="append", default=[],
        metavar="CLE=VALEUR", help="Modifie un réglage (répétable)",
    )
    options_parser.add_argument("--reset", action="store_true", help="Rétablit les valeurs par défaut")

    subparsers.add_parser("gui", help="Lance l'interface graphique")

    args = parser.parse_args()
    store = get_store()
    calculator = CalculatorAE(store)

    if args.commande == "gui":
        logger.info("Lancement de l'interface graphique...")
        from gui.app import run_app
        run_app(store)
        return

    if args.commande == "options":
        if args.reset:
            store.reset()
        if args.assignments:
            try:
                store.set(parse_assignments(args.assignments))
            except ValueError as e:
                parser.error(str(e))
        print(json.dumps(store.get().to_dict(), indent=2, ensure_ascii=False))
        return

    if args.commande == "calcul":
        print_snapshot(calculator.calculate(build_input(args)))
        return

    if args.commande == "export":
        snapshot = calculator.calculate(build_input(args))
        try:
            path = export_report(snapshot, args.format, args.output)
        except OSError as e:
            logger.error(f"Export impossible : {e}")
            sys.exit(1)
        logger.info(f"✅ Rapport enregistré : {path}")
        return

    if args.commande == "lot":
        input_path = Path(args.input_file)
        try:
            declarations = read_declarations(input_path)
        except (FileNotFoundError, ValueError) as e:
            logger.error(str(e))
            sys.exit(1)

        resultats = calculer_lot(declarations, calculator.get_configuration())
        if args.sortie:
            resultats.to_csv(args.sortie, sep=";", decimal=",", index=False, encoding="utf-8")
            logger.info(f"✅ Résultats enregistrés : {args.sortie}")
        else:
            print(resultats.to_string(index=False))


if __name__ == "__main__":
    main()
