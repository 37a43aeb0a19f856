"""
Module Core - Moteur de calcul CALC-AE
"""
from .rates import Categorie, RoundMode, RateSet, RateConfiguration, DEFAULT_CONFIGURATION
from .settings_store import SettingsStore, get_store
from .calculators import (
    CalculationSnapshot,
    CalculatorAE,
    CategoryResult,
    RevenueInput,
    calculer,
    calculer_lot,
)
from .data_reader import DeclarationReader, read_declarations
from .report_generator import ReportGenerator, export_report

__all__ = [
    "Categorie",
    "RoundMode",
    "RateSet",
    "RateConfiguration",
    "DEFAULT_CONFIGURATION",
    "SettingsStore",
    "get_store",
    "CalculationSnapshot",
    "CalculatorAE",
    "CategoryResult",
    "RevenueInput",
    "calculer",
    "calculer_lot",
    "DeclarationReader",
    "read_declarations",
    "ReportGenerator",
    "export_report",
]
