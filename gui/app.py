"""
CALC-AE - Interface graphique
Saisie du chiffre d'affaires et recalcul automatique des charges
"""
import customtkinter as ctk
from tkinter import filedialog, messagebox
from pathlib import Path
from typing import Dict, Optional
import threading
import webbrowser
import logging
import sys

# Ajouter le dossier parent au path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import (
    APP_NAME,
    CATEGORY_LABELS,
    DEFAULT_HTML_FILENAME,
    DEFAULT_PDF_FILENAME,
    OUTPUT_DIR,
)
from core.calculators import CalculationSnapshot, CalculatorAE, RevenueInput
from core.rates import Categorie, RateConfiguration
from core.report_generator import ReportGenerator, format_euros
from core.settings_store import SettingsStore, get_store
from gui.options import open_options

logger = logging.getLogger("CALC-AE.GUI")

# Configuration du thème
ctk.set_appearance_mode("dark")
ctk.set_default_color_theme("blue")

RESULT_LINES = [
    ("caTotal", "Chiffre d'affaires total"),
    ("socialTotal", "Charges sociales totales"),
    ("vlTotal", "Impôt (VL total)"),
    ("cciTotal", "Taxe CCI totale"),
    ("cfpTotal", "CFP totale"),
    ("chargesTotal", "Total des charges"),
    ("net", "Revenu net estimé"),
]


class ResultsFrame(ctk.CTkFrame):
    """Tableau des résultats affichés."""

    def __init__(self, master, **kwargs):
        super().__init__(master, **kwargs)
        self.configure(corner_radius=10)
        self.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(
            self,
            text="📊 Résultats",
            font=ctk.CTkFont(size=14, weight="bold"),
        ).grid(row=0, column=0, sticky="w", padx=15, pady=(10, 5))

        self.status_badge = ctk.CTkLabel(
            self,
            text="Calcul à jour",
            font=ctk.CTkFont(size=11),
            text_color="#10b981",
        )
        self.status_badge.grid(row=0, column=1, sticky="e", padx=15, pady=(10, 5))

        self.value_labels: Dict[str, ctk.CTkLabel] = {}
        self.category_rows: Dict[Categorie, tuple] = {}

        row = 1
        row = self._add_line(row, "caTotal", RESULT_LINES[0][1])

        self.detail_label = ctk.CTkLabel(
            self,
            text="Détail des charges sociales par catégorie",
            font=ctk.CTkFont(size=11),
            text_color=("gray50", "gray60"),
        )
        self.detail_label.grid(row=row, column=0, columnspan=2, sticky="w", padx=15)
        self.detail_row = row
        row += 1

        for categorie in Categorie:
            name = ctk.CTkLabel(self, text=f"Charges sociales {categorie.value}", anchor="w")
            value = ctk.CTkLabel(self, text=format_euros(0), anchor="e")
            name.grid(row=row, column=0, sticky="w", padx=25, pady=2)
            value.grid(row=row, column=1, sticky="e", padx=15, pady=2)
            self.category_rows[categorie] = (name, value)
            row += 1

        for key, label in RESULT_LINES[1:]:
            bold = key in ("chargesTotal", "net")
            row = self._add_line(row, key, label, bold=bold)

    def _add_line(self, row: int, key: str, label: str, bold: bool = False) -> int:
        font = ctk.CTkFont(size=13, weight="bold" if bold else "normal")
        ctk.CTkLabel(self, text=label, font=font, anchor="w").grid(
            row=row, column=0, sticky="w", padx=15, pady=4
        )
        value = ctk.CTkLabel(self, text=format_euros(0), font=font, anchor="e")
        value.grid(row=row, column=1, sticky="e", padx=15, pady=4)
        self.value_labels[key] = value
        return row + 1

    def set_mixte_visible(self, visible: bool):
        """Affiche le détail par catégorie (mode mixte uniquement)."""
        widgets = [self.detail_label]
        for name, value in self.category_rows.values():
            widgets.extend([name, value])
        for widget in widgets:
            if visible:
                widget.grid()
            else:
                widget.grid_remove()

    def show(self, snapshot: CalculationSnapshot):
        """Met à jour les lignes avec les valeurs arrondies pour l'affichage."""
        affiche = snapshot.valeurs_affichees()
        for key, label in self.value_labels.items():
            label.configure(text=format_euros(affiche["totals"][key]))
        if snapshot.is_mixte:
            for categorie, (_, value) in self.category_rows.items():
                value.configure(text=format_euros(affiche["categories"][categorie.value]["social"]))
        self.set_status(calculating=False)

    def set_status(self, calculating: bool):
        if calculating:
            self.status_badge.configure(text="Recalcul…", text_color="#3b82f6")
        else:
            self.status_badge.configure(text="Calcul à jour", text_color="#10b981")


class CalcAEApp(ctk.CTk):
    """Application principale Calc AE."""

    def __init__(self, store: Optional[SettingsStore] = None):
        super().__init__()

        self.title(APP_NAME)
        self.geometry("1000x720")
        self.minsize(900, 620)

        self.store = store or get_store()
        self.calculator = CalculatorAE(self.store)
        self.last_snapshot: Optional[CalculationSnapshot] = None

        self._create_ui()
        self._sync_mode_ui()
        self.recalculer()

        self._unsubscribe = self.calculator.on_configuration_changed(
            self._on_configuration_changed
        )
        self.protocol("WM_DELETE_WINDOW", self.close)

    def _create_ui(self):
        """Crée l'interface utilisateur."""
        self.grid_columnconfigure(0, weight=1)
        self.grid_columnconfigure(1, weight=1)
        self.grid_rowconfigure(1, weight=1)

        self._create_header()
        self._create_left_panel()
        self._create_right_panel()

    def _create_header(self):
        header = ctk.CTkFrame(self, corner_radius=0, height=60)
        header.grid(row=0, column=0, columnspan=2, sticky="ew")

        title_frame = ctk.CTkFrame(header, fg_color="transparent")
        title_frame.pack(side="left", padx=20, pady=10)

        ctk.CTkLabel(
            title_frame,
            text="🧮 Calc AE",
            font=ctk.CTkFont(size=24, weight="bold"),
        ).pack(side="left")

        ctk.CTkLabel(
            title_frame,
            text="  •  Calculatrice auto-entrepreneur",
            font=ctk.CTkFont(size=12),
            text_color=("gray50", "gray60"),
        ).pack(side="left", padx=10)

        ctk.CTkButton(
            header,
            text="⚙️ Options avancées",
            command=self.open_options,
            width=150,
            height=35,
            fg_color="transparent",
            border_width=1,
        ).pack(side="right", padx=20, pady=10)

    def _create_left_panel(self):
        left = ctk.CTkFrame(self, corner_radius=0)
        left.grid(row=1, column=0, sticky="nsew", padx=(10, 5), pady=10)

        # === Mode de saisie ===
        mode_frame = ctk.CTkFrame(left, corner_radius=10)
        mode_frame.pack(fill="x", padx=10, pady=10)

        ctk.CTkLabel(
            mode_frame,
            text="📋 Mode de saisie",
            font=ctk.CTkFont(size=14, weight="bold"),
        ).pack(anchor="w", padx=15, pady=(10, 5))

        self.mode_var = ctk.StringVar(value="simple")
        for value, label in [("simple", "Activité unique"), ("mixte", "Activité mixte")]:
            ctk.CTkRadioButton(
                mode_frame,
                text=label,
                variable=self.mode_var,
                value=value,
                command=self.on_input_changed,
            ).pack(anchor="w", padx=20, pady=5)

        # === Saisie simple ===
        self.zone_simple = ctk.CTkFrame(left, corner_radius=10)

        ctk.CTkLabel(
            self.zone_simple,
            text="💶 Chiffre d'affaires",
            font=ctk.CTkFont(size=14, weight="bold"),
        ).pack(anchor="w", padx=15, pady=(10, 5))

        self.ca_simple = self._create_amount_entry(self.zone_simple)

        self._category_by_label = {
            CATEGORY_LABELS[cat.value]: cat for cat in Categorie
        }
        self.category_var = ctk.StringVar(value=CATEGORY_LABELS[Categorie.VENTES.value])
        ctk.CTkOptionMenu(
            self.zone_simple,
            values=list(self._category_by_label),
            variable=self.category_var,
            command=lambda _value: self.on_input_changed(),
        ).pack(fill="x", padx=15, pady=(0, 15))

        # === Saisie mixte ===
        self.zone_mixte = ctk.CTkFrame(left, corner_radius=10)

        ctk.CTkLabel(
            self.zone_mixte,
            text="💶 Chiffre d'affaires par catégorie",
            font=ctk.CTkFont(size=14, weight="bold"),
        ).pack(anchor="w", padx=15, pady=(10, 5))

        self.ca_mixte: Dict[Categorie, ctk.CTkEntry] = {}
        for categorie in Categorie:
            ctk.CTkLabel(
                self.zone_mixte,
                text=CATEGORY_LABELS[categorie.value],
                font=ctk.CTkFont(size=11),
            ).pack(anchor="w", padx=15)
            self.ca_mixte[categorie] = self._create_amount_entry(self.zone_mixte)

        # === Export ===
        self.export_frame = ctk.CTkFrame(left, corner_radius=10)
        self.export_frame.pack(side="bottom", fill="x", padx=10, pady=10)

        ctk.CTkLabel(
            self.export_frame,
            text="📄 Export des résultats",
            font=ctk.CTkFont(size=14, weight="bold"),
        ).pack(anchor="w", padx=15, pady=(10, 5))

        ctk.CTkButton(
            self.export_frame,
            text="Exporter HTML",
            command=self.export_html,
            height=40,
        ).pack(fill="x", padx=15, pady=5)

        self.btn_pdf = ctk.CTkButton(
            self.export_frame,
            text="Exporter PDF",
            command=self.export_pdf,
            height=40,
            fg_color=("#10b981", "#059669"),
            hover_color=("#059669", "#047857"),
        )
        self.btn_pdf.pack(fill="x", padx=15, pady=(5, 15))

    def _create_amount_entry(self, master) -> ctk.CTkEntry:
        entry = ctk.CTkEntry(master, placeholder_text="0,00 €")
        entry.pack(fill="x", padx=15, pady=(0, 10))
        entry.bind("<KeyRelease>", lambda _event: self.on_input_changed())
        return entry

    def _create_right_panel(self):
        right = ctk.CTkFrame(self, corner_radius=0)
        right.grid(row=1, column=1, sticky="nsew", padx=(5, 10), pady=10)

        self.results = ResultsFrame(right)
        self.results.pack(fill="x", padx=5, pady=5)

    # -------- Mode --------
    def mode(self) -> str:
        return self.mode_var.get()

    def _sync_mode_ui(self):
        """Affiche les champs du mode courant et masque les autres."""
        is_simple = self.mode() == "simple"
        if is_simple:
            self.zone_mixte.pack_forget()
            self.zone_simple.pack(fill="x", padx=10, pady=10, before=self.export_frame)
        else:
            self.zone_simple.pack_forget()
            self.zone_mixte.pack(fill="x", padx=10, pady=10, before=self.export_frame)
        self.results.set_mixte_visible(not is_simple)

    # -------- Calcul --------
    def lire_saisie(self) -> RevenueInput:
        """Construit la saisie à partir des champs du mode courant."""
        if self.mode() == "simple":
            categorie = self._category_by_label[self.category_var.get()]
            return RevenueInput.simple(self.ca_simple.get(), categorie)
        return RevenueInput.mixte(
            ventes=self.ca_mixte[Categorie.VENTES].get(),
            bic=self.ca_mixte[Categorie.BIC].get(),
            bnc=self.ca_mixte[Categorie.BNC].get(),
        )

    def recalculer(self) -> CalculationSnapshot:
        """Lit les champs, calcule et met à jour l'affichage."""
        snapshot = self.calculator.calculate(self.lire_saisie())
        self.last_snapshot = snapshot
        self.results.show(snapshot)
        return snapshot

    def _refresh(self):
        # Le mode doit être appliqué avant la lecture des champs
        self._sync_mode_ui()
        self.recalculer()

    def on_input_changed(self):
        """Planifie un recalcul après chaque modification de saisie."""
        self.results.set_status(calculating=True)
        self.after_idle(self._refresh)

    def _on_configuration_changed(self, config: RateConfiguration):
        logger.debug(f"Configuration mise à jour : {config.to_dict()}")
        self.results.set_status(calculating=True)
        self.after(0, self._refresh)

    # -------- Options --------
    def open_options(self):
        """Ouvre la fenêtre des options avancées."""
        open_options(self, self.store)

    # -------- Export --------
    def export_html(self):
        """Exporte les résultats courants en HTML."""
        snapshot = self.recalculer()
        filepath = filedialog.asksaveasfilename(
            title="Enregistrer le rapport HTML",
            initialdir=str(OUTPUT_DIR),
            initialfile=DEFAULT_HTML_FILENAME,
            defaultextension=".html",
            filetypes=[("HTML", "*.html *.htm")],
        )
        if not filepath:
            return

        try:
            path = ReportGenerator().export_html(snapshot, filepath)
        except OSError as e:
            logger.error(f"Erreur export HTML : {e}")
            messagebox.showerror("Erreur", f"Impossible d'enregistrer le rapport : {e}")
            return

        if messagebox.askyesno("Export terminé", "Rapport enregistré. L'ouvrir maintenant ?"):
            webbrowser.open(Path(path).resolve().as_uri())

    def export_pdf(self):
        """Exporte les résultats courants en PDF (rendu en arrière-plan)."""
        snapshot = self.recalculer()
        filepath = filedialog.asksaveasfilename(
            title="Enregistrer le rapport PDF",
            initialdir=str(OUTPUT_DIR),
            initialfile=DEFAULT_PDF_FILENAME,
            defaultextension=".pdf",
            filetypes=[("PDF", "*.pdf")],
        )
        if not filepath:
            return

        self.btn_pdf.configure(state="disabled", text="⏳ Génération...")
        thread = threading.Thread(
            target=self._export_pdf_worker, args=(snapshot, filepath), daemon=True
        )
        thread.start()

    def _export_pdf_worker(self, snapshot: CalculationSnapshot, filepath: str):
        try:
            path = ReportGenerator().export_pdf(snapshot, filepath)
            self.after(0, lambda: messagebox.showinfo("Export terminé", f"PDF enregistré :\n{path}"))
        except Exception as e:
            logger.exception("Erreur export PDF")
            self.after(0, lambda err=e: messagebox.showerror("Erreur", f"Export PDF impossible : {err}"))
        finally:
            self.after(0, lambda: self.btn_pdf.configure(state="normal", text="Exporter PDF"))

    def close(self):
        """Ferme l'application."""
        self._unsubscribe()
        self.destroy()


def run_app(store: Optional[SettingsStore] = None):
    """Lance l'application."""
    app = CalcAEApp(store)
    app.mainloop()


if __name__ == "__main__":
    run_app()
