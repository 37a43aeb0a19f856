"""
CALC-AE - Fenêtre des options avancées
Édition des taux par catégorie, du mode d'arrondi et du versement libératoire.
"""
import customtkinter as ctk
from tkinter import messagebox
from typing import Dict, Optional
import logging

from config.settings import CATEGORY_LABELS, RATE_LABELS, ROUND_LABELS
from core.rates import RATE_FIELDS, Categorie, RateConfiguration, parse_taux
from core.settings_store import SettingsStore

logger = logging.getLogger("CALC-AE.Options")


def texte_champ(current: str, value: float, en_saisie: bool = False) -> Optional[str]:
    """
    Texte à écrire dans un champ de taux après une mise à jour du store.

    Returns:
        None si le champ doit rester tel quel : il a le focus (l'utilisateur
        est en train de le saisir) ou il affiche déjà la même valeur.
    """
    if en_saisie:
        return None
    if current and parse_taux(current) == value:
        return None
    return f"{value:g}"


class OptionsWindow(ctk.CTkToplevel):
    """Fenêtre d'options : chaque modification est appliquée immédiatement."""

    def __init__(self, parent, store: SettingsStore):
        super().__init__(parent)

        self.title("Calc AE – Options")
        self.geometry("620x720")

        self.store = store
        self.rate_entries: Dict[Categorie, Dict[str, ctk.CTkEntry]] = {}
        self._filling = False
        self._editing: Optional[ctk.CTkEntry] = None
        self._closed = False

        self.transient(parent)

        self._create_ui()
        self._fill(self.store.get())

        self._unsubscribe = self.store.subscribe(self._on_configuration_changed)
        self.protocol("WM_DELETE_WINDOW", self.close)

    def _create_ui(self):
        """Crée l'interface."""
        self.scroll = ctk.CTkScrollableFrame(self)
        self.scroll.pack(fill="both", expand=True, padx=10, pady=10)

        # === Affichage ===
        self._create_section("🎯 Affichage")

        round_frame = ctk.CTkFrame(self.scroll, fg_color="transparent")
        round_frame.pack(fill="x", padx=10, pady=5)
        ctk.CTkLabel(round_frame, text="Arrondi :", width=180, anchor="w").pack(side="left")

        self._round_by_label = {label: mode for mode, label in ROUND_LABELS.items()}
        self.round_var = ctk.StringVar(value=ROUND_LABELS["none"])
        ctk.CTkOptionMenu(
            round_frame,
            values=list(ROUND_LABELS.values()),
            variable=self.round_var,
            command=lambda _value: self._on_edit(),
            width=220,
        ).pack(side="left")

        self.vl_var = ctk.BooleanVar(value=False)
        ctk.CTkCheckBox(
            self.scroll,
            text="Inclure le versement libératoire (VL) dans les charges",
            variable=self.vl_var,
            command=self._on_edit,
        ).pack(anchor="w", padx=10, pady=(5, 10))

        # === Taux par catégorie ===
        for categorie in Categorie:
            self._create_section(f"📊 {CATEGORY_LABELS[categorie.value]} (%)")
            entries = {}
            for rate_name in RATE_FIELDS:
                # Pas de taxe CCI pour les professions libérales
                if categorie is Categorie.BNC and rate_name == "cci":
                    continue
                entries[rate_name] = self._create_field(RATE_LABELS[rate_name])
            self.rate_entries[categorie] = entries

        # === Boutons ===
        btn_frame = ctk.CTkFrame(self, fg_color="transparent")
        btn_frame.pack(fill="x", padx=10, pady=10)

        ctk.CTkButton(
            btn_frame,
            text="Fermer",
            command=self.close,
            height=40,
        ).pack(side="right", padx=5)

        ctk.CTkButton(
            btn_frame,
            text="↺ Réinitialiser",
            command=self._on_reset,
            fg_color="transparent",
            border_width=1,
            height=40,
        ).pack(side="right", padx=5)

    def _create_section(self, title: str):
        ctk.CTkLabel(
            self.scroll,
            text=title,
            font=ctk.CTkFont(size=14, weight="bold"),
            anchor="w",
        ).pack(fill="x", padx=10, pady=(15, 5))

    def _create_field(self, label: str) -> ctk.CTkEntry:
        frame = ctk.CTkFrame(self.scroll, fg_color="transparent")
        frame.pack(fill="x", padx=10, pady=2)

        ctk.CTkLabel(frame, text=label, width=180, anchor="w").pack(side="left")

        entry = ctk.CTkEntry(frame, width=120)
        entry.pack(side="left")
        entry.bind("<KeyRelease>", lambda _event: self._on_edit())
        entry.bind("<FocusIn>", lambda _event: self._set_editing(entry))
        entry.bind("<FocusOut>", lambda _event: self._set_editing(None))
        return entry

    def _set_editing(self, entry: Optional[ctk.CTkEntry]):
        self._editing = entry
        if entry is None and not self._closed:
            # Champ quitté : afficher la valeur retenue (ex. "0" pour un champ vidé)
            self._fill(self.store.get())

    def _fill(self, config: RateConfiguration):
        """Remplit les champs avec une configuration."""
        self._filling = True
        try:
            self.round_var.set(ROUND_LABELS[config.round_mode.value])
            self.vl_var.set(config.include_vl)
            for categorie, entries in self.rate_entries.items():
                rate_set = config.rate_set(categorie)
                for rate_name, entry in entries.items():
                    text = texte_champ(
                        entry.get(),
                        getattr(rate_set, rate_name),
                        en_saisie=entry is self._editing,
                    )
                    if text is None:
                        continue
                    entry.delete(0, "end")
                    entry.insert(0, text)
        finally:
            self._filling = False

    def collect(self) -> Dict:
        """Construit la configuration partielle correspondant aux champs."""
        rates = {}
        for categorie, entries in self.rate_entries.items():
            rates[categorie.value] = {
                name: parse_taux(entry.get()) for name, entry in entries.items()
            }
        rates[Categorie.BNC.value]["cci"] = 0

        return {
            "roundMode": self._round_by_label.get(self.round_var.get(), "none"),
            "includeVL": bool(self.vl_var.get()),
            "rates": rates,
        }

    def _on_edit(self):
        if self._filling:
            return
        self.store.set(self.collect())

    def _on_reset(self):
        if messagebox.askyesno("Réinitialiser", "Rétablir les taux par défaut ?", parent=self):
            self.store.reset()
            logger.info("Taux par défaut rétablis")

    def _on_configuration_changed(self, config: RateConfiguration):
        self.after(0, lambda: self._fill(config))

    def close(self):
        """Ferme la fenêtre et se désabonne du store."""
        self._closed = True
        self._unsubscribe()
        self.destroy()


_options_window: Optional[OptionsWindow] = None


def open_options(parent, store: SettingsStore) -> OptionsWindow:
    """Ouvre la fenêtre d'options (une seule à la fois)."""
    global _options_window
    if _options_window is not None and _options_window.winfo_exists():
        _options_window.focus()
        return _options_window
    _options_window = OptionsWindow(parent, store)
    return _options_window
