"""
Tests de la fenêtre des options (logique de remplissage des champs)
"""
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

pytest.importorskip("customtkinter")

from gui.options import texte_champ


class TestTexteChamp:
    """Tests du texte réécrit dans un champ de taux."""

    def test_champ_vide_en_saisie_conserve(self):
        """Test un champ vidé pour être ressaisi n'est pas remplacé par 0."""
        assert texte_champ("", 0.0, en_saisie=True) is None

    def test_champ_en_saisie_jamais_reecrit(self):
        assert texte_champ("12,", 12.0, en_saisie=True) is None
        assert texte_champ("15", 21.2, en_saisie=True) is None

    def test_champ_equivalent_conserve(self):
        """Test une saisie équivalente (virgule, unité) reste telle quelle."""
        assert texte_champ("12,3", 12.3) is None
        assert texte_champ("12,3 %", 12.3) is None

    def test_champ_sans_focus_mis_a_jour(self):
        assert texte_champ("", 0.0) == "0"
        assert texte_champ("12.3", 21.2) == "21.2"
        assert texte_champ("", 0.1) == "0.1"
