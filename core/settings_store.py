"""
Stockage persistant des réglages (taux, arrondi, VL) avec diffusion des mises à jour
"""
import json
import threading
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Union
import logging

import sys

sys.path.append(str(Path(__file__).parent.parent))
from config.settings import SETTINGS_FILE
from core.rates import DEFAULT_CONFIGURATION, RateConfiguration

logger = logging.getLogger(__name__)

Subscriber = Callable[[RateConfiguration], None]


class SettingsStore:
    """
    Source unique de la configuration des taux.

    get() retourne toujours une configuration complète. set() fusionne une
    configuration partielle, la sauvegarde puis la diffuse à tous les abonnés.
    """

    def __init__(self, path: Union[str, Path] = SETTINGS_FILE):
        """
        Initialise le store et charge le fichier de réglages.

        Args:
            path: Chemin du fichier JSON de réglages
        """
        self.path = Path(path)
        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []
        self._current = self._load()

    def _load(self) -> RateConfiguration:
        """Charge les réglages depuis le fichier JSON (valeurs par défaut si absent ou invalide)."""
        if not self.path.exists():
            return DEFAULT_CONFIGURATION

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Réglages illisibles, retour aux valeurs par défaut : {e}")
            return DEFAULT_CONFIGURATION

        if not isinstance(loaded, dict):
            logger.error("Réglages invalides (objet JSON attendu), retour aux valeurs par défaut")
            return DEFAULT_CONFIGURATION

        return DEFAULT_CONFIGURATION.merge(loaded)

    def _save(self, config: RateConfiguration) -> None:
        """Sauvegarde les réglages dans le fichier JSON."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)

        logger.info(f"Réglages sauvegardés : {self.path}")

    def get(self) -> RateConfiguration:
        """Retourne la configuration courante."""
        return self._current

    def set(
        self, partial: Union[Mapping, RateConfiguration, None]
    ) -> RateConfiguration:
        """
        Fusionne une configuration partielle, la sauvegarde et la diffuse.

        Args:
            partial: Dictionnaire partiel au format JSON ou configuration complète

        Returns:
            La configuration fusionnée
        """
        if isinstance(partial, RateConfiguration):
            partial = partial.to_dict()

        with self._lock:
            merged = self._current.merge(partial)
            self._current = merged
            subscribers = list(self._subscribers)

            try:
                self._save(merged)
            except OSError as e:
                # La configuration reste appliquée en mémoire
                logger.error(f"Erreur écriture réglages : {e}")

        self._broadcast(merged, subscribers)
        return merged

    def reset(self) -> RateConfiguration:
        """Rétablit les taux par défaut."""
        return self.set(DEFAULT_CONFIGURATION)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Abonne un consommateur aux changements de configuration.

        Returns:
            Fonction de désabonnement
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @staticmethod
    def _broadcast(config: RateConfiguration, subscribers: List[Subscriber]) -> None:
        for callback in subscribers:
            try:
                callback(config)
            except Exception:
                logger.exception("Erreur dans un abonné aux réglages")


# Instance globale
_store: Optional[SettingsStore] = None


def get_store() -> SettingsStore:
    """Retourne l'instance globale du store de réglages."""
    global _store
    if _store is None:
        _store = SettingsStore()
    return _store
