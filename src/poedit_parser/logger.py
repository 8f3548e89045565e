"""
Module de configuration du logging pour poedit-parser.

Ce module fournit une fonction centralisée pour configurer le système de logging
avec sortie console (STDERR) et fichier. Tous les modules de l'application
obtiennent leur logger via get_logger(__name__).

Fonctionnalités :
- Regroupement des logs par exécution dans logs/run_YYYYMMDD_HHMMSS/
  (répertoire de base surchargeable via POEDIT_PARSER_LOG_DIR)
- Création différée du répertoire et des fichiers (aucun fichier vide)
- Sortie console compatible avec les barres de progression tqdm
- Niveau console ajustable à chaud (--verbose)
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .config import LoggerLevel

LOG_DIR_ENV = "POEDIT_PARSER_LOG_DIR"
DEFAULT_LOG_FILENAME = "parser.log"
PACKAGE_LOGGER = "poedit_parser"


# ============================================================
# 🔹 Gestionnaire de session de logs
# ============================================================


class LogSession:
    """
    Gestionnaire singleton pour regrouper tous les logs d'une exécution.

    Le répertoire de session (base/run_YYYYMMDD_HHMMSS) n'est créé qu'au
    premier message réellement écrit dans un fichier.
    """

    _base_dir: Optional[Path] = None
    _session_dir: Optional[Path] = None

    @classmethod
    def configure(cls, base_dir: Optional[Path]) -> None:
        """Change le répertoire de base (la session suivante y sera créée)."""
        cls._base_dir = Path(base_dir) if base_dir is not None else None
        cls._session_dir = None

    @classmethod
    def get_session_dir(cls) -> Path:
        """Retourne (et crée si besoin) le répertoire de la session en cours."""
        if cls._session_dir is None:
            base_dir = cls._base_dir or Path(os.getenv(LOG_DIR_ENV, "logs"))
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            cls._session_dir = base_dir / f"run_{timestamp}"
        cls._session_dir.mkdir(parents=True, exist_ok=True)
        return cls._session_dir

    @classmethod
    def reset(cls):
        """Reset la session (utile pour les tests)."""
        cls._base_dir = None
        cls._session_dir = None


# ============================================================
# 🔹 Handlers de logging
# ============================================================


class TqdmLoggingHandler(logging.Handler):
    """
    Handler console compatible avec tqdm.

    Utilise tqdm.write() pour afficher les logs sans casser les barres de
    progression du pool de workers.
    """

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
        except Exception:
            self.handleError(record)


class LazyFileHandler(logging.Handler):
    """
    Handler qui crée le fichier de log seulement au premier message.

    Le chemin est résolu dans le répertoire de session au moment du premier
    emit, pas à l'import du module qui déclare le logger.
    """

    def __init__(
        self,
        filename: str,
        mode: str = "a",
        encoding: str = "utf-8",
        level: int = logging.NOTSET,
    ):
        super().__init__(level)
        self.filename = filename
        self.mode = mode
        self.encoding = encoding
        self._handler: Optional[logging.FileHandler] = None

    def _ensure_handler(self):
        if self._handler is None:
            path = LogSession.get_session_dir() / self.filename
            self._handler = logging.FileHandler(
                path, mode=self.mode, encoding=self.encoding
            )
            if self.formatter:
                self._handler.setFormatter(self.formatter)

    def emit(self, record):
        try:
            self._ensure_handler()
            if self._handler:
                self._handler.emit(record)
        except Exception:
            self.handleError(record)

    def reset(self):
        """Ferme le fichier courant ; le prochain message ouvrira la session active."""
        if self._handler:
            self._handler.close()
        self._handler = None

    def close(self):
        self.reset()
        super().close()


# ============================================================
# 🔹 Configuration des loggers
# ============================================================


def setup_logger(
    name: str,
    level: int = LoggerLevel.level,
    console_level: int = LoggerLevel.console_level,
    file_level: int = LoggerLevel.file_level,
    log_filename: str = DEFAULT_LOG_FILENAME,
) -> logging.Logger:
    """
    Configure un logger avec sortie console et fichier.

    Args:
        name: Nom du logger (généralement __name__ du module)
        level: Niveau de logging global du logger
        console_level: Niveau de logging pour la sortie console
        file_level: Niveau de logging pour le fichier
        log_filename: Nom du fichier de log dans le répertoire de session

    Returns:
        Logger configuré avec handlers console et fichier

    Example:
        >>> logger = setup_logger(__name__)
        >>> logger.info("Scan démarré")
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Éviter d'ajouter des handlers multiples si déjà configuré
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = LazyFileHandler(log_filename)
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Les handlers sont posés sur chaque module : pas de double sortie via root
    logger.propagate = False
    return logger


def get_logger(name: str, log_filename: Optional[str] = None) -> logging.Logger:
    """
    Récupère un logger existant ou en crée un nouveau avec la configuration par défaut.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.warning("Fichier ignoré")
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logger(name, log_filename=log_filename or DEFAULT_LOG_FILENAME)
    return logger


def _package_loggers() -> list[logging.Logger]:
    manager = logging.Logger.manager
    return [
        logger
        for name, logger in list(manager.loggerDict.items())
        if isinstance(logger, logging.Logger)
        and (name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."))
    ]


def set_console_level(level: int) -> None:
    """
    Change le niveau de la sortie console de tous les loggers du package.

    Utilisé par --verbose pour afficher le détail du traitement sur STDERR.
    """
    for logger in _package_loggers():
        for handler in logger.handlers:
            if isinstance(handler, TqdmLoggingHandler):
                handler.setLevel(level)


def reset_file_handlers() -> None:
    """Force la réouverture des fichiers de log dans la session active."""
    for logger in _package_loggers():
        for handler in logger.handlers:
            if isinstance(handler, LazyFileHandler):
                handler.reset()


def get_session_log_path(filename: str = DEFAULT_LOG_FILENAME) -> Path:
    """Chemin complet d'un fichier de log dans le répertoire de session."""
    return LogSession.get_session_dir() / filename
