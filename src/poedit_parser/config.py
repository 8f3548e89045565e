"""
Configuration du parser Poedit.

Deux niveaux :
- LoggerLevel : singleton verrouillable pour les niveaux de logging
  (configuration ambiante, partagée par tous les modules)
- ParserConfig : objet immuable construit une seule fois au démarrage et
  passé explicitement à l'extraction et à la fusion

Le fichier de configuration JSON reprend les clés historiques de l'outil :

    {
        "SingleThread": false,
        "Encoding": "utf-8",
        "Patterns": [["regex", "IgnoreCase"], ["regex", "None", "$1"]],
        "FileExtensions": [".cs"],
        "MergeOutput": false,
        "FailOnError": false,
        "FuzzyPercent": 0,
        "Merge": false
    }
"""

import codecs
import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import ConfigurationError

PatternTuple = Union[tuple[str, Any], tuple[str, Any, str]]


class ConfigBase:
    # Attribut de classe pour le singleton
    _instance = None
    _locked: bool = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def lock(self):
        # Verrouillage idempotent : main() peut être appelé plusieurs fois
        object.__setattr__(self, "_locked", True)

    def __setattr__(self, name, value):
        if getattr(self, "_locked", False):
            raise AttributeError("Configuration is locked")
        super().__setattr__(name, value)


class LoggerLevel(ConfigBase):
    level: int = logging.DEBUG
    console_level: int = logging.WARNING
    file_level: int = logging.DEBUG


def lock_config():
    """Verrouille la configuration pour empêcher les modifications ultérieures."""
    LoggerLevel().lock()


# ============================================================
# 🔹 Configuration du parser
# ============================================================

# Chaîne littérale entre guillemets doubles (au moins un caractère non échappé
# avant le guillemet fermant), telle qu'écrite dans les sources C#
_QUOTED = r'(\".*[^\\]\")'

DEFAULT_PATTERNS: tuple[PatternTuple, ...] = (
    # Attributs [Description("...")] / [DisplayText("...")]
    (r"^.*((Description|DisplayText)\(\s*" + _QUOTED + r"\s*\)).*$", "Compiled"),
    (r"^.*((Description|DisplayText)\(\s*" + _QUOTED + r"\s*\)).*$", "Compiled", "$3"),
    # Appels _("..."), __("..."), gettext("..."), Translate("..."), GetTerm("...")
    (r"^.*((__?|gettextn?|Translate(Plural)?|GetTerm)\(\s*" + _QUOTED + r").*$", "Compiled"),
    (r"^.*((__?|gettextn?|Translate(Plural)?|GetTerm)\(\s*" + _QUOTED + r").*$", "Compiled", "$4"),
    # Exemples des attributs CliApi(..., Example = "...")
    (r"^.*(CliApi[^\s]*\([^\)]*Example\s*\=\s*" + _QUOTED + r").*$", "Compiled"),
    (r"^.*(CliApi[^\s]*\([^\)]*Example\s*\=\s*" + _QUOTED + r").*$", "Compiled", "$2"),
)

DEFAULT_FILE_EXTENSIONS: tuple[str, ...] = (".cs",)

DEFAULT_ENCODING = "utf-8"


def default_worker_count() -> int:
    """Deux workers par cœur logique."""
    return (os.cpu_count() or 1) * 2


@dataclass(frozen=True)
class ParserConfig:
    """
    Configuration immuable d'une exécution.

    Attributes:
        patterns: Tuples bruts (expression, options[, remplacement]) dans
                  l'ordre de priorité
        file_extensions: Extensions recherchées (avec le point)
        encoding: Encodage des fichiers sources
        single_thread: Traiter un seul fichier à la fois
        recursive: Descendre dans les sous-dossiers
        merge_output: Fusionner avec le fichier PO de sortie existant
        fail_on_error: Interrompre tout le scan à la première erreur
        fuzzy_percent: Seuil de correspondance approximative (0 = désactivé)
        num_workers: Nombre de workers (None = 2 x nombre de cœurs)
    """

    patterns: tuple[PatternTuple, ...] = DEFAULT_PATTERNS
    file_extensions: tuple[str, ...] = DEFAULT_FILE_EXTENSIONS
    encoding: str = DEFAULT_ENCODING
    single_thread: bool = False
    recursive: bool = True
    merge_output: bool = False
    fail_on_error: bool = False
    fuzzy_percent: int = 0
    num_workers: Optional[int] = field(default=None)

    def __post_init__(self):
        validate_encoding(self.encoding)
        if not 0 <= self.fuzzy_percent <= 100:
            raise ConfigurationError(
                f"fuzzy_percent must be within 0..100, got {self.fuzzy_percent}"
            )
        if self.num_workers is not None and self.num_workers < 1:
            raise ConfigurationError(
                f"num_workers must be >= 1, got {self.num_workers}"
            )

    def compile_patterns(self):
        """Compile les patterns dans un PatternSet (erreurs fatales)."""
        from .patterns import PatternSet

        return PatternSet.from_config(self.patterns)

    def worker_count(self, verbose: bool = False) -> int:
        """
        Nombre effectif de workers.

        Le mode verbeux force un seul worker : l'ordre des logs reste
        déterministe au prix du débit.
        """
        if self.single_thread or verbose:
            return 1
        return self.num_workers or default_worker_count()

    def with_overrides(self, **changes) -> "ParserConfig":
        """Retourne une copie modifiée (les valeurs None sont ignorées)."""
        changes = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **changes)


def validate_encoding(encoding: str) -> str:
    """Vérifie qu'un identifiant d'encodage est connu de Python."""
    try:
        return codecs.lookup(encoding).name
    except (LookupError, TypeError) as e:
        raise ConfigurationError(f"Unknown source encoding {encoding!r}") from e


DEFAULT_CONFIG = ParserConfig()


def load_config_file(
    path: Union[str, Path], base: ParserConfig = DEFAULT_CONFIG
) -> ParserConfig:
    """
    Charge un fichier de configuration JSON par-dessus une configuration de base.

    Args:
        path: Chemin du fichier JSON
        base: Configuration de départ (défaut: configuration par défaut)

    Returns:
        Nouvelle configuration immuable

    Raises:
        ConfigurationError: Fichier illisible, JSON invalide ou valeurs incorrectes

    Example:
        >>> config = load_config_file("parser.json")
        >>> config.fuzzy_percent
        10
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to load configuration {str(path)!r}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration {str(path)!r} must contain a JSON object"
        )

    return apply_config_data(data, base)


def apply_config_data(data: dict[str, Any], base: ParserConfig) -> ParserConfig:
    """Applique un dictionnaire de configuration (clés historiques) à `base`."""
    merge = bool(data.get("Merge", False))
    changes: dict[str, Any] = {}

    if "SingleThread" in data:
        changes["single_thread"] = bool(data["SingleThread"])
    if data.get("Encoding") is not None:
        changes["encoding"] = data["Encoding"]
    if "MergeOutput" in data:
        changes["merge_output"] = bool(data["MergeOutput"])
    if "FailOnError" in data:
        changes["fail_on_error"] = bool(data["FailOnError"])
    if "FuzzyPercent" in data:
        changes["fuzzy_percent"] = _as_int(data["FuzzyPercent"], "FuzzyPercent")

    patterns = data.get("Patterns")
    if patterns is not None:
        if not isinstance(patterns, list):
            raise ConfigurationError("Patterns must be a list of pattern definitions")
        parsed = tuple(_parse_pattern_definition(p) for p in patterns)
        changes["patterns"] = base.patterns + parsed if merge else parsed

    extensions = data.get("FileExtensions")
    if extensions is not None:
        if not isinstance(extensions, list) or not all(
            isinstance(ext, str) for ext in extensions
        ):
            raise ConfigurationError("FileExtensions must be a list of strings")
        parsed_ext = tuple(extensions)
        changes["file_extensions"] = (
            base.file_extensions + parsed_ext if merge else parsed_ext
        )

    return replace(base, **changes)


def _parse_pattern_definition(definition: Any) -> PatternTuple:
    if not isinstance(definition, (list, tuple)) or len(definition) not in (2, 3):
        size = len(definition) if isinstance(definition, (list, tuple)) else "?"
        raise ConfigurationError(
            f"Invalid pattern definition with {size} elements"
        )
    return tuple(definition)  # type: ignore[return-value]


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e
