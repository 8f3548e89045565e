"""
Extraction des chaînes traduisibles de fichiers sources vers un catalogue PO.

poedit-parser parcourt des fichiers sources ligne par ligne, repère les
littéraux traduisibles grâce à une liste ordonnée d'expressions régulières,
agrège les mots-clés trouvés avec leurs positions (en parallèle), puis écrit
un catalogue PO neuf ou fusionne le résultat dans un catalogue existant
(correspondance exacte puis approximative par distance de Levenshtein).

Le processus :
1. Énumère les fichiers sources (extensions, exclusions, récursivité)
2. Répartit les fichiers entre les workers du pool
3. Extrait les mots-clés de chaque ligne (patterns de recherche puis de
   remplacement, décodage du littéral)
4. Fusionne ou construit le catalogue et l'écrit (fichier ou STDOUT)

Organisation du package :
- patterns.py : Compilation des règles (expression, options, remplacement)
- extractor.py : Extraction des mots-clés d'une ligne
- keywords.py : Agrégateur thread-safe des mots-clés et positions
- worker.py : Pool de workers parallèles
- merger.py / fuzzy.py : Fusion de catalogue et recherche approximative
- catalog.py : Lecture / écriture PO (polib)
- scanner.py : Orchestration d'une exécution complète
- bundle.py : Construction / extraction des fichiers de traduction i8n
- config.py / logger.py / exceptions.py : Configuration, logs, erreurs

Usage minimal :
    >>> from poedit_parser import ParserConfig, run_parse
    >>> summary = run_parse(["src"], ParserConfig(), output="messages.po")
    >>> print(summary)
    12 source(s), 40 keyword(s)

Usage avec fusion :
    >>> config = ParserConfig(merge_output=True, fuzzy_percent=10)
    >>> summary = run_parse(["src"], config, output="messages.po")
    >>> print(summary.merge)
    1 new, 38 existing, 1 fuzzy, 2 obsolete

Version: 0.1.0
"""

# Défini avant les imports : catalog.py l'utilise pour l'en-tête PO
__version__ = "0.1.0"

# Configuration et erreurs
from .config import DEFAULT_CONFIG, ParserConfig, apply_config_data, load_config_file
from .exceptions import (
    BundleFormatError,
    CatalogParseError,
    CatalogWriteError,
    ConfigurationError,
    LiteralDecodeError,
    ParserError,
    ScanAbortedError,
    SourceReadError,
)

# Extraction
from .literal import decode_literal
from .patterns import ParserPattern, PatternSet
from .extractor import LineExtractor, LineResult
from .keywords import KeywordAggregator, KeywordEntry, KeywordOccurrence, Position
from .worker import FileWorkerPool, ScanStatistics

# Catalogue
from .fuzzy import fuzzy_lookup, levenshtein_distance
from .catalog import build_catalog, load_catalog, new_catalog, write_catalog
from .merger import CatalogMerger, MergeResult

# Orchestration
from .scanner import ParseSummary, run_parse, scan_files, scan_stream

# Exports publics
__all__ = [
    # Version
    "__version__",
    # Configuration
    "ParserConfig",
    "DEFAULT_CONFIG",
    "load_config_file",
    "apply_config_data",
    # Erreurs
    "ParserError",
    "ConfigurationError",
    "LiteralDecodeError",
    "SourceReadError",
    "CatalogParseError",
    "CatalogWriteError",
    "ScanAbortedError",
    "BundleFormatError",
    # Extraction
    "decode_literal",
    "ParserPattern",
    "PatternSet",
    "LineExtractor",
    "LineResult",
    "KeywordAggregator",
    "KeywordEntry",
    "KeywordOccurrence",
    "Position",
    "FileWorkerPool",
    "ScanStatistics",
    # Catalogue
    "levenshtein_distance",
    "fuzzy_lookup",
    "new_catalog",
    "build_catalog",
    "load_catalog",
    "write_catalog",
    "CatalogMerger",
    "MergeResult",
    # Orchestration
    "ParseSummary",
    "scan_files",
    "scan_stream",
    "run_parse",
]
