"""
Lecture et écriture des catalogues PO (via polib).

Le modèle d'entrée de catalogue est polib.POEntry ; ce module ne fait que la
conversion depuis les mots-clés extraits et l'accès disque / STDOUT.
"""

import os
import shutil
import sys
from pathlib import Path
from typing import Iterable, Optional, TextIO, Union

import polib

from . import __version__
from .exceptions import CatalogParseError, CatalogWriteError
from .keywords import STDIN_NAME, KeywordEntry, Position
from .logger import get_logger

logger = get_logger(__name__)

GENERATOR = f"poedit-parser {__version__}"
HEADER_COMMENT = "PO file created using poedit-parser"
BUGS_URL = "https://github.com/nd1012/wan24-PoeditParser/issues"

# Isolation Unicode des noms de fichiers contenant des espaces (convention Poedit)
_FSI = "\u2068"
_PDI = "\u2069"

FUZZY_FLAG = "fuzzy"
STDOUT_NAME = "<stdout>"


def header_metadata(source_encoding: str = "utf-8") -> dict[str, str]:
    """En-têtes PO écrits dans un nouveau catalogue."""
    return {
        "Project-Id-Version": GENERATOR,
        "Report-Msgid-Bugs-To": BUGS_URL,
        "MIME-Version": "1.0",
        "Content-Type": "text/plain; charset=UTF-8",
        "Content-Transfer-Encoding": "8bit",
        "X-Generator": GENERATOR,
        "X-Poedit-SourceCharset": source_encoding,
    }


def format_reference(position: Position) -> tuple[str, str]:
    """Convertit une position en occurrence polib (fichier, ligne)."""
    file_name = position.file if position.file is not None else STDIN_NAME
    if " " in file_name:
        file_name = f"{_FSI}{file_name}{_PDI}"
    return (file_name, str(position.line))


def references_for(positions: Iterable[Position]) -> list[tuple[str, str]]:
    """Occurrences triées (fichier, ligne) pour un ensemble de positions."""
    return [format_reference(p) for p in sorted(positions, key=Position.sort_key)]


def new_catalog(source_encoding: str = "utf-8", with_header: bool = True) -> polib.POFile:
    """
    Crée un catalogue vide.

    Args:
        source_encoding: Encodage des sources (en-tête X-Poedit-SourceCharset)
        with_header: Écrire le commentaire et les métadonnées d'en-tête
    """
    catalog = polib.POFile(wrapwidth=0)
    catalog.encoding = "utf-8"
    if with_header:
        catalog.header = HEADER_COMMENT
        catalog.metadata = header_metadata(source_encoding)
    return catalog


def new_entry(entry: KeywordEntry) -> polib.POEntry:
    """Entrée de catalogue vierge (traduction vide) pour un mot-clé."""
    return polib.POEntry(
        msgid=entry.keyword,
        msgstr="",
        occurrences=references_for(entry.positions),
    )


def build_catalog(
    entries: Iterable[KeywordEntry],
    source_encoding: str = "utf-8",
    with_header: bool = True,
) -> polib.POFile:
    """Construit un nouveau catalogue à partir des mots-clés d'un scan."""
    catalog = new_catalog(source_encoding, with_header)
    for entry in sorted(entries, key=lambda e: e.keyword):
        catalog.append(new_entry(entry))
    logger.debug(f"Built catalog with {len(catalog)} entries")
    return catalog


def load_catalog(path: Union[str, Path]) -> polib.POFile:
    """
    Charge un catalogue PO existant.

    Raises:
        CatalogParseError: Fichier absent, illisible ou syntaxe PO invalide
    """
    path = Path(path)
    if not path.is_file():
        raise CatalogParseError(str(path), FileNotFoundError("file not found"))
    try:
        catalog = polib.pofile(str(path), wrapwidth=0)
    except (OSError, ValueError, UnicodeDecodeError) as e:
        raise CatalogParseError(str(path), e) from e
    logger.info(f"Loaded catalog {str(path)!r} ({len(catalog)} entries)")
    return catalog


def write_catalog(
    catalog: polib.POFile,
    path: Optional[Union[str, Path]] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Écrit un catalogue dans un fichier (écrasé) ou sur STDOUT.

    Le contenu est encodé avant toute écriture, puis écrit dans un fichier
    temporaire du même dossier qui remplace la sortie (os.replace) : un échec
    laisse le fichier existant intact.

    Raises:
        CatalogWriteError: Contenu non encodable ou écriture impossible
    """
    content = str(catalog)
    if content and not content.endswith("\n"):
        content += "\n"

    if path is None:
        output = stream or sys.stdout
        try:
            output.write(content)
            output.flush()
        except UnicodeEncodeError as e:
            raise CatalogWriteError(STDOUT_NAME, e) from e
        return

    path = Path(path)
    try:
        data = content.encode(catalog.encoding or "utf-8")
    except (LookupError, UnicodeEncodeError) as e:
        raise CatalogWriteError(str(path), e) from e

    temp_path = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "wb") as f:
            f.write(data)
        if path.exists():
            shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    except OSError as e:
        raise CatalogWriteError(str(path), e) from e
    finally:
        if temp_path.exists():
            temp_path.unlink()

    logger.info(f"Wrote {len(catalog)} entries to {str(path)!r}")
