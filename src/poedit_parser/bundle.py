"""
Fichiers de traduction i8n : construction depuis JSON / PO / MO et extraction.

Format d'un fichier i8n :

    [en-tête, 1 octet] VERSION | 0x80 si le corps est compressé
    [corps]            JSON UTF-8 {id: [traductions...]}, compressé zlib ou non

L'en-tête est optionnel ; sans lui, le lecteur doit savoir si le corps est
compressé.
"""

import json
import zlib
from pathlib import Path
from typing import IO, Any, Iterable, Optional, Union

import polib

from .catalog import header_metadata, new_catalog
from .exceptions import BundleFormatError
from .logger import get_logger

logger = get_logger(__name__)

VERSION = 1
COMPRESSED_FLAG = 0x80
DEFAULT_PLURAL_FORMS = "nplurals=2; plural=(n != 1);"
BUNDLE_COMMENT = "poedit-parser i8n"

Terms = dict[str, list[str]]
Source = Union[str, Path, IO[Any]]


# ============================================================
# 🔹 Lecture des sources
# ============================================================


def _add_term(terms: Terms, key: str, values: list[str], fail_on_existing_key: bool) -> None:
    if key in terms:
        if fail_on_existing_key:
            raise BundleFormatError(f"Term {key!r} is defined more than once")
        logger.warning(f"Overwriting existing term {key!r}")
    terms[key] = values


def _source_name(source: Source) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    return getattr(source, "name", "<stdin>")


def read_json_terms(
    source: Source, terms: Terms, fail_on_existing_key: bool = False
) -> int:
    """
    Ajoute les termes d'un fichier JSON {id: texte | [textes]}.

    Returns:
        Nombre de termes lus

    Raises:
        BundleFormatError: JSON invalide, valeur non textuelle ou clé en double
    """
    name = _source_name(source)
    try:
        if isinstance(source, (str, Path)):
            with open(source, "r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            data = json.load(source)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BundleFormatError(f"Failed to read JSON source {name!r}: {e}") from e

    if not isinstance(data, dict):
        raise BundleFormatError(f"JSON source {name!r} must contain an object")

    count = 0
    for key, value in data.items():
        if isinstance(value, str):
            values = [value]
        elif isinstance(value, list) and all(isinstance(v, str) for v in value):
            values = list(value)
        else:
            raise BundleFormatError(
                f"Invalid value for term {key!r} in {name!r}: expected string or list of strings"
            )
        _add_term(terms, key, values, fail_on_existing_key)
        count += 1

    logger.info(f"Read {count} term(s) from JSON source {name!r}")
    return count


def _entry_values(entry: polib.POEntry) -> list[str]:
    if entry.msgid_plural:
        return [entry.msgstr_plural[index] for index in sorted(entry.msgstr_plural)]
    return [entry.msgstr]


def _read_catalog_terms(
    catalog: Union[polib.POFile, polib.MOFile],
    name: str,
    terms: Terms,
    fail_on_existing_key: bool,
) -> int:
    count = 0
    for entry in catalog:
        # L'entrée d'id vide est l'en-tête du catalogue
        if not entry.msgid or entry.obsolete:
            continue
        _add_term(terms, entry.msgid, _entry_values(entry), fail_on_existing_key)
        count += 1
    logger.info(f"Read {count} term(s) from catalog {name!r}")
    return count


def read_po_terms(source: Source, terms: Terms, fail_on_existing_key: bool = False) -> int:
    """Ajoute les termes d'un catalogue PO (les formes plurielles dans l'ordre)."""
    name = _source_name(source)
    try:
        if isinstance(source, (str, Path)):
            catalog = polib.pofile(str(source))
        else:
            content = source.read()
            if isinstance(content, bytes):
                content = content.decode("utf-8")
            catalog = polib.pofile(content)
    except (OSError, ValueError, UnicodeDecodeError) as e:
        raise BundleFormatError(f"Failed to read PO source {name!r}: {e}") from e
    return _read_catalog_terms(catalog, name, terms, fail_on_existing_key)


def read_mo_terms(source: Source, terms: Terms, fail_on_existing_key: bool = False) -> int:
    """Ajoute les termes d'un catalogue MO compilé."""
    name = _source_name(source)
    try:
        if isinstance(source, (str, Path)):
            catalog = polib.mofile(str(source))
        else:
            catalog = polib.mofile(source.read())
    except (OSError, ValueError, UnicodeDecodeError) as e:
        raise BundleFormatError(f"Failed to read MO source {name!r}: {e}") from e
    return _read_catalog_terms(catalog, name, terms, fail_on_existing_key)


def build_terms(
    json_inputs: Iterable[Source] = (),
    po_inputs: Iterable[Source] = (),
    mo_inputs: Iterable[Source] = (),
    fail_on_existing_key: bool = False,
) -> Terms:
    """
    Rassemble les termes de plusieurs sources (JSON, puis MO, puis PO).

    Une source plus tardive écrase les termes déjà lus, sauf si
    fail_on_existing_key est actif.

    Raises:
        BundleFormatError: Source illisible ou clé en double
    """
    terms: Terms = {}
    for source in json_inputs:
        read_json_terms(source, terms, fail_on_existing_key)
    for source in mo_inputs:
        read_mo_terms(source, terms, fail_on_existing_key)
    for source in po_inputs:
        read_po_terms(source, terms, fail_on_existing_key)
    logger.info(f"Found {len(terms)} terms in total")
    return terms


# ============================================================
# 🔹 Écriture / lecture du fichier i8n
# ============================================================


def write_bundle(
    terms: Terms, stream: IO[bytes], compress: bool = False, header: bool = True
) -> int:
    """
    Écrit un fichier i8n dans un flux binaire.

    Returns:
        Nombre d'octets écrits
    """
    body = json.dumps(terms, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    if compress:
        body = zlib.compress(body)

    data = body
    if header:
        data = bytes([VERSION | (COMPRESSED_FLAG if compress else 0)]) + body

    stream.write(data)
    stream.flush()
    logger.debug(
        f"Wrote i8n bundle ({len(terms)} terms, {len(data)} bytes, compressed: {compress})"
    )
    return len(data)


def read_bundle(
    stream: IO[bytes], header: bool = True, uncompress: bool = False
) -> tuple[Optional[int], bool, Terms]:
    """
    Lit un fichier i8n.

    Args:
        stream: Flux binaire
        header: Le fichier commence par l'octet d'en-tête
        uncompress: Le corps est compressé (utilisé seulement sans en-tête)

    Returns:
        (version ou None sans en-tête, compressé, termes)

    Raises:
        BundleFormatError: En-tête, version ou corps invalide
    """
    data = stream.read()
    version: Optional[int] = None
    compressed = uncompress

    if header:
        if not data:
            raise BundleFormatError("Missing i8n header")
        version = data[0] & ~COMPRESSED_FLAG
        compressed = bool(data[0] & COMPRESSED_FLAG)
        if version < 1 or version > VERSION:
            raise BundleFormatError(f"Unsupported i8n version {version}")
        data = data[1:]

    if compressed:
        try:
            data = zlib.decompress(data)
        except zlib.error as e:
            raise BundleFormatError(f"Invalid compressed i8n body: {e}") from e

    try:
        terms = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BundleFormatError(f"Invalid i8n body: {e}") from e

    if not isinstance(terms, dict) or not all(
        isinstance(values, list) and all(isinstance(v, str) for v in values)
        for values in terms.values()
    ):
        raise BundleFormatError("i8n body must map term ids to lists of strings")

    logger.debug(f"Read i8n bundle (version {version}, {len(terms)} terms)")
    return version, compressed, terms


def terms_to_catalog(
    terms: Terms, plural_forms: str = DEFAULT_PLURAL_FORMS
) -> polib.POFile:
    """
    Convertit des termes en catalogue PO.

    Un terme à plusieurs traductions devient une entrée plurielle (formes
    indexées dans l'ordre).
    """
    catalog = new_catalog()
    catalog.header = BUNDLE_COMMENT
    catalog.metadata = dict(header_metadata(), **{"Plural-Forms": plural_forms})

    for key, values in terms.items():
        if len(values) > 1:
            catalog.append(
                polib.POEntry(
                    msgid=key,
                    msgid_plural=key,
                    msgstr_plural={index: value for index, value in enumerate(values)},
                )
            )
        else:
            catalog.append(polib.POEntry(msgid=key, msgstr=values[0] if values else ""))
    return catalog


def terms_to_json(terms: Terms) -> str:
    """JSON indenté des termes (export lisible)."""
    return json.dumps(terms, ensure_ascii=False, indent=2)


# ============================================================
# 🔹 Construction par lot
# ============================================================

BUNDLE_EXTENSION = ".i8n"

# Motif par défaut de chaque type de source (dossier non récursif)
DEFAULT_INPUT_PATTERNS = {"json": "*.json", "po": "*.po", "mo": "*.mo"}


def build_many(
    json_input: Optional[Union[str, Path]] = None,
    json_pattern: str = DEFAULT_INPUT_PATTERNS["json"],
    po_input: Optional[Union[str, Path]] = None,
    po_pattern: str = DEFAULT_INPUT_PATTERNS["po"],
    mo_input: Optional[Union[str, Path]] = None,
    mo_pattern: str = DEFAULT_INPUT_PATTERNS["mo"],
    compress: bool = False,
    header: bool = True,
) -> list[Path]:
    """
    Construit un fichier i8n par source trouvée dans un ou plusieurs dossiers.

    Chaque source `nom.json` / `nom.po` / `nom.mo` donne `nom.i8n` dans le même
    dossier (fichier existant écrasé). Les dossiers ne sont pas parcourus
    récursivement ; un dossier à None est ignoré. Les JSON sont traités en
    premier, puis les PO, puis les MO : à nom égal, le dernier l'emporte.

    Returns:
        Fichiers i8n écrits, dans l'ordre de traitement

    Raises:
        FileNotFoundError: Un dossier d'entrée n'existe pas
        BundleFormatError: Une source est invalide

    Example:
        >>> build_many(po_input="locales", compress=True)
        [PosixPath('locales/de.i8n'), PosixPath('locales/fr.i8n')]
    """
    readers = (
        ("json", json_input, json_pattern),
        ("po", po_input, po_pattern),
        ("mo", mo_input, mo_pattern),
    )

    written: list[Path] = []
    for kind, folder, pattern in readers:
        if folder is None:
            continue
        folder = Path(folder)
        if not folder.is_dir():
            raise FileNotFoundError(f"Input folder not found: {str(folder)!r}")

        for source in sorted(p for p in folder.glob(pattern) if p.is_file()):
            terms = build_terms(**{f"{kind}_inputs": [source]})
            output = source.with_suffix(BUNDLE_EXTENSION)
            with open(output, "wb") as f:
                write_bundle(terms, f, compress=compress, header=header)
            logger.info(f"Built {str(output)!r} from {str(source)!r} ({len(terms)} terms)")
            written.append(output)

    logger.info(f"Built {len(written)} i8n file(s)")
    return written
