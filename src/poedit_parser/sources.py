"""
Accès aux sources : recherche des fichiers et lecture ligne par ligne.
"""

import fnmatch
from pathlib import Path
from typing import IO, Iterable, Iterator, Sequence, Union

from .logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def is_excluded(path: Path, exclude: Sequence[str]) -> bool:
    """
    Indique si un chemin est exclu.

    Une entrée d'exclusion correspond si elle est égale au chemin absolu, au
    nom du fichier/dossier, ou si c'est un motif glob qui correspond au chemin
    ou au nom.
    """
    if not exclude:
        return False
    full_path = str(path.resolve())
    name = path.name
    for entry in exclude:
        if entry in (full_path, name):
            return True
        if str(Path(entry).expanduser().resolve()) == full_path:
            return True
        if fnmatch.fnmatch(full_path, entry) or fnmatch.fnmatch(name, entry):
            return True
    return False


def _has_extension(path: Path, extensions: Sequence[str]) -> bool:
    if not extensions:
        return True
    suffix = path.suffix.lower()
    return any(suffix == ext.lower() for ext in extensions)


def find_source_files(
    roots: Iterable[PathLike],
    extensions: Sequence[str],
    recursive: bool = True,
    exclude: Sequence[str] = (),
) -> Iterator[str]:
    """
    Énumère les fichiers sources à analyser.

    Les dossiers sont parcourus (triés, récursivement si demandé) en ne
    gardant que les extensions voulues ; un fichier donné explicitement est
    pris tel quel, quelle que soit son extension.

    Args:
        roots: Fichiers et dossiers d'entrée (relatifs ou absolus)
        extensions: Extensions recherchées (avec le point, ex: ".cs")
        recursive: Descendre dans les sous-dossiers
        exclude: Chemins absolus, noms ou motifs glob à ignorer

    Yields:
        Chemins absolus des fichiers

    Raises:
        FileNotFoundError: Une entrée n'existe pas
    """
    for root in roots:
        full_path = Path(root).expanduser().resolve()

        if full_path.is_dir():
            if is_excluded(full_path, exclude):
                logger.info(f"Folder {full_path} was excluded")
                continue
            yield from _walk(full_path, extensions, recursive, exclude)

        elif full_path.is_file():
            if is_excluded(full_path, exclude):
                logger.info(f"File {full_path} was excluded")
                continue
            logger.info(f"Add file {full_path}")
            yield str(full_path)

        else:
            raise FileNotFoundError(f"The given path wasn't found: {full_path}")


def _walk(
    folder: Path, extensions: Sequence[str], recursive: bool, exclude: Sequence[str]
) -> Iterator[str]:
    count = 0
    for child in sorted(folder.iterdir()):
        if is_excluded(child, exclude):
            logger.info(f"{child} was excluded")
            continue
        if child.is_dir():
            if recursive:
                yield from _walk(child, extensions, recursive, exclude)
        elif child.is_file() and _has_extension(child, extensions):
            count += 1
            yield str(child)
    logger.debug(f"Found {count} files in {folder}")


def read_lines(source: Union[PathLike, IO[str]], encoding: str = "utf-8") -> Iterator[str]:
    """
    Lit une source ligne par ligne, sans les fins de ligne.

    Args:
        source: Chemin d'un fichier ou flux texte déjà ouvert (ex: sys.stdin)
        encoding: Encodage du fichier (ignoré pour un flux)

    Raises:
        OSError: Fichier illisible
        UnicodeDecodeError: Contenu incompatible avec l'encodage
    """
    if isinstance(source, (str, Path)):
        with open(source, "r", encoding=encoding, newline=None) as f:
            for line in f:
                yield line.rstrip("\r\n")
    else:
        for line in source:
            yield line.rstrip("\r\n")
