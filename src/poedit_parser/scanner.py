"""
Orchestration d'une exécution complète : scan des sources puis écriture du
catalogue (neuf ou fusionné).
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Optional, Sequence, TextIO, Union

import polib

from .catalog import build_catalog, load_catalog, write_catalog
from .config import DEFAULT_CONFIG, ParserConfig
from .exceptions import ScanAbortedError, SourceReadError
from .extractor import LineExtractor
from .keywords import STDIN_NAME, KeywordAggregator, KeywordOccurrence
from .logger import get_logger
from .merger import CatalogMerger, MergeResult
from .sources import find_source_files, read_lines
from .worker import FileWorkerPool, ScanStatistics

logger = get_logger(__name__)


@dataclass
class ParseSummary:
    """
    Bilan d'une exécution.

    Attributes:
        stats: Statistiques du scan
        keywords: Nombre de mots-clés distincts
        merge: Compteurs de fusion (None si un catalogue neuf a été écrit)
        output: Fichier PO écrit (None = STDOUT)
    """

    stats: ScanStatistics
    keywords: int
    merge: Optional[MergeResult] = None
    output: Optional[str] = None

    def __str__(self) -> str:
        text = f"{self.stats.sources} source(s), {self.keywords} keyword(s)"
        if self.merge is not None:
            text += f" ({self.merge})"
        if self.stats.errors:
            text += f", {len(self.stats.errors)} error(s)"
        return text


# ============================================================
# 🔹 Scan
# ============================================================


def scan_files(
    inputs: Sequence[Union[str, Path]],
    config: ParserConfig = DEFAULT_CONFIG,
    exclude: Sequence[str] = (),
    verbose: bool = False,
    show_progress: bool = False,
    keywords: Optional[KeywordAggregator] = None,
) -> tuple[KeywordAggregator, ScanStatistics]:
    """
    Analyse des fichiers et dossiers avec le pool de workers.

    Args:
        inputs: Fichiers et dossiers à analyser
        config: Configuration de l'exécution
        exclude: Chemins, noms ou motifs glob à ignorer
        verbose: Journaliser chaque mot-clé trouvé (force un seul worker)
        show_progress: Afficher une barre de progression tqdm
        keywords: Agrégateur à compléter (nouveau si None)

    Returns:
        (agrégateur, statistiques)

    Raises:
        FileNotFoundError: Une entrée n'existe pas
        ConfigurationError: Patterns invalides
        ScanAbortedError: Première erreur en mode fail_on_error
    """
    extractor = LineExtractor(config.compile_patterns())
    keywords = keywords if keywords is not None else KeywordAggregator()

    pool = FileWorkerPool(
        extractor,
        keywords,
        num_workers=config.worker_count(verbose),
        encoding=config.encoding,
        fail_on_error=config.fail_on_error,
        single_thread=config.single_thread,
        verbose=verbose,
        show_progress=show_progress,
    )
    pool.start()

    try:
        submitted = pool.enqueue_many(
            find_source_files(
                inputs, config.file_extensions, config.recursive, exclude
            )
        )
    except Exception:
        pool.stop()
        raise

    logger.debug(f"{submitted} source file(s) submitted")
    return keywords, pool.drain()


def scan_stream(
    stream: IO[str],
    config: ParserConfig = DEFAULT_CONFIG,
    file_name: Optional[str] = None,
    keywords: Optional[KeywordAggregator] = None,
) -> tuple[KeywordAggregator, ScanStatistics]:
    """
    Analyse un flux texte (STDIN) sur le thread courant.

    Les positions sont anonymes (file=None) sauf si file_name est donné.

    Raises:
        ConfigurationError: Patterns invalides
        ScanAbortedError: Première erreur en mode fail_on_error
    """
    extractor = LineExtractor(config.compile_patterns())
    keywords = keywords if keywords is not None else KeywordAggregator()
    stats = ScanStatistics()
    name = file_name or STDIN_NAME

    logger.info(f"Processing source stream {name}")

    def record(error: BaseException) -> None:
        stats.errors.append(error)
        if stats.first_error is None:
            stats.first_error = error
        logger.warning(str(error))
        if config.fail_on_error:
            raise ScanAbortedError(error) from error

    # Comme pour un fichier : rien n'est fusionné si la lecture échoue
    occurrences: list[KeywordOccurrence] = []
    try:
        for result in extractor.extract_lines(read_lines(stream), file_name):
            occurrences.extend(result.occurrences)
            for error in result.errors:
                stats.decode_errors += 1
                record(error)
    except (OSError, UnicodeDecodeError) as e:
        stats.failed_sources += 1
        record(SourceReadError(name, e))
    else:
        keywords.merge_all(occurrences)
        stats.occurrences += len(occurrences)
        stats.sources += 1

    stats.keywords = len(keywords)
    logger.info(
        f"Done processing {name} (found {stats.keywords} keywords, "
        f"{len(stats.errors)} error(s))"
    )
    return keywords, stats


def open_stdin(encoding: str) -> TextIO:
    """
    STDIN décodé avec l'encodage des sources.

    Le flux est reconfiguré sur place : aucun second wrapper ne risque de
    fermer sys.stdin.buffer en étant détruit.
    """
    reconfigure = getattr(sys.stdin, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(encoding=encoding)
    return sys.stdin


# ============================================================
# 🔹 Catalogue
# ============================================================


def build_output(
    keywords: KeywordAggregator,
    config: ParserConfig = DEFAULT_CONFIG,
    output: Optional[Union[str, Path]] = None,
    with_header: bool = True,
) -> tuple[polib.POFile, Optional[MergeResult]]:
    """
    Prépare le catalogue à écrire.

    En mode fusion, un fichier de sortie existant est chargé puis fusionné ;
    sinon un catalogue neuf est construit.

    Raises:
        CatalogParseError: Le fichier de sortie existant est illisible
    """
    if config.merge_output and output is not None and Path(output).exists():
        catalog = load_catalog(output)
        result = CatalogMerger(config.fuzzy_percent).merge(catalog, keywords)
        return catalog, result

    if config.merge_output:
        logger.info("No existing catalog to merge with, writing a new one")
    return build_catalog(keywords.entries(), config.encoding, with_header), None


def run_parse(
    inputs: Sequence[Union[str, Path]],
    config: ParserConfig = DEFAULT_CONFIG,
    output: Optional[Union[str, Path]] = None,
    exclude: Sequence[str] = (),
    verbose: bool = False,
    with_header: bool = True,
    show_progress: bool = False,
    stdin: Optional[IO[str]] = None,
    stdout: Optional[TextIO] = None,
) -> ParseSummary:
    """
    Exécution complète : scan, fusion éventuelle, écriture.

    Sans entrée, la source est lue sur STDIN ; sans sortie, le catalogue est
    écrit sur STDOUT.

    Args:
        inputs: Fichiers et dossiers à analyser (vide = STDIN)
        config: Configuration de l'exécution
        output: Fichier PO de sortie (None = STDOUT)
        exclude: Chemins, noms ou motifs glob à ignorer
        verbose: Journaliser chaque mot-clé trouvé
        with_header: Écrire l'en-tête d'un catalogue neuf
        show_progress: Afficher une barre de progression
        stdin: Flux source à la place de STDIN
        stdout: Flux de sortie à la place de STDOUT

    Returns:
        Bilan de l'exécution
    """
    if inputs:
        keywords, stats = scan_files(inputs, config, exclude, verbose, show_progress)
    else:
        stream = stdin if stdin is not None else open_stdin(config.encoding)
        keywords, stats = scan_stream(stream, config)

    catalog, merge = build_output(keywords, config, output, with_header)
    write_catalog(catalog, path=output, stream=stdout)

    summary = ParseSummary(
        stats=stats,
        keywords=len(keywords),
        merge=merge,
        output=str(output) if output is not None else None,
    )
    logger.info(f"Parse finished: {summary}")
    return summary
