"""
Pool de workers parallèles pour l'analyse des fichiers sources.

Architecture:
    enqueue(path) → queue bornée (capacité = nombre de workers)
        → FileWorker-N (N threads) → LineExtractor → KeywordAggregator

La queue bornée fournit la contre-pression : le producteur (énumération des
fichiers) est bloqué tant que les workers n'ont pas libéré de place.
"""

import queue
import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional

from tqdm import tqdm

from .config import DEFAULT_ENCODING, default_worker_count
from .exceptions import (
    ConfigurationError,
    LiteralDecodeError,
    ScanAbortedError,
    SourceReadError,
)
from .extractor import LineExtractor
from .keywords import KeywordAggregator, KeywordOccurrence
from .literal import to_message_literal
from .logger import get_logger
from .sources import read_lines

logger = get_logger(__name__)

# Délai de réveil des workers pour vérifier le signal d'arrêt
POLL_INTERVAL = 0.5


@dataclass
class ScanStatistics:
    """
    Statistiques d'un scan.

    Attributes:
        sources: Nombre de sources traitées jusqu'au bout
        failed_sources: Nombre de sources illisibles
        occurrences: Nombre d'occurrences fusionnées
        decode_errors: Nombre de littéraux non décodables
        keywords: Nombre de mots-clés distincts à la fin du scan
        first_error: Première erreur rencontrée par un worker (None si aucune)
        errors: Toutes les erreurs récupérables, dans l'ordre d'arrivée
    """

    sources: int = 0
    failed_sources: int = 0
    occurrences: int = 0
    decode_errors: int = 0
    keywords: int = 0
    first_error: Optional[BaseException] = None
    errors: list[BaseException] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return self.first_error is not None


class FileWorkerPool:
    """
    Pool de workers qui analysent des fichiers en parallèle.

    Le mode verbeux et le mode mono-thread forcent un seul worker : l'ordre des
    logs reste déterministe au prix du débit.

    Attributes:
        extractor: Extracteur partagé (sans état)
        keywords: Agrégateur partagé (seule ressource mutable commune)
        num_workers: Nombre de workers effectif
        encoding: Encodage des fichiers sources
        fail_on_error: Interrompre tout le scan à la première erreur

    Example:
        >>> pool = FileWorkerPool(extractor, keywords, num_workers=4)
        >>> pool.start()
        >>> pool.enqueue_many(find_source_files(["src"], [".cs"]))
        >>> stats = pool.drain()
        >>> print(f"{stats.sources} sources, {stats.keywords} keywords")
    """

    def __init__(
        self,
        extractor: LineExtractor,
        keywords: KeywordAggregator,
        num_workers: Optional[int] = None,
        encoding: str = DEFAULT_ENCODING,
        fail_on_error: bool = False,
        single_thread: bool = False,
        verbose: bool = False,
        show_progress: bool = False,
    ):
        """
        Initialise le pool (les threads ne sont lancés que par start()).

        Raises:
            ValueError: Si num_workers < 1
        """
        if single_thread or verbose:
            num_workers = 1
        elif num_workers is None:
            num_workers = default_worker_count()
        if num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {num_workers}")

        self.extractor = extractor
        self.keywords = keywords
        self.num_workers = num_workers
        self.encoding = encoding
        self.fail_on_error = fail_on_error
        self.verbose = verbose
        self.show_progress = show_progress

        self._queue: queue.Queue[str] = queue.Queue(maxsize=num_workers)
        self._stop_event = threading.Event()
        self._abort_event = threading.Event()

        # Fichiers soumis mais pas encore terminés (queue + en cours)
        self._pending = 0
        self._condition = threading.Condition()

        self._stats_lock = threading.Lock()
        self._stats = ScanStatistics()
        self._fatal_error: Optional[BaseException] = None

        self.threads: list[threading.Thread] = []
        self._progress: Optional[tqdm] = None

    # =========================================================================
    # Cycle de vie
    # =========================================================================

    def start(self) -> None:
        """Démarre les workers, chacun dans son thread daemon."""
        if self.threads:
            raise RuntimeError("FileWorkerPool already started")

        logger.info(f"Starting {self.num_workers} file worker(s)")

        if self.show_progress:
            self._progress = tqdm(
                total=0,
                desc="Parsing sources",
                unit="file",
                ncols=100,
                bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}]",
            )

        self.threads = [
            threading.Thread(target=self._run, daemon=True, name=f"FileWorker-{i}")
            for i in range(self.num_workers)
        ]
        for thread in self.threads:
            thread.start()

    def enqueue(self, path: str) -> None:
        """
        Soumet un fichier. Bloque tant que la queue est pleine.

        Raises:
            ScanAbortedError: Le scan a été interrompu (fail_on_error)
            RuntimeError: Le pool n'a pas été démarré
        """
        if not self.threads:
            raise RuntimeError("FileWorkerPool must be started before enqueueing")
        self._raise_if_aborted()

        with self._condition:
            self._pending += 1

        while True:
            try:
                self._queue.put(path, timeout=POLL_INTERVAL)
                break
            except queue.Full:
                if self._abort_event.is_set():
                    self._finish_item()
                    self._raise_if_aborted()

        with self._stats_lock:
            if self._progress is not None:
                self._progress.total += 1
                self._progress.refresh()
        logger.debug(f"Going to process file {path!r}")

    def enqueue_many(self, paths: Iterable[str]) -> int:
        """Soumet plusieurs fichiers ; retourne le nombre soumis."""
        count = 0
        for path in paths:
            self.enqueue(path)
            count += 1
        return count

    def drain(self) -> ScanStatistics:
        """
        Attend la fin de tous les fichiers soumis, puis arrête les workers.

        En mode fail_on_error, retourne dès la première erreur sans attendre
        les workers encore occupés.

        Returns:
            Statistiques du scan (first_error renseigné en cas d'erreurs)

        Raises:
            ScanAbortedError: Scan interrompu par la première erreur
            ConfigurationError: Configuration invalide détectée pendant le scan
        """
        logger.debug("Waiting for all files to finish processing")

        with self._condition:
            self._condition.wait_for(
                lambda: self._pending == 0 or self._abort_event.is_set()
            )

        self._stop_event.set()

        if self._abort_event.is_set():
            self._close_progress()
            self._raise_if_aborted()

        for thread in self.threads:
            thread.join(timeout=10.0)
            if thread.is_alive():
                logger.warning(f"Thread {thread.name} did not stop after timeout")

        self._close_progress()

        with self._stats_lock:
            self._stats.keywords = len(self.keywords)
            stats = self._stats

        logger.info(
            f"Done processing {stats.sources} source file(s) "
            f"(found {stats.keywords} keywords, {len(stats.errors)} error(s))"
        )
        return stats

    def stop(self) -> None:
        """Demande l'arrêt des workers sans attendre la fin de la queue."""
        self._stop_event.set()
        self._close_progress()

    # =========================================================================
    # Workers
    # =========================================================================

    def _run(self) -> None:
        name = threading.current_thread().name
        logger.debug(f"[{name}] Started")

        while not self._stop_event.is_set():
            try:
                path = self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue

            try:
                # Plus aucun nouveau fichier n'est traité après un abandon
                if not self._abort_event.is_set():
                    self._process_file(path)
            except Exception as e:
                logger.exception(f"[{name}] Unexpected error on {path!r}: {e}")
                self._record_error(e, fatal=True)
            finally:
                self._queue.task_done()
                self._finish_item()

        logger.debug(f"[{name}] Stopped")

    def _process_file(self, path: str) -> None:
        """
        Analyse un fichier et fusionne ses mots-clés dans l'agrégateur.

        Les occurrences ne sont fusionnées qu'une fois le fichier lu en
        entier : un fichier illisible (même en cours de lecture) n'apporte
        aucun mot-clé. Les littéraux non décodables n'écartent que leur
        occurrence.
        """
        logger.info(f"Processing source file {path!r}")
        occurrences: list[KeywordOccurrence] = []

        try:
            for result in self.extractor.extract_lines(
                read_lines(path, self.encoding), path
            ):
                occurrences.extend(result.occurrences)
                for error in result.errors:
                    self._record_error(error)
                if self._abort_event.is_set():
                    return

        except (OSError, UnicodeDecodeError) as e:
            self._record_error(SourceReadError(path, e))
            with self._stats_lock:
                self._stats.failed_sources += 1
            return

        except ConfigurationError as e:
            self._record_error(e, fatal=True)
            return

        self.keywords.merge_all(occurrences)
        if self.verbose:
            for occurrence in occurrences:
                logger.info(
                    f'Found keyword "{to_message_literal(occurrence.keyword)}" '
                    f"in source file {path!r} on line #{occurrence.position.line}"
                )

        with self._stats_lock:
            self._stats.sources += 1
            self._stats.occurrences += len(occurrences)
            if self._progress is not None:
                self._progress.update(1)

    def _finish_item(self) -> None:
        with self._condition:
            self._pending -= 1
            self._condition.notify_all()

    # =========================================================================
    # Erreurs
    # =========================================================================

    def _record_error(self, error: BaseException, fatal: bool = False) -> None:
        """Enregistre une erreur ; interrompt le scan si fatale ou fail_on_error."""
        with self._stats_lock:
            self._stats.errors.append(error)
            if isinstance(error, LiteralDecodeError):
                self._stats.decode_errors += 1
            if self._stats.first_error is None:
                self._stats.first_error = error
            if (fatal or self.fail_on_error) and self._fatal_error is None:
                self._fatal_error = error

        if fatal:
            logger.error(str(error))
        else:
            logger.warning(str(error))

        if fatal or self.fail_on_error:
            self._abort_event.set()
            with self._condition:
                self._condition.notify_all()

    def _raise_if_aborted(self) -> None:
        if not self._abort_event.is_set():
            return
        with self._stats_lock:
            error = self._fatal_error
        if isinstance(error, ConfigurationError):
            raise error
        assert error is not None
        raise ScanAbortedError(error) from error

    def _close_progress(self) -> None:
        with self._stats_lock:
            if self._progress is not None:
                self._progress.close()
                self._progress = None

    def __repr__(self) -> str:
        return (
            f"FileWorkerPool(num_workers={self.num_workers}, "
            f"pending={self._pending}, fail_on_error={self.fail_on_error})"
        )
