"""
Tests pour le pool de workers (FileWorkerPool).
"""

import threading
from pathlib import Path

import pytest

from poedit_parser.config import ParserConfig
from poedit_parser.exceptions import (
    ConfigurationError,
    LiteralDecodeError,
    ScanAbortedError,
    SourceReadError,
)
from poedit_parser.extractor import LineExtractor
from poedit_parser.keywords import KeywordAggregator, Position
from poedit_parser.patterns import PatternSet
from poedit_parser.sources import find_source_files
from poedit_parser.worker import FileWorkerPool


class BlockingExtractor(LineExtractor):
    """Extracteur qui bloque sur les fichiers "slow" jusqu'à release."""

    def __init__(self):
        super().__init__(ParserConfig().compile_patterns())
        self.started = threading.Event()
        self.release = threading.Event()

    def extract_lines(self, lines, file_name=None):
        if file_name is not None and Path(file_name).name.startswith("slow"):
            self.started.set()
            self.release.wait(timeout=10)
        return super().extract_lines(lines, file_name)


def run_pool(extractor, paths, **kwargs):
    keywords = KeywordAggregator()
    pool = FileWorkerPool(extractor, keywords, **kwargs)
    pool.start()
    pool.enqueue_many(paths)
    stats = pool.drain()
    return keywords, stats


class TestWorkerCount:
    """Nombre effectif de workers."""

    def test_explicit_count(self, extractor):
        pool = FileWorkerPool(extractor, KeywordAggregator(), num_workers=3)
        assert pool.num_workers == 3

    def test_single_thread_and_verbose_force_one(self, extractor):
        assert FileWorkerPool(extractor, KeywordAggregator(), num_workers=8, single_thread=True).num_workers == 1
        assert FileWorkerPool(extractor, KeywordAggregator(), num_workers=8, verbose=True).num_workers == 1

    def test_default_count(self, extractor, monkeypatch):
        monkeypatch.setattr("os.cpu_count", lambda: 3)
        assert FileWorkerPool(extractor, KeywordAggregator()).num_workers == 6

    def test_invalid_count(self, extractor):
        with pytest.raises(ValueError):
            FileWorkerPool(extractor, KeywordAggregator(), num_workers=0)

    def test_enqueue_requires_start(self, extractor, source_tree):
        pool = FileWorkerPool(extractor, KeywordAggregator(), num_workers=1)
        with pytest.raises(RuntimeError):
            pool.enqueue(str(source_tree / "Program.cs"))


class TestScan:
    """Scan complet d'une arborescence."""

    def test_keywords_and_positions(self, extractor, source_tree):
        keywords, stats = run_pool(
            extractor, find_source_files([source_tree], [".cs"]), num_workers=2
        )
        program = str((source_tree / "Program.cs").resolve())

        assert stats.sources == 3
        assert stats.failed_sources == 0
        assert not stats.has_errors
        assert stats.keywords == len(keywords) == 5
        assert keywords["Hello world"].positions == {
            Position(program, 2),
            Position(program, 4),
        }
        assert "Not scanned" not in keywords

    def test_same_result_whatever_the_worker_count(self, extractor, tmp_path):
        """W=1 et W=8 produisent exactement le même agrégat."""
        for index in range(40):
            (tmp_path / f"f{index:02d}.cs").write_text(
                f'_("Common")\n_("Unique {index}") + _("Pair {index % 5}")\n',
                encoding="utf-8",
            )
        paths = list(find_source_files([tmp_path], [".cs"]))

        single, _ = run_pool(extractor, paths, num_workers=1)
        multi, stats = run_pool(extractor, paths, num_workers=8)

        assert single.snapshot() == multi.snapshot()
        assert stats.sources == 40
        assert len(multi["Common"].positions) == 40

    def test_occurrence_and_decode_error_counts(self, extractor, tmp_path):
        source = tmp_path / "bad.cs"
        source.write_text('_("ok")\n_("bad \\q")\n', encoding="utf-8")

        keywords, stats = run_pool(extractor, [str(source)], num_workers=1)

        assert keywords.keywords() == ["ok"]
        assert stats.occurrences == 1
        assert stats.decode_errors == 1
        assert isinstance(stats.first_error, LiteralDecodeError)
        assert stats.first_error.line_number == 2


class TestErrorPolicy:
    """Erreurs récupérables et fail_on_error."""

    def test_missing_file_is_skipped(self, extractor, source_tree):
        paths = [str(source_tree / "missing.cs"), str(source_tree / "Program.cs")]

        keywords, stats = run_pool(extractor, paths, num_workers=1)

        assert stats.failed_sources == 1
        assert stats.sources == 1
        assert isinstance(stats.first_error, SourceReadError)
        assert "Goodbye" in keywords

    def test_undecodable_file_is_skipped(self, extractor, tmp_path):
        source = tmp_path / "latin1.cs"
        source.write_bytes('_("caf\xe9")\n'.encode("latin-1"))

        _, stats = run_pool(extractor, [str(source)], num_workers=1)

        assert stats.failed_sources == 1
        assert isinstance(stats.first_error, SourceReadError)

    def test_encoding_is_used(self, extractor, tmp_path):
        source = tmp_path / "latin1.cs"
        source.write_bytes('_("caf\xe9")\n'.encode("latin-1"))

        keywords, stats = run_pool(extractor, [str(source)], num_workers=1, encoding="latin-1")

        assert keywords.keywords() == ["caf\xe9"]
        assert not stats.has_errors

    def test_fail_on_error_aborts(self, extractor, source_tree):
        keywords = KeywordAggregator()
        pool = FileWorkerPool(extractor, keywords, num_workers=1, fail_on_error=True)
        pool.start()
        pool.enqueue(str(source_tree / "missing.cs"))

        with pytest.raises(ScanAbortedError) as exc_info:
            pool.drain()

        assert isinstance(exc_info.value.first_error, SourceReadError)
        assert isinstance(exc_info.value.__cause__, SourceReadError)

    def test_configuration_error_is_fatal(self, source_tree):
        extractor = LineExtractor(PatternSet.from_config([(r"(x*)", "None")]))
        pool = FileWorkerPool(extractor, KeywordAggregator(), num_workers=1)
        pool.start()
        pool.enqueue(str(source_tree / "Program.cs"))

        with pytest.raises(ConfigurationError):
            pool.drain()

    def test_default_config_patterns(self, source_tree):
        """La configuration par défaut alimente le pool sans erreur."""
        extractor = LineExtractor(ParserConfig().compile_patterns())
        keywords, stats = run_pool(
            extractor, find_source_files([source_tree], [".cs"]), single_thread=True
        )
        assert keywords.keywords() == [
            "Goodbye",
            "Hello world",
            "Main view",
            "Open file",
            "Other",
        ]
        assert stats.sources == 3

    def test_partially_read_file_adds_no_keyword(self, extractor, tmp_path):
        """Un fichier illisible en cours de lecture n'apporte aucun mot-clé."""
        source = tmp_path / "partial.cs"
        filler = "// padding\n" * 3000
        source.write_bytes(('_("first")\n' + filler).encode("utf-8") + b'_("caf\xe9")\n')

        keywords, stats = run_pool(extractor, [str(source)], num_workers=1)

        assert "first" not in keywords
        assert stats.failed_sources == 1
        assert stats.occurrences == 0
        assert isinstance(stats.first_error, SourceReadError)


class TestBackpressure:
    """Queue bornée et arrêt anticipé."""

    def test_enqueue_blocks_while_queue_is_full(self, tmp_path):
        extractor = BlockingExtractor()
        paths = []
        for name in ("slow.cs", "second.cs", "third.cs"):
            (tmp_path / name).write_text(f'_("{name}")\n', encoding="utf-8")
            paths.append(str(tmp_path / name))

        pool = FileWorkerPool(extractor, KeywordAggregator(), num_workers=1)
        pool.start()
        try:
            pool.enqueue(paths[0])
            assert extractor.started.wait(timeout=5)

            # Le worker est occupé : la queue (capacité 1) accepte un seul fichier
            pool.enqueue(paths[1])

            submitted = threading.Event()

            def submit_third():
                pool.enqueue(paths[2])
                submitted.set()

            producer = threading.Thread(target=submit_third, daemon=True)
            producer.start()

            assert not submitted.wait(timeout=0.5), "enqueue should block on a full queue"

            extractor.release.set()
            assert submitted.wait(timeout=5)
            producer.join(timeout=5)
        finally:
            extractor.release.set()

        stats = pool.drain()
        assert stats.sources == 3

    def test_fail_on_error_does_not_wait_for_busy_workers(self, tmp_path):
        extractor = BlockingExtractor()
        slow = tmp_path / "slow.cs"
        slow.write_text('_("Slow")\n', encoding="utf-8")

        keywords = KeywordAggregator()
        pool = FileWorkerPool(extractor, keywords, num_workers=2, fail_on_error=True)
        pool.start()
        try:
            pool.enqueue(str(slow))
            assert extractor.started.wait(timeout=5)
            pool.enqueue(str(tmp_path / "missing.cs"))

            with pytest.raises(ScanAbortedError) as exc_info:
                pool.drain()

            # Le premier worker est toujours bloqué sur slow.cs
            assert not extractor.release.is_set()
            assert "Slow" not in keywords
            assert isinstance(exc_info.value.first_error, SourceReadError)
        finally:
            extractor.release.set()
