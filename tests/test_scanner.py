"""
Tests d'intégration : scan complet puis écriture ou fusion du catalogue.
"""

import io

import polib
import pytest

from poedit_parser.config import ParserConfig
from poedit_parser.exceptions import CatalogParseError, ScanAbortedError, SourceReadError
from poedit_parser.keywords import Position
from poedit_parser.scanner import open_stdin, run_parse, scan_files, scan_stream


class TestScanFiles:
    """Tests pour scan_files()."""

    def test_scan_tree(self, source_tree):
        keywords, stats = scan_files([source_tree], ParserConfig(num_workers=4))

        assert stats.sources == 3
        assert keywords.keywords() == ["Goodbye", "Hello world", "Main view", "Open file", "Other"]

    def test_missing_input_stops_pool(self, source_tree):
        with pytest.raises(FileNotFoundError):
            scan_files([source_tree / "missing"], ParserConfig(num_workers=2))

    def test_fail_on_error(self, tmp_path):
        (tmp_path / "bad.cs").write_text('_("bad \\q")\n', encoding="utf-8")

        with pytest.raises(ScanAbortedError):
            scan_files([tmp_path], ParserConfig(fail_on_error=True, num_workers=1))


class TestScanStream:
    """Tests pour scan_stream()."""

    def test_anonymous_positions(self):
        keywords, stats = scan_stream(io.StringIO('one\n_("From stdin")\n'))

        assert keywords["From stdin"].positions == {Position(None, 2)}
        assert stats.sources == 1
        assert stats.keywords == 1

    def test_lenient_decode_error(self):
        _, stats = scan_stream(io.StringIO('_("bad \\q")\n_("ok")\n'))
        assert stats.decode_errors == 1
        assert stats.has_errors

    def test_fail_on_error(self):
        with pytest.raises(ScanAbortedError):
            scan_stream(io.StringIO('_("bad \\q")\n'), ParserConfig(fail_on_error=True))

    def test_partially_decoded_stream_adds_no_keyword(self):
        """Un flux illisible en cours de lecture n'apporte aucun mot-clé."""
        data = b'_("first")\n' + b"// padding\n" * 3000 + b'_("caf\xe9")\n'
        stream = io.TextIOWrapper(io.BytesIO(data), encoding="utf-8")

        keywords, stats = scan_stream(stream)

        assert "first" not in keywords
        assert stats.failed_sources == 1
        assert stats.sources == 0
        assert isinstance(stats.first_error, SourceReadError)


class TestOpenStdin:
    """Tests pour open_stdin()."""

    def test_reconfigures_stdin_in_place(self, monkeypatch):
        buffer = io.BytesIO('_("caf\xe9")\n'.encode("latin-1"))
        stdin = io.TextIOWrapper(buffer, encoding="utf-8")
        monkeypatch.setattr("sys.stdin", stdin)

        stream = open_stdin("latin-1")
        keywords, _ = scan_stream(stream)

        assert stream is stdin
        assert keywords.keywords() == ["café"]
        assert not buffer.closed

    def test_stream_without_reconfigure(self, monkeypatch):
        stdin = io.StringIO('_("plain")\n')
        monkeypatch.setattr("sys.stdin", stdin)

        assert open_stdin("latin-1") is stdin


class TestRunParse:
    """Tests pour run_parse()."""

    def test_new_catalog_file(self, source_tree, tmp_path):
        output = tmp_path / "messages.po"

        summary = run_parse([source_tree], ParserConfig(num_workers=2), output=output)

        catalog = polib.pofile(str(output))
        assert [e.msgid for e in catalog] == ["Goodbye", "Hello world", "Main view", "Open file", "Other"]
        assert summary.keywords == 5
        assert summary.merge is None
        assert str(summary) == "3 source(s), 5 keyword(s)"

    def test_stdin_to_stdout(self):
        stdout = io.StringIO()

        summary = run_parse(
            [], ParserConfig(), stdin=io.StringIO('_("Piped")\n'), stdout=stdout
        )

        assert 'msgid "Piped"' in stdout.getvalue()
        assert "#: <stdin>:1" in stdout.getvalue()
        assert summary.output is None

    def test_no_header(self, source_tree):
        stdout = io.StringIO()
        run_parse([source_tree], ParserConfig(), with_header=False, stdout=stdout)
        assert "Project-Id-Version" not in stdout.getvalue()

    def test_merge_existing_catalog(self, tmp_path):
        sources = tmp_path / "src"
        sources.mkdir()
        (sources / "app.cs").write_text('_("Hello World")\n_("Kept")\n', encoding="utf-8")

        output = tmp_path / "messages.po"
        existing = polib.POFile()
        existing.append(polib.POEntry(msgid="Helo World", msgstr="Bonjour le monde"))
        existing.append(polib.POEntry(msgid="Kept", msgstr="Gardé"))
        existing.append(polib.POEntry(msgid="Old Text", msgstr="Ancien"))
        existing.save(str(output))

        config = ParserConfig(merge_output=True, fuzzy_percent=10, num_workers=1)
        summary = run_parse([sources], config, output=output)

        assert summary.merge is not None
        assert (summary.merge.new, summary.merge.existing, summary.merge.fuzzy, summary.merge.obsolete) == (0, 1, 1, 1)

        catalog = polib.pofile(str(output))
        by_id = {e.msgid: e for e in catalog}
        assert set(by_id) == {"Hello World", "Kept"}
        assert by_id["Hello World"].msgstr == "Bonjour le monde"
        assert "fuzzy" in by_id["Hello World"].flags
        assert by_id["Hello World"].previous_msgid == "Helo World"
        assert by_id["Kept"].msgstr == "Gardé"

        again = run_parse([sources], config, output=output)
        assert (again.merge.new, again.merge.fuzzy, again.merge.obsolete) == (0, 0, 0)
        assert again.merge.existing == 2

    def test_merge_without_existing_file(self, source_tree, tmp_path):
        output = tmp_path / "new.po"
        summary = run_parse([source_tree], ParserConfig(merge_output=True), output=output)

        assert summary.merge is None
        assert output.exists()

    def test_merge_into_broken_catalog(self, source_tree, tmp_path):
        output = tmp_path / "broken.po"
        output.write_text("this is not a po file\n", encoding="utf-8")

        with pytest.raises(CatalogParseError):
            run_parse([source_tree], ParserConfig(merge_output=True), output=output)
