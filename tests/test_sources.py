"""
Tests pour l'énumération et la lecture des fichiers sources.
"""

import io

import pytest

from poedit_parser.sources import find_source_files, is_excluded, read_lines


def names(paths):
    return sorted(p.replace("\\", "/").split("/src/", 1)[1] for p in paths)


class TestFindSourceFiles:
    """Tests pour find_source_files()."""

    def test_recursive_with_extension(self, source_tree):
        found = list(find_source_files([source_tree], [".cs"]))
        assert names(found) == ["Program.cs", "Views/Main.cs", "Views/Other file.cs"]

    def test_non_recursive(self, source_tree):
        found = list(find_source_files([source_tree], [".cs"], recursive=False))
        assert names(found) == ["Program.cs"]

    def test_extension_is_case_insensitive(self, source_tree):
        (source_tree / "Upper.CS").write_text("", encoding="utf-8")
        found = list(find_source_files([source_tree], [".cs"], recursive=False))
        assert names(found) == ["Program.cs", "Upper.CS"]

    def test_explicit_file_ignores_extension(self, source_tree):
        found = list(find_source_files([source_tree / "notes.txt"], [".cs"]))
        assert names(found) == ["notes.txt"]

    def test_results_are_absolute(self, source_tree, monkeypatch):
        monkeypatch.chdir(source_tree.parent)
        found = list(find_source_files(["src/Program.cs"], [".cs"]))
        assert found == [str((source_tree / "Program.cs").resolve())]

    def test_exclude_by_name_and_glob(self, source_tree):
        found = list(find_source_files([source_tree], [".cs"], exclude=["Views"]))
        assert names(found) == ["Program.cs"]

        found = list(find_source_files([source_tree], [".cs"], exclude=["*file.cs"]))
        assert names(found) == ["Program.cs", "Views/Main.cs"]

    def test_exclude_by_absolute_path(self, source_tree):
        excluded = str((source_tree / "Program.cs").resolve())
        found = list(find_source_files([source_tree], [".cs"], exclude=[excluded]))
        assert "Program.cs" not in names(found)

    def test_missing_input(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(find_source_files([tmp_path / "nope"], [".cs"]))

    def test_is_excluded_without_rules(self, source_tree):
        assert not is_excluded(source_tree, [])


class TestReadLines:
    """Tests pour read_lines()."""

    def test_strips_line_endings(self, tmp_path):
        path = tmp_path / "crlf.cs"
        path.write_bytes(b"one\r\ntwo\n\nthree")
        assert list(read_lines(path)) == ["one", "two", "", "three"]

    def test_encoding(self, tmp_path):
        path = tmp_path / "latin.cs"
        path.write_bytes("caf\xe9\n".encode("latin-1"))
        assert list(read_lines(path, "latin-1")) == ["caf\xe9"]

    def test_stream(self):
        assert list(read_lines(io.StringIO("a\nb\n"))) == ["a", "b"]
