"""
Configuration pytest pour les tests poedit-parser.

Ce fichier contient les fixtures communes à tous les tests.
"""

import pytest
from pathlib import Path

from poedit_parser.config import ParserConfig
from poedit_parser.extractor import LineExtractor
from poedit_parser.logger import LogSession, reset_file_handlers


@pytest.fixture(autouse=True)
def log_session(tmp_path):
    """
    Redirige les logs de chaque test dans un répertoire temporaire.

    Args:
        tmp_path: Fixture pytest fournissant un répertoire temporaire

    Returns:
        Path vers le répertoire de base des logs
    """
    logs_dir = tmp_path / "logs"
    LogSession.configure(logs_dir)
    reset_file_handlers()
    yield logs_dir
    reset_file_handlers()
    LogSession.reset()


@pytest.fixture
def extractor():
    """Extracteur avec les patterns par défaut."""
    return LineExtractor(ParserConfig().compile_patterns())


@pytest.fixture
def source_tree(tmp_path) -> Path:
    """
    Arborescence de sources C# d'exemple.

    src/
        Program.cs        : deux mots-clés, dont un en double
        Views/Main.cs     : attribut Description + appel gettext
        Views/Other file.cs : nom avec espace
        notes.txt         : extension ignorée
    """
    root = tmp_path / "src"
    (root / "Views").mkdir(parents=True)

    (root / "Program.cs").write_text(
        "class Program {\n"
        '    var a = _("Hello world");\n'
        "\n"
        '    var b = _("Goodbye") + __("Hello world");\n'
        "}\n",
        encoding="utf-8",
    )
    (root / "Views" / "Main.cs").write_text(
        '[Description("Main view")]\n'
        "class Main {\n"
        '    string t = gettext("Open file");\n'
        "}\n",
        encoding="utf-8",
    )
    (root / "Views" / "Other file.cs").write_text(
        'var c = Translate("Other");\n',
        encoding="utf-8",
    )
    (root / "notes.txt").write_text('_("Not scanned")\n', encoding="utf-8")
    return root
