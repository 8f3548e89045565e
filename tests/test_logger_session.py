"""
Tests pour le système de logging avec sessions et création lazy.
"""

import logging

from poedit_parser.logger import (
    LazyFileHandler,
    LogSession,
    TqdmLoggingHandler,
    get_logger,
    get_session_log_path,
    set_console_level,
    setup_logger,
)


def make_record(message="Test message", level=logging.INFO):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="",
        lineno=0,
        msg=message,
        args=(),
        exc_info=None,
    )


def test_session_dir_under_configured_base(log_session):
    """Le répertoire de session est créé sous la base configurée."""
    session_dir = LogSession.get_session_dir()
    assert session_dir.parent == log_session
    assert session_dir.name.startswith("run_")
    assert session_dir.is_dir()
    assert LogSession.get_session_dir() == session_dir


def test_session_dir_from_environment(tmp_path, monkeypatch):
    """Sans base configurée, POEDIT_PARSER_LOG_DIR est utilisé."""
    LogSession.reset()
    monkeypatch.setenv("POEDIT_PARSER_LOG_DIR", str(tmp_path / "env_logs"))

    assert LogSession.get_session_dir().parent == tmp_path / "env_logs"


def test_lazy_file_handler_creates_file_only_on_emit(log_session):
    """LazyFileHandler ne crée le répertoire et le fichier qu'au premier log."""
    handler = LazyFileHandler("lazy.log", mode="w")
    handler.setFormatter(logging.Formatter("%(message)s"))

    assert not log_session.exists(), "Aucun répertoire avant le premier log"

    handler.emit(make_record())

    path = get_session_log_path("lazy.log")
    assert path.exists()
    assert "Test message" in path.read_text(encoding="utf-8")
    handler.close()


def test_lazy_file_handler_follows_new_session(tmp_path):
    """Après reset(), le prochain message s'écrit dans la nouvelle session."""
    handler = LazyFileHandler("moved.log")
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.emit(make_record("first"))

    LogSession.configure(tmp_path / "other")
    handler.reset()
    handler.emit(make_record("second"))

    assert "second" in get_session_log_path("moved.log").read_text(encoding="utf-8")
    assert get_session_log_path("moved.log").parent.parent == tmp_path / "other"
    handler.close()


def test_setup_logger_handlers():
    """Un handler console (tqdm) et un handler fichier, sans propagation."""
    logger = setup_logger("poedit_parser.test_setup", log_filename="test_setup.log")

    assert len(logger.handlers) == 2
    assert isinstance(logger.handlers[0], TqdmLoggingHandler)
    assert isinstance(logger.handlers[1], LazyFileHandler)
    assert logger.handlers[1].filename == "test_setup.log"
    assert logger.propagate is False


def test_setup_logger_avoids_duplicate_handlers():
    """setup_logger n'ajoute pas de handlers multiples."""
    logger1 = setup_logger("poedit_parser.test_duplicate")
    logger2 = setup_logger("poedit_parser.test_duplicate")

    assert logger1 is logger2
    assert len(logger1.handlers) == 2


def test_get_logger_creates_with_custom_filename():
    logger = get_logger("poedit_parser.test_custom", log_filename="custom.log")
    assert logger.handlers[1].filename == "custom.log"


def test_set_console_level():
    """set_console_level agit sur tous les loggers du package."""
    logger = get_logger("poedit_parser.test_console")
    try:
        set_console_level(logging.INFO)
        assert logger.handlers[0].level == logging.INFO
    finally:
        set_console_level(logging.WARNING)
    assert logger.handlers[0].level == logging.WARNING


def test_console_handler_writes_to_stderr(capsys):
    handler = TqdmLoggingHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))

    handler.emit(make_record("visible", logging.WARNING))

    assert "WARNING visible" in capsys.readouterr().err
