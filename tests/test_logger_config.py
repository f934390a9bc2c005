import logging
from logging import FileHandler
from logging.handlers import TimedRotatingFileHandler

import pytest
from logging_loki import LokiHandler

from influx_line_client.logger_config import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_console_only():
    setup_logging("debug")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.StreamHandler)


def test_unknown_level_falls_back_to_info():
    setup_logging("verbose")

    assert logging.getLogger().level == logging.INFO


def test_file_handler_without_rotation(tmp_path):
    log_file = tmp_path / "write.log"

    setup_logging("INFO", str(log_file), process_name="metrics")
    logging.getLogger("influx_line_client").info("hola")

    handlers = logging.getLogger().handlers
    assert any(type(h) is FileHandler for h in handlers)
    for handler in handlers:
        handler.flush()
    assert "[metrics]" in log_file.read_text(encoding="utf-8")


def test_file_handler_with_rotation(tmp_path):
    setup_logging(
        "INFO",
        str(tmp_path / "write.log"),
        rotation_config={"enabled": True, "when": "H", "backup_count": 2},
    )

    rotating = [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, TimedRotatingFileHandler)
    ]
    assert len(rotating) == 1
    assert rotating[0].backupCount == 2


def test_unwritable_log_file_keeps_console(tmp_path):
    setup_logging("INFO", str(tmp_path / "missing" / "dir" / "write.log"))

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1


def test_loki_handler_is_added(monkeypatch):
    # no network in tests
    monkeypatch.setattr(LokiHandler, "emit", lambda self, record: None)

    setup_logging(
        "INFO",
        process_name="metrics",
        loki_config={"enabled": True, "url": "loki", "port": 3100, "tags": {"app": "x"}},
    )

    assert any(isinstance(h, LokiHandler) for h in logging.getLogger().handlers)


def test_repeated_setup_does_not_duplicate_handlers():
    setup_logging("INFO")
    setup_logging("INFO")

    assert len(logging.getLogger().handlers) == 1
