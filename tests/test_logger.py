"""
Tests for logging setup.
"""

import logging

from beat_montage.logger import (
    LOGGER_NAME,
    ConsoleFormatter,
    configure_file_logging,
    get_log_level,
    log_success,
    logger,
)


def _record(level, msg):
    return logging.LogRecord(LOGGER_NAME, level, __file__, 1, msg, None, None)


def test_package_logger_has_single_console_handler():
    assert logger.name == LOGGER_NAME
    assert len([h for h in logger.handlers if isinstance(h, logging.StreamHandler)
                and not isinstance(h, logging.FileHandler)]) == 1


def test_log_level_from_env(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert get_log_level() == logging.DEBUG
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    assert get_log_level() == logging.INFO


def test_console_formatter():
    formatter = ConsoleFormatter()
    assert formatter.format(_record(logging.INFO, "Rendering montage...")) == "Rendering montage..."
    warning = formatter.format(_record(logging.WARNING, "careful"))
    assert "[WARN]" in warning
    assert warning.endswith("careful")


def test_file_logging(tmp_path):
    log_file = configure_file_logging(tmp_path / "logs", name="test")
    try:
        log_success("montage written")
        for handler in logger.handlers:
            handler.flush()
        assert "montage written" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            if isinstance(handler, logging.FileHandler):
                logger.removeHandler(handler)
                handler.close()
