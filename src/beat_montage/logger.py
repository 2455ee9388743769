"""
Logging for Beat Montage

One package logger, ``beat_montage``, shared by the server, the background
montage workers and the CLI:

- INFO lines print bare so run progress reads like a console transcript
- DEBUG/WARN/ERROR lines carry a timestamp and the emitting thread, which
  tells montage workers (``montage-run_N``) and the scheduler worker apart
- LOG_LEVEL selects the threshold
- configure_file_logging() adds a detailed file log next to the console

Usage:
    from beat_montage.logger import logger, log_step

    logger.info("Montage creation started for run %s", run_id)
    log_step("Rendering montage...", emoji="🎬")
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, TextIO


LOGGER_NAME = "beat_montage"
DEFAULT_LEVEL = "INFO"


def get_log_level() -> int:
    """Threshold from LOG_LEVEL; unknown names fall back to INFO."""
    name = os.environ.get("LOG_LEVEL", DEFAULT_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


# =============================================================================
# Formatters
# =============================================================================
class ConsoleFormatter(logging.Formatter):
    """
    Bare INFO, annotated everything else.

    Progress messages are the bulk of the output; only records that need
    attention get a timestamp, level tag and thread name.
    """

    DETAILED = "%(asctime)s [%(levelname)s] (%(threadName)s) %(message)s"
    LEVEL_TAGS = {logging.WARNING: "WARN"}

    def __init__(self):
        super().__init__(fmt=self.DETAILED, datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        original = record.levelname
        record.levelname = self.LEVEL_TAGS.get(record.levelno, original)
        try:
            return super().format(record)
        finally:
            record.levelname = original


class FileFormatter(logging.Formatter):
    """Full context for log files: date, level, thread and source line."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(threadName)s | %(module)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _file_handler(log_file: Path) -> logging.FileHandler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(FileFormatter())
    return handler


# =============================================================================
# Logger Setup
# =============================================================================
def setup_logger(
    name: str = LOGGER_NAME,
    stream: Optional[TextIO] = None,
    level: Optional[int] = None,
) -> logging.Logger:
    """
    Attach the console handler to a logger, once.

    Args:
        name: Logger name (default: beat_montage)
        stream: Console stream (default: stdout)
        level: Threshold (default: LOG_LEVEL)
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log

    threshold = level or get_log_level()
    log.setLevel(threshold)
    log.propagate = False

    console = logging.StreamHandler(stream or sys.stdout)
    console.setLevel(threshold)
    console.setFormatter(ConsoleFormatter())
    log.addHandler(console)
    return log


def configure_file_logging(log_dir: Path, name: str = "server") -> Path:
    """
    Also write the package log to ``log_dir/<name>.log``.

    Returns:
        Path of the log file
    """
    log_file = Path(log_dir) / f"{name}.log"
    logging.getLogger(LOGGER_NAME).addHandler(_file_handler(log_file))
    return log_file


logger = setup_logger()


# =============================================================================
# Progress Helpers
# =============================================================================
def log_phase(title: str, width: int = 60) -> None:
    """Banner for a top-level phase such as server startup."""
    rule = "═" * width
    logger.info(rule)
    logger.info(f"  {title}")
    logger.info(rule)


def log_step(message: str, emoji: str = "▶") -> None:
    logger.info(f"{emoji} {message}")


def log_success(message: str) -> None:
    logger.info(f"   ✅ {message}")


def log_warning(message: str) -> None:
    logger.warning(f"⚠️  {message}")


def log_error(message: str) -> None:
    logger.error(f"❌ {message}")
