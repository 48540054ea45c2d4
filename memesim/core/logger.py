"""
Logging for memesim.

Every module calls ``get_logger(__name__)``. Each logger writes colored
lines to stdout and plain lines to ``$LOG_DIR/memesim.log`` (rotated at
10 MB, five backups). ``LOG_LEVEL`` sets the initial level; the CLI can
change it later with ``set_log_level``.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_NAME = "memesim.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: "\033[92m",
    logging.WARNING: "\033[93m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[1m\033[91m",
}


class ColoredFormatter(logging.Formatter):
    """Wraps each formatted line in the ANSI color of its level."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        return f"{color}{line}{_RESET}" if color else line


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        value = getattr(logging, level.upper(), None)
        return value if isinstance(value, int) else logging.INFO
    return level


def _default_log_file() -> Path:
    return Path(os.getenv("LOG_DIR", "logs")) / LOG_FILE_NAME


def setup_logger(
    name: str,
    level: int | str | None = None,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """
    Attach console and rotating file handlers to logger ``name``.

    Loggers that already have handlers are returned untouched, so calling
    this twice never duplicates output.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    resolved = _resolve_level(level)
    path = Path(log_file) if log_file is not None else _default_log_file()
    path.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))

    rotating = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    rotating.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    logger.setLevel(resolved)
    for handler in (console, rotating):
        handler.setLevel(resolved)
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return logger ``name``, configuring it on first use."""
    logger = logging.getLogger(name)
    return logger if logger.handlers else setup_logger(name)


def set_log_level(level: int | str) -> None:
    """
    Change the level of every memesim logger that is already configured.

    Modules create their loggers at import time, before the CLI has parsed
    ``--log-level``, so the new level is pushed to existing handlers too.
    """
    resolved = _resolve_level(level)
    for name, candidate in logging.Logger.manager.loggerDict.items():
        if name.split(".")[0] != "memesim" or not isinstance(candidate, logging.Logger):
            continue
        candidate.setLevel(resolved)
        for handler in candidate.handlers:
            handler.setLevel(resolved)
