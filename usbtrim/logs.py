"""
logs.py
Leveled run log: console (stdout, WARNING and up on stderr) plus an optional file.

Levels: TRACE < DEBUG < INFO < SUCCESS < WARNING < ERROR
  -v  enables DEBUG on the console, -vv enables TRACE.
"""

from __future__ import annotations
import logging, sys
from pathlib import Path
from .errors import LogInitError

TRACE = 5
SUCCESS = 25
logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(SUCCESS, "SUCCESS")

ROOT_LOGGER = "usbtrim"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_COLORS = {
    "ERROR": "\033[31m",
    "WARNING": "\033[33m",
    "SUCCESS": "\033[32m",
    "INFO": "\033[34m",
    "DEBUG": "\033[90m",
    "TRACE": "\033[90m",
}
_RESET = "\033[0m"


class ColorFormatter(logging.Formatter):
    def format(self, record):
        msg = super().format(record)
        color = _COLORS.get(record.levelname)
        return f"{color}{msg}{_RESET}" if color else msg


class _MaxLevelFilter(logging.Filter):
    def __init__(self, below: int):
        super().__init__()
        self.below = below

    def filter(self, record):
        return record.levelno < self.below


def console_level(verbosity: int, default: str = "INFO") -> int:
    if verbosity >= 2:
        return TRACE
    if verbosity == 1:
        return logging.DEBUG
    level = logging.getLevelName(str(default).upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(verbosity: int = 0, log_file: str | None = None, default_level: str = "INFO") -> logging.Logger:
    """Configure the usbtrim logger tree. Raises LogInitError if the log file is unusable."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(TRACE)
    logger.propagate = False
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    level = console_level(verbosity, default_level)
    out = logging.StreamHandler(sys.stdout)
    out.setLevel(level)
    out.addFilter(_MaxLevelFilter(logging.WARNING))
    err = logging.StreamHandler(sys.stderr)
    err.setLevel(max(level, logging.WARNING))
    for h in (out, err):
        fmt = ColorFormatter if h.stream.isatty() else logging.Formatter
        h.setFormatter(fmt(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(h)

    if log_file:
        path = Path(log_file).expanduser().absolute()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            raise LogInitError(f"Cannot open log file {path}: {e}")
        fh.setLevel(TRACE if verbosity >= 2 else logging.DEBUG)
        fh.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(fh)
        logger.info("Logging enabled to file: %s", path)
    return logger
