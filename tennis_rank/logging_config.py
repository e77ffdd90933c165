"""
Centralized logging configuration for the rankings service.

- Production (default): one line per event at INFO.
- Testing: LOG_LEVEL=DEBUG (or setup_logging(level="DEBUG")) also shows
  every skipped match, ignored score fragment and cache hit.

Environment variables:
- LOG_LEVEL: DEBUG|INFO|WARNING|ERROR|CRITICAL
- TEST_MODE: 1/true/yes switches to the verbose format
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Literal, Optional, TextIO

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

VERBOSE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(funcName)s | %(message)s"
CONCISE_FORMAT = "%(asctime)s %(levelname).1s %(name)s: %(message)s"

# Chatty at INFO; only shown when the service itself runs at DEBUG
NOISY_LOGGERS = ("aiosqlite", "uvicorn.access", "httpx")


def resolve_level(level: Optional[str] = None) -> int:
    """Numeric level for `level`, falling back to LOG_LEVEL and then INFO."""
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def setup_logging(
    level: Optional[LogLevel] = None,
    mode: Optional[Literal["test", "prod"]] = None,
    stream: TextIO = sys.stdout,
) -> None:
    """Configure the root logger, replacing any handlers already installed."""
    numeric_level = resolve_level(level)
    if mode is None and os.getenv("TEST_MODE", "0").lower() in ("1", "true", "yes"):
        mode = "test"
    verbose = mode == "test" or numeric_level <= logging.DEBUG

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream=stream)
    handler.setFormatter(logging.Formatter(fmt=VERBOSE_FORMAT if verbose else CONCISE_FORMAT, datefmt="%H:%M:%S"))
    root.setLevel(numeric_level)
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if numeric_level <= logging.DEBUG else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Convenience wrapper to get a module logger."""
    return logging.getLogger(name)
