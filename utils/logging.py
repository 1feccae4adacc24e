"""Logging utilities for FileDeck.

All loggers live under the ``filedeck`` namespace. Only the named loggers
below get their own stderr handler; children such as ``filedeck.fs.zip``
propagate to ``filedeck.fs``.
"""

from __future__ import annotations

import logging
import sys

from config import LOG_LEVEL, LOG_FORMAT

_configured: set[str] = set()


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger for a module."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(LOG_LEVEL)
        logger.propagate = False  # Prevent duplicate logs from parent handlers
        _configured.add(name)
    return logger


def set_log_level(level: str | int) -> None:
    """Change the level of every logger configured through ``get_logger``."""
    if isinstance(level, str):
        level = level.upper()
    for name in _configured:
        logging.getLogger(name).setLevel(level)


# Pre-configured loggers, one per area
app_logger = get_logger('filedeck')
fs_logger = get_logger('filedeck.fs')
auth_logger = get_logger('filedeck.auth')
