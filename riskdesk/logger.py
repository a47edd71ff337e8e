"""
logger.py
---------

Logging configuration shared by the journal, the store and the web app.
The calculation modules stay silent.

Only the ``riskdesk`` logger gets a handler, so embedding the app under
another server leaves that server's own logging untouched.
"""

from __future__ import annotations

import logging
import sys
from typing import Union

PACKAGE = "riskdesk"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-24s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: Union[int, str, None]) -> int:
    """Turn a level name from config ('debug', 'WARNING') into a number.

    Unknown or empty names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level or "").strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: Union[int, str, None] = "INFO") -> logging.Logger:
    """Attach a stdout handler to the package logger and set its level."""
    logger = logging.getLogger(PACKAGE)
    logger.setLevel(resolve_level(level))

    # repeated app factories must not stack handlers
    if not any(getattr(h, "_riskdesk", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._riskdesk = True
        logger.addHandler(handler)

    # request lines from the dev server only at debug level
    logging.getLogger("werkzeug").setLevel(
        logging.INFO if logger.level <= logging.DEBUG else logging.WARNING
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{PACKAGE}.{name}")
