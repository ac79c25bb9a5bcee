"""Centralized logging configuration for the finance tracker.

Entry points (``app.py``) call :func:`configure_logging` once at startup.
Every other module only calls :func:`get_logger` and never attaches handlers
of its own.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import config

_PKG_LOGGER_NAME = "finance_tracker"
_CONFIGURED = False

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "telegram", "botocore", "boto3", "kaleido", "urllib3")


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = config.LOG_LEVEL
    level = str(level).strip().upper()
    if level.isdigit():
        return int(level)
    numeric = getattr(logging, level, None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def configure_logging(level: int | str | None = None, log_file: str | None = None) -> None:
    """Configure the package root logger exactly once.

    Parameters
    ----------
    level:
        Level as ``int`` or name (``"DEBUG"``). Defaults to ``LOG_LEVEL``.
    log_file:
        Optional path for a rotating file handler. Defaults to ``LOG_FILE``.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    numeric_level = _parse_level(level)
    logger = logging.getLogger(_PKG_LOGGER_NAME)

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    formatter = logging.Formatter(config.LOG_FORMAT, datefmt=config.LOG_DATE_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_file = log_file or config.LOG_FILE
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(numeric_level)
    logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``finance_tracker.<name>``, silent until logging is configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(f"{_PKG_LOGGER_NAME}.{name}")
