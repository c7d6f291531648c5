from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Logging initialization with labeled prefixes.

Output lines look like ``INFO message`` / ``WARN [C2000] message`` /
``SUMMARY ...``. The application logger is ``bom_enricher``; modules log
through ``logging.getLogger(__name__)`` so their records reach its handler.

A record logged with ``extra={"part_number": ...}`` is prefixed with the part
number in brackets. In debug mode the ``httpx`` request logger is attached to
the same handler so every catalog request shows up.
"""

__all__ = [
    "APP_LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "set_debug",
    "reset_logging",
]

APP_LOGGER_NAME = "bom_enricher"
HTTP_LOGGER_NAMES = ("httpx",)

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None
_handler: logging.Handler | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter emitting ``LABEL [part] message``."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        part_number = getattr(record, "part_number", None)
        if part_number:
            return f"{label} [{part_number}] {record.getMessage()}"
        return f"{label} {record.getMessage()}"


def setup_logging(stream: TextIO | None = None) -> logging.Logger:
    """Configure the application logger (idempotent).

    Args:
        stream: Output stream, stdout by default (the SUMMARY line is part of
            the CLI's stdout contract)

    Returns:
        Configured ``bom_enricher`` logger
    """
    global _logger, _handler

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(logging.INFO)
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    _logger = logger
    _handler = handler
    return logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def log_summary(message: str) -> None:
    """Log ``message`` at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def set_debug(enabled: bool = True) -> None:
    """Switch DEBUG output on or off, catalog request logging included."""
    logger = get_logger()
    level = logging.DEBUG if enabled else logging.INFO
    logger.setLevel(level)
    for h in logger.handlers:
        h.setLevel(level)

    for name in HTTP_LOGGER_NAMES:
        http_logger = logging.getLogger(name)
        if _handler is None:
            continue
        if enabled:
            if _handler not in http_logger.handlers:
                http_logger.addHandler(_handler)
            http_logger.setLevel(logging.DEBUG)
            http_logger.propagate = False
        else:
            if _handler in http_logger.handlers:
                http_logger.removeHandler(_handler)
            http_logger.setLevel(logging.NOTSET)
            http_logger.propagate = True


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger, _handler
    if _handler is not None:
        for name in HTTP_LOGGER_NAMES:
            http_logger = logging.getLogger(name)
            if _handler in http_logger.handlers:
                http_logger.removeHandler(_handler)
                http_logger.setLevel(logging.NOTSET)
                http_logger.propagate = True
    _logger = None
    _handler = None
