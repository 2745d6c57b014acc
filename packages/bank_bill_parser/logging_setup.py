"""Logging for ``bank_bill_parser``.

Modules obtain loggers with ``get_logger("bank_bill_parser.<module>")`` and
never attach handlers themselves. The CLI root callback calls
:func:`configure_logging` once, which installs a single stderr handler on the
``bank_bill_parser`` logger; stdout is left to command output (TSV, JSON).

Environment:

- ``BANK_BILL_PARSER_LOG_LEVEL``: level name or number (default ``WARNING``)
- ``BANK_BILL_PARSER_LOG_FORMAT``: ``logging.Formatter`` format string
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "bank_bill_parser"
_LEVEL_ENV = "BANK_BILL_PARSER_LOG_LEVEL"
_FORMAT_ENV = "BANK_BILL_PARSER_LOG_FORMAT"
_DEFAULT_LEVEL = logging.WARNING
_DEFAULT_FORMAT = "%(levelname)s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(_LEVEL_ENV)
    if isinstance(level, int):
        return level
    if not level or not level.strip():
        return _DEFAULT_LEVEL
    text = level.strip().upper()
    if text.isdigit():
        return int(text)
    numeric = logging.getLevelName(text)
    return numeric if isinstance(numeric, int) else _DEFAULT_LEVEL


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
    force: bool = False,
) -> logging.Handler:
    """Install the package's stderr handler and return it.

    Later calls are no-ops returning the existing handler unless ``force`` is
    set, in which case the previous handler is replaced. ``level=None`` reads
    ``BANK_BILL_PARSER_LOG_LEVEL``; unknown names fall back to ``WARNING``.
    """

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is not None:
        if not force:
            return _handler
        logger.removeHandler(_handler)

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or os.getenv(_FORMAT_ENV) or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    _handler = handler
    return handler


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``; until configured, the package logger
    carries a ``NullHandler`` so library use stays silent."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
