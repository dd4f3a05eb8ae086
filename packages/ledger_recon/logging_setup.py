"""Logging configuration for the ``ledger_recon`` package.

Public surface:
- ``configure_logging(...)``: install one ``StreamHandler`` on the package root
  logger (``"ledger_recon"``). Entry points (the CLI) call it once at startup;
  repeated calls are no-ops unless ``force=True``.
- ``get_logger(name)``: fetch a module logger. Until an entry point configures
  logging, the package root logger carries a ``NullHandler`` so library use
  stays silent.

Library modules never attach handlers of their own; they call
``get_logger("ledger_recon.<module>")`` and log with %-style lazy arguments,
e.g. ``_logger.info("import:account_resolved account_id=%d", account_id)``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "ledger_recon"
_LEVEL_ENV_VAR = "LEDGER_RECON_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_handler: logging.Handler | None = None


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv(_LEVEL_ENV_VAR)
        if not level:
            return logging.INFO
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    # getLevelName returns "Level X" for unknown names
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
    force: bool = False,
) -> None:
    """Configure the package root logger.

    ``level`` accepts an ``int`` or a level name; when ``None`` the
    ``LEDGER_RECON_LOG_LEVEL`` environment variable is consulted, falling back
    to ``INFO``. ``force`` replaces a previously installed handler, which the
    CLI uses when ``--log-level`` is given after an earlier configuration.
    """

    global _handler
    if _handler is not None and not force:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler) or h is _handler:
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    _handler = handler


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with a silent default for library use."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
