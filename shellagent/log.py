"""Logging setup for the shell agent.

Modules log through ``logging.getLogger(__name__)``; this helper only
configures the ``shellagent`` logger once, from the CLI flags and the
``logging`` section of the configuration.
"""

from __future__ import annotations

import logging
from typing import Optional

LOGGER_NAME = "shellagent"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(debug: bool = False, verbose: bool = False, level: Optional[str] = None) -> int:
    """Pick the log level: ``debug`` wins over ``verbose`` which wins over ``level``."""
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return _LEVELS.get((level or "warning").lower(), logging.WARNING)


def init_logging(
    debug: bool = False,
    verbose: bool = False,
    level: Optional[str] = None,
    log_file: str = "",
) -> logging.Logger:
    """Configure and return the package logger.

    Calling this again replaces the handlers installed by a previous call,
    so the CLI can re-initialise after reading the config file.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(resolve_level(debug, verbose, level))
    return logger
