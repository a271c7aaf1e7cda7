"""Logging configuration using loguru."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """Route envdeploy's log records to stderr.

    Console output for users goes through rich; log records are diagnostics
    and stay quiet (warnings only) unless asked for.

    Args:
        verbose: Show INFO records (state decisions such as install vs upgrade)
        debug: Show DEBUG records (every external command line)
    """
    level = "DEBUG" if debug else "INFO" if verbose else "WARNING"
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT, colorize=None)
