"""Logging setup for the msg CLI."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "<level>{level: <7}</level> | {message}"


def configure_logging(level: str = "WARNING") -> None:
    """Route loguru to a single stderr sink at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT, colorize=None, backtrace=False, diagnose=False)
