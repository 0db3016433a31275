"""
Logging setup.

Library modules log through loguru's global logger and never configure
sinks themselves; entry points call configure_logging() once.
"""
from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | <cyan>{name}</cyan> - {message}"


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
