"""
Logging utilities for consistent logging across the solver.
"""

import logging
import sys
from typing import Optional
from vipomdp.config import Config

PACKAGE_LOGGER = "vipomdp"


def _resolve_level(level: Optional[str]) -> int:
    level = level or Config.LOG_LEVEL
    return getattr(logging, level.upper(), logging.INFO)


def setup_logger(
    name: str,
    level: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger writing to stdout with the configured format.

    Args:
        name: Logger name (typically __name__)
        level: Logging level (defaults to Config.LOG_LEVEL)
        format_string: Custom format string (defaults to Config.LOG_FORMAT)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    numeric_level = _resolve_level(level)
    logger.setLevel(numeric_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(format_string or Config.LOG_FORMAT))
    logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance (creates one if it doesn't exist).

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        return setup_logger(name)

    return logger


def set_log_level(level: str) -> None:
    """
    Change the level of every logger already created under the package.

    Args:
        level: Level name, e.g. "DEBUG"
    """
    numeric_level = _resolve_level(level)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if not isinstance(logger, logging.Logger):
            continue
        if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
            logger.setLevel(numeric_level)
            for handler in logger.handlers:
                handler.setLevel(numeric_level)
