"""
Logging configuration
"""

import logging
import sys

from .config import get_log_level

LOGGER_NAME = "meal_shopper"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None, verbose: bool = False) -> logging.Logger:
    """Attach a stderr handler to the package logger (once) and set its level."""
    logger = logging.getLogger(LOGGER_NAME)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    if verbose:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(getattr(logging, (level or get_log_level()).upper(), logging.WARNING))
    return logger
