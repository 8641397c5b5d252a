"""
log.py

Logging setup for applications embedding the changetracker store.

Modules in this package log through ``logging.getLogger(__name__)`` and
never configure handlers themselves; the application calls
configure_logging() once at start-up.
"""

import logging
from typing import Union

from . import config

LOGGER_NAME = "changetracker"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Union[int, str] = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Calling this more than once only updates the level.

    Args:
        level (int or str, optional): Log level, defaults to config.LOG_LEVEL

    Returns:
        logging.Logger: The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    if level is None:
        level = config.LOG_LEVEL
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
