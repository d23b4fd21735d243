"""
Logging configuration for aoa_cpm.

Library modules only ask for loggers; applications call ``setup_logging``
once to get console output. The level comes from the ``level`` argument,
else the ``AOA_CPM_LOG_LEVEL`` environment variable, else INFO.
"""

import logging
import os
import sys
from typing import Optional

LOG_LEVEL_ENV = "AOA_CPM_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

logging.getLogger("aoa_cpm").addHandler(logging.NullHandler())


def setup_logging(level: Optional[str] = None) -> None:
    """
    Attach a console handler to the ``aoa_cpm`` logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level = level or os.environ.get(LOG_LEVEL_ENV, "INFO")
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger("aoa_cpm")
    logger.setLevel(numeric_level)

    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module, prefixed with ``aoa_cpm``.

    Usage:
        logger = get_logger(__name__)
    """
    if not name.startswith("aoa_cpm"):
        name = f"aoa_cpm.{name}"
    return logging.getLogger(name)
