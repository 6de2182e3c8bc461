"""Universal debug/logging utility for ScrapeGnome.

Configures the ``scrapegnome`` logger that every module's
``logging.getLogger(__name__)`` propagates to, and provides a debug() shortcut.
Debug output is controlled by the SCRAPEGNOME_DEBUG environment variable.
"""

import logging
import os
from typing import Optional

LOGGER_NAME = "scrapegnome"
LOG_FORMAT = "[%(levelname)s] %(asctime)s %(message)s"

_logger: Optional[logging.Logger] = None


def debug_enabled() -> bool:
    return os.getenv("SCRAPEGNOME_DEBUG", "0") == "1"


def setup_logger(level: int | None = None) -> logging.Logger:
    """Configure the package logger once and return it.

    Args:
        level: Explicit level; defaults to DEBUG when SCRAPEGNOME_DEBUG=1,
            INFO otherwise. Passing a level on a later call updates it.
    """
    global _logger
    logger = logging.getLogger(LOGGER_NAME)
    if _logger is None and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)
    if level is not None:
        logger.setLevel(level)
    _logger = logger
    return logger


def debug(msg: str) -> None:
    """Log a debug message if debugging is enabled."""
    if debug_enabled():
        setup_logger().debug(msg)
