"""
Logging setup for the command-line and web entry points
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int = logging.WARNING, stream=None) -> logging.Logger:
    """Attach one stream handler to the ``alphadb`` logger (idempotent)"""
    logger = logging.getLogger("alphadb")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(stream=stream or sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
