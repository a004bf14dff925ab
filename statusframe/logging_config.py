"""
Logging setup for the statusframe server.
"""
import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configures the 'statusframe' logger with a single stdout handler.

    Args:
        level: Level name such as "DEBUG". Falls back to $LOG_LEVEL, then INFO.
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    numeric = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger("statusframe")
    logger.setLevel(numeric)
    if logger.hasHandlers():
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)
