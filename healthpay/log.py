"""Logging setup for the healthpay package"""

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "healthpay"


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """
    Attach a stdout handler to the package logger.

    Args:
        level: Level name or number (default: LOG_LEVEL env var, then INFO)

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
