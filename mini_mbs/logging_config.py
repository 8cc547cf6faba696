"""
Logging Configuration
Sets up the package logger for mini_mbs.
"""
import logging
import sys
from typing import Optional

from .config import CONFIG


def setup_logging(level: Optional[int] = None, log_file: Optional[str] = None) -> None:
    """
    Configures the logger for the 'mini_mbs' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG). Defaults to CONFIG.log_level.
        log_file: Optional path to save logs to a file.
    """
    if level is None:
        level = CONFIG.log_level

    logger = logging.getLogger("mini_mbs")
    logger.setLevel(level)

    # Avoid duplicate handlers when called more than once
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(CONFIG.log_format, datefmt=CONFIG.log_datefmt)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized.")
