"""Logging configuration for the reconciliation engine."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "bank_ledger_recon"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    log_format: Optional[str] = None,
) -> logging.Logger:
    """
    Configure application logging.

    Args:
        level: Logging level, as a number or a name such as "DEBUG"
        log_file: Optional path to log file
        log_format: Optional custom log format string

    Returns:
        Configured package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if log_format is None:
        log_format = DEFAULT_FORMAT

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
            )
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the package logger.

    Args:
        name: Name of the module (typically __name__)

    Returns:
        Logger instance
    """
    if name.startswith(PACKAGE_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
