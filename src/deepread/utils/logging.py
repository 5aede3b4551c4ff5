import logging
import os
from typing import Dict, Optional

import colorlog

# Define log levels
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}

DEFAULT_COLOR_LOG_FORMAT = "%(log_color)s%(asctime)s [%(name)s] %(levelname)s: %(message)s"

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

# Keep track of configured loggers
CONFIGURED_LOGGERS: Dict[str, logging.Logger] = {}


def setup_logger(name: str, log_level: str = "INFO") -> logging.Logger:
    """
    Set up a logger with colorful console output.

    Args:
        name: The name of the logger
        log_level: The log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        A configured logger instance
    """
    log_level = (log_level or "INFO").upper()
    level = LOG_LEVELS.get(log_level, logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    if log_level not in LOG_LEVELS:
        logger.warning(f"Invalid log level: {log_level}. Using INFO instead.")

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        DEFAULT_COLOR_LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors=LOG_COLORS
    ))
    logger.addHandler(console_handler)
    logger.propagate = False

    CONFIGURED_LOGGERS[name] = logger
    return logger


def get_log_level() -> str:
    """Get the log level from environment variable or use default."""
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def get_logger(name: str, log_level: Optional[str] = None) -> logging.Logger:
    """
    Get a logger under the ``deepread`` namespace.

    Loggers are configured once; later calls return the cached instance.
    """
    full_name = name if name.startswith("deepread") else f"deepread.{name}"
    if log_level is None and full_name in CONFIGURED_LOGGERS:
        return CONFIGURED_LOGGERS[full_name]
    return setup_logger(full_name, log_level or get_log_level())
