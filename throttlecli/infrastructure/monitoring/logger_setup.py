"""Centralized logging configuration for throttlecli.

Sets up standard Python logging with a console handler and an optional
file handler. Library users who never call setup_logging keep whatever
logging configuration their application already has.
"""

import logging
import sys
from typing import Optional, Union

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = None


def resolve_log_level(level: Union[int, str, None], default: int = DEFAULT_LOG_LEVEL) -> int:
    """Turns 'debug', 'INFO', 10 etc. into a logging level number."""
    if level is None:
        return default
    if isinstance(level, int):
        return level
    resolved = getattr(logging, str(level).strip().upper(), None)
    if not isinstance(resolved, int):
        logging.getLogger(__name__).warning(f"Unknown log level '{level}', using {logging.getLevelName(default)}")
        return default
    return resolved


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = DEFAULT_LOG_FILE
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for log messages.
        log_file: Optional path to a file for logging output.

    Raises:
        OSError: If the log file cannot be opened.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Replace handlers from any earlier call
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format)

    # Console handler on stderr; stdout carries command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logging.getLogger(__name__).info(f"Logging to file: {log_file}")

    logging.getLogger(__name__).debug(f"Logging configured. Level={logging.getLevelName(log_level)}")
