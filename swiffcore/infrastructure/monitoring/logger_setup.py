"""Centralized logging configuration for the swiffcore application.

Sets up standard Python logging with a console handler and an optional
size-rotated file handler.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = None
LOG_FILE_MAX_BYTES = 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3


def resolve_log_level(level: Union[int, str, None], default: int = DEFAULT_LOG_LEVEL) -> int:
    """Accepts a logging constant or a level name such as 'debug'."""
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, int):
            return resolved
    return default


def setup_logging(
    log_level: Union[int, str] = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[Union[str, Path]] = DEFAULT_LOG_FILE,
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level, as a constant or a name.
        log_format: The format string for log messages.
        log_file: Optional path to a file for logging output; rotated at 1 MiB.
    """
    level = resolve_log_level(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers attached to the root logger
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUP_COUNT,
                encoding='utf-8',
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}", exc_info=True)

    logging.info(f"Logging configured. Level={logging.getLevelName(level)}")
