"""
Logging configuration.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

QUIET_LOGGERS = ("asyncio",)


def _file_handler(log_file: Path, max_file_size_mb: int, backup_count: int,
                  formatter: logging.Formatter) -> logging.Handler:
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_file_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    # Tool output is logged at DEBUG and always kept in the file.
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_root_logger(log_file: Optional[Path] = None,
                      level: str = "INFO",
                      format_string: Optional[str] = None,
                      max_file_size_mb: int = 10,
                      backup_count: int = 5):
    """
    Set up the root logger for the application.

    Args:
        log_file: Optional rotating log file
        level: Console logging level
        format_string: Console format (file lines also carry logger and source)
        max_file_size_mb: Rotate the log file at this size
        backup_count: Number of rotated files to keep
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(getattr(logging, level.upper()))
    console.setFormatter(logging.Formatter(format_string or CONSOLE_FORMAT))
    root_logger.addHandler(console)

    if log_file:
        root_logger.addHandler(
            _file_handler(log_file, max_file_size_mb, backup_count, logging.Formatter(FILE_FORMAT))
        )

    # Deprecation warnings from libraries end up in the log instead of stderr.
    logging.captureWarnings(True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
