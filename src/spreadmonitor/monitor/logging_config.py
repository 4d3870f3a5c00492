"""
Logging configuration for the Spread Monitor.
"""

import logging
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = "spread_monitor.log"


def setup_logging(level: str = "INFO", log_file: str = LOG_FILE) -> logging.Logger:
    """
    Configure logging with console and file handlers.

    ## Parameters
    - `level`: Console log level name (e.g. "INFO", "DEBUG")
    - `log_file`: Path of the rotating warning/error log

    Returns:
        Configured logger instance
    """
    log_formatter = logging.Formatter(LOG_FORMAT)
    console_level = logging.getLevelName(level.upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO

    # Console handler: everything at the configured level and above
    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(log_formatter)

    # File handler: only WARNING and ERROR, rotated
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB per file
        backupCount=5,
    )
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(log_formatter)

    logging.basicConfig(
        level=min(console_level, logging.WARNING),
        handlers=[console_handler, file_handler],
        force=True,
    )

    return logging.getLogger("spreadmonitor")
