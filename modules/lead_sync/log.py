"""
Logging Configuration

Single-line log events for the lead sync service, all tagged with a fixed
prefix. Adds a SUCCESS level between INFO and WARNING.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_PREFIX = "Structurely-GHL Sync:"

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_LEVELS = {"DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class SyncLogger(logging.LoggerAdapter):
    """Logger adapter with a success() shortcut."""

    def success(self, msg, *args, **kwargs):
        self.log(SUCCESS, msg, *args, **kwargs)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size_mb: int = 10,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure logging for the lead sync service.

    Args:
        level: Logging level (DEBUG, INFO, SUCCESS, WARNING, ERROR)
        log_file: Path to log file (optional)
        max_size_mb: Max log file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger
    """
    logger = logging.getLogger("lead_sync")
    logger.setLevel(level.upper() if level.upper() in _LEVELS else "INFO")

    # Clear existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        f"%(asctime)s - %(name)s - %(levelname)s - {LOG_PREFIX} %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> SyncLogger:
    """Get a child logger for a specific module."""
    short_name = name.rsplit(".", 1)[-1]
    return SyncLogger(logging.getLogger(f"lead_sync.{short_name}"), {})

