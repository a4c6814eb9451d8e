"""
Logging configuration for tag aggregation.

Uses loguru for advanced logging capabilities with rotation and retention.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

from tag_aggregation.config import LoggingConfig


def setup_logger(
    log_config: Optional[LoggingConfig] = None,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    rotation: Optional[str] = None,
    retention: Optional[str] = None,
    format: Optional[str] = None,
) -> None:
    """Configure the logger with file and console handlers.

    Args:
        log_config: Logging section of the application config
        level: Log level (DEBUG, INFO, WARNING, ERROR, etc.)
        log_file: Path to log file; enables the file handler when given
        rotation: Log rotation setting (e.g., "100 MB", "1 day")
        retention: Log retention setting (e.g., "30 days", "1 week")
        format: Log format string
    """
    log_config = log_config or LoggingConfig()

    # Use provided values or fall back to config
    level = (level or log_config.level).upper()
    file_enabled = log_config.file_enabled or log_file is not None
    log_file = log_file or log_config.file_path
    rotation = rotation or log_config.rotation
    retention = retention or log_config.retention
    format = format or log_config.format

    # Remove default handler
    _logger.remove()

    if log_config.console_enabled:
        _logger.add(
            sys.stderr,
            format=format,
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if file_enabled:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        _logger.add(
            log_file,
            format=format,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
            enqueue=True,  # Thread-safe logging
            backtrace=True,
            diagnose=False,
        )


def get_logger(name: Optional[str] = None):
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Logger instance
    """
    if name:
        return _logger.bind(name=name)
    return _logger


# Re-export logger for direct use
logger = _logger

__all__ = [
    "setup_logger",
    "get_logger",
    "logger",
]
