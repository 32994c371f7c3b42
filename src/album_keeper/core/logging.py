"""
Centralized logging configuration for Album Keeper (Loguru).
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import LoggingConfig, get_data_dir


def get_log_file_path() -> Path:
    """Get the path to the log file."""
    return get_data_dir() / "album-keeper.log"


def setup_logging(
    level: str = "INFO",
    log_file_path: Optional[Path] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
    console_output: bool = False,
) -> None:
    """
    Configure loguru sinks for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file_path: Custom log file path (default: ~/.local/share/album-keeper/album-keeper.log)
        max_file_size_mb: Size of the log file before rotation
        backup_count: Number of rotated files to keep
        console_output: Whether to also log to stderr
    """
    log_file = log_file_path if log_file_path else get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation=f"{max_file_size_mb} MB",
        retention=backup_count,
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )

    if console_output:
        logger.add(sys.stderr, level=level.upper(), format="{level}: {message}")

    logger.info(
        f"Logging initialized: {log_file} (level={level}, "
        f"max_size={max_file_size_mb}MB, backups={backup_count})"
    )


def setup_logging_from_config(config: LoggingConfig) -> None:
    """Configure logging from the [logging] config section."""
    setup_logging(
        level=config.level,
        log_file_path=Path(config.log_file) if config.log_file else None,
        max_file_size_mb=config.max_file_size_mb,
        backup_count=config.backup_count,
        console_output=config.console_output,
    )
