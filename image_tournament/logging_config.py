"""
Logging configuration for image tournament.

Sets up loguru with appropriate levels and formatting. Log files are written
next to the votes and results they describe when a log directory is given.
"""

import sys
from pathlib import Path

from loguru import logger
from typing import Any

LOG_FILE_NAME = "image_tournament.log"
DEBUG_LOG_FILE_NAME = "image_tournament_debug.log"


def setup_logging(level: str = "INFO", debug: bool = False, log_dir: Path | None = None) -> None:
    """
    Configure loguru logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: If True, enable debug logging and more verbose output
        log_dir: Directory for the log files (default: current directory)
    """
    # Remove default handler
    logger.remove()

    # Set log level
    log_level = "DEBUG" if debug else level
    log_dir = Path(log_dir) if log_dir is not None else Path(".")

    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}:{function}:{line}</cyan> - <level>{message}</level>",
    )

    # Votes, undos, resumes and finalized rankings (INFO and above)
    logger.add(
        log_dir / LOG_FILE_NAME,
        level="INFO",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
    )

    # Pairing and store details if debug mode
    if debug:
        logger.add(
            log_dir / DEBUG_LOG_FILE_NAME,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="50 MB",
            retention="3 days",
            compression="zip",
        )


def get_logger(name: str | None = None) -> Any:
    """
    Get a logger instance.

    Args:
        name: Component name bound to every record (e.g. "controller")

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger
