"""Logging configuration for the BrainBuddy application."""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(logs_dir: Path, level: int = logging.INFO) -> logging.Logger:
    """
    Set up the package logger with a rotating file handler.

    Module loggers are children of "brainbuddy", so configuring it once here
    routes every module's records to the same file. Calling this twice does
    not add duplicate handlers.

    Args:
        logs_dir: The directory where log files will be stored.
        level: Minimum level written to the log file.

    Returns:
        The configured "brainbuddy" logger.
    """
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(exist_ok=True, parents=True)

    logger = logging.getLogger("brainbuddy")
    logger.setLevel(level)
    # The console belongs to rich; keep records out of the root handlers.
    logger.propagate = False

    if logger.hasHandlers():
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    # Rotates at 2MB, keeps 5 backups.
    file_handler = RotatingFileHandler(
        logs_dir / "brainbuddy.log",
        maxBytes=2 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    return logger
