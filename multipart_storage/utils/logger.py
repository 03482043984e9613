"""
Logging configuration with rotating file handlers.

Every module obtains its logger through get_logger(__name__) so that console
output, the rotating application log and the error-only log stay consistent.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from multipart_storage.core.config import LoggingConfig, config_manager

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logging_config: LoggingConfig = config_manager.get_typed_config("logging")


def setup_logger(name: str, level: int = None) -> logging.Logger:
    """
    Set up a logger with console and rotating file handlers.

    Args:
        name: Logger name (usually __name__)
        level: Logging level, defaults to the configured level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    if level is None:
        level = getattr(logging, _logging_config.level.value)
    logger.setLevel(level)

    formatter = logging.Formatter(_logging_config.format, DATE_FORMAT)

    if _logging_config.enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if _logging_config.enable_file:
        logs_dir = Path(_logging_config.dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            logs_dir / "app.log",
            maxBytes=_logging_config.max_file_size,
            backupCount=_logging_config.backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        # Errors and above are duplicated into their own file
        error_handler = RotatingFileHandler(
            logs_dir / "error.log",
            maxBytes=_logging_config.max_file_size,
            backupCount=_logging_config.backup_count,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        logger.addHandler(error_handler)

    return logger


app_logger = setup_logger("multipart-storage")


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (if None, returns default app logger)

    Returns:
        Logger instance
    """
    if name is None:
        return app_logger
    return setup_logger(name)
