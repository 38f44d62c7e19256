"""
Logging system for the grid decision engine.

Provides colored terminal output and rotating file logs.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


RESET = "\033[0m"

# ANSI colors per level
LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: "\033[92m",
    logging.WARNING: "\033[93m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[91m\033[1m",
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors to terminal output."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno, RESET)
        return f"{color}{super().format(record)}{RESET}"


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def _default_log_file() -> Path | None:
    """
    Resolve the default log file.

    LOG_FILE overrides the path; LOG_FILE set to an empty string disables
    file logging entirely.
    """
    env_path = os.getenv("LOG_FILE")
    if env_path is not None:
        return Path(env_path) if env_path else None
    return Path.cwd() / "logs" / "grid_engine.log"


def setup_logger(
    name: str,
    level: int | str | None = None,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """
    Set up and return a configured logger.

    Args:
        name: Logger name, typically the module name
        level: Log level. Defaults to LOG_LEVEL env var or INFO
        log_file: Log file path. Defaults to LOG_FILE env var or
            logs/grid_engine.log under the working directory

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger("grid_engine.strategy")
        >>> logger.info("Processor started")
    """
    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    level = _resolve_level(level)
    logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(console_handler)

    log_path = Path(log_file) if log_file is not None else _default_log_file()
    if log_path is not None:
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=10 * 1024 * 1024,  # 10 MB
                backupCount=5,
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning(f"File logging disabled ({log_path}): {e}")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
            logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger by name, creating it with default settings if needed.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Grid built")
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        return setup_logger(name)

    return logger
