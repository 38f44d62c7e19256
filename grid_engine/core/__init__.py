"""
Core module for the grid decision engine.

Provides logging utilities, the exception hierarchy and timeout helpers.
"""

from .exceptions import (
    ConfigError,
    DataError,
    GridEngineError,
    OrderError,
    ReconciliationError,
)
from .logger import get_logger, setup_logger
from .timeout import TimeoutError, with_timeout

__all__ = [
    # Logging
    "setup_logger",
    "get_logger",
    # Exceptions
    "GridEngineError",
    "ConfigError",
    "DataError",
    "OrderError",
    "ReconciliationError",
    # Timeout utilities
    "TimeoutError",
    "with_timeout",
]
