"""
Grid Strategy Exceptions.

Provides custom exceptions for the grid decision pipeline.
"""

from grid_engine.core.exceptions import ConfigError, DataError


class GridError(Exception):
    """Base exception for grid strategy errors."""

    pass


class InvalidPriceRangeError(GridError, ConfigError):
    """Raised when grid bounds or base price are invalid. Never retried."""

    def __init__(self, lower: str, upper: str, base: str | None = None, reason: str = ""):
        self.lower = lower
        self.upper = upper
        self.base = base
        message = f"Invalid price range: min={lower}, max={upper}"
        if base is not None:
            message += f", base={base}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class IndicatorDataError(GridError, DataError):
    """Raised when indicator inputs are inconsistent (e.g. mismatched lengths)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details=details)
