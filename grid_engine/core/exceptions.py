"""
Custom exceptions for the grid decision engine.

Exception hierarchy:
    GridEngineError (base)
    ├── ConfigError
    ├── DataError
    └── OrderError
        └── ReconciliationError
"""

from typing import Any


class GridEngineError(Exception):
    """Base exception for all engine errors."""

    default_message = "Grid engine error occurred"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"[{self.code}]")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r})"
        )


class ConfigError(GridEngineError):
    """Configuration error."""

    default_message = "Configuration error"


class DataError(GridEngineError):
    """Base exception for data-related errors."""

    default_message = "Data error occurred"


class OrderError(GridEngineError):
    """Order submission failed."""

    default_message = "Order error occurred"

    def __init__(
        self,
        message: str | None = None,
        symbol: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
        self.symbol = symbol

    def __str__(self) -> str:
        base = super().__str__()
        if self.symbol:
            return f"{base} symbol={self.symbol}"
        return base


class ReconciliationError(OrderError):
    """Authoritative fill details could not be obtained."""

    default_message = "Fill reconciliation failed"
