"""
Timeout helpers for awaited I/O.

Order submission and fill lookup talk to an external execution service;
an unresponsive call must not wedge the asset's processor.
"""

import asyncio
from typing import Any, Optional

from .logger import get_logger

logger = get_logger(__name__)


class TimeoutError(Exception):
    """Custom timeout error with operation context."""

    def __init__(self, operation: str, timeout: float, message: Optional[str] = None):
        self.operation = operation
        self.timeout = timeout
        self.message = message or f"Operation '{operation}' timed out after {timeout}s"
        super().__init__(self.message)


async def with_timeout(coro: Any, timeout: float, operation_name: str) -> Any:
    """
    Await a coroutine, raising TimeoutError if it runs longer than timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds
        operation_name: Name for logging/error messages

    Example:
        >>> result = await with_timeout(
        ...     executor.execute([request]),
        ...     timeout=10.0,
        ...     operation_name="execute_order",
        ... )
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Timeout: {operation_name} exceeded {timeout}s")
        raise TimeoutError(operation_name, timeout)
