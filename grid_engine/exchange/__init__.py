"""
Exchange collaborator interfaces and payload models.
"""

from .base import (
    Candle,
    ExecutionResult,
    OrderDetail,
    OrderExecutor,
    OrderRequest,
    OrderSide,
    PriceFeed,
)

__all__ = [
    "Candle",
    "ExecutionResult",
    "OrderDetail",
    "OrderExecutor",
    "OrderRequest",
    "OrderSide",
    "PriceFeed",
]
