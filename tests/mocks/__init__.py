# Mock classes for testing
"""Mock price feed and order execution services for testing."""

from .constants import ASSET, NAMESPACE, T0, at
from .exchange_mock import MockOrderExecutor, MockPriceFeed, build_candles

__all__ = [
    "MockPriceFeed",
    "MockOrderExecutor",
    "build_candles",
    "ASSET",
    "NAMESPACE",
    "T0",
    "at",
]
