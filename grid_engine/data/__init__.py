"""
Persistence adapters for processor reference state.
"""

from .state_store import (
    MemoryStateStore,
    RedisStateStore,
    StateStore,
    StateStoreError,
    create_state_store,
)

__all__ = [
    "StateStore",
    "MemoryStateStore",
    "RedisStateStore",
    "StateStoreError",
    "create_state_store",
]
