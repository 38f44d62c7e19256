"""
State Persistence Adapters.

Key/value bags scoped per namespace (one namespace per asset processor).
`save` merges a partial update into the stored bag. Trades are appended to a
per-namespace journal.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from copy import deepcopy
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from grid_engine.config.models import StateStoreConfig
from grid_engine.core import get_logger
from grid_engine.core.exceptions import DataError

logger = get_logger(__name__)


class StateStoreError(DataError):
    """Persistence backend failed."""

    default_message = "State store operation failed"


def _encode(value: Any) -> str:
    return json.dumps(value, default=str)


def _decode(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


class StateStore(ABC):
    """Persistence contract used by the grid processors."""

    @abstractmethod
    async def load(self, namespace: str) -> dict[str, Any]:
        """Return the stored bag, empty if nothing was saved yet."""

    @abstractmethod
    async def save(self, namespace: str, update: dict[str, Any]) -> None:
        """Merge update into the stored bag."""

    @abstractmethod
    async def record_trade(self, namespace: str, record: dict[str, Any]) -> None:
        """Append a trade record to the namespace journal."""

    async def close(self) -> None:
        """Release backend resources."""


class MemoryStateStore(StateStore):
    """
    In-process store.

    Example:
        >>> store = MemoryStateStore()
        >>> await store.save("GridTradingProcessor/XRP-USDT", {"last_trade_price": "0.52"})
        >>> await store.load("GridTradingProcessor/XRP-USDT")
        {'last_trade_price': '0.52'}
    """

    def __init__(self):
        self._bags: dict[str, dict[str, Any]] = {}
        self._trades: dict[str, list[dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def load(self, namespace: str) -> dict[str, Any]:
        async with self._lock:
            return deepcopy(self._bags.get(namespace, {}))

    async def save(self, namespace: str, update: dict[str, Any]) -> None:
        async with self._lock:
            self._bags.setdefault(namespace, {}).update(deepcopy(update))

    async def record_trade(self, namespace: str, record: dict[str, Any]) -> None:
        async with self._lock:
            self._trades.setdefault(namespace, []).append(deepcopy(record))

    def trades(self, namespace: str) -> list[dict[str, Any]]:
        return list(self._trades.get(namespace, []))


class RedisStateStore(StateStore):
    """
    Redis-backed store.

    Each namespace is a hash at `{key_prefix}{namespace}` with JSON-encoded
    field values; the trade journal is a list at `{key}:trades`.

    Example:
        >>> store = RedisStateStore(url="redis://localhost:6379/0")
        >>> await store.save("GridTradingProcessor/XRP-USDT", state.to_mapping())
        >>> await store.close()
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = "grid_engine:",
        client: Optional[redis.Redis] = None,
        socket_timeout: float = 5.0,
    ):
        """
        Initialize RedisStateStore.

        Args:
            url: Redis connection URL
            key_prefix: Prefix for all keys
            client: Pre-built client (connection settings are ignored)
            socket_timeout: Socket timeout in seconds
        """
        self._url = url
        self._key_prefix = key_prefix
        self._client = client or redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
        )

    def _key(self, namespace: str) -> str:
        return f"{self._key_prefix}{namespace}"

    async def load(self, namespace: str) -> dict[str, Any]:
        try:
            raw = await self._client.hgetall(self._key(namespace))
        except RedisError as e:
            raise StateStoreError(f"Failed to load {namespace}: {e}") from e
        return {field: _decode(value) for field, value in (raw or {}).items()}

    async def save(self, namespace: str, update: dict[str, Any]) -> None:
        if not update:
            return
        try:
            await self._client.hset(
                self._key(namespace),
                mapping={field: _encode(value) for field, value in update.items()},
            )
        except RedisError as e:
            raise StateStoreError(f"Failed to save {namespace}: {e}") from e

    async def record_trade(self, namespace: str, record: dict[str, Any]) -> None:
        try:
            await self._client.rpush(f"{self._key(namespace)}:trades", _encode(record))
        except RedisError as e:
            raise StateStoreError(f"Failed to record trade for {namespace}: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("Redis state store closed")


def create_state_store(config: StateStoreConfig) -> StateStore:
    """Build the store selected by configuration."""
    if config.backend == "redis":
        return RedisStateStore(url=config.redis_url, key_prefix=config.key_prefix)
    return MemoryStateStore()
