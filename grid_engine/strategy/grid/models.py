"""
Grid Strategy Data Models.

Provides the value types passed between the decision pipeline stages and
the persisted ReferenceState.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import Any, Optional

from grid_engine.core.utils import ensure_datetime, to_decimal


# =============================================================================
# Enums
# =============================================================================


class Trend(IntEnum):
    """Sign of a price move."""

    DOWN = -1
    FLAT = 0
    UP = 1

    @classmethod
    def of(cls, delta: Decimal | int | float) -> "Trend":
        if delta > 0:
            return cls.UP
        if delta < 0:
            return cls.DOWN
        return cls.FLAT

    def opposes(self, other: "Trend") -> bool:
        """True when both are non-flat and point in opposite directions."""
        return self * other < 0


# =============================================================================
# Observations and intents
# =============================================================================


@dataclass(frozen=True)
class PriceObservation:
    """A price sample and the time it was observed."""

    price: Decimal
    ts: datetime


@dataclass(frozen=True)
class OrderIntent:
    """
    A decision to trade, produced and consumed within one decision cycle.

    grid_count follows the crossing-count sign convention: positive when
    price rose across levels (sell), negative when it fell (buy).
    """

    grid_count: int
    direction: Trend
    reason: str


@dataclass
class OrderOutcome:
    """Result of one order attempt."""

    success: bool
    grid_count: int
    quantity: Decimal
    reason: str
    submitted: bool = True
    fill_price: Optional[Decimal] = None
    fill_time: Optional[datetime] = None
    reconciled: bool = False
    message: Optional[str] = None


@dataclass(frozen=True)
class VolumeStats:
    """Volume of the forming bar against its moving averages."""

    volume: Decimal
    avg_slow: Decimal
    avg_fast: Decimal
    elapsed_seconds: int

    @property
    def power(self) -> Decimal:
        """Fast average relative to slow average (0 when slow is 0)."""
        if self.avg_slow == 0:
            return Decimal("0")
        return self.avg_fast / self.avg_slow


# =============================================================================
# Reference State
# =============================================================================


_DECIMAL_FIELDS = {
    "last_trade_price",
    "last_upper_turning_price",
    "last_lower_turning_price",
    "grid_base_price",
    "previous_price",
}

_DATETIME_FIELDS = {
    "last_trade_ts",
    "last_upper_turning_ts",
    "last_lower_turning_ts",
    "grid_base_ts",
    "previous_ts",
    "backoff_reset_ts",
}

# Keys in the store, kept stable across releases
_STORE_KEYS = {
    "is_position_created": "is_position_created",
    "last_trade_price": "last_trade_price",
    "last_trade_ts": "last_trade_price_ts",
    "last_upper_turning_price": "last_upper_turning_price",
    "last_upper_turning_ts": "last_upper_turning_price_ts",
    "last_lower_turning_price": "last_lower_turning_price",
    "last_lower_turning_ts": "last_lower_turning_price_ts",
    "grid_base_price": "grid_base_price",
    "grid_base_ts": "grid_base_price_ts",
    "last_reset_grid_count": "last_reset_grid_count",
    "last_grid_count": "last_grid_count",
    "backoff_reset_ts": "backoff_reset_ts",
    "previous_price": "prev_price",
    "previous_ts": "prev_price_ts",
    "direction": "direction",
    "tendency": "tendency",
}

# Restored on load; the rest describe the tick in progress and start empty
RESTORED_FIELDS = (
    "is_position_created",
    "last_trade_price",
    "last_trade_ts",
    "last_upper_turning_price",
    "last_upper_turning_ts",
    "last_lower_turning_price",
    "last_lower_turning_ts",
    "grid_base_price",
    "grid_base_ts",
    "last_reset_grid_count",
)


@dataclass
class ReferenceState:
    """
    Mutable reference prices of one asset's strategy.

    Turning points are only meaningful relative to the most recent trade and
    are reset to the trade price whenever an order executes.

    Example:
        >>> state = ReferenceState.from_mapping(await store.load(namespace))
        >>> state.reset_key_prices(Decimal("1.02"), now)
        >>> await store.save(namespace, state.to_mapping())
    """

    is_position_created: bool = False

    last_trade_price: Optional[Decimal] = None
    last_trade_ts: Optional[datetime] = None

    last_upper_turning_price: Optional[Decimal] = None
    last_upper_turning_ts: Optional[datetime] = None
    last_lower_turning_price: Optional[Decimal] = None
    last_lower_turning_ts: Optional[datetime] = None

    grid_base_price: Optional[Decimal] = None
    grid_base_ts: Optional[datetime] = None

    # Backoff bookkeeping
    last_reset_grid_count: int = 0
    last_grid_count: int = 0
    backoff_reset_ts: Optional[datetime] = None

    # Previous sample and the signals derived from it
    previous_price: Optional[Decimal] = None
    previous_ts: Optional[datetime] = None
    direction: Trend = Trend.FLAT
    tendency: Trend = Trend.FLAT

    @property
    def has_traded(self) -> bool:
        return self.last_trade_price is not None

    @property
    def previous(self) -> Optional[PriceObservation]:
        if self.previous_price is None or self.previous_ts is None:
            return None
        return PriceObservation(self.previous_price, self.previous_ts)

    def advance(self, observation: PriceObservation) -> None:
        """Make observation the previous sample for the next tick."""
        self.previous_price = observation.price
        self.previous_ts = observation.ts

    def reset_key_prices(self, price: Optional[Decimal], ts: Optional[datetime]) -> None:
        """
        Re-anchor every reference price on (price, ts).

        Called after each order attempt: with the fill on success, with the
        pre-attempt last trade on failure.
        """
        self.last_trade_price = price
        self.last_trade_ts = ts
        self.backoff_reset_ts = ts

        self.last_lower_turning_price = price
        self.last_lower_turning_ts = ts
        self.last_upper_turning_price = price
        self.last_upper_turning_ts = ts

        self.previous_price = price
        self.previous_ts = ts

        # Next crossing high starts counting from zero again
        self.last_reset_grid_count = 0

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_mapping(self) -> dict[str, Any]:
        """JSON-safe mapping keyed by store keys."""
        data: dict[str, Any] = {}
        for attr, key in _STORE_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                data[key] = None
            elif attr in _DECIMAL_FIELDS:
                data[key] = str(value)
            elif attr in _DATETIME_FIELDS:
                data[key] = value.isoformat()
            elif isinstance(value, Trend):
                data[key] = int(value)
            else:
                data[key] = value
        return data

    @classmethod
    def from_mapping(cls, data: Optional[dict[str, Any]]) -> "ReferenceState":
        """
        Restore the durable fields from a store mapping.

        Unknown keys are ignored. The backoff reference time starts at the
        last trade time.
        """
        state = cls()
        if not data:
            return state

        for attr in RESTORED_FIELDS:
            key = _STORE_KEYS[attr]
            if key not in data:
                continue
            value = data[key]
            if attr in _DECIMAL_FIELDS:
                value = to_decimal(value)
            elif attr in _DATETIME_FIELDS:
                value = ensure_datetime(value)
            elif attr == "is_position_created":
                value = bool(value)
            elif attr == "last_reset_grid_count":
                value = int(value or 0)
            setattr(state, attr, value)

        state.backoff_reset_ts = state.last_trade_ts
        return state
