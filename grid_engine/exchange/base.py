"""
Exchange collaborator interfaces.

The price feed and the order execution service live outside the engine.
This module fixes the shape of what they exchange with it: pydantic models
for candles and orders, and Protocols for the two services.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from grid_engine.core.utils import ensure_datetime


class OrderSide(str, Enum):
    """Order side - buy or sell."""

    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def from_quantity(cls, signed_quantity: Decimal) -> "OrderSide":
        """Positive signed size buys, negative sells."""
        return cls.BUY if signed_quantity > 0 else cls.SELL


class TradingBaseModel(BaseModel):
    """Base model with common configuration for exchange payloads."""

    model_config = ConfigDict(
        validate_assignment=True,
        from_attributes=True,
        populate_by_name=True,
    )


class Candle(TradingBaseModel):
    """OHLCV bar. `ts` is the bar open time."""

    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    vol: Decimal = Decimal("0")
    ts: datetime

    @field_validator("ts", mode="before")
    @classmethod
    def parse_ts(cls, v):
        return ensure_datetime(v)


class OrderRequest(TradingBaseModel):
    """A market order ready to be handed to OrderExecutor.execute()."""

    asset: str
    quantity: Decimal
    side: OrderSide
    reduce_only: bool = True
    client_order_id: Optional[str] = None


class ExecutionResult(TradingBaseModel):
    """Outcome of OrderExecutor.execute(); `data` holds exchange order references."""

    success: bool
    data: list[dict[str, Any]] = Field(default_factory=list)
    message: Optional[str] = None


class OrderDetail(TradingBaseModel):
    """Authoritative fill details; fields are None when the exchange has not reported them."""

    order_id: Optional[str] = None
    avg_px: Optional[Decimal] = Field(default=None, alias="avgPx")
    fill_time: Optional[datetime] = Field(default=None, alias="fillTime")

    @field_validator("avg_px", mode="before")
    @classmethod
    def parse_avg_px(cls, v):
        if v is None or v == "":
            return None
        return Decimal(str(v))

    @field_validator("fill_time", mode="before")
    @classmethod
    def parse_fill_time(cls, v):
        return ensure_datetime(v)

    @property
    def is_complete(self) -> bool:
        return self.avg_px is not None and self.avg_px > 0 and self.fill_time is not None


@runtime_checkable
class PriceFeed(Protocol):
    """Realtime price and candle history for one or more assets."""

    def get_realtime_price(self, asset: str) -> Optional[Decimal]:
        ...

    def get_realtime_timestamp(self, asset: str) -> Optional[datetime]:
        ...

    def get_candles(self, asset: str) -> Sequence[Candle]:
        """Candles ascending by time, most recent (still forming) last."""
        ...


@runtime_checkable
class OrderExecutor(Protocol):
    """Order execution service."""

    def create_market_order(
        self,
        asset: str,
        quantity: Decimal,
        side: OrderSide,
        reduce_only: bool = True,
    ) -> OrderRequest:
        ...

    async def execute(self, requests: Sequence[OrderRequest]) -> ExecutionResult:
        ...

    async def fetch_order_details(self, refs: Sequence[dict[str, Any]]) -> list[OrderDetail]:
        """Best effort; may return an empty list."""
        ...
