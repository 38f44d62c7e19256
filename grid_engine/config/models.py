"""
Configuration Models.

Pydantic v2 models for per-asset strategy parameters and the engine-level
configuration file. All models are immutable once validated.
"""

from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import UnknownAssetError


def _coerce_decimal(v: Any) -> Any:
    """Coerce numeric values to Decimal, rejecting NaN and Infinity."""
    if v is None or isinstance(v, Decimal):
        return v
    if isinstance(v, (int, float, str)):
        try:
            decimal_val = Decimal(str(v))
        except Exception as e:
            raise ValueError(f"Cannot convert '{v}' to Decimal: {e}")
        if not decimal_val.is_finite():
            raise ValueError(f"Invalid value: {v} (NaN or Infinity not allowed)")
        return decimal_val
    return v


class BaseConfig(BaseModel):
    """Base configuration model: immutable, ignores unknown keys."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        validate_default=True,
        str_strip_whitespace=True,
    )


class StrategyParameters(BaseConfig):
    """
    Grid strategy parameters for one asset.

    Every field has a default and can be overridden independently.

    Example:
        >>> params = StrategyParameters(max_price=Decimal("3"), trade_amount=500)
        >>> params.grid_width
        Decimal('0.025')
    """

    # Grid geometry
    grid_width: Decimal = Field(
        default=Decimal("0.025"),
        gt=Decimal("0"),
        lt=Decimal("1"),
        description="Fractional step between adjacent grid levels",
    )
    min_price: Decimal = Field(
        default=Decimal("0.1"),
        gt=Decimal("0"),
        description="Lowest tradable price; also the grid floor",
    )
    max_price: Decimal = Field(
        default=Decimal("100"),
        gt=Decimal("0"),
        description="Highest tradable price; also the grid ceiling",
    )
    max_trade_grid_count: int = Field(
        default=8,
        ge=1,
        description="Cap on grid levels crossed per decision",
    )
    initial_grid_count_cap: int = Field(
        default=2,
        ge=1,
        description="Cap on levels counted against the grid base before the first trade",
    )

    # Reversal thresholds (fractions)
    max_drawdown: Decimal = Field(
        default=Decimal("0.012"),
        gt=Decimal("0"),
        lt=Decimal("1"),
        description="Pullback from the upper turning point required to sell",
    )
    max_bounce: Decimal = Field(
        default=Decimal("0.012"),
        gt=Decimal("0"),
        lt=Decimal("1"),
        description="Bounce from the lower turning point required to buy",
    )

    # Sizing
    trade_amount: Decimal = Field(
        default=Decimal("9000"),
        gt=Decimal("0"),
        description="Base units traded per grid level crossed",
    )
    max_position: Decimal = Field(
        default=Decimal("100000"),
        gt=Decimal("0"),
        description="Absolute cap on a single order size in base units",
    )

    # Backoff ladder (seconds since the backoff reference time)
    backoff_first_seconds: int = Field(default=30 * 60, ge=0)
    backoff_second_seconds: int = Field(default=60 * 60, ge=0)
    backoff_third_seconds: int = Field(default=90 * 60, ge=0)

    enable_intra_grid_trading: bool = Field(
        default=False,
        description="Trade one unit when price crosses a turning point inside a grid cell",
    )

    # Indicators
    atr_period: int = Field(default=14, ge=1)
    volatility_window: int = Field(default=30, ge=2)
    price_history_size: int = Field(default=60, ge=2)
    volume_fast_window: int = Field(default=3, ge=1)
    volume_slow_window: int = Field(default=30, ge=1)

    # I/O bounds
    order_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed for order submission and fill lookup",
    )

    @field_validator(
        "grid_width",
        "min_price",
        "max_price",
        "max_drawdown",
        "max_bounce",
        "trade_amount",
        "max_position",
        mode="before",
    )
    @classmethod
    def coerce_to_decimal(cls, v):
        """Coerce numeric values to Decimal with validation."""
        return _coerce_decimal(v)

    @model_validator(mode="after")
    def validate_ranges(self) -> "StrategyParameters":
        """Validate cross-field constraints."""
        if self.min_price >= self.max_price:
            raise ValueError(
                f"min_price ({self.min_price}) must be less than max_price ({self.max_price})"
            )
        if not (
            self.backoff_first_seconds
            <= self.backoff_second_seconds
            <= self.backoff_third_seconds
        ):
            raise ValueError("backoff tiers must be non-decreasing")
        return self

    def with_overrides(self, **overrides: Any) -> "StrategyParameters":
        """Return a validated copy with some fields replaced."""
        data = self.model_dump()
        data.update(overrides)
        return StrategyParameters(**data)


class StateStoreConfig(BaseConfig):
    """Where reference state is persisted."""

    backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "grid_engine:"


class EngineConfig(BaseConfig):
    """
    Engine-level configuration: shared defaults plus per-asset overrides.

    Example:
        >>> config = EngineConfig(
        ...     defaults={"grid_width": "0.02"},
        ...     assets={"XRP-USDT": {"max_price": "3"}},
        ... )
        >>> config.parameters_for("XRP-USDT").max_price
        Decimal('3')
    """

    defaults: dict[str, Any] = Field(default_factory=dict)
    assets: dict[str, Optional[dict[str, Any]]] = Field(default_factory=dict)
    state_store: StateStoreConfig = Field(default_factory=StateStoreConfig)

    @model_validator(mode="after")
    def validate_assets(self) -> "EngineConfig":
        """Every configured asset must yield valid parameters."""
        for asset in self.assets:
            self.parameters_for(asset)
        return self

    @property
    def asset_names(self) -> list[str]:
        return list(self.assets)

    def parameters_for(self, asset: str) -> StrategyParameters:
        """Merge defaults with the asset's overrides."""
        if asset not in self.assets:
            raise UnknownAssetError(asset)
        merged = dict(self.defaults)
        merged.update(self.assets[asset] or {})
        return StrategyParameters(**merged)
