"""
Pytest configuration and fixtures for grid decision engine tests.
"""

import os
from decimal import Decimal

import pytest

# No log file during tests; debug level exercises the indicator log line
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from grid_engine.config import StrategyParameters
from grid_engine.data import MemoryStateStore
from grid_engine.strategy.grid import GridTradingProcessor, PriceObservation, ReferenceState
from tests.mocks import ASSET, T0, MockOrderExecutor, MockPriceFeed, at, build_candles


# =============================================================================
# Parameters
# =============================================================================


@pytest.fixture
def params() -> StrategyParameters:
    """Default parameters (grid width 2.5%, price range [0.1, 100])."""
    return StrategyParameters()


@pytest.fixture
def wide_params() -> StrategyParameters:
    """Parameters with room above a base price of 100."""
    return StrategyParameters(max_price=Decimal("200"))


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def price_feed() -> MockPriceFeed:
    """Price feed with flat candles giving an ATR of 0.4% at 100."""
    feed = MockPriceFeed()
    feed.set_candles(build_candles(20, close="100", spread="0.4", end=T0))
    return feed


@pytest.fixture
def executor() -> MockOrderExecutor:
    return MockOrderExecutor()


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def traded_state() -> ReferenceState:
    """State right after a trade at 100 on a grid based at 100."""
    state = ReferenceState(
        is_position_created=True,
        grid_base_price=Decimal("100"),
        grid_base_ts=T0,
    )
    state.reset_key_prices(Decimal("100"), T0)
    return state


@pytest.fixture
def observation() -> PriceObservation:
    return PriceObservation(Decimal("97"), at(60))


@pytest.fixture
def make_processor(price_feed, executor, store, params):
    """Factory building a processor around the shared mocks."""

    def _make(parameters: StrategyParameters | None = None) -> GridTradingProcessor:
        return GridTradingProcessor(
            asset=ASSET,
            params=parameters or params,
            price_feed=price_feed,
            executor=executor,
            store=store,
        )

    return _make
