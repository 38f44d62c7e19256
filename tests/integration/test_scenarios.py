"""
End-to-end decision scenarios.

Each scenario drives GridTradingProcessor.tick() with a price path and
checks whether (and what) it orders. Candles give a constant ATR of 0.4%.
"""

from decimal import Decimal

import pytest

from grid_engine.exchange import OrderSide
from grid_engine.strategy.grid import GridTradingProcessor, ReferenceState, Trend
from tests.mocks import ASSET, NAMESPACE, T0, at

pytestmark = pytest.mark.integration

MINUTE = 60


async def start(make_processor, store, state=None, params=None) -> GridTradingProcessor:
    if state is not None:
        await store.save(NAMESPACE, state.to_mapping())
    processor = make_processor(params)
    await processor.initialize()
    return processor


async def feed_prices(processor, price_feed, path):
    outcomes = []
    for price, seconds in path:
        price_feed.set_price(price, at(seconds))
        outcomes.append(await processor.tick())
    return outcomes


class TestScenarios:
    """Grid base 100, width 2.5%."""

    @pytest.mark.asyncio
    async def test_a_rise_without_trade_is_not_traded(
        self, make_processor, wide_params, price_feed, executor, store
    ):
        processor = await start(make_processor, store, params=wide_params)

        outcomes = await feed_prices(
            processor, price_feed, [("100", 0), ("102", 10), ("105.06", 20)]
        )

        assert outcomes == [None, None, None]
        assert processor.state.direction == Trend.UP
        assert processor.state.tendency == Trend.UP
        assert processor.state.last_trade_price is None
        assert executor.execute_count == 0

    @pytest.mark.asyncio
    async def test_b_fall_after_trade_is_not_traded(
        self, make_processor, price_feed, executor, store, traded_state
    ):
        processor = await start(make_processor, store, traded_state)

        outcomes = await feed_prices(processor, price_feed, [("99", 10), ("97.5", 20)])

        assert outcomes == [None, None]
        assert processor.state.direction == Trend.DOWN
        assert processor.state.tendency == Trend.DOWN
        assert processor.state.last_trade_price == Decimal("100")
        assert executor.execute_count == 0

    @pytest.mark.asyncio
    async def test_c_bounce_below_last_trade_buys(
        self, make_processor, price_feed, executor, store, traded_state
    ):
        processor = await start(make_processor, store, traded_state)

        # 95 -> 97: 2.1% bounce off the 95 turning point, one level crossed
        outcomes = await feed_prices(processor, price_feed, [("95", 10), ("97", 20)])

        assert outcomes[0] is None
        outcome = outcomes[1]
        assert outcome.success is True
        assert outcome.grid_count == -1
        assert outcome.quantity == Decimal("9000")

        request = executor.last_request
        assert request.asset == ASSET
        assert request.side == OrderSide.BUY
        assert request.quantity == Decimal("9000")
        assert request.reduce_only is True

        state = processor.state
        assert state.last_trade_price == Decimal("97")
        assert state.last_lower_turning_price == Decimal("97")
        assert state.last_upper_turning_price == Decimal("97")

    @pytest.mark.asyncio
    async def test_c_fill_price_becomes_reference(
        self, make_processor, price_feed, executor, store, traded_state
    ):
        executor.set_fill("97.02", at(21))
        processor = await start(make_processor, store, traded_state)

        await feed_prices(processor, price_feed, [("95", 10), ("97", 20)])

        saved = ReferenceState.from_mapping(await store.load(NAMESPACE))
        assert saved.last_trade_price == Decimal("97.02")
        assert saved.last_trade_ts == at(21)
        assert store.trades(NAMESPACE)[0]["price"] == "97"

    @pytest.mark.asyncio
    async def test_c_failed_order_keeps_reference(
        self, make_processor, price_feed, executor, store, traded_state
    ):
        executor.reject()
        processor = await start(make_processor, store, traded_state)

        outcomes = await feed_prices(processor, price_feed, [("95", 10), ("97", 20)])

        assert outcomes[1].success is False
        assert processor.state.last_trade_price == Decimal("100")
        assert processor.state.last_trade_ts == T0
        saved = await store.load(NAMESPACE)
        assert saved["last_trade_price"] == "100"

    @pytest.mark.asyncio
    async def test_d_backoff_forces_exit(
        self, make_processor, price_feed, executor, store, traded_state
    ):
        # The two-level move was already seen, so the timer is not reset again
        traded_state.last_reset_grid_count = 2
        processor = await start(make_processor, store, traded_state)
        elapsed = 95 * MINUTE

        # 95 is 2.1 grid widths below the last trade; 0.21% bounce off 94.8
        # is above half the ATR (0.2%) but below the tier-3 threshold (0.3%)
        outcomes = await feed_prices(
            processor, price_feed, [("94.8", elapsed), ("95", elapsed + 1)]
        )

        assert outcomes[0] is None
        outcome = outcomes[1]
        assert outcome.success is True
        assert outcome.reason == "backoff exit"
        # Forced exits trade one grid, not the two crossed
        assert outcome.grid_count == -1
        assert executor.last_request.side == OrderSide.BUY
        assert executor.last_request.quantity == Decimal("9000")
        assert processor.state.last_trade_price == Decimal("95")

    @pytest.mark.asyncio
    async def test_d_same_move_before_backoff_waits(
        self, make_processor, price_feed, executor, store, traded_state
    ):
        traded_state.last_reset_grid_count = 2
        processor = await start(make_processor, store, traded_state)

        outcomes = await feed_prices(
            processor, price_feed, [("94.8", 10 * MINUTE), ("95", 10 * MINUTE + 1)]
        )

        assert outcomes == [None, None]
        assert executor.execute_count == 0
