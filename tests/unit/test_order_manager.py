"""
Unit tests for GridOrderManager.

Tests order sizing, failure rollback and fill reconciliation.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from grid_engine.data import StateStoreError
from grid_engine.exchange import OrderSide
from grid_engine.strategy.grid import GridOrderManager, OrderIntent, PriceObservation, Trend
from tests.mocks import ASSET, NAMESPACE, T0, at

BOUNCE = OrderIntent(grid_count=-1, direction=Trend.UP, reason="bounce")


@pytest.fixture
def manager(params, executor, store) -> GridOrderManager:
    return GridOrderManager(
        asset=ASSET,
        params=params,
        executor=executor,
        store=store,
        namespace=NAMESPACE,
    )


class TestOrderSizing:
    """Tests for size and side."""

    def test_size_is_negative_grid_count_times_amount(self, manager):
        assert manager.order_size(2) == Decimal("-18000")
        assert manager.order_size(-1) == Decimal("9000")

    @pytest.mark.asyncio
    async def test_price_rise_sells(self, manager, executor, traded_state, observation):
        outcome = await manager.place_order(
            traded_state, OrderIntent(2, Trend.DOWN, "pullback"), observation
        )

        assert outcome.success is True
        assert outcome.quantity == Decimal("-18000")
        assert executor.last_request.side == OrderSide.SELL
        assert executor.last_request.quantity == Decimal("18000")
        assert executor.last_request.reduce_only is True

    @pytest.mark.asyncio
    async def test_price_drop_buys(self, manager, executor, traded_state, observation):
        await manager.place_order(traded_state, BOUNCE, observation)

        assert executor.last_request.side == OrderSide.BUY
        assert executor.last_request.quantity == Decimal("9000")

    @pytest.mark.asyncio
    async def test_rejects_above_max_position(self, manager, executor, traded_state, observation):
        # 12 x 9000 = 108000 > 100000
        outcome = await manager.place_order(
            traded_state, OrderIntent(12, Trend.DOWN, "pullback"), observation
        )

        assert outcome.success is False
        assert outcome.submitted is False
        assert executor.execute_count == 0
        assert traded_state.last_trade_price == Decimal("100")
        assert manager.get_statistics()["rejected"] == 1


class TestSuccessfulOrder:
    """Tests for optimistic then authoritative reconciliation."""

    @pytest.mark.asyncio
    async def test_reanchors_on_decision_price_without_fill(
        self, manager, traded_state, observation, store
    ):
        outcome = await manager.place_order(traded_state, BOUNCE, observation)

        assert outcome.reconciled is False
        assert traded_state.last_trade_price == Decimal("97")
        assert traded_state.last_trade_ts == at(60)
        assert traded_state.last_lower_turning_price == Decimal("97")
        assert traded_state.last_upper_turning_price == Decimal("97")

        saved = await store.load(NAMESPACE)
        assert saved["last_trade_price"] == "97"

    @pytest.mark.asyncio
    async def test_reanchors_on_fill(self, manager, executor, traded_state, observation, store):
        executor.set_fill("96.95", at(61))

        outcome = await manager.place_order(traded_state, BOUNCE, observation)

        assert outcome.reconciled is True
        assert outcome.fill_price == Decimal("96.95")
        assert traded_state.last_trade_price == Decimal("96.95")
        assert traded_state.last_trade_ts == at(61)
        assert traded_state.backoff_reset_ts == at(61)
        assert traded_state.previous == PriceObservation(Decimal("96.95"), at(61))

        saved = await store.load(NAMESPACE)
        assert saved["last_trade_price"] == "96.95"

    @pytest.mark.asyncio
    async def test_looks_up_submitted_order(self, manager, executor, traded_state, observation):
        await manager.place_order(traded_state, BOUNCE, observation)

        assert executor.detail_lookups == [
            [{"ordId": executor.last_request.client_order_id, "instId": ASSET}]
        ]

    @pytest.mark.asyncio
    async def test_journals_trade(self, manager, traded_state, observation, store):
        await manager.place_order(traded_state, BOUNCE, observation)

        trades = store.trades(NAMESPACE)
        assert len(trades) == 1
        assert trades[0]["side"] == "BUY"
        assert trades[0]["quantity"] == "9000"
        assert trades[0]["reason"] == "bounce"
        assert trades[0]["direction"] == 1
        assert trades[0]["grid_count"] == -1

    @pytest.mark.asyncio
    async def test_fill_lookup_error_keeps_decision_price(
        self, manager, executor, traded_state, observation
    ):
        executor.details_error = ConnectionError("gateway down")

        outcome = await manager.place_order(traded_state, BOUNCE, observation)

        assert outcome.success is True
        assert outcome.reconciled is False
        assert traded_state.last_trade_price == Decimal("97")

    @pytest.mark.asyncio
    async def test_fill_lookup_timeout_keeps_decision_price(
        self, params, executor, store, traded_state, observation
    ):
        manager = GridOrderManager(
            asset=ASSET,
            params=params.with_overrides(order_timeout=0.05),
            executor=executor,
            store=store,
            namespace=NAMESPACE,
        )
        executor.set_fill("96.95", at(61))
        executor.details_latency = 1.0

        outcome = await manager.place_order(traded_state, BOUNCE, observation)

        assert outcome.success is True
        assert outcome.reconciled is False
        assert traded_state.last_trade_price == Decimal("97")


class TestFailedOrder:
    """Tests for rollback when submission fails."""

    @pytest.mark.asyncio
    async def test_rejection_keeps_last_trade(self, manager, executor, traded_state, observation):
        traded_state.last_lower_turning_price = Decimal("95")
        executor.reject()

        outcome = await manager.place_order(traded_state, BOUNCE, observation)

        assert outcome.success is False
        assert outcome.submitted is True
        assert traded_state.last_trade_price == Decimal("100")
        assert traded_state.last_trade_ts == T0
        # Turning points are re-anchored on the previous trade
        assert traded_state.last_lower_turning_price == Decimal("100")
        assert executor.detail_lookups == []

    @pytest.mark.asyncio
    async def test_exception_keeps_last_trade(self, manager, executor, traded_state, observation, store):
        executor.execute_error = RuntimeError("connection reset")

        outcome = await manager.place_order(traded_state, BOUNCE, observation)

        assert outcome.success is False
        assert "connection reset" in outcome.message
        assert traded_state.last_trade_price == Decimal("100")
        assert store.trades(NAMESPACE) == []

    @pytest.mark.asyncio
    async def test_timeout_keeps_last_trade(self, params, executor, store, traded_state, observation):
        manager = GridOrderManager(
            asset=ASSET,
            params=params.with_overrides(order_timeout=0.05),
            executor=executor,
            store=store,
            namespace=NAMESPACE,
        )
        executor.latency = 1.0

        outcome = await manager.place_order(traded_state, BOUNCE, observation)

        assert outcome.success is False
        assert traded_state.last_trade_price == Decimal("100")
        assert manager.get_statistics()["failed"] == 1


class TestPersistence:
    """Tests for store failures."""

    @pytest.mark.asyncio
    async def test_save_failure_is_reported_not_raised(self, manager, traded_state):
        manager._store.save = AsyncMock(side_effect=StateStoreError("redis down"))

        assert await manager.save_state(traded_state) is False

    @pytest.mark.asyncio
    async def test_order_survives_store_failure(self, manager, traded_state, observation):
        manager._store.save = AsyncMock(side_effect=StateStoreError("redis down"))

        outcome = await manager.place_order(traded_state, BOUNCE, observation)

        assert outcome.success is True
        assert traded_state.last_trade_price == Decimal("97")
