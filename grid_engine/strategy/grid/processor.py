"""
Grid Trading Processor.

One instance per asset. Each tick reads the live price, keeps the trend
signals and turning points current, and runs the lock-guarded decision
cycle that may place an order.

Tick pipeline:
    observe -> build grid once -> direction/tendency -> first-tick and
    range guards -> grid counts -> turning points -> decision -> persist
"""

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from grid_engine.config.models import StrategyParameters
from grid_engine.core import get_logger
from grid_engine.core.utils import ensure_datetime, seconds_between
from grid_engine.data.state_store import StateStore
from grid_engine.exchange.base import Candle, OrderExecutor, PriceFeed

from .backoff import BackoffPolicy
from .exceptions import IndicatorDataError
from .indicators import GridIndicators
from .models import OrderIntent, OrderOutcome, PriceObservation, ReferenceState, Trend
from .order_manager import GridOrderManager
from .price_grid import PriceGrid
from .trend import TrendTracker, reference_price

logger = get_logger(__name__)

NAMESPACE_PREFIX = "GridTradingProcessor"

# Candle length assumed by the indicator log line
BAR_SECONDS = 60


def resolve_observation(
    live_price: Optional[Decimal],
    live_ts: Any,
    previous: Optional[PriceObservation],
) -> Optional[PriceObservation]:
    """
    Price sample for this tick.

    Precedence:
        1. live price (and live timestamp, else now)
        2. previous sample
    None when neither is available. The live timestamp may be a datetime,
    ISO string or epoch milliseconds; naive values are taken as UTC.
    """
    if live_price:
        ts = ensure_datetime(live_ts) or (previous.ts if previous else None)
        ts = ts or datetime.now(timezone.utc)
        return PriceObservation(Decimal(str(live_price)), ts)
    return previous


def resolve_grid_base(state: ReferenceState, observation: PriceObservation) -> PriceObservation:
    """
    Base price of the grid.

    Precedence:
        1. persisted grid base
        2. current observation
    """
    if state.grid_base_price is not None:
        return PriceObservation(state.grid_base_price, state.grid_base_ts or observation.ts)
    return observation


class GridTradingProcessor:
    """
    Grid decision engine for a single asset.

    Example:
        >>> processor = GridTradingProcessor(
        ...     asset="XRP-USDT-SWAP",
        ...     params=StrategyParameters(),
        ...     price_feed=feed,
        ...     executor=executor,
        ...     store=MemoryStateStore(),
        ... )
        >>> await processor.initialize()
        >>> await processor.tick()
    """

    def __init__(
        self,
        asset: str,
        params: StrategyParameters,
        price_feed: PriceFeed,
        executor: OrderExecutor,
        store: StateStore,
    ):
        """
        Initialize GridTradingProcessor.

        Args:
            asset: Asset identifier
            params: Strategy parameters
            price_feed: Realtime price and candle provider
            executor: Order execution service
            store: State persistence adapter
        """
        self._asset = asset
        self._params = params
        self._price_feed = price_feed
        self._store = store
        self._namespace = f"{NAMESPACE_PREFIX}/{asset}"

        self._state = ReferenceState()
        self._grid: Optional[PriceGrid] = None
        self._price_history: deque[Decimal] = deque(maxlen=params.price_history_size)
        self._initialized = False

        self._backoff = BackoffPolicy(params)
        self._order_manager = GridOrderManager(
            asset=asset,
            params=params,
            executor=executor,
            store=store,
            namespace=self._namespace,
        )

        # Held for the whole decision cycle, order round trip included
        self._strategy_lock = asyncio.Lock()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def asset(self) -> str:
        return self._asset

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def state(self) -> ReferenceState:
        return self._state

    @property
    def grid(self) -> Optional[PriceGrid]:
        return self._grid

    @property
    def is_locked(self) -> bool:
        return self._strategy_lock.locked()

    @property
    def price_history(self) -> list[Decimal]:
        return list(self._price_history)

    @property
    def order_manager(self) -> GridOrderManager:
        return self._order_manager

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> None:
        """Restore the reference state from the store."""
        data = await self._store.load(self._namespace)
        self._state = ReferenceState.from_mapping(data)
        self._initialized = True
        logger.info(
            f"[{self._asset}] State restored: last trade {self._state.last_trade_price}, "
            f"grid base {self._state.grid_base_price}"
        )

    async def _save_state(self) -> None:
        await self._order_manager.save_state(self._state)

    # =========================================================================
    # Tick
    # =========================================================================

    async def tick(self) -> Optional[OrderOutcome]:
        """
        Process one price sample.

        Returns:
            OrderOutcome if an order was attempted this tick, else None

        Raises:
            InvalidPriceRangeError: If the grid cannot be built
        """
        if not self._initialized:
            await self.initialize()

        state = self._state
        params = self._params

        observation = resolve_observation(
            self._price_feed.get_realtime_price(self._asset),
            self._price_feed.get_realtime_timestamp(self._asset),
            state.previous,
        )
        if observation is not None:
            self._price_history.append(observation.price)

        self.log_indicators(observation)

        if observation is None:
            logger.debug(f"[{self._asset}] No price available")
            await self._save_state()
            return None

        if self._grid is None:
            base = resolve_grid_base(state, observation)
            state.grid_base_price = base.price
            state.grid_base_ts = base.ts
            self._grid = PriceGrid.build(
                base.price,
                params.min_price,
                params.max_price,
                params.grid_width,
                max_crossing_count=params.max_trade_grid_count,
                created_at=base.ts,
            )

        TrendTracker.update(state, observation)

        if not state.is_position_created:
            state.is_position_created = True
            logger.info(f"[{self._asset}] Position tracking started at {observation.price}")
            await self._save_state()
            return None

        if not (params.min_price <= observation.price <= params.max_price):
            logger.warning(
                f"[{self._asset}] Price {observation.price} outside "
                f"[{params.min_price}, {params.max_price}], trading paused"
            )
            await self._save_state()
            return None

        grid_count = self._current_grid_count(observation.price)
        turning_upper = self._grid.count_levels_between(
            state.last_upper_turning_price, state.last_trade_price
        )
        turning_lower = self._grid.count_levels_between(
            state.last_lower_turning_price, state.last_trade_price
        )

        TrendTracker.refresh_turning_points(state, observation)
        state.advance(observation)

        try:
            return await self._order_strategy(grid_count, turning_upper, turning_lower, observation)
        finally:
            await self._save_state()

    def _current_grid_count(self, price: Decimal) -> int:
        """Cells crossed since the last trade, or since the grid base (capped) before any trade."""
        state = self._state
        if state.last_trade_price is not None:
            return self._grid.count_levels_between(price, state.last_trade_price)

        count = self._grid.count_levels_between(price, state.grid_base_price)
        cap = self._params.initial_grid_count_cap
        return max(-cap, min(count, cap))

    # =========================================================================
    # Decision Cycle
    # =========================================================================

    async def _order_strategy(
        self,
        grid_count: int,
        turning_upper: int,
        turning_lower: int,
        observation: PriceObservation,
    ) -> Optional[OrderOutcome]:
        """Run the decision cycle unless one is already in flight."""
        if self._strategy_lock.locked():
            logger.debug(f"[{self._asset}] Decision in progress, tick skipped")
            return None

        async with self._strategy_lock:
            return await self._decide(grid_count, turning_upper, turning_lower, observation)

    async def _decide(
        self,
        grid_count: int,
        turning_upper: int,
        turning_lower: int,
        observation: PriceObservation,
    ) -> Optional[OrderOutcome]:
        state = self._state
        params = self._params

        count_abs = abs(grid_count)
        if count_abs > 1 and count_abs > state.last_reset_grid_count:
            logger.info(
                f"[{self._asset}] Grid count reached new high "
                f"{state.last_reset_grid_count} -> {count_abs}, backoff timer reset"
            )
            state.backoff_reset_ts = observation.ts
            state.last_reset_grid_count = count_abs

        if state.backoff_reset_ts is None:
            state.backoff_reset_ts = observation.ts

        elapsed = seconds_between(observation.ts, state.backoff_reset_ts)
        state.last_grid_count = grid_count

        if not state.direction.opposes(state.tendency):
            return None

        correction = TrendTracker.correction(state, observation.price)
        try:
            atr = self.current_atr()
        except IndicatorDataError as e:
            logger.warning(f"[{self._asset}] Indicator data error, decision skipped: {e}")
            return None
        if atr is None:
            logger.debug(f"[{self._asset}] ATR unavailable, decision skipped")
            return None

        decision = self._backoff.evaluate(
            elapsed_seconds=elapsed,
            direction=state.direction,
            tendency=state.tendency,
            current_price=observation.price,
            last_trade_price=state.last_trade_price,
            correction=correction,
            atr=atr,
        )
        if decision.tier:
            logger.info(
                f"[{self._asset}] {elapsed / 60:.0f} min since backoff reset (tier {decision.tier}), "
                f"threshold {decision.threshold:.2%}"
            )

        if decision.force_exit:
            exit_count = -1 if state.direction == Trend.UP else 1
            intent = OrderIntent(exit_count, state.direction, "backoff exit")
            return await self._order_manager.place_order(state, intent, observation)

        if not BackoffPolicy.is_reversal_reached(correction, decision.threshold, atr):
            logger.debug(
                f"[{self._asset}] Correction {correction:.2%} below "
                f"{BackoffPolicy.effective_threshold(decision.threshold, atr):.2%}, waiting"
            )
            return None

        if count_abs >= 1:
            reason = "pullback" if state.direction == Trend.DOWN else "bounce"
            logger.info(f"[{self._asset}] {observation.price} crossed {grid_count} grids")
            intent = OrderIntent(grid_count, state.direction, reason)
            return await self._order_manager.place_order(state, intent, observation)

        if not params.enable_intra_grid_trading:
            return None

        if state.direction == Trend.DOWN and abs(turning_upper) >= 1:
            logger.info(f"[{self._asset}] {observation.price} pulled back past upper turning point")
            intent = OrderIntent(1, state.direction, "intra-grid pullback")
            return await self._order_manager.place_order(state, intent, observation)

        if state.direction == Trend.UP and abs(turning_lower) >= 1:
            logger.info(f"[{self._asset}] {observation.price} bounced past lower turning point")
            intent = OrderIntent(-1, state.direction, "intra-grid bounce")
            return await self._order_manager.place_order(state, intent, observation)

        return None

    # =========================================================================
    # Indicators
    # =========================================================================

    def _candles(self) -> list[Candle]:
        return list(self._price_feed.get_candles(self._asset) or [])

    def current_atr(self) -> Optional[Decimal]:
        """
        ATR as a fraction of price.

        Raises:
            IndicatorDataError: If the candle series is inconsistent
        """
        return GridIndicators.latest_atr(self._candles(), self._params.atr_period)

    def current_volatility(self) -> Decimal:
        return GridIndicators.volatility(list(self._price_history), self._params.volatility_window)

    def log_indicators(self, observation: Optional[PriceObservation]) -> None:
        """Debug line with ATR, volatility and volume of the forming bar."""
        if not logger.isEnabledFor(logging.DEBUG):
            return

        candles = self._candles()
        try:
            atr = GridIndicators.latest_atr(candles, self._params.atr_period)
        except IndicatorDataError:
            atr = None
        volatility = self.current_volatility()
        stats = GridIndicators.volume_stats(
            candles,
            fast_window=self._params.volume_fast_window,
            slow_window=self._params.volume_slow_window,
            now=observation.ts if observation else None,
        )

        price = observation.price if observation else None
        atr_text = f"{atr:.3%}" if atr is not None else "n/a"
        line = f"[{self._asset}] price {price} | ATR {atr_text} | volatility {volatility:.4%}"
        if stats is not None:
            remaining = max(0, BAR_SECONDS - stats.elapsed_seconds)
            line += (
                f" | vol {stats.volume} fast {stats.avg_fast:.2f} slow {stats.avg_slow:.2f}"
                f" power {stats.power:.2f} | {remaining}s left in bar"
            )
        line += f" | ref {reference_price(self._state)}"
        logger.debug(line)
