"""
Grid Order Manager.

Submits the orders decided by the processor and reconciles the reference
state with what the exchange actually filled.

Flow for one attempt:
    size check -> submit (bounded) -> on failure revert to the previous trade
    -> on success re-anchor on the decision price, persist, journal
    -> fetch fill details (bounded) -> re-anchor on the fill, persist
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from grid_engine.config.models import StrategyParameters
from grid_engine.core import get_logger
from grid_engine.core.exceptions import OrderError, ReconciliationError
from grid_engine.core.timeout import TimeoutError, with_timeout
from grid_engine.data.state_store import StateStore, StateStoreError
from grid_engine.exchange.base import OrderDetail, OrderExecutor, OrderSide

from .models import OrderIntent, OrderOutcome, PriceObservation, ReferenceState

logger = get_logger(__name__)


class GridOrderManager:
    """
    Places reduce-only market orders for one asset.

    Example:
        >>> manager = GridOrderManager(
        ...     asset="XRP-USDT-SWAP",
        ...     params=params,
        ...     executor=executor,
        ...     store=store,
        ...     namespace="GridTradingProcessor/XRP-USDT-SWAP",
        ... )
        >>> intent = OrderIntent(grid_count=2, direction=Trend.DOWN, reason="pullback")
        >>> outcome = await manager.place_order(state, intent, obs)
        >>> outcome.quantity
        Decimal('-18000')
    """

    def __init__(
        self,
        asset: str,
        params: StrategyParameters,
        executor: OrderExecutor,
        store: StateStore,
        namespace: str,
    ):
        """
        Initialize GridOrderManager.

        Args:
            asset: Asset identifier (e.g., "XRP-USDT-SWAP")
            params: Strategy parameters
            executor: Order execution service
            store: State persistence adapter
            namespace: Store namespace of the owning processor
        """
        self._asset = asset
        self._params = params
        self._executor = executor
        self._store = store
        self._namespace = namespace

        # Statistics
        self._submitted_count = 0
        self._failed_count = 0
        self._rejected_count = 0

    @property
    def asset(self) -> str:
        return self._asset

    def order_size(self, grid_count: int) -> Decimal:
        """Signed size: positive buys, negative sells."""
        return -Decimal(grid_count) * self._params.trade_amount

    # =========================================================================
    # Persistence
    # =========================================================================

    async def save_state(self, state: ReferenceState) -> bool:
        """
        Persist state. Store failures are logged and reported as False.
        """
        try:
            await self._store.save(self._namespace, state.to_mapping())
            return True
        except StateStoreError as e:
            logger.error(f"[{self._asset}] Failed to save state: {e}")
            return False

    async def _record_trade(
        self,
        outcome: OrderOutcome,
        intent: OrderIntent,
        observation: PriceObservation,
        refs: list,
    ) -> None:
        record = {
            "asset": self._asset,
            "side": OrderSide.from_quantity(outcome.quantity).value,
            "quantity": str(outcome.quantity),
            "grid_count": outcome.grid_count,
            "direction": int(intent.direction),
            "price": str(observation.price),
            "ts": observation.ts.isoformat(),
            "reason": outcome.reason,
            "orders": refs,
            "recorded_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self._store.record_trade(self._namespace, record)
        except StateStoreError as e:
            logger.error(f"[{self._asset}] Failed to journal trade: {e}")

    # =========================================================================
    # Order Placement
    # =========================================================================

    async def place_order(
        self,
        state: ReferenceState,
        intent: OrderIntent,
        observation: PriceObservation,
    ) -> OrderOutcome:
        """
        Submit a market order for intent.grid_count grids and reconcile state.

        Args:
            state: Reference state, mutated in place
            intent: Signed grid count (positive sells, negative buys) and
                the trigger, journaled with the trade
            observation: Decision-time price sample

        Returns:
            OrderOutcome describing what happened
        """
        grid_count = intent.grid_count
        reason = intent.reason
        size = self.order_size(grid_count)

        if abs(size) > self._params.max_position:
            self._rejected_count += 1
            logger.warning(
                f"[{self._asset}] Order size {abs(size)} exceeds max position "
                f"{self._params.max_position}, order skipped"
            )
            return OrderOutcome(
                success=False,
                grid_count=grid_count,
                quantity=size,
                reason=reason,
                submitted=False,
                message="max position exceeded",
            )

        # Revert target on failure
        previous_trade_price = state.last_trade_price
        previous_trade_ts = state.last_trade_ts

        side = OrderSide.from_quantity(size)
        logger.info(
            f"[{self._asset}] {reason}: {side.value} {abs(size)} "
            f"at {observation.price} ({grid_count} grids)"
        )

        try:
            refs = await self._submit(size, side)
        except (OrderError, TimeoutError) as e:
            self._failed_count += 1
            state.reset_key_prices(previous_trade_price, previous_trade_ts)
            await self.save_state(state)
            logger.error(f"[{self._asset}] Order failed, reference prices reverted: {e}")
            return OrderOutcome(
                success=False,
                grid_count=grid_count,
                quantity=size,
                reason=reason,
                message=str(e),
            )

        self._submitted_count += 1
        state.reset_key_prices(observation.price, observation.ts)
        await self.save_state(state)

        outcome = OrderOutcome(
            success=True,
            grid_count=grid_count,
            quantity=size,
            reason=reason,
            fill_price=observation.price,
            fill_time=observation.ts,
        )
        await self._record_trade(outcome, intent, observation, refs)

        try:
            detail = await self._fetch_fill(refs)
        except (ReconciliationError, TimeoutError) as e:
            logger.error(f"[{self._asset}] Fill details unavailable, keeping decision price: {e}")
            return outcome

        state.reset_key_prices(detail.avg_px, detail.fill_time)
        outcome.fill_price = detail.avg_px
        outcome.fill_time = detail.fill_time
        outcome.reconciled = True
        logger.info(f"[{self._asset}] Filled at {detail.avg_px} ({detail.fill_time.isoformat()})")

        await self.save_state(state)
        return outcome

    async def _submit(self, size: Decimal, side: OrderSide) -> list[dict[str, Any]]:
        """
        Create and execute the order.

        Raises:
            OrderError: If the executor raises or reports failure
            TimeoutError: If execution exceeds order_timeout
        """
        try:
            request = self._executor.create_market_order(
                self._asset, abs(size), side, reduce_only=True
            )
            result = await with_timeout(
                self._executor.execute([request]),
                timeout=self._params.order_timeout,
                operation_name=f"execute_order({self._asset})",
            )
        except (TimeoutError, OrderError):
            raise
        except Exception as e:
            raise OrderError(f"Order execution raised: {e}", symbol=self._asset) from e

        if not result.success:
            raise OrderError(result.message or "Order rejected", symbol=self._asset)
        return list(result.data)

    async def _fetch_fill(self, refs: list[dict[str, Any]]) -> OrderDetail:
        """
        Fetch authoritative fill details for the submitted order.

        Raises:
            ReconciliationError: If no complete detail is returned
            TimeoutError: If the lookup exceeds order_timeout
        """
        if not refs:
            raise ReconciliationError("No order reference returned", symbol=self._asset)

        try:
            details = await with_timeout(
                self._executor.fetch_order_details(refs),
                timeout=self._params.order_timeout,
                operation_name=f"fetch_order_details({self._asset})",
            )
        except TimeoutError:
            raise
        except Exception as e:
            raise ReconciliationError(f"Fill lookup raised: {e}", symbol=self._asset) from e

        detail: Optional[OrderDetail] = details[0] if details else None
        if detail is None or not detail.is_complete:
            raise ReconciliationError("Fill details incomplete", symbol=self._asset)
        return detail

    def get_statistics(self) -> dict:
        return {
            "asset": self._asset,
            "submitted": self._submitted_count,
            "failed": self._failed_count,
            "rejected": self._rejected_count,
        }
