"""
Backoff Threshold Policy.

The longer the strategy waits without a trade, the smaller the reversal it
accepts as a trade signal. Three escalating tiers:

    elapsed > tier 1: threshold halved
    elapsed > tier 2: halved again when price is more than 1.5 grid widths
                      from the last trade and direction opposes tendency
    elapsed > tier 3: same condition, exit immediately if the reversal is
                      larger than half the ATR
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from grid_engine.config.models import StrategyParameters
from grid_engine.core import get_logger

from .models import Trend

logger = get_logger(__name__)

HALF = Decimal("0.5")
# Minimum distance from the last trade, in grid widths, for tiers 2 and 3
MIN_GRID_DISTANCE = Decimal("1.5")
# ATR multiples used to bound the threshold and to confirm a forced exit
ATR_THRESHOLD_FACTOR = Decimal("1.5")
ATR_EXIT_FACTOR = Decimal("0.5")


@dataclass(frozen=True)
class BackoffDecision:
    """Threshold in force for this decision, and whether to exit now."""

    threshold: Decimal
    tier: int = 0
    force_exit: bool = False
    grid_distance: Optional[Decimal] = None


class BackoffPolicy:
    """
    Time-decaying reversal threshold.

    Example:
        >>> policy = BackoffPolicy(params)
        >>> decision = policy.evaluate(
        ...     elapsed_seconds=4000,
        ...     direction=Trend.DOWN,
        ...     tendency=Trend.UP,
        ...     current_price=Decimal("104"),
        ...     last_trade_price=Decimal("100"),
        ...     correction=Decimal("-0.006"),
        ...     atr=Decimal("0.01"),
        ... )
        >>> decision.threshold
        Decimal('0.00300')
    """

    def __init__(self, params: StrategyParameters):
        self._params = params

    @property
    def tiers(self) -> tuple[int, int, int]:
        p = self._params
        return (p.backoff_first_seconds, p.backoff_second_seconds, p.backoff_third_seconds)

    def base_threshold(self, direction: Trend) -> Decimal:
        """Drawdown threshold for a downward reversal, bounce threshold otherwise."""
        if direction == Trend.DOWN:
            return self._params.max_drawdown
        return self._params.max_bounce

    def grid_distance(
        self,
        current_price: Decimal,
        last_trade_price: Optional[Decimal],
        direction: Trend,
    ) -> Optional[Decimal]:
        """
        Distance from the last trade in grid widths.

        The move is measured relative to the lower of the two prices for an
        upward move and to the higher one otherwise. None without a trade.
        """
        if last_trade_price is None or last_trade_price <= 0:
            return None

        diff = abs(current_price - last_trade_price)
        if direction == Trend.UP:
            diff_rate = diff / min(current_price, last_trade_price)
        else:
            diff_rate = diff / max(current_price, last_trade_price)
        return diff_rate / self._params.grid_width

    def evaluate(
        self,
        elapsed_seconds: float,
        direction: Trend,
        tendency: Trend,
        current_price: Decimal,
        last_trade_price: Optional[Decimal],
        correction: Decimal,
        atr: Optional[Decimal],
    ) -> BackoffDecision:
        """
        Apply the backoff ladder.

        Args:
            elapsed_seconds: Seconds since the backoff reference time
            direction: Instantaneous direction
            tendency: Tendency against the last trade
            current_price: Decision-time price
            last_trade_price: Last executed trade price, None before any trade
            correction: Reversal from the relevant turning point
            atr: ATR as a fraction of price, None when unavailable

        Returns:
            BackoffDecision; force_exit is only set past tier 3, with a
            prior trade, when the reversal exceeds half the ATR
        """
        first, second, third = self.tiers
        threshold = self.base_threshold(direction)

        if elapsed_seconds <= first:
            return BackoffDecision(threshold=threshold)

        threshold *= HALF
        tier = 1
        distance = self.grid_distance(current_price, last_trade_price, direction)
        far_and_opposed = (
            distance is not None
            and distance > MIN_GRID_DISTANCE
            and direction.opposes(tendency)
        )

        if elapsed_seconds > second:
            tier = 2
            if far_and_opposed:
                threshold *= HALF

        force_exit = False
        if elapsed_seconds > third:
            tier = 3
            if far_and_opposed and atr is not None:
                force_exit = abs(correction) > atr * ATR_EXIT_FACTOR
                if force_exit:
                    logger.info(
                        f"Reversal {abs(correction):.4%} exceeds half ATR "
                        f"{atr * ATR_EXIT_FACTOR:.4%}, forcing exit"
                    )
                else:
                    logger.info(
                        f"Reversal {abs(correction):.4%} below half ATR "
                        f"{atr * ATR_EXIT_FACTOR:.4%}, waiting"
                    )

        return BackoffDecision(
            threshold=threshold,
            tier=tier,
            force_exit=force_exit,
            grid_distance=distance,
        )

    @staticmethod
    def effective_threshold(threshold: Decimal, atr: Decimal) -> Decimal:
        """Threshold bounded by 1.5 x ATR."""
        return min(threshold, atr * ATR_THRESHOLD_FACTOR)

    @classmethod
    def is_reversal_reached(cls, correction: Decimal, threshold: Decimal, atr: Decimal) -> bool:
        """Final firing condition: |correction| > min(threshold, 1.5 x ATR)."""
        return abs(correction) > cls.effective_threshold(threshold, atr)
