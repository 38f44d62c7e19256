"""
Trend Tracker.

Derives the instantaneous direction (tick over tick) and the tendency
(price against the last trade) and records turning points, the local
extremes where direction turns against tendency.
"""

from decimal import Decimal
from typing import Optional

from grid_engine.core import get_logger

from .models import PriceObservation, ReferenceState, Trend

logger = get_logger(__name__)


def reference_price(state: ReferenceState) -> Optional[Decimal]:
    """
    Price the tendency is measured against.

    Precedence:
        1. last trade price
        2. grid base price (no trade yet)
    """
    if state.last_trade_price is not None:
        return state.last_trade_price
    return state.grid_base_price


class TrendTracker:
    """
    Stateless helpers operating on a ReferenceState.

    Example:
        >>> TrendTracker.update(state, observation)
        >>> TrendTracker.refresh_turning_points(state, observation)
        >>> TrendTracker.correction(state, observation.price)
    """

    @staticmethod
    def find_direction(current: Decimal, previous: Optional[Decimal]) -> Trend:
        """Sign of current - previous; FLAT without a previous sample."""
        if previous is None:
            return Trend.FLAT
        return Trend.of(current - previous)

    @staticmethod
    def find_tendency(current: Decimal, reference: Optional[Decimal]) -> Trend:
        """Sign of current - reference; FLAT without a reference."""
        if reference is None:
            return Trend.FLAT
        return Trend.of(current - reference)

    @classmethod
    def update(cls, state: ReferenceState, observation: PriceObservation) -> None:
        """Recompute direction and tendency for this tick."""
        state.direction = cls.find_direction(observation.price, state.previous_price)
        state.tendency = cls.find_tendency(observation.price, reference_price(state))

    @staticmethod
    def refresh_turning_points(state: ReferenceState, observation: PriceObservation) -> bool:
        """
        Record a turning point at the previous sample.

        Lower turning point: tendency down, direction up, and the current
        price is below the recorded one (or none is recorded). Upper turning
        point is symmetric.

        Returns:
            True if a turning point was recorded
        """
        previous = state.previous
        if previous is None:
            return False

        if state.direction == Trend.UP and state.tendency == Trend.DOWN:
            lower = state.last_lower_turning_price
            if lower is None or observation.price < lower:
                state.last_lower_turning_price = previous.price
                state.last_lower_turning_ts = previous.ts
                logger.debug(f"Lower turning point recorded at {previous.price}")
                return True

        elif state.direction == Trend.DOWN and state.tendency == Trend.UP:
            upper = state.last_upper_turning_price
            if upper is None or observation.price > upper:
                state.last_upper_turning_price = previous.price
                state.last_upper_turning_ts = previous.ts
                logger.debug(f"Upper turning point recorded at {previous.price}")
                return True

        return False

    @staticmethod
    def correction(state: ReferenceState, current: Decimal) -> Decimal:
        """
        Fractional reversal from the relevant turning point.

        An upward move is a bounce off the lower turning point, a downward
        move a pullback from the upper turning point. 0 when flat or when
        that turning point has not been recorded.
        """
        if state.direction == Trend.UP:
            anchor = state.last_lower_turning_price
        elif state.direction == Trend.DOWN:
            anchor = state.last_upper_turning_price
        else:
            return Decimal("0")

        if anchor is None or anchor == 0:
            return Decimal("0")
        return (current - anchor) / anchor
