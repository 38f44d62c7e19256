"""
Unit tests for BackoffPolicy.

Tests the three-tier threshold ladder, the forced exit and the final
firing condition.
"""

from decimal import Decimal

import pytest

from grid_engine.config import StrategyParameters
from grid_engine.strategy.grid import BackoffPolicy, Trend


@pytest.fixture
def policy(params) -> BackoffPolicy:
    return BackoffPolicy(params)


def evaluate(policy, elapsed, **overrides):
    kwargs = dict(
        elapsed_seconds=elapsed,
        direction=Trend.DOWN,
        tendency=Trend.UP,
        current_price=Decimal("104"),
        last_trade_price=Decimal("100"),
        correction=Decimal("-0.001"),
        atr=Decimal("0.004"),
    )
    kwargs.update(overrides)
    return policy.evaluate(**kwargs)


class TestThresholdLadder:
    """Tests for the tiered threshold."""

    def test_base_threshold_by_direction(self):
        policy = BackoffPolicy(
            StrategyParameters(max_drawdown=Decimal("0.02"), max_bounce=Decimal("0.01"))
        )

        assert policy.base_threshold(Trend.DOWN) == Decimal("0.02")
        assert policy.base_threshold(Trend.UP) == Decimal("0.01")

    def test_below_first_tier(self, policy):
        decision = evaluate(policy, 1000)

        assert decision.threshold == Decimal("0.012")
        assert decision.tier == 0
        assert decision.force_exit is False

    def test_first_tier_halves(self, policy):
        decision = evaluate(policy, 2000)

        assert decision.threshold == Decimal("0.006")
        assert decision.tier == 1

    def test_second_tier_halves_again_when_far_and_opposed(self, policy):
        # 4 / 104 / 0.025 = 1.54 grid widths
        decision = evaluate(policy, 4000)

        assert decision.threshold == Decimal("0.003")
        assert decision.tier == 2
        assert decision.grid_distance > Decimal("1.5")

    def test_second_tier_close_to_last_trade(self, policy):
        decision = evaluate(policy, 4000, current_price=Decimal("101"))

        assert decision.threshold == Decimal("0.006")

    def test_second_tier_not_opposed(self, policy):
        decision = evaluate(policy, 4000, direction=Trend.UP)

        assert decision.threshold == Decimal("0.006")

    def test_second_tier_without_trade(self, policy):
        decision = evaluate(policy, 4000, last_trade_price=None)

        assert decision.threshold == Decimal("0.006")
        assert decision.grid_distance is None

    @pytest.mark.parametrize("last_trade", [Decimal("100"), None])
    def test_threshold_monotonic_in_elapsed_time(self, policy, last_trade):
        thresholds = [
            evaluate(policy, elapsed, last_trade_price=last_trade).threshold
            for elapsed in range(0, 10000, 60)
        ]

        assert all(a >= b for a, b in zip(thresholds, thresholds[1:]))


class TestGridDistance:
    """Tests for distance from the last trade in grid widths."""

    def test_upward_move_uses_lower_price(self, policy):
        distance = policy.grid_distance(Decimal("96"), Decimal("100"), Trend.UP)
        assert distance == Decimal("4") / Decimal("96") / Decimal("0.025")

    def test_downward_move_uses_higher_price(self, policy):
        distance = policy.grid_distance(Decimal("96"), Decimal("100"), Trend.DOWN)
        assert distance == Decimal("1.6")

    def test_none_without_trade(self, policy):
        assert policy.grid_distance(Decimal("96"), None, Trend.UP) is None


class TestForcedExit:
    """Tests for the tier-3 forced exit."""

    def bounce(self, policy, correction, **overrides):
        # 5 / 95 / 0.025 = 2.1 grid widths below the last trade
        return evaluate(
            policy,
            6000,
            direction=Trend.UP,
            tendency=Trend.DOWN,
            current_price=Decimal("95"),
            correction=correction,
            **overrides,
        )

    def test_forces_exit_above_half_atr(self, policy):
        decision = self.bounce(policy, Decimal("0.0025"))

        assert decision.tier == 3
        assert decision.force_exit is True

    def test_waits_below_half_atr(self, policy):
        decision = self.bounce(policy, Decimal("0.001"))

        assert decision.tier == 3
        assert decision.force_exit is False

    def test_no_forced_exit_without_trade(self, policy):
        decision = self.bounce(policy, Decimal("0.0025"), last_trade_price=None)
        assert decision.force_exit is False

    def test_no_forced_exit_without_atr(self, policy):
        decision = self.bounce(policy, Decimal("0.0025"), atr=None)
        assert decision.force_exit is False

    def test_no_forced_exit_before_third_tier(self, policy):
        decision = evaluate(
            policy,
            5000,
            direction=Trend.UP,
            tendency=Trend.DOWN,
            current_price=Decimal("95"),
            correction=Decimal("0.0025"),
        )
        assert decision.force_exit is False


class TestFiringCondition:
    """Tests for |correction| > min(threshold, 1.5 x ATR)."""

    def test_atr_bounds_threshold(self):
        assert BackoffPolicy.effective_threshold(Decimal("0.012"), Decimal("0.004")) == Decimal("0.006")
        assert BackoffPolicy.effective_threshold(Decimal("0.003"), Decimal("0.004")) == Decimal("0.003")

    @pytest.mark.parametrize(
        "correction, expected",
        [("0.007", True), ("-0.007", True), ("0.005", False), ("0.006", False)],
    )
    def test_is_reversal_reached(self, correction, expected):
        reached = BackoffPolicy.is_reversal_reached(
            Decimal(correction), Decimal("0.012"), Decimal("0.004")
        )
        assert reached is expected
