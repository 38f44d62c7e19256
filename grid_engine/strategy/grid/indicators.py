"""
Technical Indicators for the grid decision pipeline.

Realized volatility of the tick history, Average True Range over candle
history and volume statistics of the forming bar. All methods are pure and
return Decimal values.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from grid_engine.exchange.base import Candle

from .exceptions import IndicatorDataError
from .models import VolumeStats

# Ticks arrive roughly once per second; volatility is reported per minute
SAMPLES_PER_MINUTE = 60


class GridIndicators:
    """
    Indicator calculator.

    ATR Formula:
        TR[0] = High - Low
        TR[i] = max(High - Low, |High - Prev Close|, |Low - Prev Close|)
        ATR[i] = SMA(TR, period) ending at i

    Example:
        >>> GridIndicators.volatility(recent_prices, window=30)
        Decimal('0.0021...')
        >>> GridIndicators.latest_atr(candles, period=14)
        Decimal('0.0085...')
    """

    # =========================================================================
    # Volatility
    # =========================================================================

    @staticmethod
    def volatility(prices: Sequence[Decimal], window: int) -> Decimal:
        """
        Realized volatility of the most recent `window` samples.

        Sample standard deviation of log-returns, scaled by sqrt(60) to turn
        a per-second figure into a per-minute one.

        Args:
            prices: Price samples, oldest first
            window: Number of most recent samples to use

        Returns:
            Per-minute volatility, 0 when fewer than 3 samples (2 returns)
            are available
        """
        recent = [Decimal(str(p)) for p in prices[-window:]] if window > 0 else []
        if len(recent) < 2:
            return Decimal("0")

        returns = [(recent[i] / recent[i - 1]).ln() for i in range(1, len(recent))]
        if len(returns) < 2:
            return Decimal("0")

        mean = sum(returns) / Decimal(len(returns))
        variance = sum((r - mean) ** 2 for r in returns) / Decimal(len(returns) - 1)
        return variance.sqrt() * Decimal(SAMPLES_PER_MINUTE).sqrt()

    # =========================================================================
    # Average True Range
    # =========================================================================

    @staticmethod
    def true_range(
        high: Decimal,
        low: Decimal,
        prev_close: Optional[Decimal] = None,
    ) -> Decimal:
        """
        True Range for a single bar.

        Without a previous close (first bar) it is High - Low.
        """
        if prev_close is None:
            return high - low
        return max(
            high - low,
            abs(high - prev_close),
            abs(low - prev_close),
        )

    @classmethod
    def atr(
        cls,
        highs: Sequence[Decimal],
        lows: Sequence[Decimal],
        closes: Sequence[Decimal],
        period: int = 14,
    ) -> list[Optional[Decimal]]:
        """
        ATR series aligned with the input.

        Args:
            highs: High prices
            lows: Low prices
            closes: Close prices
            period: SMA period

        Returns:
            List of the same length as the input; the first period-1
            entries are None. All entries are None when fewer than
            `period` bars are given.

        Raises:
            IndicatorDataError: If input lengths differ
        """
        if len(highs) != len(lows) or len(highs) != len(closes):
            raise IndicatorDataError(
                "highs, lows, and closes must have same length",
                details={"highs": len(highs), "lows": len(lows), "closes": len(closes)},
            )
        if period < 1:
            raise IndicatorDataError(f"ATR period must be positive, got {period}")

        n = len(highs)
        if n < period:
            return [None] * n

        true_ranges = [
            cls.true_range(
                Decimal(str(highs[i])),
                Decimal(str(lows[i])),
                Decimal(str(closes[i - 1])) if i > 0 else None,
            )
            for i in range(n)
        ]

        result: list[Optional[Decimal]] = [None] * (period - 1)
        window_sum = sum(true_ranges[:period], Decimal("0"))
        result.append(window_sum / Decimal(period))
        for i in range(period, n):
            window_sum += true_ranges[i] - true_ranges[i - period]
            result.append(window_sum / Decimal(period))
        return result

    @classmethod
    def latest_atr(cls, candles: Sequence[Candle], period: int = 14) -> Optional[Decimal]:
        """
        Most recent ATR as a fraction of the last close.

        Returns None when there are not more than `period` candles or the
        last close is not positive.
        """
        if len(candles) <= period:
            return None

        series = cls.atr(
            [c.high for c in candles],
            [c.low for c in candles],
            [c.close for c in candles],
            period,
        )
        last_close = candles[-1].close
        if series[-1] is None or last_close <= 0:
            return None
        return series[-1] / last_close

    # =========================================================================
    # Volume
    # =========================================================================

    @staticmethod
    def moving_average(values: Sequence[Decimal], window: int) -> list[Decimal]:
        """
        Rolling mean series.

        Empty when window is non-positive or longer than the series.
        """
        if window <= 0 or window > len(values):
            return []

        window_sum = sum(values[:window], Decimal("0"))
        result = [window_sum / Decimal(window)]
        for i in range(window, len(values)):
            window_sum += values[i] - values[i - window]
            result.append(window_sum / Decimal(window))
        return result

    @classmethod
    def volume_stats(
        cls,
        candles: Sequence[Candle],
        fast_window: int = 3,
        slow_window: int = 30,
        now: Optional[datetime] = None,
    ) -> Optional[VolumeStats]:
        """
        Volume of the forming bar with fast/slow moving averages.

        Args:
            candles: Candles ascending by time, forming bar last
            fast_window: Fast moving-average window
            slow_window: Slow moving-average window
            now: Reference time (defaults to current UTC time)

        Returns:
            VolumeStats, or None without candles
        """
        if not candles:
            return None

        volumes = [Decimal(str(c.vol)) for c in candles]
        slow = cls.moving_average(volumes, slow_window)
        fast = cls.moving_average(volumes, fast_window)

        now = now or datetime.now(timezone.utc)
        elapsed = max(1, int((now - candles[-1].ts).total_seconds()))

        return VolumeStats(
            volume=volumes[-1],
            avg_slow=slow[-1] if slow else Decimal("0"),
            avg_fast=fast[-1] if fast else Decimal("0"),
            elapsed_seconds=elapsed,
        )
