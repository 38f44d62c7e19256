"""
Utility functions for the grid decision engine.

Includes time conversion and decimal helpers.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional


# =============================================================================
# Time-related functions
# =============================================================================


def timestamp_to_datetime(ts: int | float, unit: str = "ms") -> datetime:
    """
    Convert timestamp to datetime (UTC).

    Args:
        ts: Timestamp value
        unit: "ms" for milliseconds, "s" for seconds

    Example:
        >>> timestamp_to_datetime(1704067200000)
        datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if unit == "ms":
        ts = ts / 1000
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def ensure_datetime(value: Any) -> Optional[datetime]:
    """
    Coerce a stored or exchange-reported time into an aware datetime.

    Accepts datetimes, ISO-8601 strings and epoch milliseconds (int, float
    or numeric string). Naive datetimes are assumed to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float, Decimal)):
        return timestamp_to_datetime(float(value))
    text = str(value)
    try:
        return timestamp_to_datetime(float(text))
    except ValueError:
        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def seconds_between(later: Optional[datetime], earlier: Optional[datetime]) -> float:
    """Elapsed seconds from earlier to later, 0 if either is missing."""
    if later is None or earlier is None:
        return 0.0
    return (later - earlier).total_seconds()


# =============================================================================
# Numeric functions
# =============================================================================


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a value to Decimal via its string form.

    Returns None for None and empty strings.

    Example:
        >>> to_decimal(0.1)
        Decimal('0.1')
    """
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_decimal(
    value: Decimal,
    precision: int,
    rounding: str = ROUND_HALF_UP,
) -> Decimal:
    """
    Round a Decimal to specified precision.

    Example:
        >>> round_decimal(Decimal("102.5625"), 3)
        Decimal('102.563')
    """
    if precision < 0:
        precision = 0

    quantize_str = "1." + "0" * precision if precision > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)

