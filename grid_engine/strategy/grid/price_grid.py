"""
Price Grid.

Geometric ladder of price levels around a base price, used to turn a
continuous price move into an integer count of grid cells crossed.
"""

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from grid_engine.core import get_logger
from grid_engine.core.utils import round_decimal

from .exceptions import InvalidPriceRangeError

logger = get_logger(__name__)

# Levels are rounded so that comparisons stay exact despite drift
LEVEL_PRECISION = 3


@dataclass(frozen=True)
class PriceGrid:
    """
    Immutable, strictly increasing ladder of price levels.

    Example:
        >>> grid = PriceGrid.build(Decimal("100"), Decimal("0.1"), Decimal("100"), Decimal("0.025"))
        >>> grid.count_levels_between(Decimal("97"), Decimal("100"))
        -1
    """

    levels: tuple[Decimal, ...]
    base_price: Decimal
    max_crossing_count: int = 8
    created_at: Optional[datetime] = None

    @classmethod
    def build(
        cls,
        base_price: Decimal,
        min_price: Decimal,
        max_price: Decimal,
        width: Decimal,
        max_crossing_count: int = 8,
        created_at: Optional[datetime] = None,
    ) -> "PriceGrid":
        """
        Generate the grid for base_price.

        Walks up by (1 + width) and down by (1 - width) while the rounded
        level stays within [min_price, max_price]. base_price is always a
        member.

        Raises:
            InvalidPriceRangeError: If min_price is not positive, min_price >=
                max_price, or base_price lies outside [min_price, max_price]
        """
        base_price = Decimal(str(base_price))
        min_price = Decimal(str(min_price))
        max_price = Decimal(str(max_price))
        width = Decimal(str(width))

        if min_price <= 0:
            raise InvalidPriceRangeError(
                str(min_price), str(max_price), reason="min_price must be positive"
            )
        if min_price >= max_price:
            raise InvalidPriceRangeError(
                str(min_price), str(max_price), reason="min_price must be less than max_price"
            )
        if not (min_price <= base_price <= max_price):
            raise InvalidPriceRangeError(
                str(min_price),
                str(max_price),
                base=str(base_price),
                reason="base_price must lie within [min_price, max_price]",
            )
        if not (Decimal("0") < width < Decimal("1")):
            raise InvalidPriceRangeError(
                str(min_price), str(max_price), reason=f"grid width must be in (0, 1), got {width}"
            )

        levels: set[Decimal] = {base_price}

        # Bounds apply to the rounded level
        price = base_price
        while True:
            price = price * (Decimal("1") + width)
            level = round_decimal(price, LEVEL_PRECISION)
            if level > max_price:
                break
            levels.add(level)

        price = base_price
        while True:
            price = price * (Decimal("1") - width)
            level = round_decimal(price, LEVEL_PRECISION)
            if level < min_price:
                break
            levels.add(level)

        grid = cls(
            levels=tuple(sorted(levels)),
            base_price=base_price,
            max_crossing_count=max_crossing_count,
            created_at=created_at,
        )
        logger.info(
            f"Grid built around {base_price}: {len(grid.levels)} levels, "
            f"range {grid.levels[0]}-{grid.levels[-1]}, width {width}"
        )
        return grid

    def __len__(self) -> int:
        return len(self.levels)

    def __contains__(self, price: object) -> bool:
        return price in self.levels

    def count_levels_between(
        self,
        current: Optional[Decimal],
        reference: Optional[Decimal],
    ) -> int:
        """
        Signed number of grid cells between two prices.

        Counts levels inside [min, max] of the two prices; n levels span
        n - 1 cells. Positive when current > reference. The magnitude is
        capped at max_crossing_count.

        Returns 0 when either price is missing or they are equal.
        """
        if current is None or reference is None or current == reference:
            return 0

        lower = min(current, reference)
        upper = max(current, reference)
        count = bisect_right(self.levels, upper) - bisect_left(self.levels, lower)
        if count <= 1:
            return 0

        cells = min(count - 1, self.max_crossing_count)
        return cells if current > reference else -cells
