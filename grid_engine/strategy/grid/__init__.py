# Grid decision strategy module
from .backoff import BackoffDecision, BackoffPolicy
from .exceptions import GridError, IndicatorDataError, InvalidPriceRangeError
from .indicators import GridIndicators
from .models import (
    OrderIntent,
    OrderOutcome,
    PriceObservation,
    ReferenceState,
    Trend,
    VolumeStats,
)
from .order_manager import GridOrderManager
from .price_grid import PriceGrid
from .processor import (
    GridTradingProcessor,
    resolve_grid_base,
    resolve_observation,
)
from .trend import TrendTracker, reference_price

__all__ = [
    # Processor
    "GridTradingProcessor",
    "resolve_observation",
    "resolve_grid_base",
    # Components
    "BackoffDecision",
    "BackoffPolicy",
    "GridIndicators",
    "GridOrderManager",
    "PriceGrid",
    "TrendTracker",
    "reference_price",
    # Models
    "OrderIntent",
    "OrderOutcome",
    "PriceObservation",
    "ReferenceState",
    "Trend",
    "VolumeStats",
    # Exceptions
    "GridError",
    "IndicatorDataError",
    "InvalidPriceRangeError",
]
