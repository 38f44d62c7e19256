"""
Trading strategies.
"""

from .grid import GridTradingProcessor

__all__ = ["GridTradingProcessor"]
