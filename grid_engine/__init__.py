"""
Grid decision engine.

Per-asset grid trading decisions: price grid, trend and turning-point
tracking, time-decaying backoff thresholds and ATR gating.
"""

__version__ = "0.1.0"
