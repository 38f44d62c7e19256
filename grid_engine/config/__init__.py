"""
Configuration module.

Provides per-asset strategy parameters and the YAML configuration loader.
"""

from .exceptions import (
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    UnknownAssetError,
)
from .loader import ConfigLoader, load_config
from .models import EngineConfig, StateStoreConfig, StrategyParameters

__all__ = [
    "ConfigLoader",
    "load_config",
    "EngineConfig",
    "StateStoreConfig",
    "StrategyParameters",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    "UnknownAssetError",
]
