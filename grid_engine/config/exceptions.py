"""
Configuration Exceptions.

Provides custom exceptions for configuration loading and validation.
"""

from grid_engine.core.exceptions import ConfigError


class ConfigFileNotFoundError(ConfigError):
    """Raised when a configuration file is not found."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigParseError(ConfigError):
    """Raised when a configuration file cannot be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse configuration file '{path}': {reason}")


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        message = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        super().__init__(message)


class UnknownAssetError(ConfigError):
    """Raised when parameters are requested for an asset that is not configured."""

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"Asset not configured: {asset}")
