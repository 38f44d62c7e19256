"""
Configuration Loader.

Loads the engine YAML file with environment variable substitution and
validates it into an EngineConfig.

File layout:

    defaults:
      grid_width: 0.025
      trade_amount: ${GRID_TRADE_AMOUNT:9000}
    assets:
      XRP-USDT:
        max_price: 3
    state_store:
      backend: redis
      redis_url: ${REDIS_URL:redis://localhost:6379/0}
"""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from grid_engine.core import get_logger

from .exceptions import (
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
)
from .models import EngineConfig

logger = get_logger(__name__)

# Pattern to match environment variables: ${VAR} or ${VAR:default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


class ConfigLoader:
    """
    Configuration loader with YAML support and environment variable substitution.

    Substituted values stay strings; EngineConfig coerces them to the field
    types.

    Example:
        >>> config = ConfigLoader().load("config/engine.yaml")
        >>> params = config.parameters_for("XRP-USDT")
    """

    def __init__(self, env_file: Optional[str | Path] = None):
        """
        Initialize ConfigLoader.

        Args:
            env_file: Optional path to .env file. If not provided,
                     will look for .env in the config directory.
        """
        self._env_file = Path(env_file) if env_file else None

    def load(self, path: str | Path) -> EngineConfig:
        """
        Load and validate the configuration file.

        Raises:
            ConfigFileNotFoundError: If the file does not exist
            ConfigParseError: If YAML parsing fails or the root is not a mapping
            ConfigValidationError: If Pydantic validation fails
        """
        path = Path(path)
        if not path.exists():
            raise ConfigFileNotFoundError(str(path))

        env_path = self._env_file or path.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path, override=False)
            logger.debug(f"Loaded environment from {env_path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigParseError(str(path), str(e)) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigParseError(str(path), "top-level value must be a mapping")

        try:
            config = EngineConfig(**substitute_env_vars(data))
        except ValidationError as e:
            raise ConfigValidationError([str(err["msg"]) for err in e.errors()]) from e

        logger.info(f"Loaded configuration from {path} ({len(config.assets)} assets)")
        return config


def substitute_env_vars(data: Any) -> Any:
    """Substitute ${VAR} and ${VAR:default} in strings; unset references are kept."""
    if isinstance(data, dict):
        return {k: substitute_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [substitute_env_vars(item) for item in data]
    if isinstance(data, str):
        return ENV_VAR_PATTERN.sub(_replace_match, data)
    return data


def _replace_match(match: re.Match) -> str:
    var_name, default = match.groups()
    return os.environ.get(var_name, default if default is not None else match.group(0))


def load_config(path: str | Path) -> EngineConfig:
    """Convenience wrapper around ConfigLoader().load()."""
    return ConfigLoader().load(path)
