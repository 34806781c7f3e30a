"""Configuration loader with multi-source support."""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Generic, Optional, Type, TypeVar

import platformdirs
import toml
from pydantic import BaseModel, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)

# MEDIAMETA_GEOCODING__PRECISION -> geocoding.precision
ENV_NESTING_SEPARATOR = "__"


class ConfigLoader(Generic[T]):
    """Loads configuration from multiple sources with priority.

    Priority (lowest to highest): defaults file, system config, user config,
    environment variables.
    """

    def __init__(self, config_class: Type[T], app_name: str = "mediameta") -> None:
        self.app_name = app_name
        self.config_class = config_class
        self._config: Optional[T] = None

    def load(self, defaults_path: Optional[Path] = None) -> T:
        """Load configuration from all sources.

        Args:
            defaults_path: Optional path to a defaults TOML file

        Returns:
            Validated configuration object

        Raises:
            ConfigurationError: If a file cannot be parsed or validation fails
        """
        config_dict = self._load_defaults(defaults_path)

        system_config = self._load_system_config()
        if system_config:
            config_dict = self._deep_merge(config_dict, system_config)

        user_config = self._load_user_config()
        if user_config:
            config_dict = self._deep_merge(config_dict, user_config)

        config_dict = self._apply_env_overrides(config_dict)

        try:
            self._config = self.config_class(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}", app_name=self.app_name) from e

        return self._config

    def _read_toml(self, path: Path) -> Dict[str, Any]:
        try:
            return toml.load(path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigurationError(f"Failed to read config file {path}: {e}", path=str(path)) from e

    def _load_defaults(self, defaults_path: Optional[Path] = None) -> Dict[str, Any]:
        """Load default configuration shipped with the deployment."""
        if defaults_path is not None:
            if not defaults_path.exists():
                raise ConfigurationError(f"Config file not found: {defaults_path}", path=str(defaults_path))
            return self._read_toml(defaults_path)

        candidate = Path.cwd() / "config" / "defaults.toml"
        if candidate.exists():
            return self._read_toml(candidate)

        return {}

    def _load_system_config(self) -> Optional[Dict[str, Any]]:
        """Load system-wide configuration."""
        if os.name == "nt":
            system_path = (
                Path(os.environ.get("PROGRAMDATA", "C:\\ProgramData"))
                / self.app_name
                / "config.toml"
            )
        else:
            system_path = Path(f"/etc/{self.app_name}/config.toml")

        if system_path.exists():
            return self._read_toml(system_path)

        return None

    def _load_user_config(self) -> Optional[Dict[str, Any]]:
        """Load user-specific configuration."""
        user_config_dir = platformdirs.user_config_dir(appname=self.app_name, appauthor=False)
        user_config_path = Path(user_config_dir) / "config.toml"

        if user_config_path.exists():
            logger.debug(f"Loading user config: {{'path': {str(user_config_path)!r}}}")
            return self._read_toml(user_config_path)

        return None

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Override config with environment variables.

        Format: ``MEDIAMETA_SECTION__KEY``. Keys may contain single
        underscores (``MEDIAMETA_EXTRACTION__VIDEO_CONCURRENCY``).
        """
        prefix = f"{self.app_name.upper().replace('-', '_')}_"

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(prefix):
                continue

            key_path = env_key[len(prefix):].lower().split(ENV_NESTING_SEPARATOR)

            current = config
            for part in key_path[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]

            current[key_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert string environment variable to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    @property
    def config(self) -> T:
        """Get loaded configuration."""
        if self._config is None:
            self._config = self.load()
        return self._config
