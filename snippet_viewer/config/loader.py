"""
Configuration loader for snippet_viewer.

This module handles loading configuration from configuration files and
environment variables, merged over the model defaults.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import yaml

from ..exceptions import ConfigurationError
from .models import GlobalConfig

ENV_PREFIX = "SNIPPET_VIEWER_"


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "yes", "1", "on")


class ConfigLoader:
    """Configuration loader with support for multiple sources."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """
        Initialize configuration loader.

        Args:
            environ: Environment mapping to read (defaults to ``os.environ``)
        """
        self.config_paths = [
            Path("snippet_viewer.yaml"),
            Path("snippet_viewer.yml"),
            Path("snippet_viewer.json"),
            Path("config/snippet_viewer.yaml"),
            Path("config/snippet_viewer.yml"),
            Path("config/snippet_viewer.json"),
            Path.home() / ".snippet_viewer" / "config.yaml",
            Path.home() / ".snippet_viewer" / "config.yml",
            Path.home() / ".snippet_viewer" / "config.json",
        ]
        self.env_prefix = ENV_PREFIX
        self._environ = environ

    def load_config(self, config_file: Optional[Union[str, Path]] = None) -> GlobalConfig:
        """
        Load configuration from all available sources.

        Args:
            config_file: Specific config file to load

        Returns:
            GlobalConfig instance with merged configuration

        Raises:
            ConfigurationError: If a config file exists but cannot be parsed
        """
        config_data: Dict[str, Any] = {}

        file_config = self._load_from_file(config_file)
        if file_config:
            config_data.update(file_config)

        env_config = self._load_from_environment()
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        try:
            return GlobalConfig(**config_data)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_from_file(
        self, config_file: Optional[Union[str, Path]] = None
    ) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ConfigurationError(f"Config file not found: {config_path}")
            return self._parse_config_file(config_path)

        for config_path in self.config_paths:
            if config_path.exists():
                return self._parse_config_file(config_path)

        return None

    def _parse_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Parse configuration file based on extension."""
        suffix = config_path.suffix.lower()
        if suffix not in (".yaml", ".yml", ".json"):
            raise ConfigurationError(
                f"Unsupported config file format: {config_path.suffix}"
            )
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to parse config file {config_path}: {e}"
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping at the top level"
            )
        return data

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        environ = os.environ if self._environ is None else self._environ
        config: Dict[str, Any] = {}

        env_mappings: Dict[str, Tuple[Tuple[str, ...], Callable[[str], Any]]] = {
            f"{self.env_prefix}HOST": (("snippets", "default_host"), str),
            f"{self.env_prefix}THEME": (("snippets", "theme"), str),
            f"{self.env_prefix}RESOURCE_PATH": (("snippets", "resource_path"), str),
            f"{self.env_prefix}TIMEOUT": (("http", "timeout"), float),
            f"{self.env_prefix}VERIFY_SSL": (("http", "verify_ssl"), _to_bool),
            f"{self.env_prefix}LOG_LEVEL": (("logging", "level"), str.upper),
            f"{self.env_prefix}LOG_FILE": (("logging", "file_path"), str),
        }

        for env_var, (config_path, convert) in env_mappings.items():
            value = environ.get(env_var)
            if value is None or value == "":
                continue
            try:
                converted_value = convert(value)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {env_var}: {value!r}"
                ) from e

            current = config
            for key in config_path[:-1]:
                current = current.setdefault(key, {})
            current[config_path[-1]] = converted_value

        if "file_path" in config.get("logging", {}):
            config["logging"]["enable_file"] = True

        return config

    def _deep_merge(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def load_config(config_file: Optional[Union[str, Path]] = None) -> GlobalConfig:
    """Load configuration with a default loader."""
    return ConfigLoader().load_config(config_file)
