"""
Configuration loading and saving utilities.

This module loads the forwarder configuration from a YAML or JSON file,
applies environment variable overrides and validates the result.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

from .models import ForwarderConfig

DEFAULT_CONFIG_FILE = ".sshforwardrc"


class ConfigLoader:
    """Configuration loader supporting YAML, JSON and environment overrides."""

    def __init__(self) -> None:
        self._env_prefix = "SSHFORWARD_"

    def load_config(self, config_file: Optional[str] = None) -> ForwarderConfig:
        """
        Load configuration from file and environment variables.

        Args:
            config_file: Path to configuration file, `.sshforwardrc` if omitted

        Returns:
            Loaded and validated configuration

        Raises:
            FileNotFoundError: If the configuration file does not exist
            ValueError: If the file cannot be parsed or fails validation
        """
        path = config_file or DEFAULT_CONFIG_FILE
        config_data = self._load_from_file(path)

        # Old files may spell the server section in snake_case
        if "ssh_server" in config_data and "sshServer" not in config_data:
            config_data["sshServer"] = config_data.pop("ssh_server")

        env_overrides = self._load_from_environment()
        config_data = self._merge_configs(config_data, env_overrides)

        try:
            config = ForwarderConfig.from_dict(config_data)
            config.config_file_path = path
            config.validate()
        except (TypeError, AttributeError) as e:
            raise ValueError(f"Invalid configuration in {path}: {e}")

        return config

    def save_config(self, config: ForwarderConfig, file_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save
            file_path: Output file path
            format: File format (yaml or json)
        """
        config_data = config.to_dict()

        if format.lower() == "yaml":
            self._save_yaml(config_data, file_path)
        elif format.lower() == "json":
            self._save_json(config_data, file_path)
        else:
            raise ValueError(f"Unsupported format: {format}")

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from file. Anything but .json is read as YAML."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {file_path}")

        if path.suffix.lower() == '.json':
            data = self._load_json(file_path)
        else:
            data = self._load_yaml(file_path)

        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {file_path} must be a mapping")
        return data

    def _load_yaml(self, file_path: str) -> Any:
        """Load YAML configuration file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {file_path}: {e}")
        except OSError as e:
            raise ValueError(f"Error reading {file_path}: {e}")

    def _load_json(self, file_path: str) -> Any:
        """Load JSON configuration file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {file_path}: {e}")
        except OSError as e:
            raise ValueError(f"Error reading {file_path}: {e}")

    def _save_yaml(self, data: Dict[str, Any], file_path: str) -> None:
        """Save configuration as YAML."""
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            raise ValueError(f"Error writing YAML to {file_path}: {e}")

    def _save_json(self, data: Dict[str, Any], file_path: str) -> None:
        """Save configuration as JSON."""
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise ValueError(f"Error writing JSON to {file_path}: {e}")

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration overrides from environment variables."""
        config: Dict[str, Any] = {}

        env_mappings: Dict[str, Tuple[str, Callable[[str], Any]]] = {
            f"{self._env_prefix}SSH_HOST": ("sshServer.host", str),
            f"{self._env_prefix}SSH_PORT": ("sshServer.port", int),
            f"{self._env_prefix}SSH_USERNAME": ("sshServer.username", str),
            f"{self._env_prefix}SSH_PASSWORD": ("sshServer.password", str),
            f"{self._env_prefix}CONNECT_TIMEOUT": ("supervisor.connectTimeout", float),
            f"{self._env_prefix}RECONNECT_INTERVAL": ("supervisor.reconnectInterval", float),
            f"{self._env_prefix}PROBE_INTERVAL": ("supervisor.probeInterval", float),
            f"{self._env_prefix}LOG_LEVEL": ("logging.level", str),
            f"{self._env_prefix}LOG_DIR": ("logging.logDirectory", str),
            f"{self._env_prefix}LOG_FILE": ("logging.fileEnabled", self._parse_bool),
        }

        for env_var, (config_path, converter) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    self._set_nested_value(config, config_path, converter(value))
                except (ValueError, TypeError) as e:
                    raise ValueError(
                        f"Invalid value for {env_var}: {value} ({e})")

        return config

    def _parse_bool(self, value: str) -> bool:
        """Parse boolean value from string."""
        return value.lower() in ('true', '1', 'yes', 'on', 'enabled')

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result
