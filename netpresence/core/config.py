"""Configuration management."""

import os
import re
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv


DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_COMMAND_TIMEOUT = 10.0


class ConfigManager:
    """
    Configuration manager for the presence monitor.

    Supports:
    - YAML configuration file (config/system.yaml)
    - Environment variable interpolation (${VAR_NAME})
    - Environment overrides for broker and monitor settings
    - Default values
    """

    def __init__(self, config_dir: str = "config"):
        self.config_dir = Path(config_dir)
        self.system_config: Dict[str, Any] = {}

        # Load environment variables
        load_dotenv()

    def load(self) -> None:
        """Load the configuration file."""
        config_path = self.config_dir / "system.yaml"

        if not config_path.exists():
            # Try example file
            example_path = self.config_dir / "system.yaml.example"
            if example_path.exists():
                config_path = example_path
            else:
                raise FileNotFoundError(f"System config not found: {config_path}")

        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}

        # Interpolate environment variables
        self.system_config = self._interpolate_env_vars(raw_config)

    def _interpolate_env_vars(self, config: Any) -> Any:
        """
        Recursively interpolate environment variables in config.

        Supports ${VAR_NAME} syntax.
        """
        if isinstance(config, dict):
            return {k: self._interpolate_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._interpolate_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._interpolate_string(config)
        else:
            return config

    @staticmethod
    def _interpolate_string(value: str) -> str:
        """Interpolate environment variables in a string."""
        pattern = re.compile(r'\$\{([^}]+)\}')

        def replacer(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))

        return pattern.sub(replacer, value)

    def get_mqtt_config(self) -> Dict[str, Any]:
        """Get MQTT broker configuration, ready to pass to MQTTEventBus."""
        mqtt_config = self.system_config.get("mqtt") or {}

        return {
            "broker": os.getenv("MQTT_HOST", mqtt_config.get("host", "localhost")),
            "port": int(os.getenv("MQTT_PORT", mqtt_config.get("port", 1883))),
            "username": os.getenv("MQTT_USERNAME", mqtt_config.get("username")) or None,
            "password": os.getenv("MQTT_PASSWORD", mqtt_config.get("password")) or None,
            "client_id": mqtt_config.get("client_id", "device_publisher"),
            "topic_prefix": mqtt_config.get("topic_prefix", "NETWORK"),
            "qos": int(mqtt_config.get("qos", 0)),
            "keepalive": int(mqtt_config.get("keepalive", 60)),
        }

    def get_monitor_config(self) -> Dict[str, Any]:
        """
        Get presence monitor configuration.

        Raises:
            ValueError: If poll_interval or command_timeout is not positive
        """
        monitor_config = self.system_config.get("monitor") or {}

        poll_interval = float(
            os.getenv("POLL_INTERVAL", monitor_config.get("poll_interval", DEFAULT_POLL_INTERVAL))
        )
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")

        command_timeout = float(monitor_config.get("command_timeout", DEFAULT_COMMAND_TIMEOUT))
        if command_timeout <= 0:
            raise ValueError(f"command_timeout must be positive, got {command_timeout}")

        return {
            "poll_interval": poll_interval,
            "command_timeout": command_timeout,
            "commands": dict(monitor_config.get("commands") or {}),
        }

    def get_log_level(self) -> str:
        """Get log level from config or environment."""
        return os.getenv(
            "LOG_LEVEL",
            (self.system_config.get("system") or {}).get("log_level", "INFO")
        ).upper()

    def get_paths(self) -> Dict[str, Path]:
        """Get configured paths."""
        paths = self.system_config.get("paths") or {}

        return {
            "logs": Path(os.getenv("LOGS_DIR", paths.get("logs", "./logs"))),
        }

