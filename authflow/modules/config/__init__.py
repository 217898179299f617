"""
Config Module - Black Box Interface

Purpose: Backend server settings (Redis connection, bind address, logging)
Interface: get_config(), ConfigModule.get(), ConfigModule.redis_url
Hidden: Environment parsing, service-discovery port formats, validation

Client-side settings (identity provider, backend URL, token verification)
live in authflow.config.provider instead.
"""

import os
from typing import Any, Dict, Optional

# Keys every deployment resolves, from the environment or a default
REQUIRED_CONFIG_KEYS = {
    "redis_host": "Redis server hostname",
    "redis_port": "Redis server port number",
    "redis_db": "Redis database number",
    "host": "API server bind address",
    "port": "API server port",
    "log_level": "Logging level (DEBUG, INFO, WARNING, ERROR)",
}

OPTIONAL_CONFIG_KEYS = {
    "redis_url": {
        "description": "Full Redis URL; overrides host, port and db when set",
        "default": None,
    },
    "redis_password": {
        "description": "Redis authentication password",
        "default": None,
    },
    "debug": {
        "description": "Reload the API server on code changes",
        "default": False,
    },
}


def _parse_port(value: str) -> int:
    # Service discovery injects ports as tcp://host:port
    if value.startswith("tcp://"):
        value = value.rsplit(":", 1)[-1]
    return int(value)


class ConfigModule:
    """Backend server configuration read once from the environment."""

    def __init__(self):
        self._config = {
            "redis_url": os.getenv("REDIS_URL"),
            "redis_host": os.getenv("REDIS_HOST", "localhost"),
            "redis_port": _parse_port(os.getenv("REDIS_PORT", "6379")),
            "redis_db": int(os.getenv("REDIS_DB", "0")),
            "redis_password": os.getenv("REDIS_PASSWORD"),
            "host": os.getenv("API_HOST", "0.0.0.0"),
            "port": _parse_port(os.getenv("API_PORT", "8080")),
            "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "debug": os.getenv("DEBUG", "false").lower() == "true",
        }

        missing = [key for key in REQUIRED_CONFIG_KEYS if self._config.get(key) in (None, "")]
        if missing:
            raise ValueError(f"Missing required configuration keys: {', '.join(missing)}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    @property
    def redis_url(self) -> str:
        """Connection URL for the user record store."""
        explicit: Optional[str] = self._config["redis_url"]
        if explicit:
            return explicit
        return f"redis://{self._config['redis_host']}:{self._config['redis_port']}/{self._config['redis_db']}"

    @staticmethod
    def get_config_schema() -> Dict[str, Any]:
        """
        Get the configuration contract for this module.

        Returns:
            Dictionary with 'required' key descriptions and 'optional' keys
            with their defaults
        """
        return {
            "required": REQUIRED_CONFIG_KEYS.copy(),
            "optional": OPTIONAL_CONFIG_KEYS.copy(),
        }


# Singleton instance
_instance = None


def get_config() -> ConfigModule:
    """Get the configuration module singleton."""
    global _instance
    if _instance is None:
        _instance = ConfigModule()
    return _instance


__all__ = ["get_config", "ConfigModule"]
