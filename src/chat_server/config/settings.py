"""
Configuration management for the chat server.

This module provides a small configuration system: a dataclass holding the
settings and a manager that loads them from the environment (optionally
primed from a ``.env`` file).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from ..infrastructure.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SEED_CHANNELS = ["general", "random", "support"]


@dataclass
class ChatConfig:
    """Configuration for the chat server."""

    # Network
    host: str = "0.0.0.0"
    api_port: int = 8000
    ws_port: int = 8765
    ws_path: str = "/ws"

    # Behaviour
    log_level: str = "INFO"
    message_history_limit: int = 50
    seed_channels: List[str] = field(
        default_factory=lambda: list(DEFAULT_SEED_CHANNELS)
    )
    ping_interval: int = 30
    ping_timeout: int = 20
    max_message_size: int = 2**16
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self):
        """Validate values that would otherwise fail late."""
        for name in ("api_port", "ws_port"):
            port = getattr(self, name)
            if not 0 < port < 65536:
                raise ConfigurationError(f"{name} must be between 1 and 65535, got {port}")
        if self.message_history_limit < 1:
            raise ConfigurationError("message_history_limit must be positive")
        if self.ping_interval < 0:
            raise ConfigurationError("ping_interval cannot be negative")
        if self.ping_timeout < 1:
            raise ConfigurationError("ping_timeout must be positive")
        if self.max_message_size < 1:
            raise ConfigurationError("max_message_size must be positive")
        if not self.seed_channels:
            raise ConfigurationError("at least one seed channel is required")
        duplicates = sorted(
            {name for name in self.seed_channels if self.seed_channels.count(name) > 1}
        )
        if duplicates:
            raise ConfigurationError(f"Duplicate seed channels: {', '.join(duplicates)}")
        if not self.ws_path.startswith("/"):
            self.ws_path = "/" + self.ws_path


class ChatConfigManager:
    """Loads ChatConfig from environment variables."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to environment file
        """
        self.env_file_path = env_file_path
        self._load_environment()

    def _load_environment(self):
        """Load environment variables from file."""
        if os.path.exists(self.env_file_path):
            load_dotenv(dotenv_path=self.env_file_path)
            logger.info(f"Loaded environment from {self.env_file_path}")
        else:
            logger.debug(f"Environment file {self.env_file_path} not found")

    def _get_optional_env(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get optional environment variable.

        Args:
            key: Environment variable name
            default: Default value if not set

        Returns:
            Environment variable value or default
        """
        return os.getenv(key, default)

    def _get_int_env(self, key: str, default: int) -> int:
        """
        Get an integer environment variable.

        Raises:
            ConfigurationError: If the value is not an integer
        """
        raw = self._get_optional_env(key)
        if raw is None or raw.strip() == "":
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got {raw!r}")

    def _get_list_env(self, key: str, default: List[str]) -> List[str]:
        """Get a comma-separated list environment variable."""
        raw = self._get_optional_env(key)
        if raw is None:
            return list(default)
        items = [item.strip() for item in raw.split(",")]
        return [item for item in items if item]

    def get_config(self) -> ChatConfig:
        """
        Get the server configuration.

        Returns:
            ChatConfig: Server configuration

        Raises:
            ConfigurationError: If a value is invalid
        """
        try:
            config = ChatConfig(
                host=self._get_optional_env("CHAT_HOST", "0.0.0.0"),
                api_port=self._get_int_env("API_PORT", 8000),
                ws_port=self._get_int_env("WS_PORT", 8765),
                ws_path=self._get_optional_env("WS_PATH", "/ws"),
                log_level=self._get_optional_env("LOG_LEVEL", "INFO").upper(),
                message_history_limit=self._get_int_env("MESSAGE_HISTORY_LIMIT", 50),
                seed_channels=self._get_list_env("SEED_CHANNELS", DEFAULT_SEED_CHANNELS),
                ping_interval=self._get_int_env("PING_INTERVAL", 30),
                ping_timeout=self._get_int_env("PING_TIMEOUT", 20),
                max_message_size=self._get_int_env("MAX_MESSAGE_SIZE", 2**16),
                cors_origins=self._get_list_env("CORS_ORIGINS", ["*"]),
            )

            logger.info("Configuration loaded successfully")
            return config

        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            raise


# Global configuration manager instance
config_manager = ChatConfigManager()
