"""
Process-wide logging setup for the chat server.

The YAML file shipped with the package is applied once with ``dictConfig``.
Levels follow the ``ENVIRONMENT`` variable unless a caller asks for a
specific one:

- development: DEBUG
- staging: INFO
- production: WARNING

Without the YAML file a console handler is attached to the package logger
instead.
"""

import copy
import logging
import logging.config
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml

LOGGER_NAMESPACE = "chat_server"

NOISY_LOGGERS = [
    "websockets",
    "websockets.server",
    "uvicorn.access",
    "asyncio",
]

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Environment(Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


ENVIRONMENT_LEVELS = {
    Environment.DEVELOPMENT: "DEBUG",
    Environment.STAGING: "INFO",
    Environment.PRODUCTION: "WARNING",
}


def detect_environment() -> Environment:
    """Read the deployment environment from ``ENVIRONMENT``."""
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env in ("prod", "production"):
        return Environment.PRODUCTION
    if env in ("stage", "staging"):
        return Environment.STAGING
    return Environment.DEVELOPMENT


class LoggingManager:
    """Configures the ``chat_server`` logger tree once per process."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        environment: Optional[Environment] = None,
    ):
        """
        Initialize logging manager.

        Args:
            config_path: YAML configuration file. Defaults to the
                ``logging.yaml`` inside the package.
            environment: Deployment environment. Read from ``ENVIRONMENT``
                when omitted.
        """
        self.config_path = config_path or Path(__file__).parent.parent / "logging.yaml"
        self.environment = environment or detect_environment()
        self._configured = False
        self._uses_yaml = False
        self._file_handlers: Set[str] = set()

    @property
    def default_level(self) -> str:
        return ENVIRONMENT_LEVELS[self.environment]

    @property
    def is_configured(self) -> bool:
        return self._configured

    def configure(self) -> None:
        """Apply the logging configuration. Later calls are no-ops."""
        if self._configured:
            return

        config = self._load_yaml_config()
        if config is not None:
            config = self._apply_environment(config)
            self._create_log_dirs(config)
            logging.config.dictConfig(config)
            self._uses_yaml = True
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATE_FORMAT))
            package_logger = logging.getLogger(LOGGER_NAMESPACE)
            package_logger.addHandler(handler)
            package_logger.propagate = False

        logging.getLogger(LOGGER_NAMESPACE).setLevel(self.default_level)
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        self._configured = True

    def setup_logging(
        self,
        component_name: str,
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
    ) -> logging.Logger:
        """
        Get a configured logger for a component.

        Component loggers inherit the package level unless ``log_level`` is
        given. ``log_file`` only applies when the YAML configuration, which
        already writes to a file, is unavailable.
        """
        self.configure()

        logger = logging.getLogger(component_name)
        if log_level is not None:
            logger.setLevel(log_level.upper())

        if log_file and not self._uses_yaml and log_file not in self._file_handlers:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            handler = logging.FileHandler(log_file, encoding="utf8")
            handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATE_FORMAT))
            logging.getLogger(LOGGER_NAMESPACE).addHandler(handler)
            self._file_handlers.add(log_file)

        return logger

    def _load_yaml_config(self) -> Optional[Dict[str, Any]]:
        if not self.config_path.exists():
            return None
        try:
            with open(self.config_path, "r") as f:
                return yaml.safe_load(f)
        except (yaml.YAMLError, IOError) as e:
            logging.getLogger(__name__).warning(f"Failed to load YAML logging config: {e}")
            return None

    def _apply_environment(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Raise handler and logger levels for non-development environments."""
        config = copy.deepcopy(config)
        if self.environment is Environment.DEVELOPMENT:
            return config

        level = self.default_level
        for name, logger_config in config.get("loggers", {}).items():
            if name not in NOISY_LOGGERS:
                logger_config["level"] = level
        for handler_config in config.get("handlers", {}).values():
            if handler_config.get("level") == "DEBUG":
                handler_config["level"] = level
        if "root" in config:
            config["root"]["level"] = level
        return config

    @staticmethod
    def _create_log_dirs(config: Dict[str, Any]) -> None:
        for handler_config in config.get("handlers", {}).values():
            filename = handler_config.get("filename")
            if filename:
                os.makedirs(os.path.dirname(filename) or ".", exist_ok=True)


# Global logging manager instance
_logging_manager = LoggingManager()


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up logging for a component through the global manager."""
    return _logging_manager.setup_logging(component_name, log_level, log_file)


def get_environment() -> Environment:
    """Get current environment."""
    return _logging_manager.environment
