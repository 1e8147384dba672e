"""
Infrastructure components for the chat server.

This package contains infrastructure concerns including:
- Logging configuration with environment-aware levels
- Custom exception definitions
"""

from .logging import setup_logging, get_logger
from .logging_manager import LoggingManager, Environment, get_environment
from .exceptions import (
    ChatServerError,
    ConfigurationError,
    ValidationError,
    ConflictError,
    DuplicateUsernameError,
    DuplicateChannelNameError,
    NotFoundError,
    UnknownUserError,
    UnknownChannelError,
    InternalError,
    HubClosedError,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "LoggingManager",
    "Environment",
    "get_environment",
    # Exceptions
    "ChatServerError",
    "ConfigurationError",
    "ValidationError",
    "ConflictError",
    "DuplicateUsernameError",
    "DuplicateChannelNameError",
    "NotFoundError",
    "UnknownUserError",
    "UnknownChannelError",
    "InternalError",
    "HubClosedError",
]
