"""
Configuration management for the chat server.

This package provides configuration loading from environment variables and
``.env`` files together with default value management.
"""

from .settings import ChatConfig, ChatConfigManager, config_manager

__all__ = [
    "ChatConfig",
    "ChatConfigManager",
    "config_manager",
]
