"""
REST API module for the chat server.

This module provides REST endpoints for users, channels and message history.
"""

from .app import create_app

__all__ = ["create_app"]
