"""
WebSocket server implementation for the chat relay.

This module contains the main ChatRelayServer class and related components.
"""

from .relay_server import ChatRelayServer

__all__ = [
    "ChatRelayServer",
]
