"""
Connection bookkeeping for the chat relay server.
"""

from .connection_registry import ConnectionRegistry

__all__ = ["ConnectionRegistry"]
