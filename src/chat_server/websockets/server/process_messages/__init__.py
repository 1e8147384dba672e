"""
Message processing modules for the chat relay server.

This package contains frame validation, routing and broadcast components.
"""

from .broadcast import BroadcastBus
from .frames import (
    ChannelActivityPayload,
    ChatMessagePayload,
    ConnectPayload,
    build_frame,
)
from .router import MessageRouter
from .utils import ConnectionUtils

__all__ = [
    "BroadcastBus",
    "MessageRouter",
    "ConnectionUtils",
    "ConnectPayload",
    "ChatMessagePayload",
    "ChannelActivityPayload",
    "build_frame",
]
