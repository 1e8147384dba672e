"""
Common types and constants for the chat server.

This module centralizes frame types and defaults to avoid hardcoding
throughout the codebase.
"""

from enum import Enum
from typing import Dict, Final, List


class MessageType(str, Enum):
    """Frame types exchanged over the WebSocket connection."""

    CONNECT = "CONNECT"
    USER_JOINED = "USER_JOINED"
    USER_LEFT = "USER_LEFT"
    CHAT_MESSAGE = "CHAT_MESSAGE"
    CHANNEL_JOINED = "CHANNEL_JOINED"
    CHANNEL_LEFT = "CHANNEL_LEFT"  # reserved
    TYPING = "TYPING"
    ERROR = "ERROR"
    CONNECTION_STATUS = "CONNECTION_STATUS"  # reserved


# Placeholder credential for users created without a password
DEFAULT_PASSWORD: Final[str] = "default-password"

DEFAULT_MESSAGE_LIMIT: Final[int] = 50
MAX_MESSAGE_LIMIT: Final[int] = 500

# Close code sent to a connection replaced by a newer session for the same user
WS_CLOSE_SESSION_REPLACED: Final[int] = 4000
# Standard "internal error" code, as sent by websockets on keepalive timeout
WS_CLOSE_PING_TIMEOUT: Final[int] = 1011

COLOR_PALETTE: Final[List[str]] = [
    "bg-blue-500",
    "bg-green-500",
    "bg-purple-500",
    "bg-yellow-500",
    "bg-red-500",
    "bg-indigo-500",
    "bg-pink-500",
    "bg-teal-500",
]

SEED_CHANNEL_DESCRIPTIONS: Final[Dict[str, str]] = {
    "general": "General discussions for the team",
    "random": "Random topics and conversations",
    "support": "Get help and support here",
}

# Error texts sent in ERROR frames
ERR_INVALID_FORMAT: Final[str] = "Invalid message format"
ERR_INVALID_CONNECT: Final[str] = (
    "Invalid connection data. userId and username are required."
)
ERR_CREATE_USER: Final[str] = "Failed to create user"
ERR_PROCESSING: Final[str] = "Failed to process message"
