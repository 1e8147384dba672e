"""
Core components for the chat server.

This package contains the domain models, the in-memory store and the
single-writer hub that serializes every mutation.
"""

from .hub import ChatHub
from .models import Channel, Message, MessageWithAuthor, User
from .profile import derive_initials, pick_color
from .store import ChatStore
from .types import MessageType

__all__ = [
    "ChatHub",
    "ChatStore",
    "User",
    "Channel",
    "Message",
    "MessageWithAuthor",
    "MessageType",
    "derive_initials",
    "pick_color",
]
