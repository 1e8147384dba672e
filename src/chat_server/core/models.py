"""
Chat data models.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class User:
    """A chat participant."""

    id: int
    username: str
    password: Optional[str] = None
    initials: Optional[str] = None
    color: Optional[str] = None
    online_status: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Public representation; the credential is never included."""
        return {
            "id": self.id,
            "username": self.username,
            "initials": self.initials,
            "color": self.color,
            "onlineStatus": self.online_status,
        }


@dataclass(frozen=True)
class Channel:
    """A named topic grouping messages."""

    id: int
    name: str
    description: Optional[str] = None
    is_direct_message: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "isDirectMessage": self.is_direct_message,
        }


@dataclass(frozen=True)
class Message:
    """A chat message. Immutable once created."""

    id: int
    content: str
    user_id: int
    channel_id: int
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "userId": self.user_id,
            "channelId": self.channel_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class MessageWithAuthor:
    """A message together with the user who wrote it."""

    message: Message
    user: User

    def to_dict(self) -> Dict[str, Any]:
        return {**self.message.to_dict(), "user": self.user.to_dict()}
