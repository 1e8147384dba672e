"""
In-memory chat store.

The store owns the user, channel and message tables together with their id
counters. It never blocks and is only mutated from the hub worker, so it
needs no locking of its own.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from ..infrastructure import setup_logging
from ..infrastructure.exceptions import (
    DuplicateChannelNameError,
    DuplicateUsernameError,
    UnknownChannelError,
    UnknownUserError,
    ValidationError,
)
from .models import Channel, Message, MessageWithAuthor, User
from .types import DEFAULT_MESSAGE_LIMIT, DEFAULT_PASSWORD, SEED_CHANNEL_DESCRIPTIONS

logger = setup_logging(
    component_name="store",
    log_file="logs/chat_server.log",
)


class ChatStore:
    """Authoritative in-memory state for users, channels and messages."""

    def __init__(self, seed_channels: Optional[Iterable[str]] = None):
        """
        Initialize the store and create the seed channels.

        Args:
            seed_channels: Channel names created at start. Defaults to
                general, random and support.
        """
        self._users: Dict[int, User] = {}
        self._channels: Dict[int, Channel] = {}
        self._messages: Dict[int, Message] = {}

        self._next_user_id = 1
        self._next_channel_id = 1
        self._next_message_id = 1
        self._last_timestamp: Optional[datetime] = None

        if seed_channels is None:
            seed_channels = SEED_CHANNEL_DESCRIPTIONS.keys()
        for name in seed_channels:
            self.create_channel(name, SEED_CHANNEL_DESCRIPTIONS.get(name))

    # User operations

    def create_user(
        self,
        username: str,
        password: Optional[str] = None,
        initials: Optional[str] = None,
        color: Optional[str] = None,
    ) -> User:
        """
        Create a user.

        Raises:
            ValidationError: If the username is empty
            DuplicateUsernameError: If the username is already registered
        """
        if not isinstance(username, str) or not username.strip():
            raise ValidationError("Username is required")
        if self.get_user_by_username(username) is not None:
            raise DuplicateUsernameError("Username already taken")

        user = User(
            id=self._next_user_id,
            username=username,
            password=password or DEFAULT_PASSWORD,
            initials=initials or None,
            color=color or None,
            online_status=False,
        )
        self._next_user_id += 1
        self._users[user.id] = user
        logger.debug(f"Created user {user.id} ({user.username})")
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    def set_online_status(self, user_id: int, is_online: bool) -> Optional[User]:
        """Flip a user's online flag. Returns None for unknown ids."""
        user = self._users.get(user_id)
        if user is None:
            return None
        updated = replace(user, online_status=is_online)
        self._users[user_id] = updated
        return updated

    def list_users(self) -> List[User]:
        return list(self._users.values())

    # Channel operations

    def create_channel(
        self,
        name: str,
        description: Optional[str] = None,
        is_direct_message: bool = False,
    ) -> Channel:
        """
        Create a channel.

        Raises:
            ValidationError: If the name is empty
            DuplicateChannelNameError: If the name is already in use
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Channel name is required")
        if self.get_channel_by_name(name) is not None:
            raise DuplicateChannelNameError(f"Channel '{name}' already exists")

        channel = Channel(
            id=self._next_channel_id,
            name=name,
            description=description or None,
            is_direct_message=bool(is_direct_message),
        )
        self._next_channel_id += 1
        self._channels[channel.id] = channel
        logger.debug(f"Created channel {channel.id} (#{channel.name})")
        return channel

    def get_channel(self, channel_id: int) -> Optional[Channel]:
        return self._channels.get(channel_id)

    def get_channel_by_name(self, name: str) -> Optional[Channel]:
        for channel in self._channels.values():
            if channel.name == name:
                return channel
        return None

    def list_channels(self) -> List[Channel]:
        return list(self._channels.values())

    # Message operations

    def create_message(self, content: str, user_id: int, channel_id: int) -> Message:
        """
        Persist a message.

        Raises:
            ValidationError: If the content is empty
            UnknownUserError: If the author does not exist
            UnknownChannelError: If the channel does not exist
        """
        if not isinstance(content, str) or not content:
            raise ValidationError("Message content is required")
        if user_id not in self._users:
            raise UnknownUserError(f"User {user_id} not found")
        if channel_id not in self._channels:
            raise UnknownChannelError(f"Channel {channel_id} not found")

        message = Message(
            id=self._next_message_id,
            content=content,
            user_id=user_id,
            channel_id=channel_id,
            timestamp=self._next_timestamp(),
        )
        self._next_message_id += 1
        self._messages[message.id] = message
        return message

    def _next_timestamp(self) -> datetime:
        # Never hand out a timestamp earlier than the previous one
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    def get_message(self, message_id: int) -> Optional[Message]:
        return self._messages.get(message_id)

    def list_messages_by_channel(
        self, channel_id: int, limit: int = DEFAULT_MESSAGE_LIMIT
    ) -> List[MessageWithAuthor]:
        """
        Get the most recent messages of a channel, oldest first.

        Args:
            channel_id: Channel to read
            limit: Maximum number of messages returned

        Returns:
            Messages with their authors, ascending by timestamp
        """
        if limit <= 0:
            return []

        history = sorted(
            (m for m in self._messages.values() if m.channel_id == channel_id),
            key=lambda m: (m.timestamp, m.id),
        )[-limit:]

        result = []
        for message in history:
            user = self._users.get(message.user_id)
            if user is not None:
                result.append(MessageWithAuthor(message=message, user=user))
        return result

    def get_stats(self) -> Dict[str, int]:
        """Get table sizes."""
        return {
            "users": len(self._users),
            "channels": len(self._channels),
            "messages": len(self._messages),
        }
