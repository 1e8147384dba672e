"""
Chat backend aggregate.

This module wires the store, connection registry, broadcast bus, message
router and hub together. One ChatBackend is built at process start and
passed explicitly to the REST app and the WebSocket relay server.
"""

import random
from typing import Any, Dict, Optional

from .config import ChatConfig
from .core.hub import ChatHub
from .core.models import Channel, User
from .core.profile import derive_initials, pick_color
from .core.store import ChatStore
from .core.types import MessageType
from .infrastructure import setup_logging
from .websockets.core import ConnectionRegistry
from .websockets.server.process_messages import BroadcastBus, MessageRouter, build_frame

logger = setup_logging(
    component_name="backend",
    log_file="logs/chat_server.log",
)


class ChatBackend:
    """
    Owns all chat state and the components that act on it.

    Every mutation goes through ``hub`` so frames and REST writes are applied
    in a single total order.
    """

    def __init__(self, config: Optional[ChatConfig] = None, rng: Optional[random.Random] = None):
        """
        Initialize the chat backend.

        Args:
            config: Server configuration (defaults are used when omitted)
            rng: Random source for cosmetic defaults, for reproducible tests
        """
        self.config = config or ChatConfig()
        self.rng = rng
        self.store = ChatStore(seed_channels=self.config.seed_channels)
        self.registry = ConnectionRegistry()
        self.bus = BroadcastBus(self.registry, logger)
        self.router = MessageRouter(self.store, self.registry, self.bus, logger, rng=rng)
        self.hub = ChatHub()

    async def start(self) -> None:
        await self.hub.start()

    async def stop(self) -> None:
        await self.hub.stop()

    async def create_user(
        self,
        username: str,
        password: Optional[str] = None,
        initials: Optional[str] = None,
        color: Optional[str] = None,
    ) -> User:
        """
        Register a user and announce it to connected clients.

        Raises:
            DuplicateUsernameError: If the username is taken
            ValidationError: If the username is empty
        """
        return await self.hub.submit(self._create_user, username, password, initials, color)

    async def _create_user(
        self,
        username: str,
        password: Optional[str],
        initials: Optional[str],
        color: Optional[str],
    ) -> User:
        user = self.store.create_user(
            username,
            password=password,
            initials=initials or derive_initials(username),
            color=color or pick_color(self.rng),
        )
        logger.info(f"User registered: {user.username} ({user.id})")
        await self.bus.broadcast_all(
            build_frame(
                MessageType.USER_JOINED,
                userId=user.id,
                username=user.username,
                message=f"{user.username} joined the chat",
            )
        )
        return user

    async def create_channel(
        self,
        name: str,
        description: Optional[str] = None,
        is_direct_message: bool = False,
    ) -> Channel:
        """
        Create a channel and announce it to connected clients.

        Raises:
            DuplicateChannelNameError: If the name is taken
            ValidationError: If the name is empty
        """
        return await self.hub.submit(self._create_channel, name, description, is_direct_message)

    async def _create_channel(
        self, name: str, description: Optional[str], is_direct_message: bool
    ) -> Channel:
        channel = self.store.create_channel(name, description, is_direct_message)
        logger.info(f"Channel created: #{channel.name} ({channel.id})")
        await self.bus.broadcast_all(
            build_frame(
                MessageType.CHANNEL_JOINED,
                channelId=channel.id,
                message=f"Channel {channel.name} was created",
            )
        )
        return channel

    def get_status(self) -> Dict[str, Any]:
        """Get backend status for health reporting."""
        return {
            "hub_running": self.hub.is_running,
            "jobs_processed": self.hub.jobs_processed,
            "store": self.store.get_stats(),
            "registry": self.registry.get_stats(),
            "frames_sent": self.bus.frames_sent,
        }
