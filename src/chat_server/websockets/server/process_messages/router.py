"""
Inbound frame routing for the chat relay server.

This module validates frames by their declared type and dispatches them to
the matching handler. A connection is Unidentified until it sends a valid
CONNECT frame, Identified while bound in the registry, and Closed once its
close path has run. A bad frame never closes the connection.
"""

import asyncio
import json
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from pydantic import ValidationError as PayloadError
from websockets.asyncio.server import ServerConnection

from chat_server.core.models import User
from chat_server.core.profile import derive_initials, pick_color
from chat_server.core.store import ChatStore
from chat_server.core.types import (
    ERR_CREATE_USER,
    ERR_INVALID_CONNECT,
    ERR_INVALID_FORMAT,
    ERR_PROCESSING,
    WS_CLOSE_SESSION_REPLACED,
    MessageType,
)
from chat_server.infrastructure.exceptions import ChatServerError, NotFoundError

from ...core import ConnectionRegistry
from .broadcast import BroadcastBus
from .frames import (
    ChannelActivityPayload,
    ChatMessagePayload,
    ConnectPayload,
    build_frame,
)

Handler = Callable[[ServerConnection, Dict[str, Any]], Awaitable[None]]


class MessageRouter:
    """Validates inbound frames and drives presence, chat and typing events."""

    def __init__(
        self,
        store: ChatStore,
        registry: ConnectionRegistry,
        bus: BroadcastBus,
        logger: logging.Logger,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.bus = bus
        self.logger = logger
        self.rng = rng
        self._closing: Set[asyncio.Task] = set()

        self._handlers: Dict[MessageType, Handler] = {
            MessageType.CONNECT: self._handle_connect,
            MessageType.CHAT_MESSAGE: self._handle_chat_message,
            MessageType.CHANNEL_JOINED: self._handle_channel_joined,
            MessageType.TYPING: self._handle_typing,
        }

    async def process_frame(
        self, websocket: ServerConnection, message: Union[str, bytes]
    ) -> None:
        """Process one inbound frame from a connection."""
        if not isinstance(message, str):
            await self._send_error(websocket, ERR_INVALID_FORMAT)
            return

        try:
            data = json.loads(message)
        except (ValueError, RecursionError) as e:
            # Deeply nested input exhausts the decoder's recursion limit
            self.logger.warning(f"Failed to parse frame: {e}")
            await self._send_error(websocket, ERR_INVALID_FORMAT)
            return

        if not isinstance(data, dict):
            await self._send_error(websocket, ERR_INVALID_FORMAT)
            return

        try:
            message_type = MessageType(data.get("type"))
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid frame type: {data.get('type')!r}")
            await self._send_error(websocket, ERR_INVALID_FORMAT)
            return

        handler = self._handlers.get(message_type)
        if handler is None:
            self.logger.warning(f"Unsupported frame type: {message_type.value}")
            await self._send_error(
                websocket, f"Unsupported message type: {message_type.value}"
            )
            return

        if message_type is not MessageType.CONNECT and not self.registry.is_bound(websocket):
            self.logger.warning(
                f"Dropping {message_type.value} from unidentified connection"
            )
            return

        payload = data.get("payload")
        if not isinstance(payload, dict):
            payload = {}

        try:
            await handler(websocket, payload)
        except Exception as e:
            self.logger.error(
                f"Error handling {message_type.value} frame: {e}", exc_info=True
            )
            await self._send_error(websocket, ERR_PROCESSING)

    async def handle_close(self, websocket: ServerConnection) -> Optional[int]:
        """
        Run the close path for a connection.

        Returns:
            The user id that was bound to the connection, if any
        """
        user_id = self.registry.unbind(websocket)
        if user_id is None:
            return None
        await self._announce_departure(user_id)
        return user_id

    async def _handle_connect(
        self, websocket: ServerConnection, payload: Dict[str, Any]
    ) -> None:
        """Handle an identity claim."""
        try:
            claim = ConnectPayload.model_validate(payload)
        except PayloadError:
            await self._send_error(websocket, ERR_INVALID_CONNECT)
            return

        user = self.store.get_user(claim.user_id) or self.store.get_user_by_username(
            claim.username
        )
        if user is None:
            try:
                user = self.store.create_user(
                    claim.username,
                    initials=derive_initials(claim.username),
                    color=pick_color(self.rng),
                )
            except ChatServerError as e:
                self.logger.warning(f"Could not create user {claim.username!r}: {e}")
                await self._send_error(websocket, ERR_CREATE_USER)
                return

        user = self.store.set_online_status(user.id, True) or user

        # A connection switching identity releases the old one first
        current = self.registry.get_user_id(websocket)
        if current is not None and current != user.id:
            self.registry.unbind(websocket)
            await self._announce_departure(current)

        previous = self.registry.bind(user.id, websocket, user.username)
        if previous is not None:
            self._close_superseded(previous, user)

        self.logger.info(f"User connected: {user.username} ({user.id})")

        await self.bus.send_to(
            websocket,
            build_frame(
                MessageType.CONNECT,
                message="Connected successfully",
                userId=user.id,
            ),
        )
        await self.bus.broadcast_all(
            build_frame(
                MessageType.USER_JOINED,
                userId=user.id,
                username=user.username,
                message=f"{user.username} is now online",
            ),
            exclude_user_id=user.id,
        )

    async def _handle_chat_message(
        self, websocket: ServerConnection, payload: Dict[str, Any]
    ) -> None:
        """Persist a chat message and echo it to every bound connection."""
        try:
            data = ChatMessagePayload.model_validate(payload)
        except PayloadError:
            self.logger.debug("Dropping incomplete CHAT_MESSAGE frame")
            return

        try:
            message = self.store.create_message(
                data.content, data.user_id, data.channel_id
            )
        except NotFoundError as e:
            self.logger.debug(f"Dropping CHAT_MESSAGE: {e}")
            return

        user = self.store.get_user(message.user_id)
        await self.bus.broadcast_all(
            build_frame(
                MessageType.CHAT_MESSAGE,
                messageId=message.id,
                content=message.content,
                message=message.content,
                userId=user.id,
                username=user.username,
                channelId=message.channel_id,
                timestamp=message.timestamp.isoformat(),
            )
        )

    async def _handle_channel_joined(
        self, websocket: ServerConnection, payload: Dict[str, Any]
    ) -> None:
        """Announce that a user joined a channel."""
        resolved = self._resolve_activity(payload, MessageType.CHANNEL_JOINED)
        if resolved is None:
            return
        user, channel = resolved

        await self.bus.broadcast_all(
            build_frame(
                MessageType.CHANNEL_JOINED,
                channelId=channel.id,
                userId=user.id,
                username=user.username,
                message=f"{user.username} joined #{channel.name}",
            )
        )

    async def _handle_typing(
        self, websocket: ServerConnection, payload: Dict[str, Any]
    ) -> None:
        resolved = self._resolve_activity(payload, MessageType.TYPING)
        if resolved is None:
            return
        user, channel = resolved

        await self.bus.broadcast_all(
            build_frame(
                MessageType.TYPING,
                channelId=channel.id,
                userId=user.id,
                username=user.username,
            )
        )

    def _resolve_activity(self, payload: Dict[str, Any], message_type: MessageType):
        try:
            data = ChannelActivityPayload.model_validate(payload)
        except PayloadError:
            self.logger.debug(f"Dropping incomplete {message_type.value} frame")
            return None

        user = self.store.get_user(data.user_id)
        channel = self.store.get_channel(data.channel_id)
        if user is None or channel is None:
            self.logger.debug(f"Dropping {message_type.value}: unknown user or channel")
            return None
        return user, channel

    async def _announce_departure(self, user_id: int) -> None:
        user = self.store.set_online_status(user_id, False)
        if user is None:
            return
        self.logger.info(f"User disconnected: {user.username} ({user.id})")
        await self.bus.broadcast_all(
            build_frame(
                MessageType.USER_LEFT,
                userId=user.id,
                username=user.username,
                message=f"{user.username} left the chat",
            )
        )

    def _close_superseded(self, websocket: ServerConnection, user: User) -> None:
        """Close a connection replaced by a newer session, without waiting."""
        self.logger.info(f"Replacing previous session of {user.username} ({user.id})")
        task = asyncio.create_task(self._close_quietly(websocket))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_quietly(self, websocket: ServerConnection) -> None:
        try:
            await websocket.close(code=WS_CLOSE_SESSION_REPLACED, reason="Session replaced")
        except Exception as e:
            self.logger.debug(f"Error closing superseded connection: {e}")

    async def _send_error(self, websocket: ServerConnection, message: str) -> None:
        """Send an ERROR frame to the originating connection only."""
        await self.bus.send_to(websocket, build_frame(MessageType.ERROR, message=message))
