"""
Broadcast fan-out for the chat relay server.

Delivery is best effort: a frame is written only to connections that are
open at send time, and nothing is queued or retried.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ...core import ConnectionRegistry


class BroadcastBus:
    """Sends frames to one connection or to every bound connection."""

    def __init__(self, registry: ConnectionRegistry, logger: logging.Logger) -> None:
        self.registry = registry
        self.logger = logger
        self.frames_sent = 0

    async def send_to(self, websocket: ServerConnection, frame: Dict[str, Any]) -> bool:
        """
        Send a frame to a single connection if it is open.

        Returns:
            True if the frame was written, False if it was dropped
        """
        return await self._write(websocket, json.dumps(frame))

    async def broadcast_all(
        self, frame: Dict[str, Any], exclude_user_id: Optional[int] = None
    ) -> int:
        """
        Send a frame to every bound connection.

        Args:
            frame: Frame to send
            exclude_user_id: Optional user id that should not receive it

        Returns:
            Number of connections the frame was written to
        """
        targets = [
            (user_id, ws)
            for user_id, ws in self.registry.all()
            if exclude_user_id is None or user_id != exclude_user_id
        ]
        if not targets:
            return 0

        text = json.dumps(frame)
        results = await asyncio.gather(*(self._write(ws, text) for _, ws in targets))
        delivered = sum(1 for ok in results if ok)

        self.logger.debug(
            f"Broadcast {frame.get('type')} to {delivered}/{len(targets)} connections"
        )
        return delivered

    async def _write(self, websocket: ServerConnection, text: str) -> bool:
        if websocket.state is not State.OPEN:
            self.logger.debug("Dropping frame for connection that is not open")
            return False
        try:
            await websocket.send(text)
        except ConnectionClosed:
            self.logger.debug("Connection closed while sending frame")
            return False
        except Exception as e:
            self.logger.error(f"Error sending frame: {e}")
            return False
        self.frames_sent += 1
        return True
