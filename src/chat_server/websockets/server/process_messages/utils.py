"""
Utility functions for connection management.

This module provides the close path and keepalive helpers used by the chat
relay server.
"""

import asyncio
import logging
from typing import Optional

from websockets.asyncio.server import ServerConnection

from chat_server.core.hub import ChatHub
from chat_server.core.types import WS_CLOSE_PING_TIMEOUT
from chat_server.infrastructure.exceptions import HubClosedError

from ...core import ConnectionRegistry
from .router import MessageRouter


class ConnectionUtils:
    """Utility functions for connection management."""

    @staticmethod
    async def cleanup_connection(
        hub: ChatHub,
        router: MessageRouter,
        websocket: ServerConnection,
        logger: logging.Logger,
    ) -> None:
        """Run the close path for a connection through the hub."""
        try:
            user_id = await asyncio.shield(hub.submit(router.handle_close, websocket))
        except HubClosedError:
            # Shutdown in progress; nobody is left to notify
            router.registry.unbind(websocket)
            return
        except Exception as e:
            logger.error(f"Error cleaning up connection: {e}", exc_info=True)
            return
        if user_id is not None:
            logger.info(f"Client disconnected: user {user_id}")

    @staticmethod
    async def ping_connection(
        user_id: int,
        websocket: ServerConnection,
        ping_timeout: float,
        logger: logging.Logger,
    ) -> bool:
        """
        Ping one connection and close it if no pong arrives in time.

        Returns:
            True if the peer answered, False otherwise
        """
        try:
            pong_waiter = await websocket.ping()
            await asyncio.wait_for(pong_waiter, ping_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"No pong from user {user_id} within {ping_timeout}s, closing")
            try:
                await websocket.close(code=WS_CLOSE_PING_TIMEOUT, reason="Keepalive ping timeout")
            except Exception as e:
                logger.debug(f"Error closing unresponsive connection: {e}")
            return False
        except Exception as e:
            # The connection task notices the close and cleans up
            logger.debug(f"Ping to user {user_id} failed: {e}")
            return False

    @staticmethod
    async def health_monitor(
        registry: ConnectionRegistry,
        ping_interval: int,
        logger: logging.Logger,
        ping_timeout: Optional[float] = None,
    ) -> None:
        """
        Ping bound connections every ``ping_interval`` seconds.

        A connection that does not answer within ``ping_timeout`` (defaults
        to ``ping_interval``) is closed, which runs its close path.
        """
        timeout = ping_timeout or ping_interval
        while True:
            await asyncio.sleep(ping_interval)

            await asyncio.gather(
                *(
                    ConnectionUtils.ping_connection(user_id, websocket, timeout, logger)
                    for user_id, websocket in registry.all()
                )
            )
