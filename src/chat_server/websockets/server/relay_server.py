"""
WebSocket relay server for group chat.

One task per connection reads frames and hands them to the chat hub, which
processes frames from all connections one at a time in arrival order.
"""

import asyncio
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Dict, Optional
from urllib.parse import urlsplit

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request, Response

from chat_server.infrastructure import setup_logging
from chat_server.infrastructure.exceptions import HubClosedError

from .process_messages import ConnectionUtils

if TYPE_CHECKING:
    from chat_server.backend import ChatBackend

logger = setup_logging(
    component_name="websocket_relay",
    log_file="logs/chat_server.log",
)


class ChatRelayServer:
    """WebSocket server that feeds client frames into the chat backend."""

    def __init__(
        self,
        backend: "ChatBackend",
        host: str = "localhost",
        port: int = 8765,
        path: str = "/ws",
        ping_interval: int = 30,
        ping_timeout: int = 20,
        max_connections: int = 1000,
        max_message_size: int = 2**16,
    ) -> None:
        """Initialize the chat relay server."""
        self.backend = backend
        self.host = host
        self.port = port
        self.path = path
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.max_message_size = max_message_size
        self.server: Optional[Server] = None

        self._connection_semaphore = asyncio.Semaphore(max_connections)
        self._health_task: Optional[asyncio.Task] = None
        self.total_connections = 0

    async def start(self) -> bool:
        """Start the chat relay server."""
        try:
            self.server = await serve(
                self._handle_connection,
                self.host,
                self.port,
                process_request=self._check_path,
                ping_interval=None,  # Manual ping handling
                max_size=self.max_message_size,
            )
            logger.info(
                f"Chat relay server started on ws://{self.host}:{self.port}{self.path}"
            )
            if self.ping_interval > 0:
                self._health_task = asyncio.create_task(
                    ConnectionUtils.health_monitor(
                        self.backend.registry,
                        self.ping_interval,
                        logger,
                        ping_timeout=self.ping_timeout,
                    )
                )
            return True
        except Exception as e:
            logger.error(f"Failed to start chat relay server: {e}", exc_info=True)
            return False

    async def stop(self) -> None:
        """Stop the chat relay server."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
            logger.info("Chat relay server stopped")

        if self._health_task:
            self._health_task.cancel()
            try:
                await self._health_task
            except asyncio.CancelledError:
                pass
            self._health_task = None

    def _check_path(
        self, connection: ServerConnection, request: Request
    ) -> Optional[Response]:
        """Reject handshakes for any path other than the chat endpoint."""
        if urlsplit(request.path).path != self.path:
            return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")
        return None

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        """Handle one client connection until it closes."""
        client_address = websocket.remote_address
        logger.info(f"New connection from {client_address}")

        async with self._connection_semaphore:
            self.total_connections += 1
            try:
                async for message in websocket:
                    try:
                        await self.backend.hub.submit(
                            self.backend.router.process_frame, websocket, message
                        )
                    except HubClosedError:
                        raise
                    except Exception as e:
                        logger.error(
                            f"Error processing frame from {client_address}: {e}",
                            exc_info=True,
                        )
            except ConnectionClosed:
                logger.info(f"Connection closed: {client_address}")
            except HubClosedError:
                logger.warning(f"Hub stopped while serving {client_address}")
            except Exception as e:
                logger.error(
                    f"Error handling connection from {client_address}: {e}",
                    exc_info=True,
                )
            finally:
                await ConnectionUtils.cleanup_connection(
                    self.backend.hub, self.backend.router, websocket, logger
                )

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics."""
        return {
            "server_running": self.server is not None,
            "total_connections": self.total_connections,
            "registry_stats": self.backend.registry.get_stats(),
        }
