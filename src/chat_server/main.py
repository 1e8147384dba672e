"""
Entry point running the WebSocket relay and the REST API in one process.

Both servers share a single ChatBackend on the same event loop so every
mutation, whether it arrives as a frame or an HTTP request, is applied by
the same hub.
"""

import asyncio
import sys
from typing import Optional

from .api.server import run_api_server
from .backend import ChatBackend
from .config import ChatConfig, config_manager
from .infrastructure import setup_logging
from .infrastructure.exceptions import ChatServerError
from .websockets.server import ChatRelayServer

logger = setup_logging(
    component_name="main",
    log_file="logs/chat_server.log",
)


async def run(config: Optional[ChatConfig] = None) -> None:
    """
    Run the chat server until the API server exits.

    Args:
        config: Server configuration. Loaded from the environment when omitted.

    Raises:
        ChatServerError: If the relay server cannot start
    """
    config = config or config_manager.get_config()
    setup_logging("chat_server", log_level=config.log_level)

    backend = ChatBackend(config)
    await backend.start()

    relay = ChatRelayServer(
        backend,
        host=config.host,
        port=config.ws_port,
        path=config.ws_path,
        ping_interval=config.ping_interval,
        ping_timeout=config.ping_timeout,
        max_message_size=config.max_message_size,
    )
    try:
        if not await relay.start():
            raise ChatServerError("Chat relay server failed to start")
        await run_api_server(backend, host=config.host, port=config.api_port)
    finally:
        await relay.stop()
        await backend.stop()
        logger.info("Chat server stopped")


def main() -> None:
    """Console entry point."""
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
