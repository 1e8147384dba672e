"""
API server runner for the chat server.
"""

import uvicorn

from ..backend import ChatBackend
from ..infrastructure import get_logger
from .app import create_app

logger = get_logger("api_server")


def build_api_server(
    backend: ChatBackend,
    host: str = "0.0.0.0",
    port: int = 8000,
    manage_backend: bool = False,
) -> uvicorn.Server:
    """
    Build a uvicorn server for the REST API.

    Args:
        backend: Chat backend shared with the relay server
        host: Host to bind to
        port: Port to bind to
        manage_backend: Let the application start and stop the backend

    Returns:
        Configured uvicorn server, not yet serving
    """
    app = create_app(backend, manage_backend=manage_backend)
    config = uvicorn.Config(
        app=app, host=host, port=port, log_level="info", log_config=None
    )
    return uvicorn.Server(config)


async def run_api_server(
    backend: ChatBackend,
    host: str = "0.0.0.0",
    port: int = 8000,
    manage_backend: bool = False,
):
    """
    Run the REST API until it is asked to exit.

    Args:
        backend: Chat backend shared with the relay server
        host: Host to bind to
        port: Port to bind to
        manage_backend: Let the application start and stop the backend
    """
    server = build_api_server(backend, host, port, manage_backend)
    logger.info(f"Starting chat API server on {host}:{port}")
    await server.serve()
