"""
Chat Server - real-time group messaging backend.

Clients open a WebSocket connection, announce an identity, join channels and
exchange messages that are fanned out to every connected participant. A REST
API exposes users, channels and message history.

Architecture:
- Core: domain models, in-memory store and the single-writer hub
- WebSockets: relay server, connection registry, frame routing and broadcast
- API: FastAPI application and uvicorn runner
- Config: environment-driven settings
- Infrastructure: logging and exceptions
"""

__version__ = "1.0.0"

from .backend import ChatBackend
from .config import ChatConfig, ChatConfigManager, config_manager
from .core import ChatHub, ChatStore, MessageType
from .infrastructure.exceptions import (
    ChatServerError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from .infrastructure.logging import get_logger, setup_logging
from .websockets.core import ConnectionRegistry
from .websockets.server import ChatRelayServer
from .websockets.server.process_messages import BroadcastBus, MessageRouter

__all__ = [
    "__version__",
    "ChatBackend",
    "ChatConfig",
    "ChatConfigManager",
    "config_manager",
    "ChatHub",
    "ChatStore",
    "MessageType",
    "ConnectionRegistry",
    "MessageRouter",
    "BroadcastBus",
    "ChatRelayServer",
    "setup_logging",
    "get_logger",
    "ChatServerError",
    "ConflictError",
    "NotFoundError",
    "ValidationError",
]
