"""
Pytest configuration and shared fixtures for the chat server test suite.
"""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from websockets.protocol import State

from chat_server.backend import ChatBackend
from chat_server.config import ChatConfig
from chat_server.core.store import ChatStore


@pytest.fixture
def mock_config():
    """Create a configuration for testing."""
    return ChatConfig(
        host="127.0.0.1",
        api_port=8000,
        ws_port=8765,
        log_level="DEBUG",
        ping_interval=0,
    )


@pytest.fixture
def store():
    """Create a store with the default seed channels."""
    return ChatStore()


@pytest.fixture
def backend(mock_config):
    """Create a backend with a seeded random source."""
    return ChatBackend(mock_config, rng=random.Random(42))


@pytest_asyncio.fixture
async def running_backend(backend):
    """Backend with its hub started."""
    await backend.start()
    yield backend
    await backend.stop()


@pytest.fixture
def make_websocket():
    """Factory for mock WebSocket connections."""
    counter = {"port": 50000}

    def _make(state: State = State.OPEN) -> MagicMock:
        counter["port"] += 1
        websocket = MagicMock()
        websocket.remote_address = ("127.0.0.1", counter["port"])
        websocket.state = state
        websocket.send = AsyncMock()
        websocket.close = AsyncMock()
        websocket.ping = AsyncMock()
        return websocket

    return _make


@pytest.fixture
def mock_websocket(make_websocket):
    """Create a single open mock WebSocket connection."""
    return make_websocket()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
