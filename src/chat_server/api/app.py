"""
FastAPI application exposing users, channels and message history.
"""

import re
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .. import __version__
from ..backend import ChatBackend
from ..core.models import Channel, MessageWithAuthor, User
from ..core.types import MAX_MESSAGE_LIMIT
from ..infrastructure import get_environment, get_logger
from ..infrastructure.exceptions import ChatServerError, InternalError

logger = get_logger("api")

CHANNEL_ID_PATTERN = re.compile(r"-?[0-9]+")


class CamelModel(BaseModel):
    """Base model using camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserCreateRequest(CamelModel):
    """Request model for registering a user."""
    username: str
    password: Optional[str] = None
    initials: Optional[str] = None
    color: Optional[str] = None


class ChannelCreateRequest(CamelModel):
    """Request model for creating a channel."""
    name: str
    description: Optional[str] = None
    is_direct_message: bool = False


class UserResponse(CamelModel):
    """Response model for user data. The credential is never exposed."""
    id: int
    username: str
    initials: Optional[str] = None
    color: Optional[str] = None
    online_status: bool = False


class ChannelResponse(CamelModel):
    """Response model for channel data."""
    id: int
    name: str
    description: Optional[str] = None
    is_direct_message: bool = False


class MessageResponse(CamelModel):
    """Response model for a message with its author."""
    id: int
    content: str
    user_id: int
    channel_id: int
    timestamp: datetime
    user: UserResponse


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        initials=user.initials,
        color=user.color,
        online_status=user.online_status,
    )


def _channel_response(channel: Channel) -> ChannelResponse:
    return ChannelResponse(
        id=channel.id,
        name=channel.name,
        description=channel.description,
        is_direct_message=channel.is_direct_message,
    )


def _message_response(entry: MessageWithAuthor) -> MessageResponse:
    message = entry.message
    return MessageResponse(
        id=message.id,
        content=message.content,
        user_id=message.user_id,
        channel_id=message.channel_id,
        timestamp=message.timestamp,
        user=_user_response(entry.user),
    )


def get_backend(request: Request) -> ChatBackend:
    """Dependency returning the backend attached to the application."""
    return request.app.state.backend


def register_exception_handlers(app: FastAPI) -> None:
    """Translate chat server exceptions into JSON error responses."""

    @app.exception_handler(ChatServerError)
    async def _chat_error_handler(_request: Request, exc: ChatServerError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"Request failed: {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc), "type": exc.__class__.__name__},
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "message": "Invalid request",
                "type": "ValidationError",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "type": InternalError.__name__},
        )


def create_app(backend: ChatBackend, manage_backend: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        backend: Chat backend shared with the WebSocket relay server
        manage_backend: Start and stop the backend with the application.
            Pass False when the caller owns the backend lifecycle.

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if manage_backend:
            await backend.start()
        try:
            yield
        finally:
            if manage_backend:
                await backend.stop()

    app = FastAPI(
        title="Chat Server API",
        description="REST API for users, channels and message history",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.backend = backend

    app.add_middleware(
        CORSMiddleware,
        allow_origins=backend.config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Chat Server API", "version": __version__}

    @app.get("/health")
    async def health_check(chat: ChatBackend = Depends(get_backend)):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": get_environment().value,
            **chat.get_status(),
        }

    @app.get("/users", response_model=List[UserResponse])
    async def list_users(chat: ChatBackend = Depends(get_backend)):
        """List all users in registration order."""
        return [_user_response(user) for user in chat.store.list_users()]

    @app.post("/users", response_model=UserResponse, status_code=201)
    async def create_user(
        request: UserCreateRequest,
        chat: ChatBackend = Depends(get_backend),
    ):
        """
        Register a user.

        Missing initials are derived from the username and a missing colour
        is picked from the palette. Responds 400 if the username is taken.
        """
        user = await chat.create_user(
            request.username,
            password=request.password,
            initials=request.initials,
            color=request.color,
        )
        return _user_response(user)

    @app.get("/channels", response_model=List[ChannelResponse])
    async def list_channels(chat: ChatBackend = Depends(get_backend)):
        """List all channels."""
        return [_channel_response(channel) for channel in chat.store.list_channels()]

    @app.post("/channels", response_model=ChannelResponse, status_code=201)
    async def create_channel(
        request: ChannelCreateRequest,
        chat: ChatBackend = Depends(get_backend),
    ):
        """Create a channel. Responds 400 if the name is taken."""
        channel = await chat.create_channel(
            request.name,
            description=request.description,
            is_direct_message=request.is_direct_message,
        )
        return _channel_response(channel)

    @app.get("/channels/{channel_id}/messages", response_model=List[MessageResponse])
    async def list_channel_messages(
        channel_id: str,
        limit: Optional[int] = Query(None, ge=1, le=MAX_MESSAGE_LIMIT),
        chat: ChatBackend = Depends(get_backend),
    ):
        """
        Get the most recent messages of a channel, oldest first.

        Unknown channels yield an empty list.
        """
        if not CHANNEL_ID_PATTERN.fullmatch(channel_id):
            return JSONResponse(status_code=400, content={"message": "Invalid channel ID"})
        parsed_id = int(channel_id)

        history = chat.store.list_messages_by_channel(
            parsed_id, limit or chat.config.message_history_limit
        )
        return [_message_response(entry) for entry in history]

    return app
