"""
Custom exceptions for the chat server.

This module defines all custom exceptions used throughout the system,
providing clear error categorization and handling. Each category carries
the HTTP status it maps to when raised from a REST handler.
"""


class ChatServerError(Exception):
    """Base exception for all chat server related errors."""

    status_code: int = 500


class ConfigurationError(ChatServerError):
    """Raised when there are configuration-related errors."""

    pass


class ValidationError(ChatServerError):
    """Raised when a frame or request body is malformed or incomplete."""

    status_code = 400


class ConflictError(ChatServerError):
    """Raised when a unique name is already taken."""

    status_code = 400


class DuplicateUsernameError(ConflictError):
    """Raised when a username is already registered."""

    pass


class DuplicateChannelNameError(ConflictError):
    """Raised when a channel name is already in use."""

    pass


class NotFoundError(ChatServerError):
    """Raised when a referenced user, channel or message does not exist."""

    status_code = 404


class UnknownUserError(NotFoundError):
    """Raised when a user id does not resolve."""

    pass


class UnknownChannelError(NotFoundError):
    """Raised when a channel id does not resolve."""

    pass


class InternalError(ChatServerError):
    """Raised on unexpected failures in the store or serialization."""

    pass


class HubClosedError(ChatServerError):
    """Raised when a job is submitted to a hub that is not running."""

    status_code = 503
