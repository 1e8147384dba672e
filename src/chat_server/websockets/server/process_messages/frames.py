"""
Frame payload models and outbound frame construction.

Inbound payloads are validated with pydantic; field names follow the
camelCase wire format through aliases.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from chat_server.core.types import MessageType


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ConnectPayload(_Payload):
    """Identity claim sent by a client right after connecting."""

    user_id: StrictInt = Field(alias="userId", gt=0)
    username: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("username cannot be blank")
        return value


class ChatMessagePayload(_Payload):
    """A chat message to persist and fan out."""

    content: str = Field(min_length=1)
    user_id: StrictInt = Field(alias="userId", gt=0)
    channel_id: StrictInt = Field(alias="channelId", gt=0)


class ChannelActivityPayload(_Payload):
    """Channel join and typing notifications."""

    channel_id: StrictInt = Field(alias="channelId", gt=0)
    user_id: StrictInt = Field(alias="userId", gt=0)


def build_frame(message_type: MessageType, **payload: Any) -> Dict[str, Any]:
    """Build an outbound ``{type, payload}`` frame."""
    return {"type": message_type.value, "payload": payload}
