"""WebSocket envelope and event payload models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .message import CamelModel, SendMessageRequest


class WsInbound(BaseModel):
    """Client -> server frame."""

    event: str  # message:send | message:read | typing:start | typing:stop | ping
    data: dict[str, Any] = Field(default_factory=dict)


class WsOutbound(BaseModel):
    """Server -> client frame."""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)


class SendMessagePayload(SendMessageRequest):
    """Body of a `message:send` frame."""


class MarkReadPayload(CamelModel):
    """Body of a `message:read` frame."""

    message_id: str = Field(..., min_length=1)


class ConversationRef(CamelModel):
    """Body of `typing:start` and `typing:stop` frames."""

    conversation_id: str = Field(..., min_length=1)
