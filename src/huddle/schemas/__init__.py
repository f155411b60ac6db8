"""Pydantic schemas for API and realtime payloads."""

from .message import (
    ConversationSummary,
    LastMessage,
    MessageRead,
    MessageType,
    ReadReceipt,
    ReplySummary,
    SendMessageRequest,
    UserSummary,
)
from .realtime import (
    ConversationRef,
    MarkReadPayload,
    SendMessagePayload,
    WsInbound,
    WsOutbound,
)

__all__ = [
    "ConversationRef",
    "ConversationSummary",
    "LastMessage",
    "MarkReadPayload",
    "MessageRead",
    "MessageType",
    "ReadReceipt",
    "ReplySummary",
    "SendMessagePayload",
    "SendMessageRequest",
    "UserSummary",
    "WsInbound",
    "WsOutbound",
]
