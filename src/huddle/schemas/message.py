"""Message-related Pydantic schemas.

Field names are snake_case in Python and camelCase on the wire, matching what
the web client sends and expects.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageType(str, Enum):
    """Kinds of message a client may send."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    LOCATION = "location"


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserSummary(CamelModel):
    """Public sender details embedded in message payloads."""

    id: str
    username: str
    nickname: str
    avatar_url: str | None = None


class ReplySummary(CamelModel):
    """Short view of the message being replied to."""

    id: str
    content: str | None = None
    message_type: MessageType
    sender_nickname: str | None = None


class SendMessageRequest(CamelModel):
    """Schema for creating a new message."""

    conversation_id: str = Field(
        ...,
        min_length=1,
        max_length=80,
        description="'<userA>#<userB>' for direct chats or a bare group id",
    )
    message_type: MessageType = Field(MessageType.TEXT)
    content: str | None = Field(None, max_length=10_000)
    media_url: str | None = Field(None, description="Reference to uploaded media")
    file_size: int | None = Field(None, ge=0)
    duration: int | None = Field(None, ge=0)
    reply_to_id: str | None = None


class MessageRead(CamelModel):
    """Persisted message as returned by the store and the API."""

    id: str
    conversation_id: str
    sender_id: str
    sender: UserSummary | None = None
    message_type: MessageType
    content: str | None = None
    media_url: str | None = None
    file_size: int | None = None
    duration: int | None = None
    reply_to: ReplySummary | None = None
    is_read: bool = False
    created_at: datetime


class ReadReceipt(CamelModel):
    """Outcome of a mark-as-read request."""

    message_id: str
    read_at: datetime
    status: Literal["updated", "not_applicable"]


class LastMessage(CamelModel):
    """Most recent message of a conversation, for list views."""

    content: str | None = None
    message_type: MessageType
    timestamp: datetime
    sender_id: str
    sender_nickname: str | None = None


class ConversationSummary(CamelModel):
    """Entry in the caller's conversation list."""

    conversation_id: str
    conversation_type: Literal["private", "group"]
    participants: list[UserSummary]
    last_message: LastMessage
    unread_count: int = 0
