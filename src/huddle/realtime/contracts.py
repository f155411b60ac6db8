"""Collaborators the presence router depends on."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from huddle.schemas.message import MessageRead, SendMessageRequest


@dataclass(frozen=True)
class Identity:
    """Result of a successful token verification."""

    user_id: str
    claims: Mapping[str, Any] = field(default_factory=dict)


class ReadStatus(str, Enum):
    UPDATED = "updated"
    NOT_APPLICABLE = "not_applicable"


@dataclass(frozen=True)
class ReadResult:
    """Outcome of a mark-as-read.

    ``NOT_APPLICABLE`` covers unknown ids and readers who sent the message;
    ``conversation_id`` is only known when the message was found.
    """

    message_id: str
    read_at: datetime
    status: ReadStatus
    conversation_id: str | None = None


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Identity:
        """Return the identity behind ``token`` or raise InvalidTokenError."""
        ...


class MessageStore(Protocol):
    async def create_message(self, sender_id: str, payload: SendMessageRequest) -> MessageRead:
        """Persist a message. Raises PersistenceError on storage failure."""
        ...

    async def find_readable_message(
        self, message_id: str, exclude_sender_id: str
    ) -> MessageRead | None:
        ...

    async def mark_message_read(self, message_id: str) -> None:
        ...


class MembershipResolver(Protocol):
    async def members(self, group_id: str) -> list[str]:
        """Return the user ids belonging to a group conversation."""
        ...


class PresenceAudience(Protocol):
    async def audience(self, user_id: str) -> list[str]:
        """Return the users allowed to see ``user_id``'s presence changes."""
        ...
