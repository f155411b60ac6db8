# src/huddle/models/message.py
"""Models describing chat messages."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from huddle.db.session import Base
from huddle.db.time import utcnow
from huddle.models.user import User


def _new_id() -> str:
    return str(uuid.uuid4())


class Message(Base):
    """A message posted to a conversation.

    Rows are append-only; `is_read` is the only column updated after insert.
    """

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    conversation_id: Mapped[str] = mapped_column(String(80), index=True, nullable=False)
    sender_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    message_type: Mapped[str] = mapped_column(String(16), nullable=False, default="text")

    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Playback length in seconds for audio and video messages.
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)

    reply_to_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("messages.id"), nullable=True
    )

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, index=True)

    sender: Mapped[User] = relationship("User", lazy="joined")
    reply_to: Mapped[Message | None] = relationship(
        "Message",
        remote_side="Message.id",
        lazy="joined",
        join_depth=1,
    )
