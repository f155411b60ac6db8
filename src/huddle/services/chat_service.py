"""CRUD-style helpers for chat messages and conversations."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import desc
from sqlalchemy.orm import Session

from huddle.models import GroupMember, Message, User
from huddle.realtime.conversation import DirectConversation, parse_conversation_id
from huddle.realtime.errors import InvalidConversationId
from huddle.schemas.message import (
    ConversationSummary,
    LastMessage,
    MessageRead,
    ReplySummary,
    SendMessageRequest,
    UserSummary,
)

__all__ = [
    "create_message",
    "find_readable_message",
    "get_conversations",
    "get_message",
    "get_messages",
    "is_group_member",
    "mark_message_read",
    "to_message_read",
]

DEFAULT_PAGE_SIZE = 50


def to_message_read(message: Message) -> MessageRead:
    """Convert an ORM message (with its sender and reply loaded) to the API schema."""
    reply = message.reply_to
    return MessageRead(
        id=message.id,
        conversation_id=message.conversation_id,
        sender_id=message.sender_id,
        sender=UserSummary.model_validate(message.sender) if message.sender else None,
        message_type=message.message_type,
        content=message.content,
        media_url=message.media_url,
        file_size=message.file_size,
        duration=message.duration,
        reply_to=(
            ReplySummary(
                id=reply.id,
                content=reply.content,
                message_type=reply.message_type,
                sender_nickname=reply.sender.nickname if reply.sender else None,
            )
            if reply is not None
            else None
        ),
        is_read=message.is_read,
        created_at=message.created_at,
    )


def create_message(db: Session, sender_id: str, data: SendMessageRequest) -> Message:
    """Persist a new message and return it with relationships loaded."""
    message = Message(
        conversation_id=data.conversation_id,
        sender_id=sender_id,
        message_type=data.message_type.value,
        content=data.content,
        media_url=data.media_url,
        file_size=data.file_size,
        duration=data.duration,
        reply_to_id=data.reply_to_id,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def get_message(db: Session, message_id: str) -> Message | None:
    return db.query(Message).filter(Message.id == message_id).first()


def get_messages(
    db: Session,
    conversation_id: str,
    *,
    limit: int = DEFAULT_PAGE_SIZE,
    before: datetime | None = None,
) -> list[Message]:
    """Return the newest ``limit`` messages before ``before``, oldest first."""
    query = db.query(Message).filter(
        Message.conversation_id == conversation_id,
        Message.is_deleted.is_(False),
    )
    if before is not None:
        query = query.filter(Message.created_at < before)

    messages = query.order_by(desc(Message.created_at)).limit(limit).all()
    messages.reverse()
    return messages


def is_group_member(db: Session, group_id: str, user_id: str) -> bool:
    return (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        .first()
        is not None
    )


def find_readable_message(db: Session, message_id: str, exclude_sender_id: str) -> Message | None:
    """Return the message if ``exclude_sender_id`` is allowed to mark it read."""
    return (
        db.query(Message)
        .filter(
            Message.id == message_id,
            Message.sender_id != exclude_sender_id,
        )
        .first()
    )


def mark_message_read(db: Session, message_id: str) -> None:
    db.query(Message).filter(Message.id == message_id).update({"is_read": True})
    db.commit()


def get_conversations(db: Session, user_id: str) -> list[ConversationSummary]:
    """List the user's direct conversations, most recently active first."""
    candidates = (
        db.query(Message)
        .filter(
            Message.conversation_id.contains(user_id),
            Message.is_deleted.is_(False),
        )
        .order_by(desc(Message.created_at))
        .all()
    )

    latest: dict[str, Message] = {}
    for message in candidates:
        latest.setdefault(message.conversation_id, message)

    summaries: list[ConversationSummary] = []
    for conversation_id, last in latest.items():
        try:
            conversation = parse_conversation_id(conversation_id)
        except InvalidConversationId:
            continue
        if not isinstance(conversation, DirectConversation):
            continue
        other_id = conversation.other(user_id)
        if other_id is None:
            # Substring match on somebody else's id.
            continue
        other = db.query(User).filter(User.id == other_id).first()
        unread = (
            db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.sender_id != user_id,
                Message.is_read.is_(False),
                Message.is_deleted.is_(False),
            )
            .count()
        )
        summaries.append(
            ConversationSummary(
                conversation_id=conversation_id,
                conversation_type="private",
                participants=[UserSummary.model_validate(other)] if other else [],
                last_message=LastMessage(
                    content=last.content,
                    message_type=last.message_type,
                    timestamp=last.created_at,
                    sender_id=last.sender_id,
                    sender_nickname=last.sender.nickname if last.sender else None,
                ),
                unread_count=unread,
            )
        )
    return summaries
