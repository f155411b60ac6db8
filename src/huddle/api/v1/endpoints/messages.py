# src/huddle/api/v1/endpoints/messages.py
"""Chat message endpoints for the Huddle API."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from huddle.api.v1.dependencies import CurrentUserDep, PresenceRouterDep, SessionDep
from huddle.db.time import utcnow
from huddle.realtime import (
    DirectConversation,
    InvalidConversationId,
    ReadResult,
    ReadStatus,
    parse_conversation_id,
)
from huddle.schemas.message import (
    ConversationSummary,
    MessageRead,
    ReadReceipt,
    SendMessageRequest,
)
from huddle.services import chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/messages", status_code=status.HTTP_201_CREATED, response_model=MessageRead)
async def send_message(
    message_data: SendMessageRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    presence: PresenceRouterDep,
) -> MessageRead:
    """Persist a message and push it to connected participants."""
    try:
        parse_conversation_id(message_data.conversation_id)
    except InvalidConversationId as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    try:
        message = chat_service.create_message(db, current_user.id, message_data)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error storing message from %s", current_user.id, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to send message",
        ) from exc

    result = chat_service.to_message_read(message)
    await presence.publish_message(result)
    return result


@router.get("/messages", response_model=list[MessageRead])
async def get_messages(
    current_user: CurrentUserDep,
    db: SessionDep,
    conversation_id: str = Query(..., alias="conversationId", min_length=1),
    limit: int = Query(50, ge=1, le=100),
    before: datetime | None = Query(None),
) -> list[MessageRead]:
    """Get a page of messages for a conversation in chronological order.

    The conversation id travels as a query parameter because direct ids
    contain ``#``, which clients would otherwise treat as a URL fragment.
    """
    try:
        conversation = parse_conversation_id(conversation_id)
    except InvalidConversationId as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    if isinstance(conversation, DirectConversation):
        allowed = conversation.other(current_user.id) is not None
    else:
        allowed = chat_service.is_group_member(db, conversation.group_id, current_user.id)
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a participant of this conversation",
        )

    messages = chat_service.get_messages(db, conversation_id, limit=limit, before=before)
    return [chat_service.to_message_read(message) for message in messages]


@router.get("/conversations", response_model=list[ConversationSummary])
async def get_conversations(
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[ConversationSummary]:
    """List the caller's direct conversations with their latest message."""
    return chat_service.get_conversations(db, current_user.id)


@router.post("/messages/{message_id}/read", response_model=ReadReceipt)
async def mark_message_read(
    message_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    presence: PresenceRouterDep,
) -> ReadReceipt:
    """Mark a message as read and broadcast the receipt.

    Unknown ids and the sender's own messages are a no-op reported as
    ``not_applicable`` rather than an error.
    """
    try:
        message = chat_service.find_readable_message(db, message_id, current_user.id)
        if message is not None:
            chat_service.mark_message_read(db, message_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error marking message %s as read", message_id, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to mark message as read",
        ) from exc

    result = ReadResult(
        message_id=message_id,
        read_at=utcnow(),
        status=ReadStatus.UPDATED if message is not None else ReadStatus.NOT_APPLICABLE,
        conversation_id=message.conversation_id if message is not None else None,
    )
    await presence.broadcast_read(current_user.id, result)

    return ReadReceipt(
        message_id=result.message_id,
        read_at=result.read_at,
        status=result.status.value,
    )
