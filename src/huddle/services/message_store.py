"""SQLAlchemy-backed message store used by the presence router."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from huddle.realtime.errors import PersistenceError
from huddle.schemas.message import MessageRead, SendMessageRequest
from huddle.services import chat_service

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlMessageStore:
    """Runs the blocking chat_service helpers in worker threads.

    Each call opens its own session from ``session_factory`` and converts
    results to schemas before the session closes, so no ORM object leaves the
    worker thread.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    async def create_message(self, sender_id: str, payload: SendMessageRequest) -> MessageRead:
        def _create(db: Session) -> MessageRead:
            return chat_service.to_message_read(
                chat_service.create_message(db, sender_id, payload)
            )

        return await self._run(_create)

    async def find_readable_message(
        self, message_id: str, exclude_sender_id: str
    ) -> MessageRead | None:
        def _find(db: Session) -> MessageRead | None:
            message = chat_service.find_readable_message(db, message_id, exclude_sender_id)
            return chat_service.to_message_read(message) if message is not None else None

        return await self._run(_find)

    async def mark_message_read(self, message_id: str) -> None:
        await self._run(lambda db: chat_service.mark_message_read(db, message_id))

    async def _run(self, work: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._in_session, work)

    def _in_session(self, work: Callable[[Session], T]) -> T:
        db = self._session_factory()
        try:
            return work(db)
        except SQLAlchemyError as err:
            db.rollback()
            raise PersistenceError(str(err)) from err
        finally:
            db.close()
