"""Group membership and presence audience lookups."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from sqlalchemy.orm import Session

from huddle.models import GroupMember, Message
from huddle.realtime.conversation import DirectConversation, parse_conversation_id
from huddle.realtime.errors import InvalidConversationId


class SqlMembershipResolver:
    """Resolves a group conversation id to its member user ids."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    async def members(self, group_id: str) -> list[str]:
        return await asyncio.to_thread(self._members, group_id)

    def _members(self, group_id: str) -> list[str]:
        db = self._session_factory()
        try:
            rows = (
                db.query(GroupMember.user_id)
                .filter(GroupMember.group_id == group_id)
                .order_by(GroupMember.joined_at)
                .all()
            )
            return [row.user_id for row in rows]
        finally:
            db.close()


class ConversationPeersAudience:
    """Presence audience made of everyone the user has a direct conversation with."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    async def audience(self, user_id: str) -> list[str]:
        return await asyncio.to_thread(self._peers, user_id)

    def _peers(self, user_id: str) -> list[str]:
        db = self._session_factory()
        try:
            rows = (
                db.query(Message.conversation_id)
                .filter(Message.conversation_id.contains(user_id))
                .distinct()
                .all()
            )
        finally:
            db.close()

        peers: dict[str, None] = {}
        for (conversation_id,) in rows:
            try:
                conversation = parse_conversation_id(conversation_id)
            except InvalidConversationId:
                continue
            if isinstance(conversation, DirectConversation):
                other = conversation.other(user_id)
                if other is not None:
                    peers[other] = None
        return list(peers)
