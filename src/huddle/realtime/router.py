"""Presence and messaging router.

The router owns no transport. It authenticates handshakes, keeps the
connection registry current, persists messages through the message store and
queues outbound events on the right connections. The WebSocket endpoint in
``huddle.api.v1.endpoints.realtime`` feeds it inbound frames and pumps each
connection's queue back to the socket.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from huddle.db.time import utcnow
from huddle.realtime import events
from huddle.realtime.connection import CloseFn, Connection
from huddle.realtime.contracts import (
    Identity,
    IdentityVerifier,
    MembershipResolver,
    MessageStore,
    PresenceAudience,
    ReadResult,
    ReadStatus,
)
from huddle.realtime.conversation import (
    Conversation,
    DirectConversation,
    parse_conversation_id,
)
from huddle.realtime.errors import (
    AuthenticationFailure,
    InvalidConversationId,
    PersistenceError,
)
from huddle.realtime.events import ErrorKind
from huddle.realtime.registry import ConnectionRegistry
from huddle.schemas.message import MessageRead
from huddle.schemas.realtime import (
    ConversationRef,
    MarkReadPayload,
    SendMessagePayload,
    WsInbound,
    WsOutbound,
)

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"
SCOPED = "scoped"

Handler = Callable[[Connection, dict[str, Any]], Awaitable[None]]


class PresenceRouter:
    """Routes chat, typing, read-receipt and presence events between sessions."""

    def __init__(
        self,
        verifier: IdentityVerifier,
        store: MessageStore,
        registry: ConnectionRegistry | None = None,
        *,
        membership: MembershipResolver | None = None,
        presence_audience: PresenceAudience | None = None,
        presence_scope: str = GLOBAL_SCOPE,
        read_receipt_scope: str = GLOBAL_SCOPE,
        handshake_timeout: float = 5.0,
        max_pending: int = 256,
    ) -> None:
        for name, scope in (("presence", presence_scope), ("read receipt", read_receipt_scope)):
            if scope not in (GLOBAL_SCOPE, SCOPED):
                raise ValueError(f"Unknown {name} scope: {scope!r}")
        if presence_scope == SCOPED and presence_audience is None:
            raise ValueError("Scoped presence needs a presence audience resolver")

        self._verifier = verifier
        self._store = store
        self.registry = registry or ConnectionRegistry()
        self._membership = membership
        self._presence_audience = presence_audience
        self.presence_scope = presence_scope
        self.read_receipt_scope = read_receipt_scope
        self._handshake_timeout = handshake_timeout
        self._max_pending = max_pending
        self._handlers: dict[str, Handler] = {
            events.MESSAGE_SEND: self._on_send,
            events.MESSAGE_READ: self._on_read,
            events.TYPING_START: self._on_typing_start,
            events.TYPING_STOP: self._on_typing_stop,
            events.PING: self._on_ping,
        }

    # --- Connection lifecycle --------------------------------------------------

    async def authenticate(self, token: str | None) -> Identity:
        """Verify a handshake credential within the handshake timeout.

        Raises:
            AuthenticationFailure: Missing token, rejected token or timeout.
        """
        if not token:
            raise AuthenticationFailure("Missing credential")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._verifier.verify, token),
                timeout=self._handshake_timeout,
            )
        except TimeoutError as err:
            raise AuthenticationFailure("Credential verification timed out") from err

    async def register(self, identity: Identity, *, closer: CloseFn | None = None) -> Connection:
        """Bind a new connection for ``identity`` and announce the user online.

        If the announcement fails the binding is undone before the error
        propagates, so the user is not left online without a live session.
        """
        connection = Connection(identity.user_id, max_pending=self._max_pending, closer=closer)
        count = await self.registry.bind(connection)
        try:
            await self._broadcast_presence(
                identity.user_id, events.user_online(identity.user_id, utcnow())
            )
        except Exception:
            await self.registry.unbind(connection)
            connection.close()
            raise

        logger.info(
            "User %s connected with connection %s (%d active)",
            identity.user_id,
            connection.id,
            count,
        )
        return connection

    async def connect(self, token: str | None, *, closer: CloseFn | None = None) -> Connection:
        """Authenticate and register in one step."""
        identity = await self.authenticate(token)
        return await self.register(identity, closer=closer)

    async def disconnect(self, connection: Connection) -> None:
        """Remove a connection; announce offline when it was the user's last one."""
        remaining = await self.registry.unbind(connection)
        connection.close()
        if remaining is None:
            return

        logger.info(
            "User %s disconnected connection %s (%d remaining)",
            connection.user_id,
            connection.id,
            remaining,
        )
        if remaining == 0:
            await self._broadcast_presence(
                connection.user_id, events.user_offline(connection.user_id, utcnow())
            )

    async def online_users(self) -> list[str]:
        return await self.registry.online_users()

    # --- Inbound frames ----------------------------------------------------------

    async def dispatch(self, connection: Connection, raw: Mapping[str, Any]) -> None:
        """Handle one inbound frame from ``connection``.

        Failures are reported to this connection only.
        """
        connection.touch()
        try:
            frame = WsInbound.model_validate(raw)
        except ValidationError:
            connection.deliver(events.error(ErrorKind.INVALID_REQUEST, "Malformed frame"))
            return

        handler = self._handlers.get(frame.event)
        if handler is None:
            connection.deliver(
                events.error(ErrorKind.INVALID_REQUEST, f"Unknown event: {frame.event}")
            )
            return

        try:
            await handler(connection, frame.data)
        except ValidationError as exc:
            connection.deliver(
                events.error(ErrorKind.INVALID_REQUEST, _first_validation_message(exc))
            )
        except Exception:
            logger.exception("Unhandled error processing %s from %s", frame.event, connection)
            connection.deliver(events.error(ErrorKind.INTERNAL, "Internal error"))

    async def _on_send(self, connection: Connection, data: dict[str, Any]) -> None:
        await self.send_message(connection, SendMessagePayload.model_validate(data))

    async def _on_read(self, connection: Connection, data: dict[str, Any]) -> None:
        payload = MarkReadPayload.model_validate(data)
        await self.mark_read(connection, payload.message_id)

    async def _on_typing_start(self, connection: Connection, data: dict[str, Any]) -> None:
        ref = ConversationRef.model_validate(data)
        await self.typing_start(connection, ref.conversation_id)

    async def _on_typing_stop(self, connection: Connection, data: dict[str, Any]) -> None:
        ref = ConversationRef.model_validate(data)
        await self.typing_stop(connection, ref.conversation_id)

    async def _on_ping(self, connection: Connection, data: dict[str, Any]) -> None:
        connection.deliver(events.pong(utcnow()))

    # --- Operations ----------------------------------------------------------------

    async def send_message(
        self, connection: Connection, payload: SendMessagePayload
    ) -> MessageRead | None:
        """Persist a message, deliver it to participants and acknowledge the origin.

        Returns the stored message, or None when the request was rejected.
        """
        sender_id = await self.registry.user_for(connection)
        if sender_id is None:
            connection.deliver(events.error(ErrorKind.UNAUTHENTICATED, "User not authenticated"))
            return None

        try:
            conversation = parse_conversation_id(payload.conversation_id)
        except InvalidConversationId as exc:
            connection.deliver(events.error(ErrorKind.INVALID_REQUEST, str(exc)))
            return None

        try:
            message = await self._store.create_message(sender_id, payload)
        except PersistenceError:
            logger.error("Error sending message from %s", sender_id, exc_info=True)
            connection.deliver(
                events.error(ErrorKind.PERSISTENCE_FAILED, "Failed to send message")
            )
            return None

        try:
            await self._fan_out(conversation, events.message_receive(message))
        except Exception:
            # The message is stored; acknowledge it so the client does not resend.
            logger.error(
                "Delivery of message %s to %s failed",
                message.id,
                message.conversation_id,
                exc_info=True,
            )
        connection.deliver(events.message_sent(message))
        return message

    async def publish_message(self, message: MessageRead) -> int:
        """Deliver an already persisted message to its participants.

        Returns the number of connections the event was queued on.
        """
        try:
            conversation = parse_conversation_id(message.conversation_id)
        except InvalidConversationId:
            logger.warning(
                "Not publishing message %s: bad conversation id %r",
                message.id,
                message.conversation_id,
            )
            return 0
        return await self._fan_out(conversation, events.message_receive(message))

    async def mark_read(self, connection: Connection, message_id: str) -> ReadResult | None:
        """Mark a message read on behalf of the user bound to ``connection``."""
        reader_id = await self.registry.user_for(connection)
        if reader_id is None:
            connection.deliver(events.error(ErrorKind.UNAUTHENTICATED, "User not authenticated"))
            return None

        try:
            return await self.record_read(reader_id, message_id)
        except PersistenceError:
            logger.error("Error marking message %s as read", message_id, exc_info=True)
            connection.deliver(
                events.error(ErrorKind.PERSISTENCE_FAILED, "Failed to mark message as read")
            )
            return None

    async def record_read(self, reader_id: str, message_id: str) -> ReadResult:
        """Update the read flag and broadcast the receipt.

        A message that does not exist or was sent by the reader is left alone
        and reported as ``NOT_APPLICABLE``. Under the global read-receipt scope
        the receipt is still broadcast in that case.

        Raises:
            PersistenceError: If the store fails.
        """
        message = await self._store.find_readable_message(message_id, exclude_sender_id=reader_id)
        if message is not None:
            await self._store.mark_message_read(message_id)

        result = ReadResult(
            message_id=message_id,
            read_at=utcnow(),
            status=ReadStatus.UPDATED if message is not None else ReadStatus.NOT_APPLICABLE,
            conversation_id=message.conversation_id if message is not None else None,
        )
        await self.broadcast_read(reader_id, result)
        return result

    async def broadcast_read(self, reader_id: str, result: ReadResult) -> int:
        """Send the `message:read` receipt for ``result`` to its audience."""
        receipt = events.message_read(result.message_id, reader_id, result.read_at)
        if self.read_receipt_scope == GLOBAL_SCOPE:
            return await self._deliver_to_all(receipt)
        if result.conversation_id is None:
            return 0
        try:
            conversation = parse_conversation_id(result.conversation_id)
        except InvalidConversationId:
            return 0
        return await self._fan_out(conversation, receipt)

    async def typing_start(self, connection: Connection, conversation_id: str) -> None:
        await self._typing(events.TYPING_START, connection, conversation_id)

    async def typing_stop(self, connection: Connection, conversation_id: str) -> None:
        await self._typing(events.TYPING_STOP, connection, conversation_id)

    async def _typing(self, event_name: str, connection: Connection, conversation_id: str) -> None:
        user_id = await self.registry.user_for(connection)
        if user_id is None:
            return
        try:
            conversation = parse_conversation_id(conversation_id)
        except InvalidConversationId:
            return

        participants = await self._participants(conversation)
        others = [participant for participant in participants if participant != user_id]
        await self._deliver_to_users(others, events.typing(event_name, conversation_id, user_id))

    # --- Fan-out -------------------------------------------------------------------

    async def _participants(self, conversation: Conversation) -> list[str]:
        if isinstance(conversation, DirectConversation):
            return list(conversation.participants)
        if self._membership is None:
            # Without a membership lookup the group id is addressed like a user id.
            return [conversation.group_id]
        return await self._membership.members(conversation.group_id)

    async def _fan_out(self, conversation: Conversation, event: WsOutbound) -> int:
        participants = await self._participants(conversation)
        return await self._deliver_to_users(participants, event)

    async def _deliver_to_users(self, user_ids: Iterable[str], event: WsOutbound) -> int:
        connections = await self.registry.connections_for(*user_ids)
        return _deliver(connections, event)

    async def _deliver_to_all(self, event: WsOutbound) -> int:
        return _deliver(await self.registry.all_connections(), event)

    async def _broadcast_presence(self, user_id: str, event: WsOutbound) -> int:
        if self.presence_scope == GLOBAL_SCOPE:
            return await self._deliver_to_all(event)
        if self._presence_audience is None:
            raise RuntimeError("Scoped presence needs a presence audience resolver")
        audience = await self._presence_audience.audience(user_id)
        return await self._deliver_to_users([user_id, *audience], event)


def _deliver(connections: Iterable[Connection], event: WsOutbound) -> int:
    return sum(1 for connection in connections if connection.deliver(event))


def _first_validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid payload"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid')}" if location else first.get("msg", "")
