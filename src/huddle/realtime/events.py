"""Wire events emitted by the realtime gateway.

Every outbound frame is a :class:`~huddle.schemas.realtime.WsOutbound` with an
event name and a camelCase payload. The builders below are the only place
payload shapes are defined.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Final

from huddle.schemas.message import MessageRead
from huddle.schemas.realtime import WsOutbound

USER_ONLINE: Final = "user:online"
USER_OFFLINE: Final = "user:offline"
MESSAGE_SEND: Final = "message:send"
MESSAGE_RECEIVE: Final = "message:receive"
MESSAGE_SENT: Final = "message:sent"
MESSAGE_READ: Final = "message:read"
TYPING_START: Final = "typing:start"
TYPING_STOP: Final = "typing:stop"
ERROR: Final = "error"
PING: Final = "ping"
PONG: Final = "pong"


class ErrorKind(str, Enum):
    """Stable error categories carried by `error` events."""

    UNAUTHENTICATED = "unauthenticated"
    INVALID_REQUEST = "invalid_request"
    PERSISTENCE_FAILED = "persistence_failed"
    INTERNAL = "internal"


def user_online(user_id: str, timestamp: datetime) -> WsOutbound:
    return WsOutbound(
        event=USER_ONLINE,
        data={"userId": user_id, "status": "online", "timestamp": timestamp},
    )


def user_offline(user_id: str, last_seen: datetime) -> WsOutbound:
    return WsOutbound(
        event=USER_OFFLINE,
        data={"userId": user_id, "status": "offline", "lastSeen": last_seen},
    )


def message_receive(message: MessageRead) -> WsOutbound:
    """Full message payload delivered to every participant connection."""
    data = message.model_dump(
        by_alias=True,
        include={
            "conversation_id",
            "sender_id",
            "sender",
            "message_type",
            "content",
            "media_url",
            "file_size",
            "duration",
            "reply_to",
            "created_at",
        },
    )
    data["messageId"] = message.id
    data["messageType"] = message.message_type.value
    return WsOutbound(event=MESSAGE_RECEIVE, data=data)


def message_sent(message: MessageRead) -> WsOutbound:
    return WsOutbound(
        event=MESSAGE_SENT,
        data={"messageId": message.id, "timestamp": message.created_at},
    )


def message_read(message_id: str, reader_id: str, read_at: datetime) -> WsOutbound:
    return WsOutbound(
        event=MESSAGE_READ,
        data={"messageId": message_id, "readerId": reader_id, "readAt": read_at},
    )


def typing(event: str, conversation_id: str, user_id: str) -> WsOutbound:
    return WsOutbound(
        event=event,
        data={"conversationId": conversation_id, "userId": user_id},
    )


def error(kind: ErrorKind, message: str) -> WsOutbound:
    return WsOutbound(event=ERROR, data={"kind": kind.value, "message": message})


def ping(timestamp: datetime) -> WsOutbound:
    return WsOutbound(event=PING, data={"timestamp": timestamp})


def pong(timestamp: datetime) -> WsOutbound:
    return WsOutbound(event=PONG, data={"timestamp": timestamp})
