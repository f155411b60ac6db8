"""
Realtime package.

WebSocket session tracking and event fan-out for chat and presence.

Modules:
- router: PresenceRouter, the entry point for connection lifecycle and chat operations
- registry: ConnectionRegistry mapping connections to user ids
- connection: Connection with its bounded outbound queue
- conversation: direct/group conversation identifiers
- events: wire event names, payload builders and error kinds
- heartbeat: HeartbeatMonitor for half-open connection detection
"""

from .connection import Connection
from .contracts import Identity, ReadResult, ReadStatus
from .conversation import (
    DirectConversation,
    GroupConversation,
    direct_conversation_id,
    parse_conversation_id,
)
from .errors import (
    AuthenticationFailure,
    InvalidConversationId,
    InvalidTokenError,
    PersistenceError,
    RealtimeError,
)
from .events import ErrorKind
from .heartbeat import HeartbeatMonitor
from .registry import ConnectionRegistry
from .router import PresenceRouter

__all__ = [
    "AuthenticationFailure",
    "Connection",
    "ConnectionRegistry",
    "DirectConversation",
    "ErrorKind",
    "GroupConversation",
    "HeartbeatMonitor",
    "Identity",
    "InvalidConversationId",
    "InvalidTokenError",
    "PersistenceError",
    "PresenceRouter",
    "ReadResult",
    "ReadStatus",
    "RealtimeError",
    "direct_conversation_id",
    "parse_conversation_id",
]
