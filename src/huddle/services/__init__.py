"""Business logic services for the Huddle application."""

from .identity import JwtIdentityVerifier
from .membership import ConversationPeersAudience, SqlMembershipResolver
from .message_store import SqlMessageStore

__all__ = [
    "ConversationPeersAudience",
    "JwtIdentityVerifier",
    "SqlMembershipResolver",
    "SqlMessageStore",
]
