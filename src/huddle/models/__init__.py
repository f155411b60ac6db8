"""SQLAlchemy models for the Huddle application."""

from .group import GroupMember
from .message import Message
from .user import User

__all__ = [
    "GroupMember",
    "Message",
    "User",
]
