"""Group chat membership."""

from datetime import datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from huddle.db.session import Base
from huddle.db.time import utcnow


class GroupMember(Base):
    """Membership row linking a user to a group conversation identifier."""

    __tablename__ = "group_members"

    group_id: Mapped[str] = mapped_column(String(80), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    joined_at: Mapped[datetime] = mapped_column(default=utcnow)
