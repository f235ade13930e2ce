"""SQLAlchemy model for user-targeted notifications."""
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mindhaven.db.session import Base
from mindhaven.db.time import utcnow

NOTIFICATION_NEW_MEMBER = "new_member"
NOTIFICATION_ROLE_CHANGE = "role_change"
NOTIFICATION_MEMBER_REMOVED = "member_removed"
NOTIFICATION_NEW_POST = "new_post"


class Notification(Base):
    """Derived event record shown to a single user."""

    __tablename__ = "notification"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    community_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    community_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    actor_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str | None] = mapped_column(String(16), nullable=True)
    post_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    post_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
