"""SQLAlchemy model caching identity-provider profile fields."""
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mindhaven.db.session import Base
from mindhaven.db.time import utcnow


class UserProfile(Base):
    """Display attributes for a user id issued by the identity provider."""

    __tablename__ = "user_profile"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
