# src/parley_stage/models/user.py
"""SQLAlchemy model for registered chat accounts."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from parley_stage.db.session import Base
from parley_stage.db.time import utcnow


class User(Base):
    """Account keyed by its unique username.

    Chats, folders and unread counters live in the key-value store and refer
    to accounts by username only.
    """

    __tablename__ = "user_account"

    username: Mapped[str] = mapped_column(String(64), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Decorative tag rendered next to the name
    emoji: Mapped[str | None] = mapped_column(String(16), nullable=True)

    @property
    def created_at_ms(self) -> int:
        """Return the creation time as epoch milliseconds."""
        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        return int(created.timestamp() * 1000)
