"""
User session model: server-side proof of login.

The primary key is the opaque random token the client holds in its
cookie.  A row is valid only while ``now < expires_at``; expired rows
may linger until the sweeper removes them but are never returned by
lookups.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from device_portal.models.base import Base, utcnow
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from device_portal.models.user import User


class UserSession(Base):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    user: Mapped["User"] = relationship(  # noqa: F821
        back_populates="sessions",
        lazy="joined",
    )

    def is_valid(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now < expires_at

    def __repr__(self) -> str:
        return f"<UserSession user={self.user_id} expires={self.expires_at}>"
