"""
Declarative base & shared mixins for all models.

- Users and devices get a UUID primary key (generated via `uuid4`).
  Sessions use their opaque token as the key instead.
- Every table gets a `created_at` timestamp (UTC, auto-managed).

Using a mixin keeps individual model files focused on domain fields.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base; all models inherit from this."""
    pass


class TimestampMixin:
    """Adds created_at to any model that inherits it."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )


class UUIDPrimaryKeyMixin:
    """Adds a UUID `id` primary key to any model that inherits it."""

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
