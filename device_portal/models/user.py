from __future__ import annotations

"""
User model. Admins and agents share one table.

Design decisions:
- Role is a two-value ENUM (admin | agent); there is no role table.
- Usernames are unique across both roles.
- The extended agent profile (company, email, phone, contact person)
  is nullable so accounts created without it remain valid.
- Sessions are owned (cascade on delete); devices are only referenced
  and get their owner nulled instead.  Both paths are carried out
  explicitly by `user_service.delete_user`.
"""

import enum

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from device_portal.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from device_portal.models.device import Device
    from device_portal.models.session import UserSession


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    AGENT = "agent"


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        default=UserRole.AGENT,
        nullable=False,
    )

    # ── Extended agent profile ───────────────────────────────────────
    company_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    contact_person: Mapped[str | None] = mapped_column(String(256), nullable=True)

    # ── Relationships ────────────────────────────────────────────────
    sessions: Mapped[list["UserSession"]] = relationship(  # noqa: F821
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    devices: Mapped[list["Device"]] = relationship(  # noqa: F821
        back_populates="agent",
        passive_deletes=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_agent(self) -> bool:
        return self.role == UserRole.AGENT

    def __repr__(self) -> str:
        return f"<User {self.username} role={self.role.value}>"
