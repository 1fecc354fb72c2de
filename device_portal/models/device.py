"""
Device model: a managed username/password pair for a piece of equipment.

- `agent_id` is the optional owner.  None means "unowned"; ownership can
  be assigned, moved or removed at any time without touching status.
- `status` only ever moves pending → active.
- `password` is stored in cleartext by product requirement.
"""

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from device_portal.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from device_portal.models.user import User

DEVICE_USERNAME_MAX_LENGTH = 50
DEVICE_PASSWORD_MAX_LENGTH = 100


class DeviceStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"


class Device(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "devices"

    agent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    username: Mapped[str] = mapped_column(String(DEVICE_USERNAME_MAX_LENGTH), nullable=False)
    password: Mapped[str] = mapped_column(String(DEVICE_PASSWORD_MAX_LENGTH), nullable=False)
    status: Mapped[DeviceStatus] = mapped_column(
        Enum(DeviceStatus, name="device_status", values_callable=lambda e: [m.value for m in e]),
        default=DeviceStatus.PENDING,
        nullable=False,
        index=True,
    )

    agent: Mapped["User | None"] = relationship(  # noqa: F821
        back_populates="devices",
        lazy="joined",
    )

    @property
    def agent_name(self) -> str | None:
        return self.agent.username if self.agent is not None else None

    def __repr__(self) -> str:
        return f"<Device {self.username} status={self.status.value}>"
