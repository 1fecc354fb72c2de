"""
Models package: import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for `create_all` / Alembic).
"""

from device_portal.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from device_portal.models.user import User, UserRole
from device_portal.models.session import UserSession
from device_portal.models.device import Device, DeviceStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
    "UserRole",
    "UserSession",
    "Device",
    "DeviceStatus",
]
