"""
Pydantic schemas for request / response serialization.

Kept in a single file for now; split per-domain when it grows.
Schemas are deliberately decoupled from SQLAlchemy models so the
API surface can evolve independently of the DB layer.

Every response is either a success envelope (``success`` message plus
payload) or the ``{"error": ...}`` body produced by the exception
handlers in `device_portal.main`.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from device_portal.models.device import (
    DEVICE_PASSWORD_MAX_LENGTH,
    DEVICE_USERNAME_MAX_LENGTH,
    DeviceStatus,
)

USERNAME_MIN_LENGTH = 3
PASSWORD_MIN_LENGTH = 6


# ── Auth ─────────────────────────────────────────────────────────────
class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AgentProfileFields(BaseModel):
    """Optional extended profile captured at registration."""

    company_name: str | None = Field(default=None, max_length=256)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    contact_person: str | None = Field(default=None, max_length=256)

    @field_validator("company_name", "email", "phone", "contact_person", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class RegisterRequest(AgentProfileFields):
    username: str = Field(min_length=USERNAME_MIN_LENGTH, max_length=64)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("New passwords do not match")
        return self


class ChangeAgentPasswordRequest(BaseModel):
    new_password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginResponse(BaseModel):
    success: str
    user_id: uuid.UUID
    username: str
    role: str
    redirect_to: str
    expires_at: datetime


# ── User ─────────────────────────────────────────────────────────────
class UserOut(BaseModel):
    id: uuid.UUID
    username: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AgentProfileOut(UserOut):
    company_name: str | None = None
    email: str | None = None
    phone: str | None = None
    contact_person: str | None = None


class AgentSummaryOut(UserOut):
    device_count: int = 0


# ── Device ───────────────────────────────────────────────────────────
class DeviceOut(BaseModel):
    id: uuid.UUID
    agent_id: uuid.UUID | None = None
    agent_name: str | None = None
    username: str
    password: str
    status: DeviceStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class DeviceCredentials(BaseModel):
    """Returned once on creation: the plaintext pair for hand-off."""

    id: uuid.UUID
    username: str
    password: str


class DeviceCreatedResponse(BaseModel):
    success: str
    device: DeviceCredentials


class TransferDeviceRequest(BaseModel):
    new_agent_id: uuid.UUID


class CreateDeviceForAgentRequest(BaseModel):
    agent_name: str | None = Field(default=None, max_length=64)


class CSVImportRequest(BaseModel):
    csv_data: str


class CSVDeviceRow(BaseModel):
    """One validated ``username,password`` line of a CSV import."""

    username: str = Field(min_length=1, max_length=DEVICE_USERNAME_MAX_LENGTH)
    password: str = Field(min_length=1, max_length=DEVICE_PASSWORD_MAX_LENGTH)


class ImportResponse(BaseModel):
    success: str
    imported_count: int
    imported: list[str] = []


# ── Generic ──────────────────────────────────────────────────────────
class MessageResponse(BaseModel):
    success: str

