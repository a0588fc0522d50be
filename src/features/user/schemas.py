"""User schemas (DTOs)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Public view of a user; never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    role: str
    email_verified_at: datetime | None = None
    created_at: datetime | None = None


class UserSummary(BaseModel):
    """Compact identity returned by ``/auth/me``."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    role: str
