"""User (patient) profile schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from app.schemas.base import CamelModel


class UserProfile(CamelModel):
    """User profile as returned to its owner."""

    id: UUID
    name: str
    email: str
    phone: str | None = None
    address: dict[str, Any] | None = None
    dob: str | None = None
    gender: str | None = None
    image_url: str | None = None
    is_verified: bool
    created_at: datetime


class UserProfileResponse(CamelModel):
    """Envelope for a user profile."""

    success: bool = True
    message: str | None = None
    profile: UserProfile
