"""Doctor profile and availability schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import computed_field

from app.schemas.base import CamelModel


class DoctorProfile(CamelModel):
    """Doctor profile as returned to its owner."""

    id: UUID
    name: str
    email: str
    speciality: str | None = None
    degree: str | None = None
    experience: str | None = None
    about: str | None = None
    fees: int | None = None
    image_url: str | None = None
    available: bool
    profile_complete: bool
    is_verified: bool
    created_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def profile_status(self) -> str:
        """Completion flag in the form the login response uses."""
        return "complete" if self.profile_complete else "incomplete"


class DoctorProfileResponse(CamelModel):
    """Envelope for a doctor profile."""

    success: bool = True
    message: str | None = None
    profile: DoctorProfile


class AvailabilityRequest(CamelModel):
    """Operator request to flip a doctor's availability."""

    doctor_id: UUID


class AvailabilityResponse(CamelModel):
    """Availability after the change."""

    success: bool = True
    message: str | None = None
    available: bool
