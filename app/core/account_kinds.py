"""Account kinds and the descriptor that parameterizes shared account logic."""

from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy import Table

from app.models.doctors import doctors
from app.models.users import users


class AccountKind(StrEnum):
    """The two kinds of self-registered account."""

    USER = "user"
    DOCTOR = "doctor"


# Token kind for the environment-configured operator
ADMIN_KIND = "admin"


@dataclass(frozen=True)
class AccountKindSpec:
    """Describes how one account kind differs from the other."""

    kind: AccountKind
    table: Table
    label: str
    tracks_profile_completion: bool
    tracks_availability: bool
    profile_fields: tuple[str, ...]
    image_folder: str
    # Supplying any of these marks the profile complete
    completion_fields: tuple[str, ...] = ()


USER_SPEC = AccountKindSpec(
    kind=AccountKind.USER,
    table=users,
    label="User",
    tracks_profile_completion=False,
    tracks_availability=False,
    profile_fields=("name", "phone", "address", "dob", "gender"),
    image_folder="user_profiles",
)

DOCTOR_SPEC = AccountKindSpec(
    kind=AccountKind.DOCTOR,
    table=doctors,
    label="Doctor",
    tracks_profile_completion=True,
    tracks_availability=True,
    profile_fields=("name", "speciality", "degree", "experience", "about", "fees", "available"),
    image_folder="doctor_profiles",
    completion_fields=("speciality", "degree", "experience", "about", "fees"),
)
