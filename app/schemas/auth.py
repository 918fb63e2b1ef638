"""Registration, verification and login schemas."""

from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class RegistrationRequest(CamelModel):
    """Registration request; the password policy is enforced by the service."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=1)


class VerifyOtpRequest(CamelModel):
    """One-time code submission."""

    email: EmailStr
    otp: str = Field(..., pattern=r"^\d{6}$", description="Six-digit code from the email")


class LoginRequest(CamelModel):
    """Email and password login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(CamelModel):
    """Password reset code request."""

    email: EmailStr


class ResetPasswordRequest(CamelModel):
    """New password authorized by a reset code."""

    email: EmailStr
    otp: str = Field(..., pattern=r"^\d{6}$")
    password: str = Field(..., min_length=1)


class LoginResponse(CamelModel):
    """Login result; ``profile_status`` is only sent for doctors."""

    success: bool = True
    token: str
    profile_status: str | None = None
