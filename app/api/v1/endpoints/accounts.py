"""Registration, login and password endpoints shared by both account kinds."""

from collections.abc import Callable
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, UploadFile, status

from app.core.account_kinds import AccountKindSpec
from app.dependencies import BearerToken, DatabaseSession, SessionServiceDep
from app.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RegistrationRequest,
    ResetPasswordRequest,
    VerifyOtpRequest,
)
from app.schemas.base import MessageResponse
from app.services.account_service import AccountService, ImageUpload
from app.services.challenge_service import ChallengeService


async def read_image(image: UploadFile | None) -> ImageUpload | None:
    """Read an optional uploaded profile image into memory."""
    if image is None or not image.filename:
        return None
    return ImageUpload(
        data=await image.read(),
        filename=image.filename,
        content_type=image.content_type or "application/octet-stream",
    )


def build_account_router(
    spec: AccountKindSpec,
    get_challenges: Callable[..., ChallengeService],
    get_accounts: Callable[..., AccountService],
    get_current_id: Callable[..., UUID],
    profile_response: type,
) -> APIRouter:
    """
    Build the account lifecycle routes for one account kind.

    Args:
        spec: Account kind the routes operate on
        get_challenges: Dependency providing the kind's challenge service
        get_accounts: Dependency providing the kind's account service
        get_current_id: Dependency resolving the caller's account ID
        profile_response: Response model wrapping the kind's profile
    """
    router = APIRouter()
    Challenges = Annotated[ChallengeService, Depends(get_challenges)]
    Accounts = Annotated[AccountService, Depends(get_accounts)]
    CurrentId = Annotated[UUID, Depends(get_current_id)]

    @router.post(
        "/register/request-otp",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary=f"Start {spec.label.lower()} registration",
    )
    async def request_registration_otp(
        request: RegistrationRequest,
        challenges: Challenges,
        db: DatabaseSession,
    ) -> MessageResponse:
        """
        Create or overwrite a pending registration and email a verification code.

        Resubmitting for an unverified address invalidates the earlier code.
        """
        await challenges.issue_registration_challenge(
            db, request.email, request.password, profile={"name": request.name}
        )
        return MessageResponse(message="OTP sent to your email. Please verify to continue.")

    @router.post(
        "/register/verify-otp",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary=f"Verify {spec.label.lower()} email",
    )
    async def verify_registration_otp(
        request: VerifyOtpRequest,
        challenges: Challenges,
        db: DatabaseSession,
    ) -> MessageResponse:
        """Consume the registration code and mark the account verified."""
        await challenges.verify_registration(db, request.email, request.otp)
        return MessageResponse(message="Email verified successfully. You can now log in.")

    @router.post(
        "/login",
        response_model=LoginResponse,
        response_model_exclude_none=True,
        status_code=status.HTTP_200_OK,
        summary=f"{spec.label} login",
    )
    async def login(
        request: LoginRequest,
        accounts: Accounts,
        db: DatabaseSession,
    ) -> LoginResponse:
        """Exchange email and password for a bearer token."""
        result = await accounts.login(db, request.email, request.password)
        return LoginResponse(token=result["token"], profile_status=result.get("profile_status"))

    @router.post(
        "/forgot-password",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary="Request a password reset code",
    )
    async def forgot_password(
        request: ForgotPasswordRequest,
        challenges: Challenges,
        db: DatabaseSession,
    ) -> MessageResponse:
        await challenges.issue_reset_challenge(db, request.email)
        return MessageResponse(message="OTP sent to your email.")

    @router.post(
        "/reset-password",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary="Reset password with a code",
    )
    async def reset_password(
        request: ResetPasswordRequest,
        challenges: Challenges,
        db: DatabaseSession,
    ) -> MessageResponse:
        await challenges.reset_password(db, request.email, request.otp, request.password)
        return MessageResponse(message="Password reset successfully.")

    @router.post(
        "/logout",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary="Revoke the current token",
    )
    async def logout(
        account_id: CurrentId,
        token: BearerToken,
        sessions: SessionServiceDep,
    ) -> MessageResponse:
        """Put the presented token on the revocation list."""
        sessions.revoke(token)
        return MessageResponse(message="Logged out successfully.")

    @router.get(
        "/profile",
        response_model=profile_response,
        status_code=status.HTTP_200_OK,
        summary=f"Get own {spec.label.lower()} profile",
    )
    async def get_profile(
        account_id: CurrentId,
        accounts: Accounts,
        db: DatabaseSession,
    ) -> Any:
        """Get the caller's profile without password or code fields."""
        profile = await accounts.get_profile(db, account_id)
        return profile_response(profile=profile)

    return router
