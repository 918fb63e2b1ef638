"""Operator endpoints."""

import secrets
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, status

from app.core.account_kinds import ADMIN_KIND, DOCTOR_SPEC
from app.core.exceptions import InvalidCredentialsException
from app.dependencies import (
    CurrentAdmin,
    DatabaseSession,
    SessionServiceDep,
    SettingsDep,
    get_doctor_accounts,
)
from app.schemas.auth import LoginRequest, LoginResponse
from app.schemas.doctors import AvailabilityRequest, AvailabilityResponse
from app.services.account_service import AccountService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Operator login",
)
async def admin_login(
    request: LoginRequest,
    settings: SettingsDep,
    sessions: SessionServiceDep,
) -> LoginResponse:
    """
    Exchange the configured operator credentials for a bearer token.

    The operator account lives in ``ADMIN_EMAIL``/``ADMIN_PASSWORD``, not in the database.
    """
    email_ok = secrets.compare_digest(
        request.email.lower().encode(), settings.admin_email.lower().encode()
    )
    password_ok = secrets.compare_digest(
        request.password.encode(), settings.admin_password.encode()
    )
    if not (email_ok and password_ok):
        logger.info("admin_login_failed")
        raise InvalidCredentialsException()

    logger.info("admin_login_succeeded")
    return LoginResponse(token=sessions.issue_token(settings.admin_email, ADMIN_KIND))


@router.post(
    "/change-availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary=f"Toggle {DOCTOR_SPEC.label.lower()} availability",
)
async def change_availability(
    request: AvailabilityRequest,
    admin_email: CurrentAdmin,
    accounts: Annotated[AccountService, Depends(get_doctor_accounts)],
    db: DatabaseSession,
) -> AvailabilityResponse:
    """Flip whether a doctor accepts new chats."""
    available = await accounts.toggle_availability(db, request.doctor_id)
    return AvailabilityResponse(message="Availability changed.", available=available)
