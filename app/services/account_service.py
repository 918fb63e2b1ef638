"""Login and profile management shared by both account kinds."""

import secrets
from dataclasses import dataclass
from functools import lru_cache
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.account_kinds import AccountKindSpec
from app.core.exceptions import (
    InvalidCredentialsException,
    NotFoundException,
    UnverifiedAccountException,
    ValidationException,
)
from app.core.firebase import BlobStore
from app.core.security import get_password_hash, verify_password
from app.services.account_store import AccountStore
from app.services.session_service import SessionService

logger = structlog.get_logger(__name__)

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})


@dataclass(frozen=True)
class ImageUpload:
    """Raw profile image received with a profile update."""

    data: bytes
    filename: str
    content_type: str


@lru_cache
def unknown_account_hash() -> str:
    """Hash checked when no account matches, so both login failures cost one bcrypt round."""
    return get_password_hash(secrets.token_urlsafe(16))


def profile_status(account: dict) -> str:
    """Doctor profile completion as reported to clients."""
    return "complete" if account.get("profile_complete") else "incomplete"


class AccountService:
    """Service for login and profile operations of one account kind."""

    def __init__(
        self,
        spec: AccountKindSpec,
        session_service: SessionService,
        blob_store: BlobStore | None = None,
    ):
        """Initialize account service for the given account kind."""
        self.spec = spec
        self.sessions = session_service
        self.blob_store = blob_store
        self.store = AccountStore(spec)

    async def login(self, db: AsyncSession, email: str, password: str) -> dict:
        """
        Authenticate with email and password.

        Returns:
            ``token`` plus, for kinds that track it, ``profile_status``

        Raises:
            InvalidCredentialsException: Unknown email or wrong password
            UnverifiedAccountException: Email not yet verified
        """
        account = await self.store.get_by_email(db, email)
        if account is None:
            verify_password(password, unknown_account_hash())
            logger.info("login_failed", kind=self.spec.kind, reason="unknown_email")
            raise InvalidCredentialsException()

        if not account["is_verified"]:
            logger.info("login_failed", kind=self.spec.kind, reason="unverified")
            raise UnverifiedAccountException("Please verify your email before logging in.")

        if not AccountStore.check_password(account, password):
            logger.info("login_failed", kind=self.spec.kind, reason="bad_password")
            raise InvalidCredentialsException()

        token = self.sessions.issue_token(account["id"], self.spec.kind)
        logger.info("login_succeeded", kind=self.spec.kind, account_id=str(account["id"]))

        result: dict[str, Any] = {"token": token, "account_id": account["id"]}
        if self.spec.tracks_profile_completion:
            result["profile_status"] = profile_status(account)
        return result

    async def get_profile(self, db: AsyncSession, account_id: UUID) -> dict:
        """
        Get the caller's own profile without secret fields.

        Raises:
            NotFoundException: If the account no longer exists
        """
        account = await self.store.get_by_id(db, account_id)
        if account is None:
            raise NotFoundException(f"{self.spec.label} profile not found.")
        return AccountStore.public_view(account)

    async def update_profile(
        self,
        db: AsyncSession,
        account_id: UUID,
        changes: dict[str, Any],
        image: ImageUpload | None = None,
    ) -> dict:
        """
        Update profile fields and optionally replace the profile image.

        For doctors, supplying any professional field marks the profile complete.

        Raises:
            ValidationException: If the image type is not supported
            NotFoundException: If the account no longer exists
            BlobStorageFailedException: If the image upload fails
        """
        values = {
            field: value
            for field, value in changes.items()
            if field in self.spec.profile_fields and value is not None
        }

        if any(field in values for field in self.spec.completion_fields):
            values["profile_complete"] = True

        if image is not None:
            if image.content_type not in ALLOWED_IMAGE_TYPES:
                raise ValidationException("Profile image must be a JPEG, PNG or WebP file")
            if self.blob_store is None:
                raise ValidationException("Image uploads are not enabled")
            values["image_url"] = await self.blob_store.store(
                image.data, image.filename, image.content_type, self.spec.image_folder
            )

        account = await self.store.update_profile(db, account_id, values)
        if account is None:
            raise NotFoundException(f"{self.spec.label} not found.")

        logger.info(
            "profile_updated",
            kind=self.spec.kind,
            account_id=str(account_id),
            fields=sorted(values),
        )
        return AccountStore.public_view(account)

    async def toggle_availability(self, db: AsyncSession, account_id: UUID) -> bool:
        """
        Flip whether a doctor accepts new chats.

        Raises:
            ValidationException: If the account kind has no availability flag
            NotFoundException: If the account does not exist
        """
        if not self.spec.tracks_availability:
            raise ValidationException(f"{self.spec.label} accounts have no availability")

        available = await self.store.toggle_availability(db, account_id)
        if available is None:
            raise NotFoundException(f"{self.spec.label} not found.")

        logger.info("availability_changed", account_id=str(account_id), available=available)
        return available
