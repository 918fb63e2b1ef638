"""One-time-code challenges for registration and password reset."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.account_kinds import AccountKindSpec
from app.core.clock import Clock, as_utc, utc_now
from app.core.exceptions import (
    AccountNotFoundException,
    AlreadyVerifiedException,
    ChallengeExpiredException,
    InvalidCodeException,
    UnverifiedAccountException,
    ValidationException,
)
from app.core.security import generate_otp, get_password_hash, hash_otp, verify_otp
from app.services.account_store import AccountStore
from app.services.email_service import (
    Notifier,
    password_reset_otp_email,
    registration_otp_email,
)

logger = structlog.get_logger(__name__)

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


class ChallengeService:
    """Issues and consumes one-time codes for one account kind.

    Codes are hashed with the password primitive; only the hash and an
    absolute expiry are stored, and at most one challenge is outstanding
    per address.
    """

    def __init__(
        self,
        spec: AccountKindSpec,
        settings: Settings,
        notifier: Notifier,
        clock: Clock = utc_now,
        otp_generator: Callable[[], str] = generate_otp,
    ):
        """Initialize challenge service for the given account kind."""
        self.spec = spec
        self.settings = settings
        self.notifier = notifier
        self.clock = clock
        self.otp_generator = otp_generator
        self.store = AccountStore(spec)

    def validate_password(self, password: str) -> None:
        """
        Enforce the password policy shared by both account kinds.

        Raises:
            ValidationException: If the password is too short or too long
        """
        if len(password) < self.settings.password_min_length:
            raise ValidationException(
                f"Password must be at least {self.settings.password_min_length} characters"
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationException(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    def _new_challenge(self) -> tuple[str, str, datetime]:
        """Generate a code, its hash and its expiry."""
        code = self.otp_generator()
        expires_at = self.clock() + timedelta(minutes=self.settings.otp_expire_minutes)
        return code, hash_otp(code), expires_at

    def _check_challenge(self, account: dict, code: str) -> str:
        """
        Validate a submitted code against the account's outstanding challenge.

        Returns:
            The challenge hash that was matched

        Raises:
            ChallengeExpiredException: If no challenge is outstanding or it has expired
            InvalidCodeException: If the code does not match
        """
        otp_hash = account.get("otp_hash")
        expires_at = account.get("otp_expires_at")

        if not otp_hash or expires_at is None:
            raise ChallengeExpiredException()

        if self.clock() >= as_utc(expires_at):
            raise ChallengeExpiredException()

        if not verify_otp(code, otp_hash):
            raise InvalidCodeException()

        return otp_hash

    async def issue_registration_challenge(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        profile: dict[str, Any],
    ) -> None:
        """
        Store an unverified account with a fresh challenge and email the code.

        Resubmitting for an address that is still unverified overwrites the
        earlier record, which invalidates the earlier code.

        Raises:
            ValidationException: If the password violates the policy
            AlreadyRegisteredException: If a verified account owns the address
            NotificationFailedException: If the code could not be sent
        """
        self.validate_password(password)
        code, otp_hash, expires_at = self._new_challenge()

        account = await self.store.upsert_pending_registration(
            db,
            email=email,
            password_hash=get_password_hash(password),
            otp_hash=otp_hash,
            otp_expires_at=expires_at,
            profile=profile,
        )
        logger.info("registration_otp_issued", kind=self.spec.kind, account_id=str(account["id"]))

        subject, body = registration_otp_email(
            self.settings.smtp_from_name, code, self.settings.otp_expire_minutes
        )
        await self.notifier.send(account["email"], subject, body)

    async def verify_registration(self, db: AsyncSession, email: str, code: str) -> dict:
        """
        Consume a registration code and mark the account verified.

        Returns:
            The verified account without secret fields

        Raises:
            AccountNotFoundException: If no registration exists for the address
            AlreadyVerifiedException: If the account is already verified
            ChallengeExpiredException: If the code has expired
            InvalidCodeException: If the code is wrong or has been superseded
        """
        account = await self.store.get_by_email(db, email)
        if account is None:
            raise AccountNotFoundException("Signup process not initiated for this email.")

        if account["is_verified"]:
            raise AlreadyVerifiedException()

        otp_hash = self._check_challenge(account, code)

        if not await self.store.mark_verified(db, account["id"], otp_hash):
            # Lost a race: either verified concurrently or a new code was issued
            current = await self.store.get_by_id(db, account["id"])
            if current is not None and current["is_verified"]:
                raise AlreadyVerifiedException()
            raise InvalidCodeException()

        logger.info("registration_verified", kind=self.spec.kind, account_id=str(account["id"]))
        return AccountStore.public_view({**account, "is_verified": True})

    async def issue_reset_challenge(self, db: AsyncSession, email: str) -> None:
        """
        Store a password reset challenge on a verified account and email the code.

        Raises:
            AccountNotFoundException: If no account exists for the address
            UnverifiedAccountException: If the account never completed verification
            NotificationFailedException: If the code could not be sent
        """
        account = await self.store.get_by_email(db, email)
        if account is None:
            raise AccountNotFoundException(f"{self.spec.label} not found with this email")

        if not account["is_verified"]:
            raise UnverifiedAccountException()

        code, otp_hash, expires_at = self._new_challenge()
        await self.store.store_challenge(db, account["id"], otp_hash, expires_at)
        logger.info("password_reset_otp_issued", kind=self.spec.kind, account_id=str(account["id"]))

        subject, body = password_reset_otp_email(
            self.settings.smtp_from_name, code, self.settings.otp_expire_minutes
        )
        await self.notifier.send(account["email"], subject, body)

    async def reset_password(
        self,
        db: AsyncSession,
        email: str,
        code: str,
        new_password: str,
    ) -> None:
        """
        Consume a reset code and replace the password hash.

        Raises:
            ValidationException: If the new password violates the policy
            AccountNotFoundException: If no account exists for the address
            UnverifiedAccountException: If the account never completed verification
            ChallengeExpiredException: If the code has expired or none was issued
            InvalidCodeException: If the code is wrong or already used
        """
        self.validate_password(new_password)

        account = await self.store.get_by_email(db, email)
        if account is None:
            raise AccountNotFoundException(f"{self.spec.label} not found with this email")

        if not account["is_verified"]:
            raise UnverifiedAccountException()

        otp_hash = self._check_challenge(account, code)

        replaced = await self.store.replace_password(
            db, account["id"], otp_hash, get_password_hash(new_password)
        )
        if not replaced:
            raise InvalidCodeException()

        logger.info("password_reset", kind=self.spec.kind, account_id=str(account["id"]))
