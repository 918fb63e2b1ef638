"""Persistence of account records for either account kind."""

from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import not_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.account_kinds import AccountKindSpec
from app.core.exceptions import AlreadyRegisteredException
from app.core.security import verify_password

logger = structlog.get_logger(__name__)

# Columns that never leave the service layer
SECRET_COLUMNS = frozenset({"password_hash", "otp_hash", "otp_expires_at"})


def normalize_email(email: str) -> str:
    """Canonical form used as the lookup key."""
    return email.strip().lower()


class AccountStore:
    """Account table access for one account kind.

    Every state transition that depends on a previously read value is issued
    as a single conditional UPDATE so concurrent requests cannot both succeed.
    """

    def __init__(self, spec: AccountKindSpec):
        """Initialize store for the given account kind."""
        self.spec = spec
        self.table = spec.table

    async def get_by_email(self, db: AsyncSession, email: str) -> dict | None:
        """Get account by email address."""
        query = select(self.table).where(self.table.c.email == normalize_email(email))
        result = await db.execute(query)
        account = result.mappings().first()
        return dict(account) if account else None

    async def get_by_id(self, db: AsyncSession, account_id: UUID) -> dict | None:
        """Get account by ID."""
        query = select(self.table).where(self.table.c.id == account_id)
        result = await db.execute(query)
        account = result.mappings().first()
        return dict(account) if account else None

    async def upsert_pending_registration(
        self,
        db: AsyncSession,
        email: str,
        password_hash: str,
        otp_hash: str,
        otp_expires_at: datetime,
        profile: dict[str, Any],
    ) -> dict:
        """
        Create or overwrite the single unverified record for an address.

        Raises:
            AlreadyRegisteredException: If a verified account owns the address
        """
        email = normalize_email(email)
        values = {
            **profile,
            "password_hash": password_hash,
            "otp_hash": otp_hash,
            "otp_expires_at": otp_expires_at,
            "is_verified": False,
        }

        existing = await self.get_by_email(db, email)
        if existing and existing["is_verified"]:
            raise AlreadyRegisteredException(
                f"{self.spec.label} with this email already exists."
            )

        if existing is None:
            try:
                result = await db.execute(
                    self.table.insert().values(email=email, **values).returning(self.table)
                )
                account = result.mappings().first()
                await db.commit()
                return dict(account)
            except IntegrityError:
                # Another request inserted the same address first; overwrite it below
                await db.rollback()
                logger.info("registration_insert_raced", kind=self.spec.kind, email=email)

        result = await db.execute(
            update(self.table)
            .where(
                self.table.c.email == email,
                self.table.c.is_verified.is_(False),
            )
            .values(**values)
            .returning(self.table)
        )
        account = result.mappings().first()
        if account is None:
            await db.rollback()
            raise AlreadyRegisteredException(
                f"{self.spec.label} with this email already exists."
            )

        await db.commit()
        return dict(account)

    async def store_challenge(
        self,
        db: AsyncSession,
        account_id: UUID,
        otp_hash: str,
        otp_expires_at: datetime,
    ) -> None:
        """Replace the outstanding challenge on an existing record."""
        await db.execute(
            update(self.table)
            .where(self.table.c.id == account_id)
            .values(otp_hash=otp_hash, otp_expires_at=otp_expires_at)
        )
        await db.commit()

    async def mark_verified(self, db: AsyncSession, account_id: UUID, expected_otp_hash: str) -> bool:
        """
        Flip the verified flag and clear the challenge.

        Only succeeds if the record is still unverified and still holds the
        challenge that was checked.

        Returns:
            True if this call performed the transition
        """
        result = await db.execute(
            update(self.table)
            .where(
                self.table.c.id == account_id,
                self.table.c.is_verified.is_(False),
                self.table.c.otp_hash == expected_otp_hash,
            )
            .values(is_verified=True, otp_hash=None, otp_expires_at=None)
        )
        await db.commit()
        return result.rowcount == 1

    async def replace_password(
        self,
        db: AsyncSession,
        account_id: UUID,
        expected_otp_hash: str,
        password_hash: str,
    ) -> bool:
        """
        Set a new password hash and clear the challenge it was authorized by.

        Returns:
            True if the challenge was still outstanding and has been consumed
        """
        result = await db.execute(
            update(self.table)
            .where(
                self.table.c.id == account_id,
                self.table.c.otp_hash == expected_otp_hash,
            )
            .values(password_hash=password_hash, otp_hash=None, otp_expires_at=None)
        )
        await db.commit()
        return result.rowcount == 1

    async def update_profile(
        self, db: AsyncSession, account_id: UUID, values: dict[str, Any]
    ) -> dict | None:
        """Apply profile changes and return the updated record."""
        if not values:
            return await self.get_by_id(db, account_id)

        result = await db.execute(
            update(self.table)
            .where(self.table.c.id == account_id)
            .values(**values)
            .returning(self.table)
        )
        account = result.mappings().first()
        await db.commit()
        return dict(account) if account else None

    async def toggle_availability(self, db: AsyncSession, account_id: UUID) -> bool | None:
        """
        Flip the availability flag in place.

        Returns:
            New availability, or None if the account does not exist
        """
        result = await db.execute(
            update(self.table)
            .where(self.table.c.id == account_id)
            .values(available=not_(self.table.c.available))
            .returning(self.table.c.available)
        )
        available = result.scalar_one_or_none()
        await db.commit()
        return available

    @staticmethod
    def check_password(account: dict, password: str) -> bool:
        """Compare a candidate password with the stored hash."""
        return verify_password(password, account["password_hash"])

    @staticmethod
    def public_view(account: dict) -> dict:
        """Account record without secret columns."""
        return {key: value for key, value in account.items() if key not in SECRET_COLUMNS}
