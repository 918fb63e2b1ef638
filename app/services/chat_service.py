"""Time-boxed chat sessions between a user and a doctor."""

from datetime import timedelta
from uuid import UUID

import structlog
from sqlalchemy import DateTime, String, Text, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.account_kinds import AccountKind
from app.core.clock import Clock, as_utc, utc_now
from app.core.exceptions import (
    ChatExpiredException,
    NotFoundException,
    ProviderUnavailableException,
    ValidationException,
)
from app.models.chats import chat_messages, chats
from app.models.doctors import doctors
from app.models.users import users

logger = structlog.get_logger(__name__)


class ChatService:
    """Service for chat lifecycle and message log operations.

    A chat is writable by both parties while ``now < expires_at`` and stays
    readable by both parties afterwards. Expiry is checked on every write;
    nothing sweeps expired chats.
    """

    def __init__(self, settings: Settings, clock: Clock = utc_now):
        """Initialize chat service with settings and a clock."""
        self.settings = settings
        self.clock = clock

    @staticmethod
    def _party_column(kind: AccountKind):
        """Column holding the caller's id for their account kind."""
        return chats.c.user_id if kind == AccountKind.USER else chats.c.doctor_id

    def _is_open(self, chat: dict) -> bool:
        """Check whether messages may still be appended."""
        return bool(chat["access_granted"]) and self.clock() < as_utc(chat["expires_at"])

    async def _load_chat(
        self, db: AsyncSession, chat_id: UUID, caller_id: UUID, caller_kind: AccountKind
    ) -> dict:
        """
        Load a chat the caller is a party to.

        Raises:
            NotFoundException: If no such chat exists for this caller
        """
        query = select(chats).where(
            chats.c.id == chat_id,
            self._party_column(caller_kind) == caller_id,
        )
        result = await db.execute(query)
        chat = result.mappings().first()
        if not chat:
            raise NotFoundException("Chat not found or access denied.")
        return dict(chat)

    async def _parties(self, db: AsyncSession, chat: dict) -> dict:
        """Public details of both participants, keyed ``user`` and ``doctor``."""
        result = await db.execute(
            select(users.c.name, users.c.email, users.c.image_url).where(
                users.c.id == chat["user_id"]
            )
        )
        user = result.mappings().first()

        result = await db.execute(
            select(doctors.c.name, doctors.c.speciality, doctors.c.image_url).where(
                doctors.c.id == chat["doctor_id"]
            )
        )
        doctor = result.mappings().first()

        return {
            "user": dict(user) if user else None,
            "doctor": dict(doctor) if doctor else None,
        }

    async def _with_messages(self, db: AsyncSession, chat: dict) -> dict:
        """Attach the ordered message log and participant details to a chat record."""
        query = (
            select(chat_messages.c.sender, chat_messages.c.text, chat_messages.c.created_at)
            .where(chat_messages.c.chat_id == chat["id"])
            .order_by(chat_messages.c.id)
        )
        result = await db.execute(query)
        messages = [
            {**dict(row), "created_at": as_utc(row["created_at"])}
            for row in result.mappings().all()
        ]

        return {
            **chat,
            **await self._parties(db, chat),
            "created_at": as_utc(chat["created_at"]),
            "expires_at": as_utc(chat["expires_at"]),
            "updated_at": as_utc(chat["updated_at"]),
            "active": self._is_open(chat),
            "messages": messages,
        }

    async def start_chat(self, db: AsyncSession, user_id: UUID, doctor_id: UUID) -> dict:
        """
        Open a chat with a doctor, or return the pair's chat that is still open.

        Access is granted immediately for ``chat_access_hours``.

        Raises:
            ProviderUnavailableException: If the doctor is unknown, unverified or unavailable
        """
        result = await db.execute(
            select(doctors.c.available, doctors.c.is_verified).where(doctors.c.id == doctor_id)
        )
        doctor = result.mappings().first()
        if not doctor or not doctor["available"] or not doctor["is_verified"]:
            raise ProviderUnavailableException()

        now = self.clock()

        result = await db.execute(
            select(chats)
            .where(
                chats.c.user_id == user_id,
                chats.c.doctor_id == doctor_id,
                chats.c.access_granted.is_(True),
                chats.c.expires_at > now,
            )
            .order_by(chats.c.created_at.desc())
            .limit(1)
        )
        existing = result.mappings().first()
        if existing:
            return await self._with_messages(db, dict(existing))

        result = await db.execute(
            chats.insert()
            .values(
                user_id=user_id,
                doctor_id=doctor_id,
                access_granted=True,
                created_at=now,
                expires_at=now + timedelta(hours=self.settings.chat_access_hours),
                updated_at=now,
            )
            .returning(chats)
        )
        chat = dict(result.mappings().first())
        await db.commit()

        logger.info(
            "chat_started",
            chat_id=str(chat["id"]),
            user_id=str(user_id),
            doctor_id=str(doctor_id),
        )
        return await self._with_messages(db, chat)

    async def append_message(
        self,
        db: AsyncSession,
        chat_id: UUID,
        caller_id: UUID,
        caller_kind: AccountKind,
        text: str,
    ) -> dict:
        """
        Append a message from either party to an open chat.

        Returns:
            The chat with its full message log

        Raises:
            ValidationException: If the text is blank
            NotFoundException: If the caller is not the chat's party of their kind
            ChatExpiredException: If the chat's access window has closed
        """
        if not text or not text.strip():
            raise ValidationException("Message cannot be empty")

        chat = await self._load_chat(db, chat_id, caller_id, caller_kind)

        if not self._is_open(chat):
            logger.info(
                "chat_message_rejected_expired",
                chat_id=str(chat_id),
                sender=caller_kind.value,
            )
            raise ChatExpiredException()

        now = self.clock()
        # Window re-checked by the insert itself
        open_chat = select(
            chats.c.id,
            literal(caller_kind.value, String),
            literal(text, Text),
            literal(now, DateTime(timezone=True)),
        ).where(
            chats.c.id == chat_id,
            chats.c.access_granted.is_(True),
            chats.c.expires_at > now,
        )
        result = await db.execute(
            chat_messages.insert().from_select(
                ["chat_id", "sender", "text", "created_at"], open_chat
            )
        )
        if result.rowcount == 0:
            await db.rollback()
            logger.info(
                "chat_message_rejected_expired",
                chat_id=str(chat_id),
                sender=caller_kind.value,
            )
            raise ChatExpiredException()

        await db.execute(update(chats).where(chats.c.id == chat_id).values(updated_at=now))
        await db.commit()

        logger.info("chat_message_appended", chat_id=str(chat_id), sender=caller_kind.value)
        return await self._with_messages(db, {**chat, "updated_at": now})

    async def get_chat(
        self,
        db: AsyncSession,
        chat_id: UUID,
        caller_id: UUID,
        caller_kind: AccountKind,
    ) -> dict:
        """
        Read a chat and its messages; expired chats stay readable.

        Raises:
            NotFoundException: If the caller is not the chat's party of their kind
        """
        chat = await self._load_chat(db, chat_id, caller_id, caller_kind)
        return await self._with_messages(db, chat)
