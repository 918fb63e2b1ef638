"""Chat session and message models using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    true,
)

from app.core.clock import utc_now
from app.models.base import metadata

chats = Table(
    "chats",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("doctor_id", Uuid, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False),
    # Access is granted on creation; there is no payment step
    Column("access_granted", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("expires_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now),
    Index("idx_chats_user_id", "user_id"),
    Index("idx_chats_doctor_id", "doctor_id"),
    Index("idx_chats_pair", "user_id", "doctor_id"),
)

chat_messages = Table(
    "chat_messages",
    metadata,
    # Autoincrement id is the ordering key within a chat
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("chat_id", Uuid, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
    Column("sender", String(10), nullable=False),
    Column("text", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("sender IN ('user', 'doctor')", name="chat_messages_sender_check"),
    Index("idx_chat_messages_chat_id", "chat_id", "id"),
)
