"""User (patient) account model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Table, Text, Uuid, false

from app.core.clock import utc_now
from app.models.base import metadata

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # One row per address; unverified rows are overwritten by a new registration
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("password_hash", Text, nullable=False),
    Column("is_verified", Boolean, nullable=False, default=False, server_default=false()),
    # Outstanding challenge (both NULL when none)
    Column("otp_hash", Text),
    Column("otp_expires_at", DateTime(timezone=True)),
    # Profile
    Column("name", Text, nullable=False),
    Column("phone", String(20)),
    Column("address", JSON),
    Column("dob", String(20)),
    Column("gender", String(20)),
    Column("image_url", Text),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now),
)
