"""Doctor account model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    false,
    true,
)

from app.core.clock import utc_now
from app.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("password_hash", Text, nullable=False),
    Column("is_verified", Boolean, nullable=False, default=False, server_default=false()),
    Column("otp_hash", Text),
    Column("otp_expires_at", DateTime(timezone=True)),
    Column("name", Text, nullable=False),
    # Professional profile, filled in after first login
    Column("speciality", String(200)),
    Column("degree", String(200)),
    Column("experience", String(50)),
    Column("about", Text),
    Column("fees", Integer),
    Column("image_url", Text),
    # Set once the professional profile is first saved; never cleared
    Column("profile_complete", Boolean, nullable=False, default=False, server_default=false()),
    Column("available", Boolean, nullable=False, default=True, server_default=true(), index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now),
)
