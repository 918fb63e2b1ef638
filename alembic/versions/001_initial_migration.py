"""Initial migration - create account and chat tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _account_columns() -> list[sa.Column]:
    """Columns shared by both account tables."""
    return [
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("otp_hash", sa.Text(), nullable=True),
        sa.Column("otp_expires_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
    ]


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    # Enable pgcrypto extension
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # Create users table
    op.create_table(
        "users",
        *_account_columns(),
        sa.Column("phone", sa.VARCHAR(length=20), nullable=True),
        sa.Column("address", postgresql.JSON(), nullable=True),
        sa.Column("dob", sa.VARCHAR(length=20), nullable=True),
        sa.Column("gender", sa.VARCHAR(length=20), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Create doctors table
    op.create_table(
        "doctors",
        *_account_columns(),
        sa.Column("speciality", sa.VARCHAR(length=200), nullable=True),
        sa.Column("degree", sa.VARCHAR(length=200), nullable=True),
        sa.Column("experience", sa.VARCHAR(length=50), nullable=True),
        sa.Column("about", sa.Text(), nullable=True),
        sa.Column("fees", sa.Integer(), nullable=True),
        sa.Column(
            "profile_complete", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("available", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_doctors_email", "doctors", ["email"], unique=True)
    op.create_index("ix_doctors_available", "doctors", ["available"])

    # Create chats table
    op.create_table(
        "chats",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("user_id", postgresql.UUID(), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("access_granted", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("expires_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_chats_user_id", "chats", ["user_id"])
    op.create_index("idx_chats_doctor_id", "chats", ["doctor_id"])
    op.create_index("idx_chats_pair", "chats", ["user_id", "doctor_id"])

    # Create chat_messages table
    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("chat_id", postgresql.UUID(), nullable=False),
        sa.Column("sender", sa.VARCHAR(length=10), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint("sender IN ('user', 'doctor')", name="chat_messages_sender_check"),
        sa.ForeignKeyConstraint(["chat_id"], ["chats.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_chat_messages_chat_id", "chat_messages", ["chat_id", "id"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("idx_chat_messages_chat_id", table_name="chat_messages")
    op.drop_table("chat_messages")

    op.drop_index("idx_chats_pair", table_name="chats")
    op.drop_index("idx_chats_doctor_id", table_name="chats")
    op.drop_index("idx_chats_user_id", table_name="chats")
    op.drop_table("chats")

    op.drop_index("ix_doctors_available", table_name="doctors")
    op.drop_index("ix_doctors_email", table_name="doctors")
    op.drop_table("doctors")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
