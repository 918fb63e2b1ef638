"""Database models."""

from app.models.base import metadata
from app.models.chats import chat_messages, chats
from app.models.doctors import doctors
from app.models.users import users

__all__ = [
    "chat_messages",
    "chats",
    "doctors",
    "metadata",
    "users",
]
