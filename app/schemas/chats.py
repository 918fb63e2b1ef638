"""Chat schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel


class StartChatRequest(CamelModel):
    """Open a chat with a doctor."""

    doctor_id: UUID


class ChatMessageRequest(CamelModel):
    """Append a message to a chat."""

    chat_id: UUID
    text: str = Field(..., max_length=5000)


class ChatMessage(CamelModel):
    """One entry of the message log."""

    sender: Literal["user", "doctor"]
    text: str
    created_at: datetime


class ChatUser(CamelModel):
    """Patient details shown to the doctor."""

    name: str
    email: str
    image_url: str | None = None


class ChatDoctor(CamelModel):
    """Doctor details shown to the patient."""

    name: str
    speciality: str | None = None
    image_url: str | None = None


class Chat(CamelModel):
    """Chat session with its ordered message log."""

    id: UUID
    user_id: UUID
    doctor_id: UUID
    user: ChatUser | None = None
    doctor: ChatDoctor | None = None
    access_granted: bool
    active: bool
    created_at: datetime
    expires_at: datetime
    updated_at: datetime
    messages: list[ChatMessage] = Field(default_factory=list)


class ChatResponse(CamelModel):
    """Envelope for a chat."""

    success: bool = True
    message: str | None = None
    chat: Chat
