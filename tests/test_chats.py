"""Tests for chat endpoints."""

from datetime import datetime, timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.account_kinds import AccountKind
from app.core.exceptions import ChatExpiredException, ProviderUnavailableException
from app.models import doctors, users
from app.services.chat_service import ChatService
from conftest import bearer, create_account


async def start_chat(client: AsyncClient, headers: dict, doctor_id) -> dict:
    response = await client.post(
        "/api/v1/user/chat/start", json={"doctorId": str(doctor_id)}, headers=headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    return data["chat"]


@pytest.mark.asyncio
class TestChatConversation:
    """Tests for exchanging messages."""

    async def test_chat_conversation(
        self, client: AsyncClient, user_headers, doctor_headers, test_user, test_doctor
    ):
        """User and doctor exchange messages in order."""
        chat = await start_chat(client, user_headers, test_doctor["id"])
        assert chat["userId"] == str(test_user["id"])
        assert chat["doctorId"] == str(test_doctor["id"])
        assert chat["accessGranted"] is True
        assert chat["active"] is True
        assert chat["messages"] == []

        response = await client.post(
            "/api/v1/user/chat/message",
            json={"chatId": chat["id"], "text": "Hello doctor"},
            headers=user_headers,
        )
        assert response.json()["success"] is True

        response = await client.post(
            "/api/v1/doctor/chat/reply",
            json={"chatId": chat["id"], "text": "Hello, how can I help?"},
            headers=doctor_headers,
        )
        messages = response.json()["chat"]["messages"]
        assert [(m["sender"], m["text"]) for m in messages] == [
            ("user", "Hello doctor"),
            ("doctor", "Hello, how can I help?"),
        ]

        for headers, kind in ((user_headers, "user"), (doctor_headers, "doctor")):
            response = await client.get(f"/api/v1/{kind}/chat/{chat['id']}", headers=headers)
            assert [m["sender"] for m in response.json()["chat"]["messages"]] == ["user", "doctor"]

    async def test_chat_shows_both_parties(
        self, client: AsyncClient, user_headers, doctor_headers, test_doctor
    ):
        """The patient sees who the doctor is and the doctor sees who the patient is."""
        chat = await start_chat(client, user_headers, test_doctor["id"])
        assert chat["doctor"] == {
            "name": "Dr. Dana",
            "speciality": "General physician",
            "imageUrl": None,
        }

        response = await client.get(f"/api/v1/doctor/chat/{chat['id']}", headers=doctor_headers)
        assert response.json()["chat"]["user"] == {
            "name": "Pat Patient",
            "email": "pat@example.com",
            "imageUrl": None,
        }

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_empty_message_rejected(
        self, client: AsyncClient, user_headers, test_doctor, text
    ):
        """Blank messages are rejected."""
        chat = await start_chat(client, user_headers, test_doctor["id"])
        response = await client.post(
            "/api/v1/user/chat/message",
            json={"chatId": chat["id"], "text": text},
            headers=user_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Message cannot be empty"}


@pytest.mark.asyncio
class TestChatExpiry:
    """Tests for the chat access window."""

    async def test_chat_window_is_24_hours(
        self, client: AsyncClient, clock, user_headers, test_doctor
    ):
        """A new chat expires 24 hours after creation."""
        chat = await start_chat(client, user_headers, test_doctor["id"])
        response = await client.get(f"/api/v1/user/chat/{chat['id']}", headers=user_headers)
        chat = response.json()["chat"]

        created_at = datetime.fromisoformat(chat["createdAt"])
        expires_at = datetime.fromisoformat(chat["expiresAt"])
        assert created_at == clock.now
        assert expires_at - created_at == timedelta(hours=24)

    async def test_expired_chat_rejects_both_parties(
        self, client: AsyncClient, clock, user_headers, doctor_headers, test_doctor
    ):
        """Neither party can write after expiry, but the chat stays readable."""
        chat = await start_chat(client, user_headers, test_doctor["id"])
        await client.post(
            "/api/v1/user/chat/message",
            json={"chatId": chat["id"], "text": "Before expiry"},
            headers=user_headers,
        )

        clock.advance(hours=24)

        response = await client.post(
            "/api/v1/user/chat/message",
            json={"chatId": chat["id"], "text": "Too late"},
            headers=user_headers,
        )
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Chat access has expired"}

        response = await client.post(
            "/api/v1/doctor/chat/reply",
            json={"chatId": chat["id"], "text": "Too late"},
            headers=doctor_headers,
        )
        assert response.status_code == 403

        # Still readable, unchanged
        response = await client.get(f"/api/v1/doctor/chat/{chat['id']}", headers=doctor_headers)
        data = response.json()["chat"]
        assert data["active"] is False
        assert [m["text"] for m in data["messages"]] == ["Before expiry"]

    async def test_message_just_before_expiry(
        self, client: AsyncClient, clock, user_headers, test_doctor
    ):
        """A message one second before expiry is accepted."""
        chat = await start_chat(client, user_headers, test_doctor["id"])
        clock.advance(hours=24, seconds=-1)

        response = await client.post(
            "/api/v1/user/chat/message",
            json={"chatId": chat["id"], "text": "Just in time"},
            headers=user_headers,
        )
        assert response.json()["success"] is True

    async def test_service_enforces_expiry_for_doctor(
        self, db_session: AsyncSession, settings, clock, test_user, test_doctor
    ):
        """Late doctor replies are rejected and not stored."""
        service = ChatService(settings, clock=clock)
        chat = await service.start_chat(db_session, test_user["id"], test_doctor["id"])

        clock.advance(days=2)
        with pytest.raises(ChatExpiredException):
            await service.append_message(
                db_session, chat["id"], test_doctor["id"], AccountKind.DOCTOR, "Late reply"
            )

        chat = await service.get_chat(db_session, chat["id"], test_user["id"], AccountKind.USER)
        assert chat["messages"] == []

    async def test_insert_checks_window_itself(
        self, db_session: AsyncSession, settings, clock, test_user, test_doctor
    ):
        """A chat that looked open when loaded but has since expired takes no message."""
        service = ChatService(settings, clock=clock)
        chat = await service.start_chat(db_session, test_user["id"], test_doctor["id"])
        clock.advance(hours=24)

        with patch.object(ChatService, "_is_open", return_value=True):
            with pytest.raises(ChatExpiredException):
                await service.append_message(
                    db_session, chat["id"], test_user["id"], AccountKind.USER, "Racing the clock"
                )

        chat = await service.get_chat(db_session, chat["id"], test_user["id"], AccountKind.USER)
        assert chat["messages"] == []


@pytest.mark.asyncio
class TestChatAccess:
    """Tests for who may read and write a chat."""

    async def test_other_user_cannot_see_chat(
        self, client: AsyncClient, db_session: AsyncSession, settings, user_headers, test_doctor
    ):
        """A user who is not a party gets 404 on read and write."""
        chat = await start_chat(client, user_headers, test_doctor["id"])
        stranger = await create_account(db_session, users)
        headers = bearer(settings, stranger["id"], "user")

        response = await client.get(f"/api/v1/user/chat/{chat['id']}", headers=headers)
        assert response.status_code == 404

        response = await client.post(
            "/api/v1/user/chat/message",
            json={"chatId": chat["id"], "text": "Let me in"},
            headers=headers,
        )
        assert response.status_code == 404

    async def test_other_doctor_cannot_reply(
        self, client: AsyncClient, db_session: AsyncSession, settings, user_headers, test_doctor
    ):
        """A doctor who is not a party cannot reply."""
        chat = await start_chat(client, user_headers, test_doctor["id"])
        other = await create_account(db_session, doctors)

        response = await client.post(
            "/api/v1/doctor/chat/reply",
            json={"chatId": chat["id"], "text": "Not my patient"},
            headers=bearer(settings, other["id"], "doctor"),
        )
        assert response.status_code == 404

    async def test_unknown_chat(self, client: AsyncClient, user_headers):
        """An unknown chat id is a 404."""
        response = await client.get(f"/api/v1/user/chat/{uuid4()}", headers=user_headers)
        assert response.status_code == 404


@pytest.mark.asyncio
class TestStartChat:
    """Tests for opening chats."""

    async def test_start_chat_reuses_open_chat(
        self, client: AsyncClient, clock, user_headers, test_doctor
    ):
        """Starting again while a chat is open returns it; after expiry a new one opens."""
        first = await start_chat(client, user_headers, test_doctor["id"])
        clock.advance(hours=1)
        second = await start_chat(client, user_headers, test_doctor["id"])
        assert second["id"] == first["id"]

        clock.advance(hours=23)
        third = await start_chat(client, user_headers, test_doctor["id"])
        assert third["id"] != first["id"]
        assert third["active"] is True

    async def test_start_chat_with_unavailable_doctor(
        self, client: AsyncClient, db_session: AsyncSession, user_headers
    ):
        """An unavailable doctor is a business failure."""
        doctor = await create_account(db_session, doctors, available=False)
        response = await client.post(
            "/api/v1/user/chat/start", json={"doctorId": str(doctor["id"])}, headers=user_headers
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "message": "Doctor is not available for chat.",
        }

    async def test_start_chat_with_unknown_doctor(self, client: AsyncClient, user_headers):
        """An unknown doctor is treated as unavailable."""
        response = await client.post(
            "/api/v1/user/chat/start", json={"doctorId": str(uuid4())}, headers=user_headers
        )
        assert response.json()["success"] is False

    async def test_start_chat_with_unverified_doctor(
        self, client: AsyncClient, db_session: AsyncSession, user_headers
    ):
        """An unverified doctor is treated as unavailable."""
        doctor = await create_account(db_session, doctors, verified=False)
        response = await client.post(
            "/api/v1/user/chat/start", json={"doctorId": str(doctor["id"])}, headers=user_headers
        )
        assert response.json()["success"] is False

    async def test_service_rejects_unavailable_doctor(
        self, db_session: AsyncSession, settings, clock, test_user
    ):
        """The service raises for an unavailable doctor."""
        doctor = await create_account(db_session, doctors, available=False)
        service = ChatService(settings, clock=clock)
        with pytest.raises(ProviderUnavailableException):
            await service.start_chat(db_session, test_user["id"], doctor["id"])
