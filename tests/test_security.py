"""Tests for hashing, token and email helpers."""

from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest

from app.core.exceptions import NotificationFailedException
from app.core.security import (
    create_access_token,
    decode_access_token,
    generate_otp,
    hash_otp,
    verify_otp,
)
from app.services.email_service import EmailNotifier, registration_otp_email


class TestOneTimeCodes:
    """Tests for code generation and hashing."""

    def test_generate_otp_is_six_digits(self):
        """Codes are six digits without a leading zero."""
        codes = {generate_otp() for _ in range(50)}
        assert all(len(code) == 6 and code.isdigit() and code[0] != "0" for code in codes)

    def test_otp_hash_round_trip(self):
        """Test hashing and verifying a code."""
        code_hash = hash_otp("123456")
        assert code_hash != "123456"
        assert verify_otp("123456", code_hash)
        assert not verify_otp("654321", code_hash)
        assert not verify_otp("123456", None)


class TestAccessTokens:
    """Tests for JWT creation and decoding."""

    def test_token_claims(self, settings):
        """Tokens carry subject, kind, type, id and timestamps."""
        token = create_access_token({"sub": "abc", "kind": "user"}, settings)
        payload = decode_access_token(token, settings)

        assert payload["sub"] == "abc"
        assert payload["kind"] == "user"
        assert payload["type"] == "access"
        assert payload["jti"]
        assert payload["exp"] > payload["iat"]

    def test_tokens_have_unique_ids(self, settings):
        """Test that every token gets its own id."""
        first = decode_access_token(create_access_token({"sub": "abc"}, settings), settings)
        second = decode_access_token(create_access_token({"sub": "abc"}, settings), settings)
        assert first["jti"] != second["jti"]


@pytest.mark.asyncio
class TestEmailNotifier:
    """Tests for outgoing verification email."""

    async def test_registration_email_carries_code(self):
        """The email names the app, the code and its lifetime."""
        subject, body = registration_otp_email("HealthLife", "987654", 10)
        assert "HealthLife" in subject
        assert "987654" in body
        assert "10 minutes" in body

    async def test_notifier_without_smtp_logs_instead(self, settings):
        """Without SMTP credentials nothing is sent."""
        notifier = EmailNotifier(settings.model_copy(update={"smtp_user": None}))
        with patch("app.services.email_service.aiosmtplib.send", new=AsyncMock()) as send:
            await notifier.send("pat@example.com", "Subject", "<p>Body</p>")
        send.assert_not_called()

    async def test_notifier_smtp_failure(self, settings):
        """SMTP errors surface as a notification failure with the cause attached."""
        configured = settings.model_copy(update={"smtp_user": "mailer", "smtp_password": "pw"})
        notifier = EmailNotifier(configured)
        failure = AsyncMock(side_effect=aiosmtplib.SMTPException("rejected"))

        with patch("app.services.email_service.aiosmtplib.send", new=failure):
            with pytest.raises(NotificationFailedException) as exc_info:
                await notifier.send("pat@example.com", "Subject", "<p>Body</p>")

        assert isinstance(exc_info.value.__cause__, aiosmtplib.SMTPException)
