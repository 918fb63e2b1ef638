"""Outbound email for one-time codes.

Two delivery modes:
- SMTP via aiosmtplib when ``SMTP_USER``/``SMTP_PASSWORD`` are set
- Development mode, where the message is written to the log instead
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

import aiosmtplib
import structlog

from app.config import Settings
from app.core.exceptions import NotificationFailedException

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    """Sends a message to an email address."""

    async def send(self, to_email: str, subject: str, html_content: str) -> None: ...


class EmailNotifier:
    """SMTP notifier configured from application settings."""

    def __init__(self, settings: Settings):
        """Initialize notifier with SMTP settings."""
        self.settings = settings

    async def send(self, to_email: str, subject: str, html_content: str) -> None:
        """
        Send an HTML email.

        Raises:
            NotificationFailedException: If the SMTP server rejects the message
        """
        if not self.settings.smtp_configured:
            logger.warning(
                "email_not_sent_smtp_unconfigured",
                to=to_email,
                subject=subject,
                body=html_content if self.settings.debug else None,
            )
            return

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{self.settings.smtp_from_name} <{self.settings.smtp_from_email}>"
        message["To"] = to_email
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.smtp_host,
                port=self.settings.smtp_port,
                username=self.settings.smtp_user,
                password=self.settings.smtp_password,
                start_tls=True,
            )
        except aiosmtplib.SMTPException as e:
            raise NotificationFailedException() from e
        except OSError as e:
            raise NotificationFailedException() from e

        logger.info("email_sent", to=to_email, subject=subject)


def registration_otp_email(brand: str, code: str, expire_minutes: int) -> tuple[str, str]:
    """Subject and body of the registration verification email."""
    subject = f"{brand} - Verify Your Email"
    body = (
        f"<p>Your one-time password (OTP) for {brand} registration is:</p>"
        f"<h2><b>{code}</b></h2>"
        f"<p>This OTP is valid for {expire_minutes} minutes.</p>"
    )
    return subject, body


def password_reset_otp_email(brand: str, code: str, expire_minutes: int) -> tuple[str, str]:
    """Subject and body of the password reset email."""
    subject = f"{brand} - Password Reset OTP"
    body = (
        "<h2>Password Reset Request</h2>"
        "<p>You have requested to reset your password.</p>"
        f"<p>Your OTP is: <strong>{code}</strong></p>"
        f"<p>This OTP will expire in {expire_minutes} minutes.</p>"
        "<p>If you didn't request this, please ignore this email.</p>"
    )
    return subject, body
