"""
Outgoing mail collaborator.

The rest of the app depends only on `Mailer.send(recipient, subject, body)`
returning True/False. Delivery failures are the caller's to log; nothing
here retries.
"""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from ecoscore.core.config import settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, recipient: str, subject: str, body: str) -> bool: ...


class SmtpMailer:
    """SMTP sender. With no host configured, messages are logged and treated as sent."""

    def __init__(
        self,
        host: str = "",
        port: int = 587,
        user: str = "",
        password: str = "",
        sender: str = "EcoScore <no-reply@ecoscore.app>",
        use_tls: bool = True,
        timeout: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "SmtpMailer":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            sender=settings.SMTP_FROM,
            use_tls=settings.SMTP_USE_TLS,
        )

    def send(self, recipient: str, subject: str, body: str) -> bool:
        if not self.host:
            logger.info("Mail not sent (no SMTP host). to=%s subject=%r", recipient, subject)
            return True

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)
        logger.info("Mail sent to %s", recipient)
        return True


def get_mailer() -> Mailer:
    """FastAPI dependency; tests override it with a recording fake."""
    return SmtpMailer.from_settings()


# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

def achievement_message(user_name: str, achievement_name: str, bonus: int) -> tuple[str, str]:
    subject = f"{user_name} unlocked {achievement_name}!"
    body = (
        f"Your friend {user_name} just earned the \"{achievement_name}\" "
        f"achievement (+{bonus} points) on EcoScore.\n\n"
        "Log in to cheer them on and keep up with your own streak.\n\n"
        "– EcoScore"
    )
    return subject, body


def friend_request_message(from_name: str) -> tuple[str, str]:
    subject = "New friend request on EcoScore"
    body = (
        f"Hi!\n\n{from_name} wants to connect with you on EcoScore.\n\n"
        "Log in to accept the request.\n\n"
        "– EcoScore"
    )
    return subject, body


def friend_accepted_message(accepter_name: str) -> tuple[str, str]:
    subject = "Friend request accepted!"
    body = (
        f"{accepter_name} accepted your friend request on EcoScore.\n\n"
        "You can now track each other's progress.\n\n"
        "– EcoScore"
    )
    return subject, body
