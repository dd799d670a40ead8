from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from email.utils import make_msgid
from typing import Callable, Dict, Protocol

from .config import SmtpSettings

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    """Normalized email payload for providers."""

    to: str
    subject: str
    text: str
    html: str | None = None
    sender: str | None = None


class EmailSendError(Exception):
    """Raised when an email provider fails to send."""


class EmailSender(Protocol):
    """Protocol implemented by email providers. Returns the provider message id."""

    def send(self, message: EmailMessage) -> str | None:  # pragma: no cover - protocol
        ...


class SmtpSender:
    def __init__(self, settings: SmtpSettings, timeout: float = 10):
        self.settings = settings
        self.timeout = timeout

    def _build_message(self, message: EmailMessage) -> MimeMessage:
        msg = MimeMessage()
        msg["Subject"] = message.subject
        msg["From"] = message.sender or self.settings.from_email
        msg["To"] = message.to
        msg["Message-ID"] = make_msgid()
        # some relays reject an empty text part
        msg.set_content(message.text or " ")
        if message.html:
            msg.add_alternative(message.html, subtype="html")
        return msg

    def send(self, message: EmailMessage) -> str | None:
        if not self.settings.host:
            raise EmailSendError("SMTP host is not configured (MAILQ_SMTP_HOST)")
        msg = self._build_message(message)
        try:
            with smtplib.SMTP(self.settings.host, self.settings.port, timeout=self.timeout) as smtp:
                if self.settings.use_tls:
                    smtp.starttls()
                if self.settings.username and self.settings.password:
                    smtp.login(self.settings.username, self.settings.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailSendError(f"SMTP delivery failed: {exc}") from exc
        return msg["Message-ID"]


class LogSender:
    """Development provider: logs the email instead of delivering it."""

    def send(self, message: EmailMessage) -> str | None:
        logger.info(
            "email_logged",
            extra={"to": message.to, "subject": message.subject, "has_html": bool(message.html)},
        )
        return None


def build_senders(smtp_settings: SmtpSettings) -> Dict[str, Callable[[], EmailSender]]:
    return {
        "log": LogSender,
        "smtp": lambda: SmtpSender(smtp_settings),
    }


def select_sender(provider: str, senders: Dict[str, Callable[[], EmailSender]]) -> EmailSender:
    try:
        factory = senders[provider]
    except KeyError:
        raise ValueError(f"Unknown email provider {provider!r}; known: {', '.join(sorted(senders))}")
    return factory()
