"""
Mail transports.

`SmtpTransport` is the only code that talks to the mail relay.  In
development (no SMTP configured), `ConsoleTransport` logs what *would*
be sent so the service runs without a mail server.  Neither transport
logs message bodies, so passcodes never reach the log.
"""

from __future__ import annotations

import logging
from email.message import Message
from typing import Protocol

import aiosmtplib

from otp_relay.config import Settings

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    async def send(self, message: Message) -> str:
        """Deliver `message` and return the relay's response text."""
        ...


class SmtpTransport:
    """Async SMTP delivery with bounded per-operation timeouts."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _client(self) -> aiosmtplib.SMTP:
        s = self._settings
        return aiosmtplib.SMTP(
            hostname=s.smtp_host,
            port=s.smtp_port,
            username=s.smtp_username or None,
            password=s.smtp_password or None,
            use_tls=s.smtp_use_tls,
            start_tls=s.smtp_start_tls and not s.smtp_use_tls,
            timeout=s.smtp_timeout,
        )

    async def send(self, message: Message) -> str:
        smtp = self._client()
        # Entering the context connects and, with credentials, logs in.
        async with smtp:
            if self._settings.smtp_verify:
                await smtp.noop()
                logger.debug("SMTP connection verified (%s)", self._settings.smtp_host)

            rejected, response = await smtp.send_message(message)

        if rejected:
            raise aiosmtplib.SMTPRecipientsRefused(
                [
                    aiosmtplib.SMTPRecipientRefused(code, text, recipient)
                    for recipient, (code, text) in rejected.items()
                ]
            )
        return response


class ConsoleTransport:
    """Development fallback: log the envelope, never the body."""

    async def send(self, message: Message) -> str:
        logger.info(
            "📧 [DEV] Would send email to %s: %s (Message-ID %s)",
            message["To"],
            message["Subject"],
            message["Message-ID"],
        )
        return "250 console transport: message not sent"


def build_transport(settings: Settings) -> MailTransport:
    if settings.smtp_enabled():
        return SmtpTransport(settings)
    logger.warning("SMTP not configured, emails will be logged, not sent")
    return ConsoleTransport()
