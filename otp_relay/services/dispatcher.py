"""
Notification dispatcher: turns a validated request into an email and
hands it to the mail transport.

One attempt per call, no retries.  Whatever goes wrong in the transport
(auth failure, refused connection, timeout, relay rejection) is logged
in full here and re-raised as a generic `TransportError`.
"""

from __future__ import annotations

import asyncio
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

import aiosmtplib

from otp_relay.config import Settings
from otp_relay.errors import TransportError
from otp_relay.models import OtpRequest
from otp_relay.services.email import build_otp_email
from otp_relay.services.transport import MailTransport

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, settings: Settings, transport: MailTransport) -> None:
        self._settings = settings
        self._transport = transport
        # connect + send, each bounded by the per-operation timeout
        self.total_timeout = settings.smtp_timeout * 2

    def build_message(self, request: OtpRequest, correlation_id: str) -> MIMEMultipart:
        content = build_otp_email(self._settings, request.passcode, correlation_id)
        sender = self._settings.sender_address
        domain = sender.rsplit("@", 1)[-1] if "@" in sender else None

        msg = MIMEMultipart("alternative")
        msg["Subject"] = content.subject
        msg["From"] = formataddr((self._settings.sender_name, sender))
        msg["To"] = request.email
        msg["Message-ID"] = make_msgid(idstring=correlation_id, domain=domain)
        msg["X-Request-ID"] = correlation_id
        msg["X-Priority"] = "1"
        msg["X-MSMail-Priority"] = "High"

        msg.attach(MIMEText(content.text, "plain", "utf-8"))
        msg.attach(MIMEText(content.html, "html", "utf-8"))
        return msg

    async def send(self, request: OtpRequest, correlation_id: str) -> str:
        """Send the passcode email. Returns the Message-ID on success."""
        msg = self.build_message(request, correlation_id)
        message_id = msg["Message-ID"]

        try:
            response = await asyncio.wait_for(
                self._transport.send(msg), timeout=self.total_timeout
            )
        except asyncio.TimeoutError as exc:
            logger.error(
                "Mail transport timed out after %.0fs",
                self.total_timeout,
                extra={"request_id": correlation_id, "smtp_host": self._settings.smtp_host},
            )
            raise TransportError("Mail transport timed out") from exc
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error(
                "Mail transport failed: %s",
                exc,
                exc_info=True,
                extra={"request_id": correlation_id, "smtp_host": self._settings.smtp_host},
            )
            raise TransportError() from exc

        logger.debug(
            "Relay accepted %s: %s",
            message_id,
            response,
            extra={"request_id": correlation_id},
        )
        return message_id
