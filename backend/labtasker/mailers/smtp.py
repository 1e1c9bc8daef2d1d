"""SMTP sender."""

import asyncio
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Optional

from ..config import Settings, get_settings
from ..email_templates import render_template
from .base import EmailPayload, EmailSender, SendResult


class SMTPSender(EmailSender):
    """Sends mail through an SMTP relay."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.username = settings.smtp_username
        self.password = settings.smtp_password
        self.use_tls = settings.smtp_use_tls
        self.from_address = settings.email_from
        self.from_name = settings.email_from_name
        self.timeout = settings.io_timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.host and self.from_address)

    def build_message(self, payload: EmailPayload) -> EmailMessage:
        """Render the template into a multipart text/HTML message."""
        rendered = render_template(payload.template, payload.data)

        message = EmailMessage()
        message["From"] = formataddr((self.from_name, self.from_address))
        message["To"] = payload.to
        message["Subject"] = payload.subject
        message["Message-ID"] = make_msgid()
        for header, value in payload.priority_headers.items():
            message[header] = value
        message.set_content(rendered.text)
        message.add_alternative(rendered.html, subtype="html")
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp_client:
            if self.use_tls:
                smtp_client.starttls()
            if self.username:
                smtp_client.login(self.username, self.password)
            smtp_client.send_message(message)

    async def send(self, payload: EmailPayload) -> SendResult:
        """Send via SMTP in a worker thread."""
        if not self.configured:
            return SendResult(success=False, message="SMTP host or sender not configured")

        message = self.build_message(payload)
        try:
            await asyncio.to_thread(self._send_sync, message)
        except smtplib.SMTPRecipientsRefused as e:
            return SendResult(success=False, message=f"Recipient refused: {e.recipients}")
        except (smtplib.SMTPException, OSError) as e:
            return SendResult(success=False, message=f"SMTP error: {e}")

        return SendResult(
            success=True,
            message="Email sent via SMTP",
            message_id=message["Message-ID"],
        )
