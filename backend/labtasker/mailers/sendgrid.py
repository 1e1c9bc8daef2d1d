"""SendGrid sender (v3 mail/send REST API)."""

from typing import Optional

import httpx

from ..config import Settings, get_settings
from ..email_templates import render_template
from .base import EmailPayload, EmailSender, SendResult


class SendGridSender(EmailSender):
    """Sender for SendGrid."""

    API_BASE = "https://api.sendgrid.com/v3"

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.api_key = settings.sendgrid_api_key
        self.from_address = settings.email_from
        self.from_name = settings.email_from_name
        self.timeout = settings.io_timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        return self._client

    def build_body(self, payload: EmailPayload) -> dict:
        rendered = render_template(payload.template, payload.data)
        body = {
            "personalizations": [{"to": [{"email": payload.to}]}],
            "from": {"email": self.from_address, "name": self.from_name},
            "subject": payload.subject,
            "content": [
                {"type": "text/plain", "value": rendered.text},
                {"type": "text/html", "value": rendered.html},
            ],
        }
        headers = payload.priority_headers
        if headers:
            body["headers"] = headers
        return body

    async def send(self, payload: EmailPayload) -> SendResult:
        """Send through the SendGrid API."""
        if not (self.api_key and self.from_address):
            return SendResult(success=False, message="SendGrid API key or sender not configured")

        try:
            client = await self._get_client()
            response = await client.post(
                f"{self.API_BASE}/mail/send", json=self.build_body(payload)
            )
            response.raise_for_status()
            return SendResult(
                success=True,
                message="Email accepted by SendGrid",
                message_id=response.headers.get("X-Message-Id"),
            )

        except httpx.HTTPStatusError as e:
            return SendResult(
                success=False, message=f"SendGrid error: {e.response.status_code}"
            )
        except httpx.RequestError as e:
            return SendResult(success=False, message=f"Connection error: {e}")
