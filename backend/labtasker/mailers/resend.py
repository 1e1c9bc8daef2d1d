"""Resend sender."""

from typing import Optional

import httpx

from ..config import Settings, get_settings
from ..email_templates import render_template
from .base import EmailPayload, EmailSender, SendResult


class ResendSender(EmailSender):
    """Sender for Resend."""

    API_BASE = "https://api.resend.com"

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.api_key = settings.resend_api_key
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

    async def send(self, payload: EmailPayload) -> SendResult:
        """Send through the Resend API."""
        if not (self.api_key and self.from_address):
            return SendResult(success=False, message="Resend API key or sender not configured")

        rendered = render_template(payload.template, payload.data)
        body = {
            "from": f"{self.from_name} <{self.from_address}>",
            "to": [payload.to],
            "subject": payload.subject,
            "html": rendered.html,
            "text": rendered.text,
        }
        headers = payload.priority_headers
        if headers:
            body["headers"] = headers

        try:
            client = await self._get_client()
            response = await client.post(f"{self.API_BASE}/emails", json=body)
            response.raise_for_status()
            data = response.json()
            return SendResult(
                success=True,
                message="Email accepted by Resend",
                message_id=data.get("id"),
            )

        except httpx.HTTPStatusError as e:
            return SendResult(
                success=False, message=f"Resend error: {e.response.status_code}"
            )
        except httpx.RequestError as e:
            return SendResult(success=False, message=f"Connection error: {e}")
