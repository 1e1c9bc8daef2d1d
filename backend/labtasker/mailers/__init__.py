"""Email senders for notification delivery."""

from typing import Optional

from ..config import Settings, get_settings
from .base import DisabledSender, EmailPayload, EmailSender, SendResult
from .resend import ResendSender
from .sendgrid import SendGridSender
from .smtp import SMTPSender

__all__ = [
    "EmailSender",
    "EmailPayload",
    "SendResult",
    "DisabledSender",
    "SMTPSender",
    "SendGridSender",
    "ResendSender",
    "get_mailer",
]


def get_mailer(provider: Optional[str] = None, settings: Optional[Settings] = None) -> EmailSender:
    """Get the sender for a provider.

    Args:
        provider: "smtp", "sendgrid", "resend" or "none". Defaults to
            settings.email_provider.
        settings: Settings to configure the sender with

    Returns:
        EmailSender implementation for the provider

    Raises:
        ValueError: If provider is unknown
    """
    settings = settings or get_settings()
    provider = (provider or settings.email_provider or "none").lower()

    if provider == "smtp":
        return SMTPSender(settings)
    elif provider == "sendgrid":
        return SendGridSender(settings)
    elif provider == "resend":
        return ResendSender(settings)
    elif provider in ("none", "disabled", ""):
        return DisabledSender()
    raise ValueError(f"Unknown email provider: {provider}")
