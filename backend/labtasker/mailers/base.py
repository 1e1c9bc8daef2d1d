"""Base classes for email senders."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

# Header values for the "priority" field of an email payload
PRIORITY_HEADERS = {
    "high": {"X-Priority": "1 (Highest)", "Importance": "high"},
    "normal": {},
    "low": {"X-Priority": "5 (Lowest)", "Importance": "low"},
}


@dataclass
class EmailPayload:
    """Email to send.

    Attributes:
        to: Recipient address
        subject: Subject line
        template: Template name passed to render_template
        data: Values for the template
        priority: "high" | "normal" | "low"
    """

    to: str
    subject: str
    template: str = "notification"
    data: dict = field(default_factory=dict)
    priority: str = "normal"

    @property
    def priority_headers(self) -> dict[str, str]:
        return dict(PRIORITY_HEADERS.get(self.priority, {}))


@dataclass
class SendResult:
    """Result of a send attempt.

    Attributes:
        success: Whether the provider accepted the message
        message: Human-readable result message
        message_id: Provider message id, when returned
    """

    success: bool
    message: str
    message_id: Optional[str] = None


class EmailSender(ABC):
    """Abstract base class for email providers."""

    enabled = True

    @abstractmethod
    async def send(self, payload: EmailPayload) -> SendResult:
        """Send one email.

        Args:
            payload: Address, subject and template data

        Returns:
            SendResult indicating success/failure
        """
        pass


class DisabledSender(EmailSender):
    """Sender used when no provider is configured. Never sends."""

    enabled = False

    async def send(self, payload: EmailPayload) -> SendResult:
        return SendResult(success=False, message="Email delivery is not configured")
