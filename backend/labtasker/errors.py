"""Error types for the deadline notification cycle.

Unit failures (scan, resolution, store, delivery) are caught where they
happen and logged. Only ConfigurationError is allowed to leave run_cycle().
"""

from typing import Optional


class DeadlineCheckError(Exception):
    """Base class for deadline cycle errors."""


class ConfigurationError(DeadlineCheckError):
    """Invalid offsets, schedule or timezone. Not a data error."""


class ScanFailure(DeadlineCheckError):
    """Storage query for an (offset, entity kind) pair failed or timed out."""

    def __init__(self, kind: str, offset_days: int, reason: str):
        super().__init__(f"Scan of {kind} deadlines at {offset_days}d failed: {reason}")
        self.kind = kind
        self.offset_days = offset_days
        self.reason = reason


class ResolutionFailure(DeadlineCheckError):
    """Candidate identity could not be turned into a recipient."""

    def __init__(self, raw_identity: object, reason: str):
        super().__init__(f"Cannot resolve recipient {raw_identity!r}: {reason}")
        self.raw_identity = raw_identity
        self.reason = reason


class StoreFailure(DeadlineCheckError):
    """Persisting a notification failed."""

    def __init__(self, recipient_id: str, entity_id: str, offset_days: int, reason: str):
        super().__init__(
            f"Could not store notification for {recipient_id} "
            f"({entity_id}, {offset_days}d): {reason}"
        )
        self.recipient_id = recipient_id
        self.entity_id = entity_id
        self.offset_days = offset_days
        self.reason = reason


class DeliveryFailure(DeadlineCheckError):
    """Email send failed. The in-app notification is kept."""

    def __init__(self, address: Optional[str], entity_id: str, reason: str):
        super().__init__(f"Email to {address} for {entity_id} failed: {reason}")
        self.address = address
        self.entity_id = entity_id
        self.reason = reason
