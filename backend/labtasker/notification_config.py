"""Deadline notification configuration loader."""

import logging
from dataclasses import dataclass
from datetime import time
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeadlineOffset:
    """Number of days before a deadline at which a reminder fires."""

    days: int
    label: str

    def __post_init__(self):
        if isinstance(self.days, bool) or not isinstance(self.days, int):
            raise ConfigurationError(f"Offset days must be an integer, got {self.days!r}")
        if self.days < 0:
            raise ConfigurationError(f"Offset days must be >= 0, got {self.days}")


DEFAULT_OFFSETS = (
    DeadlineOffset(1, "tomorrow"),
    DeadlineOffset(3, "in 3 days"),
    DeadlineOffset(7, "in a week"),
)


@dataclass(frozen=True)
class FireSchedule:
    """Wall-clock time of day at which the daily cycle fires."""

    time_of_day: time
    timezone: str = "UTC"

    @classmethod
    def parse(cls, value: str, timezone: str = "UTC") -> "FireSchedule":
        """Build from an "HH:MM" string."""
        try:
            parsed = time.fromisoformat(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid fire time {value!r}: {e}") from e
        load_timezone(timezone)
        return cls(time_of_day=parsed, timezone=timezone)

    @property
    def tzinfo(self) -> ZoneInfo:
        return load_timezone(self.timezone)


@dataclass
class DeadlineConfig:
    """Offsets plus optional fallback recipient."""

    offsets: tuple[DeadlineOffset, ...] = DEFAULT_OFFSETS
    fallback_recipient_id: Optional[str] = None
    timezone: str = "UTC"

    def __post_init__(self):
        validate_offsets(self.offsets)
        load_timezone(self.timezone)

    @property
    def tzinfo(self) -> ZoneInfo:
        return load_timezone(self.timezone)


def load_timezone(name: str) -> ZoneInfo:
    """Resolve a timezone name, raising ConfigurationError when unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone: {name!r}") from e


def validate_offsets(offsets) -> None:
    """Reject empty or duplicate offset sets."""
    if not offsets:
        raise ConfigurationError("At least one deadline offset is required")
    seen = set()
    for offset in offsets:
        if offset.days in seen:
            raise ConfigurationError(f"Duplicate deadline offset: {offset.days} days")
        seen.add(offset.days)


def parse_offsets(raw: list) -> tuple[DeadlineOffset, ...]:
    """Parse a list of {days, label} mappings into offsets.

    A missing label is derived from the day count.
    """
    offsets = []
    for item in raw:
        if not isinstance(item, dict) or "days" not in item:
            raise ConfigurationError(f"Invalid offset entry: {item!r}")
        days = item["days"]
        label = item.get("label") or default_label(days)
        offsets.append(DeadlineOffset(days=days, label=str(label)))
    validate_offsets(offsets)
    return tuple(offsets)


def default_label(days: int) -> str:
    if days == 0:
        return "today"
    if days == 1:
        return "tomorrow"
    if days == 7:
        return "in a week"
    return f"in {days} days"


def load_deadline_config(
    config_path: Optional[Path] = None,
    fallback_recipient_id: Optional[str] = None,
    timezone: str = "UTC",
) -> DeadlineConfig:
    """Load deadline offsets from a YAML file.

    Expected format::

        offsets:
          - {days: 1, label: tomorrow}
          - {days: 3, label: in 3 days}
        fallback_recipient_id: admin

    A missing file gives the defaults. A malformed file raises
    ConfigurationError.

    Args:
        config_path: Path to config file. If None, only defaults apply.
        fallback_recipient_id: Used when the file does not set one.
        timezone: Local timezone for deadline windows.

    Returns:
        DeadlineConfig with values from file or defaults.
    """
    config_kwargs = {
        "fallback_recipient_id": fallback_recipient_id or None,
        "timezone": timezone,
    }

    if config_path is None or not config_path.exists():
        logger.info(f"Deadline config not found at {config_path}, using defaults")
        return DeadlineConfig(**config_kwargs)

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")

    if "offsets" in data:
        config_kwargs["offsets"] = parse_offsets(data["offsets"] or [])
    if data.get("fallback_recipient_id"):
        config_kwargs["fallback_recipient_id"] = str(data["fallback_recipient_id"])
    if data.get("timezone"):
        config_kwargs["timezone"] = str(data["timezone"])

    config = DeadlineConfig(**config_kwargs)
    logger.info(
        f"Loaded deadline config from {config_path}: "
        f"{[o.days for o in config.offsets]} days"
    )
    return config
