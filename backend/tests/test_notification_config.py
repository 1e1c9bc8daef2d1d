"""Tests for deadline notification config loader."""

from datetime import time

import pytest

from labtasker.errors import ConfigurationError
from labtasker.notification_config import (
    DEFAULT_OFFSETS,
    DeadlineConfig,
    DeadlineOffset,
    FireSchedule,
    default_label,
    load_deadline_config,
    parse_offsets,
)


class TestDeadlineOffset:
    """Tests for DeadlineOffset."""

    def test_zero_is_allowed(self):
        """An offset of 0 means "due today"."""
        assert DeadlineOffset(0, "today").days == 0

    def test_negative_rejected(self):
        with pytest.raises(ConfigurationError):
            DeadlineOffset(-1, "yesterday")

    def test_non_integer_rejected(self):
        with pytest.raises(ConfigurationError):
            DeadlineOffset("3", "in 3 days")
        with pytest.raises(ConfigurationError):
            DeadlineOffset(True, "tomorrow")


class TestDeadlineConfig:
    """Tests for DeadlineConfig class."""

    def test_default_config_values(self):
        """Config should default to 1, 3 and 7 days."""
        config = DeadlineConfig()
        assert [o.days for o in config.offsets] == [1, 3, 7]
        assert [o.label for o in config.offsets] == ["tomorrow", "in 3 days", "in a week"]
        assert config.fallback_recipient_id is None
        assert config.timezone == "UTC"

    def test_empty_offsets_rejected(self):
        with pytest.raises(ConfigurationError):
            DeadlineConfig(offsets=())

    def test_duplicate_offsets_rejected(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            DeadlineConfig(offsets=(DeadlineOffset(1, "a"), DeadlineOffset(1, "b")))

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ConfigurationError, match="timezone"):
            DeadlineConfig(timezone="Mars/Olympus_Mons")


class TestParseOffsets:
    """Tests for parse_offsets."""

    def test_missing_label_is_derived(self):
        offsets = parse_offsets([{"days": 0}, {"days": 1}, {"days": 2}, {"days": 7}])
        assert [o.label for o in offsets] == ["today", "tomorrow", "in 2 days", "in a week"]

    def test_entry_without_days_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_offsets([{"label": "soon"}])

    def test_default_label(self):
        assert default_label(14) == "in 14 days"


class TestLoadDeadlineConfig:
    """Tests for load_deadline_config."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Missing config file should return defaults."""
        config = load_deadline_config(tmp_path / "nonexistent.yaml")
        assert config.offsets == DEFAULT_OFFSETS

    def test_none_path_uses_defaults(self):
        config = load_deadline_config(None, fallback_recipient_id="admin", timezone="Europe/Budapest")
        assert config.offsets == DEFAULT_OFFSETS
        assert config.fallback_recipient_id == "admin"
        assert config.timezone == "Europe/Budapest"

    def test_loads_from_file(self, tmp_path):
        """Config should load values from YAML file."""
        config_file = tmp_path / "deadline_offsets.yaml"
        config_file.write_text(
            """
offsets:
  - days: 2
    label: in two days
  - days: 5
fallback_recipient_id: lab-admin
timezone: America/New_York
"""
        )
        config = load_deadline_config(config_file, fallback_recipient_id="ignored")
        assert [o.days for o in config.offsets] == [2, 5]
        assert config.offsets[0].label == "in two days"
        assert config.offsets[1].label == "in 5 days"
        assert config.fallback_recipient_id == "lab-admin"
        assert config.timezone == "America/New_York"

    def test_settings_fallback_used_when_file_silent(self, tmp_path):
        config_file = tmp_path / "deadline_offsets.yaml"
        config_file.write_text("offsets:\n  - days: 1\n")
        config = load_deadline_config(config_file, fallback_recipient_id="admin")
        assert config.fallback_recipient_id == "admin"

    def test_malformed_yaml_raises(self, tmp_path):
        config_file = tmp_path / "deadline_offsets.yaml"
        config_file.write_text("offsets: [days: 1\n")
        with pytest.raises(ConfigurationError):
            load_deadline_config(config_file)

    def test_non_mapping_raises(self, tmp_path):
        config_file = tmp_path / "deadline_offsets.yaml"
        config_file.write_text("- 1\n- 3\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_deadline_config(config_file)

    def test_negative_offset_in_file_raises(self, tmp_path):
        config_file = tmp_path / "deadline_offsets.yaml"
        config_file.write_text("offsets:\n  - days: -3\n")
        with pytest.raises(ConfigurationError):
            load_deadline_config(config_file)


class TestFireSchedule:
    """Tests for FireSchedule."""

    def test_parse(self):
        schedule = FireSchedule.parse("09:00", "Europe/Budapest")
        assert schedule.time_of_day == time(9, 0)
        assert schedule.timezone == "Europe/Budapest"
        assert str(schedule.tzinfo) == "Europe/Budapest"

    def test_parse_invalid_time(self):
        with pytest.raises(ConfigurationError):
            FireSchedule.parse("nine o'clock")

    def test_parse_invalid_timezone(self):
        with pytest.raises(ConfigurationError):
            FireSchedule.parse("09:00", "Nowhere/Special")
