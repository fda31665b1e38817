"""Tests for configuration loading and validation."""

import pytest

from slotbook.config import (
    AppConfig,
    BookingRulesConfig,
    SchedulingConfig,
    _safe_int,
    _validate_config,
    load_config,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        config = AppConfig()
        _validate_config(config)  # should not raise

    def test_defaults(self):
        config = AppConfig()
        assert config.scheduling.max_slot_range_days == 14
        assert config.scheduling.max_slots_returned == 500
        assert config.booking.max_history_hops == 200

    def test_slot_duration_too_short(self):
        config = AppConfig(scheduling=SchedulingConfig(default_slot_duration_min=10))
        with pytest.raises(ValueError, match="DEFAULT_SLOT_DURATION_MIN"):
            _validate_config(config)

    def test_buffer_too_long(self):
        config = AppConfig(scheduling=SchedulingConfig(default_buffer_min=121))
        with pytest.raises(ValueError, match="DEFAULT_BUFFER_MIN"):
            _validate_config(config)

    def test_default_range_beyond_max(self):
        config = AppConfig(
            scheduling=SchedulingConfig(max_slot_range_days=7, default_slot_range_days=10)
        )
        with pytest.raises(ValueError, match="DEFAULT_SLOT_RANGE_DAYS"):
            _validate_config(config)

    def test_slot_cap_must_be_positive(self):
        config = AppConfig(scheduling=SchedulingConfig(max_slots_returned=0))
        with pytest.raises(ValueError, match="MAX_SLOTS_RETURNED"):
            _validate_config(config)

    def test_duration_bounds_inverted(self):
        config = AppConfig(booking=BookingRulesConfig(min_duration_min=60, max_duration_min=30))
        with pytest.raises(ValueError, match="MAX_BOOKING_DURATION_MIN"):
            _validate_config(config)

    def test_negative_notice_window(self):
        config = AppConfig(booking=BookingRulesConfig(cancel_min_hours_before_start=-1))
        with pytest.raises(ValueError, match="CANCEL_MIN_HOURS_BEFORE_START"):
            _validate_config(config)

    def test_history_hops_must_be_positive(self):
        config = AppConfig(booking=BookingRulesConfig(max_history_hops=0))
        with pytest.raises(ValueError, match="MAX_HISTORY_HOPS"):
            _validate_config(config)

    def test_list_limit_above_max(self):
        config = AppConfig(booking=BookingRulesConfig(default_list_limit=500))
        with pytest.raises(ValueError, match="DEFAULT_LIST_LIMIT"):
            _validate_config(config)


class TestEnvParsing:
    def test_safe_int_parsing(self):
        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_int_reads_env(self, monkeypatch):
        monkeypatch.setenv("SLOTBOOK_TEST_INT", "7")
        assert _safe_int("SLOTBOOK_TEST_INT", "1") == 7

    def test_safe_int_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("SLOTBOOK_TEST_INT", "seven")
        with pytest.raises(ValueError, match="SLOTBOOK_TEST_INT"):
            _safe_int("SLOTBOOK_TEST_INT", "1")

    def test_load_config_returns_validated_config(self):
        config = load_config()
        assert isinstance(config, AppConfig)
        assert config.service_name
