"""
Centralized configuration with environment variable overrides.

Scheduling limits, booking rules and logging settings are configurable
here. Nothing is hardcoded in the scheduling or booking logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from slotbook.logging_context import request_id_handler

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot generation defaults and query limits."""

    default_time_zone: str = os.getenv("DEFAULT_TIME_ZONE", "Europe/Berlin")
    default_slot_duration_min: int = _safe_int("DEFAULT_SLOT_DURATION_MIN", "60")
    default_buffer_min: int = _safe_int("DEFAULT_BUFFER_MIN", "0")
    max_slot_range_days: int = _safe_int("MAX_SLOT_RANGE_DAYS", "14")
    default_slot_range_days: int = _safe_int("DEFAULT_SLOT_RANGE_DAYS", "7")
    max_slots_returned: int = _safe_int("MAX_SLOTS_RETURNED", "500")
    max_blackout_days: int = _safe_int("MAX_BLACKOUT_DAYS", "60")


@dataclass(frozen=True)
class BookingRulesConfig:
    """Booking duration bounds, notice windows and history limits."""

    default_duration_min: int = _safe_int("DEFAULT_BOOKING_DURATION_MIN", "60")
    min_duration_min: int = _safe_int("MIN_BOOKING_DURATION_MIN", "15")
    max_duration_min: int = _safe_int("MAX_BOOKING_DURATION_MIN", "1440")
    cancel_min_hours_before_start: int = _safe_int("CANCEL_MIN_HOURS_BEFORE_START", "24")
    reschedule_min_hours_before_start: int = _safe_int(
        "RESCHEDULE_MIN_HOURS_BEFORE_START", "24"
    )
    max_history_hops: int = _safe_int("MAX_HISTORY_HOPS", "200")
    default_list_limit: int = _safe_int("DEFAULT_LIST_LIMIT", "20")
    max_list_limit: int = _safe_int("MAX_LIST_LIMIT", "100")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    booking: BookingRulesConfig = field(default_factory=BookingRulesConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "slotbook")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    sched = config.scheduling
    rules = config.booking

    if not 15 <= sched.default_slot_duration_min <= 240:
        raise ValueError(
            "DEFAULT_SLOT_DURATION_MIN must be between 15 and 240, "
            f"got {sched.default_slot_duration_min}"
        )
    if not 0 <= sched.default_buffer_min <= 120:
        raise ValueError(
            f"DEFAULT_BUFFER_MIN must be between 0 and 120, got {sched.default_buffer_min}"
        )
    if sched.max_slot_range_days < 0:
        raise ValueError(
            f"MAX_SLOT_RANGE_DAYS must be >= 0, got {sched.max_slot_range_days}"
        )
    if not 0 <= sched.default_slot_range_days <= sched.max_slot_range_days:
        raise ValueError(
            "DEFAULT_SLOT_RANGE_DAYS must be between 0 and MAX_SLOT_RANGE_DAYS, "
            f"got {sched.default_slot_range_days}"
        )
    if sched.max_slots_returned < 1:
        raise ValueError(
            f"MAX_SLOTS_RETURNED must be >= 1, got {sched.max_slots_returned}"
        )
    if sched.max_blackout_days < 1:
        raise ValueError(
            f"MAX_BLACKOUT_DAYS must be >= 1, got {sched.max_blackout_days}"
        )

    if rules.min_duration_min < 1:
        raise ValueError(
            f"MIN_BOOKING_DURATION_MIN must be >= 1, got {rules.min_duration_min}"
        )
    if rules.max_duration_min < rules.min_duration_min:
        raise ValueError(
            "MAX_BOOKING_DURATION_MIN must be >= MIN_BOOKING_DURATION_MIN, "
            f"got {rules.max_duration_min}"
        )
    if not rules.min_duration_min <= rules.default_duration_min <= rules.max_duration_min:
        raise ValueError(
            "DEFAULT_BOOKING_DURATION_MIN must lie within the booking duration bounds, "
            f"got {rules.default_duration_min}"
        )

    for name, value in [
        ("CANCEL_MIN_HOURS_BEFORE_START", rules.cancel_min_hours_before_start),
        ("RESCHEDULE_MIN_HOURS_BEFORE_START", rules.reschedule_min_hours_before_start),
    ]:
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")

    if rules.max_history_hops < 1:
        raise ValueError(
            f"MAX_HISTORY_HOPS must be >= 1, got {rules.max_history_hops}"
        )
    if not 1 <= rules.default_list_limit <= rules.max_list_limit:
        raise ValueError(
            "DEFAULT_LIST_LIMIT must be between 1 and MAX_LIST_LIMIT, "
            f"got {rules.default_list_limit}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        handlers=[request_id_handler()],
    )
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
