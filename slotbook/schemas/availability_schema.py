"""Weekly availability, blackout and slot models."""

from datetime import timedelta
from typing import Optional

import pytz
from pydantic import ConfigDict, Field, field_validator, model_validator

from slotbook.config import settings
from slotbook.schemas.base_schema import DocumentModel, UtcDatetime
from slotbook.utils import hhmm_to_minutes

MAX_BLACKOUT_REASON_LENGTH = 200


class TimeRange(DocumentModel):
    """A local wall-clock working range, e.g. 09:00-13:00."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_hhmm(cls, value: str) -> str:
        hhmm_to_minutes(value)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if self.end_minutes <= self.start_minutes:
            raise ValueError(f"Range end must be after start ({self.start}-{self.end})")
        return self

    @property
    def start_minutes(self) -> int:
        return hhmm_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return hhmm_to_minutes(self.end)


class WeeklyDaySchedule(DocumentModel):
    """Working ranges for one weekday (0=Sunday ... 6=Saturday)."""

    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(ge=0, le=6)
    ranges: list[TimeRange] = Field(default_factory=list)

    @field_validator("ranges")
    @classmethod
    def _sort_and_check_overlap(cls, ranges: list[TimeRange]) -> list[TimeRange]:
        ordered = sorted(ranges, key=lambda r: r.start_minutes)
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.start_minutes < prev.end_minutes:
                raise ValueError(
                    f"Ranges overlap: {prev.start}-{prev.end} and {cur.start}-{cur.end}"
                )
        return ordered


class WeeklyAvailability(DocumentModel):
    """A provider's recurring weekly template plus slot sizing."""

    provider_user_id: str = Field(min_length=1)
    time_zone: str = settings.scheduling.default_time_zone
    slot_duration_min: int = Field(default=settings.scheduling.default_slot_duration_min, ge=15, le=240)
    buffer_min: int = Field(default=settings.scheduling.default_buffer_min, ge=0, le=120)
    is_active: bool = True
    weekly: list[WeeklyDaySchedule] = Field(default_factory=list)

    @field_validator("time_zone")
    @classmethod
    def _check_time_zone(cls, value: str) -> str:
        value = value.strip()
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Invalid time zone {value!r}")
        return value

    @field_validator("weekly")
    @classmethod
    def _unique_days(cls, weekly: list[WeeklyDaySchedule]) -> list[WeeklyDaySchedule]:
        seen: set[int] = set()
        for day in weekly:
            if day.day_of_week in seen:
                raise ValueError(f"dayOfWeek {day.day_of_week} listed more than once")
            seen.add(day.day_of_week)
        return sorted(weekly, key=lambda d: d.day_of_week)

    def ranges_for(self, day_of_week: int) -> list[TimeRange]:
        """Configured ranges for a weekday, ascending by start."""
        for day in self.weekly:
            if day.day_of_week == day_of_week:
                return list(day.ranges)
        return []


class Blackout(DocumentModel):
    """A provider-declared unavailable UTC interval."""

    model_config = ConfigDict(frozen=True)

    id: str
    provider_user_id: str
    start_at: UtcDatetime
    end_at: UtcDatetime
    reason: Optional[str] = Field(default=None, max_length=MAX_BLACKOUT_REASON_LENGTH)
    is_active: bool = True

    @model_validator(mode="after")
    def _check_order(self) -> "Blackout":
        if self.end_at <= self.start_at:
            raise ValueError("endAt must be after startAt")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end_at - self.start_at


class Slot(DocumentModel):
    """An ephemeral bookable ``[startAt, endAt)`` pair. Never persisted."""

    model_config = ConfigDict(frozen=True)

    start_at: UtcDatetime
    end_at: UtcDatetime

    @property
    def duration_min(self) -> int:
        return int((self.end_at - self.start_at).total_seconds() // 60)
