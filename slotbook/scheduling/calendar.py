"""
Time zone calendar: recurring weekly local hours -> concrete UTC instants.

Each local ``HH:MM`` boundary is resolved against the zone's offset on that
specific calendar date, so two adjacent days may legitimately map the same
wall-clock time to UTC instants one hour apart across a DST change.

DST policy (explicit, never left to pytz defaults):
- Nonexistent local time (spring-forward gap): the occurrence is skipped
  for that day. No instant is emitted and no error is raised.
- Ambiguous local time (fall-back overlap): resolved to the standard
  (non-DST) offset, i.e. the later of the two UTC instants.
"""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterator, Optional

import pytz
from pytz.exceptions import AmbiguousTimeError, NonExistentTimeError, UnknownTimeZoneError

from slotbook.errors import InvalidRequestError
from slotbook.logging_context import get_request_logger
from slotbook.scheduling.intervals import Interval
from slotbook.schemas.availability_schema import WeeklyAvailability

logger = get_request_logger(__name__)


def get_time_zone(name: Optional[str]) -> tzinfo:
    """Resolve an IANA zone name.

    Raises:
        InvalidRequestError: If the name is blank or unknown.
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidRequestError("Invalid time zone")
    try:
        return pytz.timezone(cleaned)
    except UnknownTimeZoneError:
        raise InvalidRequestError(f"Invalid time zone {cleaned!r}") from None


def day_of_week(day: date) -> int:
    """Weekday index used by weekly schedules: 0=Sunday ... 6=Saturday."""
    return day.isoweekday() % 7


def iter_days(from_day: date, to_day: date) -> Iterator[date]:
    """Yield every calendar day in the inclusive range."""
    current = from_day
    while current <= to_day:
        yield current
        current += timedelta(days=1)


def today_in(zone: tzinfo, now: datetime) -> date:
    """The local calendar day in ``zone`` at instant ``now``."""
    return now.astimezone(zone).date()


class TimeZoneCalendar:
    """Expands a weekly template into UTC working intervals for a date range."""

    def to_utc(self, local_day: date, minutes: int, zone: tzinfo) -> Optional[datetime]:
        """Convert a local wall-clock time on ``local_day`` to a UTC instant.

        Returns None when the wall-clock time does not exist on that day.
        """
        naive = datetime.combine(local_day, time(minutes // 60, minutes % 60))
        try:
            local = zone.localize(naive, is_dst=None)  # type: ignore[attr-defined]
        except NonExistentTimeError:
            return None
        except AmbiguousTimeError:
            local = zone.localize(naive, is_dst=False)  # type: ignore[attr-defined]
        return local.astimezone(pytz.utc)

    def working_intervals(
        self,
        availability: WeeklyAvailability,
        from_day: date,
        to_day: date,
        time_zone: Optional[str] = None,
    ) -> list[Interval]:
        """UTC intervals for every configured range on each local day in range.

        ``time_zone`` overrides the provider's own zone. The calendar imposes
        no range-length limit; callers enforce one.
        """
        zone = get_time_zone(time_zone or availability.time_zone)
        intervals: list[Interval] = []

        for day in iter_days(from_day, to_day):
            for rng in availability.ranges_for(day_of_week(day)):
                start = self.to_utc(day, rng.start_minutes, zone)
                end = self.to_utc(day, rng.end_minutes, zone)
                if start is None or end is None:
                    logger.debug(
                        "Skipping %s-%s on %s: local time does not exist in %s",
                        rng.start, rng.end, day.isoformat(), zone,
                    )
                    continue
                if end <= start:
                    continue
                intervals.append(Interval(start, end))

        return intervals
