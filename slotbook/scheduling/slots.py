"""
Slot generation.

Cuts the working intervals produced by the time zone calendar into
fixed-length slots separated by a buffer, then drops every slot that
touches a blackout or an existing booking. A slot that overlaps busy
time by even one microsecond is removed whole, never truncated.
"""

from datetime import date, timedelta
from typing import Iterable, Iterator, Optional

from slotbook.logging_context import get_request_logger
from slotbook.scheduling.calendar import TimeZoneCalendar
from slotbook.scheduling.intervals import Interval, busy_ends, normalize, overlaps_any
from slotbook.schemas.availability_schema import Blackout, Slot, WeeklyAvailability
from slotbook.schemas.booking_schema import Booking, BookingStatus

logger = get_request_logger(__name__)


def cut_slots(working: Interval, duration: timedelta, buffer: timedelta) -> Iterator[Interval]:
    """Consecutive ``duration`` slots from ``working.start``; no partial trailing slot."""
    step = duration + buffer
    cursor = working.start
    while cursor + duration <= working.end:
        yield Interval(cursor, cursor + duration)
        cursor += step


def busy_intervals(blackouts: Iterable[Blackout], bookings: Iterable[Booking]) -> list[Interval]:
    """Normalized busy time from active blackouts and non-cancelled bookings."""
    busy = [Interval(b.start_at, b.end_at) for b in blackouts if b.is_active]
    busy.extend(
        Interval(b.start_at, b.end_at)
        for b in bookings
        if b.status != BookingStatus.CANCELLED
    )
    return normalize(busy)


class SlotGenerator:
    """Pure, idempotent free-slot computation for one provider."""

    def __init__(self, calendar: Optional[TimeZoneCalendar] = None) -> None:
        self.calendar = calendar or TimeZoneCalendar()

    def generate(
        self,
        availability: WeeklyAvailability,
        blackouts: Iterable[Blackout],
        bookings: Iterable[Booking],
        from_day: date,
        to_day: date,
        time_zone: Optional[str] = None,
    ) -> list[Slot]:
        """
        Free slots for the inclusive local date range, ascending by start.

        Args:
            availability: The provider's weekly template and slot sizing.
            blackouts: Blackouts for the provider; inactive ones are ignored.
            bookings: Bookings for the provider; cancelled ones are ignored.
            from_day: First local calendar day.
            to_day: Last local calendar day (inclusive).
            time_zone: Zone override, defaults to the provider's own zone.

        Returns:
            Slots sorted by (startAt, endAt), free of duplicates.
        """
        duration = timedelta(minutes=availability.slot_duration_min)
        buffer = timedelta(minutes=availability.buffer_min)

        working = self.calendar.working_intervals(availability, from_day, to_day, time_zone)
        busy = busy_intervals(blackouts, bookings)
        ends = busy_ends(busy)

        candidates: set[Interval] = set()
        removed = 0
        for interval in working:
            for slot in cut_slots(interval, duration, buffer):
                if overlaps_any(slot, busy, ends):
                    removed += 1
                    continue
                candidates.add(slot)

        slots = [Slot(start_at=s.start, end_at=s.end) for s in sorted(candidates)]
        logger.debug(
            "Generated %d free slot(s) for %s (%s..%s), %d blocked",
            len(slots), availability.provider_user_id,
            from_day.isoformat(), to_day.isoformat(), removed,
        )
        return slots
