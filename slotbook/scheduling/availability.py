"""
Provider availability service.

Owns the provider-facing side of scheduling: the weekly template, blackout
periods, and the validated free-slot query used by clients. Also exposes
the unfiltered slot listing the booking lifecycle uses as its commit-time
availability check.
"""

import uuid
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from slotbook.config import AppConfig, settings
from slotbook.errors import ConflictError, InvalidRequestError, NotFoundError
from slotbook.logging_context import get_request_logger, with_request_id
from slotbook.scheduling.calendar import get_time_zone, today_in
from slotbook.scheduling.slots import SlotGenerator
from slotbook.schemas.availability_schema import (
    MAX_BLACKOUT_REASON_LENGTH,
    Blackout,
    Slot,
    WeeklyAvailability,
)
from slotbook.store import SchedulingStore
from slotbook.utils import normalize_id, parse_instant, parse_local_day, trim_or_none, utc_now

logger = get_request_logger(__name__)

Clock = Callable[[], datetime]

UPDATABLE_FIELDS = ("time_zone", "slot_duration_min", "buffer_min", "is_active", "weekly")


def _utc_window(from_day: date, to_day: date) -> tuple[datetime, datetime]:
    """A UTC window wide enough to hold every local instant of the day range.

    Zone offsets stay within +-14h, so padding a day on each side is enough
    without resolving local midnights (which may not exist).
    """
    start = datetime.combine(from_day - timedelta(days=1), datetime.min.time())
    end = datetime.combine(to_day + timedelta(days=2), datetime.min.time())
    return parse_instant(start, "from"), parse_instant(end, "to")


class AvailabilityService:
    """Weekly availability, blackouts and free-slot queries for providers."""

    def __init__(
        self,
        store: SchedulingStore,
        generator: Optional[SlotGenerator] = None,
        clock: Clock = utc_now,
        config: AppConfig = settings,
    ) -> None:
        self.store = store
        self.generator = generator or SlotGenerator()
        self.clock = clock
        self.config = config

    # --- weekly availability ---

    @with_request_id
    def get_or_create(self, provider_user_id: str) -> WeeklyAvailability:
        """Return the provider's availability, creating the default one on first use."""
        provider_user_id = normalize_id(provider_user_id)
        if not provider_user_id:
            raise InvalidRequestError("providerUserId is required")

        existing = self.store.get_availability(provider_user_id)
        if existing is not None:
            return existing

        created = WeeklyAvailability(provider_user_id=provider_user_id)
        logger.info("Default availability created for provider %s", provider_user_id)
        return self.store.save_availability(created)

    @with_request_id
    def update_availability(self, provider_user_id: str, **updates: Any) -> WeeklyAvailability:
        """Partially update the weekly template.

        Accepts ``time_zone``, ``slot_duration_min``, ``buffer_min``,
        ``is_active`` and ``weekly`` (snake_case or camelCase keys). Omitted
        or None values keep their current setting.

        Raises:
            InvalidRequestError: On an unknown field or any invalid value.
        """
        current = self.get_or_create(provider_user_id)
        by_alias = {to_camel(name): name for name in UPDATABLE_FIELDS}

        changes: dict[str, Any] = {}
        for key, value in updates.items():
            name = by_alias.get(key, key)
            if name not in UPDATABLE_FIELDS:
                raise InvalidRequestError(f"Unknown availability field: {key}")
            if value is not None:
                changes[name] = value

        if not changes:
            return current

        try:
            updated = WeeklyAvailability.model_validate(
                {**current.model_dump(), **changes}
            )
        except ValidationError as exc:
            raise InvalidRequestError(f"Invalid availability: {exc}") from exc

        logger.info(
            "Availability updated for provider %s: %s",
            updated.provider_user_id, sorted(changes),
        )
        return self.store.save_availability(updated)

    # --- blackouts ---

    @with_request_id
    def list_blackouts(self, provider_user_id: str) -> list[Blackout]:
        return self.store.list_blackouts(normalize_id(provider_user_id))

    @with_request_id
    def add_blackout(
        self,
        provider_user_id: str,
        start_at: Union[str, datetime],
        end_at: Union[str, datetime],
        reason: Optional[str] = None,
        is_active: bool = True,
    ) -> Blackout:
        """Declare a period the provider is unavailable.

        Raises:
            InvalidRequestError: Unparsable instants, end <= start, or a span
                longer than the configured maximum.
            ConflictError: An active blackout would overlap an existing
                active blackout.
        """
        provider_user_id = normalize_id(provider_user_id)
        if not provider_user_id:
            raise InvalidRequestError("providerUserId is required")

        start = parse_instant(start_at, "startAt")
        end = parse_instant(end_at, "endAt")
        if end <= start:
            raise InvalidRequestError("endAt must be after startAt")

        blackout = Blackout(
            id=uuid.uuid4().hex,
            provider_user_id=provider_user_id,
            start_at=start,
            end_at=end,
            reason=trim_or_none(reason, max_length=MAX_BLACKOUT_REASON_LENGTH),
            is_active=is_active,
        )

        max_days = self.config.scheduling.max_blackout_days
        if blackout.duration > timedelta(days=max_days):
            raise InvalidRequestError(f"Blackout too long (max {max_days} days)")

        if is_active and self.store.find_active_blackouts(provider_user_id, start, end):
            raise ConflictError("Blackout overlaps an existing blackout")

        self.store.add_blackout(blackout)
        logger.info(
            "Blackout %s added for provider %s (%s .. %s)",
            blackout.id, provider_user_id, start.isoformat(), end.isoformat(),
        )
        return blackout

    @with_request_id
    def remove_blackout(self, provider_user_id: str, blackout_id: str) -> None:
        """Delete one of the provider's own blackouts."""
        blackout_id = normalize_id(blackout_id)
        if not blackout_id:
            raise InvalidRequestError("blackoutId is required")
        if not self.store.delete_blackout(normalize_id(provider_user_id), blackout_id):
            raise NotFoundError("Blackout not found")
        logger.info("Blackout %s removed for provider %s", blackout_id, provider_user_id)

    # --- slots ---

    @with_request_id
    def get_slots(
        self,
        provider_user_id: str,
        from_day: Union[str, date, None] = None,
        to_day: Union[str, date, None] = None,
        time_zone: Optional[str] = None,
    ) -> list[Slot]:
        """
        Free, future slots for a provider over an inclusive local date range.

        Args:
            provider_user_id: The provider whose timeline is queried.
            from_day: First local day (YYYY-MM-DD); defaults to today in the zone.
            to_day: Last local day; defaults to ``from_day`` + the default range.
            time_zone: IANA zone override; defaults to the provider's zone.

        Returns:
            Slots ascending by start, capped at the configured maximum.
            Empty when the provider has no availability or it is inactive.

        Raises:
            InvalidRequestError: Malformed day or zone, ``to < from``, or a
                range longer than the configured maximum.
        """
        provider_user_id = normalize_id(provider_user_id)
        availability = self.store.get_availability(provider_user_id)
        if availability is None or not availability.is_active:
            return []

        sched = self.config.scheduling
        zone_name = (time_zone or availability.time_zone).strip()
        zone = get_time_zone(zone_name)
        now = self.clock()

        start_day = (
            parse_local_day(from_day, "from") if from_day is not None else today_in(zone, now)
        )
        end_day = (
            parse_local_day(to_day, "to")
            if to_day is not None
            else start_day + timedelta(days=sched.default_slot_range_days)
        )

        days = (end_day - start_day).days
        if days < 0:
            raise InvalidRequestError("to must be >= from")
        if days > sched.max_slot_range_days:
            raise InvalidRequestError(
                f"Date range is too large (max {sched.max_slot_range_days} days)"
            )

        slots = self._generate(availability, start_day, end_day, zone_name)
        upcoming = [s for s in slots if s.end_at > now]
        if len(upcoming) > sched.max_slots_returned:
            logger.debug(
                "Capping %d slots to %d for provider %s",
                len(upcoming), sched.max_slots_returned, provider_user_id,
            )
            upcoming = upcoming[: sched.max_slots_returned]
        return upcoming

    @with_request_id
    def free_slots_for(
        self,
        provider_user_id: str,
        instant: datetime,
        exclude_booking_ids: Iterable[str] = (),
    ) -> list[Slot]:
        """Uncapped free slots on the local days around ``instant``.

        Used at commit time; bookings in ``exclude_booking_ids`` do not
        count as busy (a booking being rescheduled frees its own interval).
        Returns [] when the provider has no active availability.
        """
        availability = self.store.get_availability(normalize_id(provider_user_id))
        if availability is None or not availability.is_active:
            return []

        local_day = today_in(get_time_zone(availability.time_zone), instant)
        return self._generate(
            availability,
            local_day - timedelta(days=1),
            local_day + timedelta(days=1),
            availability.time_zone,
            exclude_booking_ids,
        )

    def _generate(
        self,
        availability: WeeklyAvailability,
        from_day: date,
        to_day: date,
        time_zone: str,
        exclude_booking_ids: Iterable[str] = (),
    ) -> list[Slot]:
        window_start, window_end = _utc_window(from_day, to_day)
        provider = availability.provider_user_id
        blackouts = self.store.find_active_blackouts(provider, window_start, window_end)
        bookings = self.store.find_overlapping(
            provider, window_start, window_end, exclude_booking_ids
        )
        return self.generator.generate(
            availability, blackouts, bookings, from_day, to_day, time_zone
        )
