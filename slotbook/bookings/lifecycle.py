"""
Booking lifecycle: create, cancel, complete and reschedule.

Every mutating operation validates input and authorization before touching
the store. ``create`` and ``reschedule`` are the only strict linearization
points: they recompute free slots and write inside one provider
transaction, so two callers can never both take the same slot.
``cancel`` and ``complete`` are single conditional writes on the expected
current status.
"""

import uuid
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Union

from slotbook.bookings.permissions import Operation, authorize
from slotbook.bookings.state_machine import BookingEvent, is_terminal, next_status
from slotbook.config import AppConfig, settings
from slotbook.errors import ConflictError, InvalidRequestError, NotFoundError
from slotbook.logging_context import get_request_logger, with_request_id
from slotbook.scheduling.availability import AvailabilityService
from slotbook.schemas.booking_schema import (
    MAX_REASON_LENGTH,
    Actor,
    Booking,
    BookingFilters,
    BookingStatus,
    Role,
)
from slotbook.store import SchedulingStore
from slotbook.utils import normalize_id, parse_instant, trim_or_none, utc_now

logger = get_request_logger(__name__)

Clock = Callable[[], datetime]


class BookingLifecycle:
    """State machine over confirmed -> {cancelled, completed} with reschedule chains."""

    def __init__(
        self,
        store: SchedulingStore,
        availability: AvailabilityService,
        clock: Clock = utc_now,
        config: AppConfig = settings,
    ) -> None:
        self.store = store
        self.availability = availability
        self.clock = clock
        self.config = config

    # --- validation helpers ---

    def _require_id(self, value: Optional[str], field_name: str) -> str:
        cleaned = normalize_id(value)
        if not cleaned:
            raise InvalidRequestError(f"{field_name} is required")
        return cleaned

    def _future_start(self, value: Union[str, datetime], now: datetime) -> datetime:
        start = parse_instant(value, "startAt")
        if start <= now:
            raise InvalidRequestError("startAt must be in the future")
        return start

    def _duration(self, value: Optional[int], default: int) -> int:
        rules = self.config.booking
        duration = default if value is None else value
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise InvalidRequestError("durationMin is invalid")
        if not rules.min_duration_min <= duration <= rules.max_duration_min:
            raise InvalidRequestError(
                f"durationMin must be between {rules.min_duration_min} "
                f"and {rules.max_duration_min}"
            )
        return duration

    def _load(self, booking_id: Optional[str]) -> Booking:
        booking = self.store.get_booking(self._require_id(booking_id, "bookingId"))
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def _assert_notice(self, booking: Booking, min_hours: int, action: str, now: datetime) -> None:
        to_start = booking.start_at - now
        if to_start <= timedelta(0):
            raise InvalidRequestError(f"Cannot {action} started booking")
        if to_start < timedelta(hours=min_hours):
            raise InvalidRequestError(
                f"Cannot {action} less than {min_hours}h before start"
            )

    def _assert_slot_free(
        self,
        provider_user_id: str,
        start_at: datetime,
        duration_min: int,
        exclude_ids: Iterable[str] = (),
    ) -> None:
        """Require ``[start, start+duration)`` to be exactly one currently free slot."""
        end_at = start_at + timedelta(minutes=duration_min)
        slots = self.availability.free_slots_for(provider_user_id, start_at, exclude_ids)
        if not any(s.start_at == start_at and s.end_at == end_at for s in slots):
            raise ConflictError("Slot is not available")

    # --- operations ---

    @with_request_id
    def create(
        self,
        actor: Actor,
        request_id: str,
        response_id: str,
        provider_user_id: str,
        start_at: Union[str, datetime],
        duration_min: Optional[int] = None,
        note: Optional[str] = None,
    ) -> Booking:
        """
        Book a free slot for the calling client.

        Args:
            actor: The client making the booking; becomes ``clientId``.
            request_id: Marketplace request the booking fulfils.
            response_id: Accepted offer/response id.
            provider_user_id: Provider whose timeline is booked.
            start_at: UTC start instant (ISO-8601 or aware datetime).
            duration_min: Defaults to the configured booking duration.
            note: Optional client note kept in ``metadata``.

        Raises:
            InvalidRequestError: Missing ids, bad instant, past start, bad duration.
            ForbiddenError: The actor is not a client.
            ConflictError: The interval is not exactly one currently free slot.
        """
        request_id = self._require_id(request_id, "requestId")
        response_id = self._require_id(response_id, "responseId")
        provider_user_id = self._require_id(provider_user_id, "providerUserId")
        now = self.clock()
        start = self._future_start(start_at, now)
        duration = self._duration(duration_min, self.config.booking.default_duration_min)
        note = trim_or_none(note, max_length=MAX_REASON_LENGTH)

        authorize(Operation.CREATE, actor, client_id=actor.user_id, provider_user_id=provider_user_id)

        with self.store.provider_transaction(provider_user_id) as uow:
            self._assert_slot_free(provider_user_id, start, duration)
            created = uow.insert_if_no_overlap(
                Booking(
                    id=uuid.uuid4().hex,
                    request_id=request_id,
                    response_id=response_id,
                    provider_user_id=provider_user_id,
                    client_id=actor.user_id,
                    start_at=start,
                    duration_min=duration,
                    status=BookingStatus.CONFIRMED,
                    metadata={"note": note} if note else {},
                )
            )

        logger.info(
            "Booking %s created: provider=%s client=%s start=%s (%d min)",
            created.id, provider_user_id, actor.user_id, start.isoformat(), duration,
        )
        return created

    @with_request_id
    def get(self, actor: Actor, booking_id: str) -> Booking:
        """Load a booking visible to the actor."""
        booking = self._load(booking_id)
        authorize(Operation.VIEW, actor, booking.client_id, booking.provider_user_id)
        return booking

    @with_request_id
    def cancel(self, actor: Actor, booking_id: str, reason: Optional[str] = None) -> Booking:
        """
        Cancel a confirmed booking.

        Raises:
            NotFoundError: Unknown booking.
            ForbiddenError: Actor is neither a party nor an admin.
            ConflictError: Booking already cancelled or completed, or changed
                concurrently.
            InvalidRequestError: Booking started or inside the notice window.
        """
        booking = self._load(booking_id)
        authorize(Operation.CANCEL, actor, booking.client_id, booking.provider_user_id)
        new_status = next_status(booking.status, BookingEvent.CANCEL)

        now = self.clock()
        self._assert_notice(
            booking, self.config.booking.cancel_min_hours_before_start, "cancel", now
        )
        cancel_reason = trim_or_none(reason, max_length=MAX_REASON_LENGTH)

        try:
            cancelled = self.store.update_status(
                booking.id,
                BookingStatus.CONFIRMED,
                {
                    "status": new_status,
                    "cancelled_at": now,
                    "cancelled_by": actor.role,
                    "cancel_reason": cancel_reason,
                },
            )
        except ConflictError:
            logger.warning("Cancel of booking %s lost a race", booking.id)
            raise

        logger.info("Booking %s cancelled by %s", booking.id, actor.role.value)
        return cancelled

    @with_request_id
    def complete(self, actor: Actor, booking_id: str) -> Booking:
        """
        Mark a confirmed booking as completed once it has ended.

        Raises:
            NotFoundError: Unknown booking.
            ForbiddenError: Actor is not the owning provider or an admin.
            ConflictError: Booking is not confirmed.
            InvalidRequestError: Booking has not ended yet.
        """
        booking = self._load(booking_id)
        authorize(Operation.COMPLETE, actor, booking.client_id, booking.provider_user_id)
        new_status = next_status(booking.status, BookingEvent.COMPLETE)

        if booking.end_at > self.clock():
            raise InvalidRequestError("Cannot complete before end time")

        completed = self.store.update_status(
            booking.id, BookingStatus.CONFIRMED, {"status": new_status}
        )
        logger.info("Booking %s completed", booking.id)
        return completed

    @with_request_id
    def reschedule(
        self,
        actor: Actor,
        booking_id: str,
        new_start_at: Union[str, datetime],
        new_duration_min: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Booking:
        """
        Move a confirmed booking to a new slot, linking old and new.

        Inserts the new confirmed booking (``rescheduledFromId`` = old id) and
        cancels the old one (``rescheduledToId`` = new id) as one unit; if
        either write fails the other is undone. The old booking's own
        interval does not count as busy for the availability check.

        Returns:
            The new booking.

        Raises:
            InvalidRequestError: Bad or past start, bad duration, notice window.
            NotFoundError: Unknown booking.
            ForbiddenError: Actor is not the owning client or provider.
            ConflictError: Booking not confirmed, or the new slot is not free.
            ChainCorruptionError: A failed unit could not be rolled back.
        """
        now = self.clock()
        new_start = self._future_start(new_start_at, now)
        reschedule_reason = trim_or_none(reason, max_length=MAX_REASON_LENGTH)

        old = self._load(booking_id)
        authorize(Operation.RESCHEDULE, actor, old.client_id, old.provider_user_id)
        new_status = next_status(old.status, BookingEvent.RESCHEDULE)
        self._assert_notice(
            old, self.config.booking.reschedule_min_hours_before_start, "reschedule", now
        )
        duration = self._duration(new_duration_min, old.duration_min)

        with self.store.provider_transaction(old.provider_user_id) as uow:
            current = self.store.get_booking(old.id)
            if current is None or is_terminal(current.status):
                raise ConflictError("Booking is no longer confirmed")

            self._assert_slot_free(old.provider_user_id, new_start, duration, exclude_ids=(old.id,))

            created = uow.insert_if_no_overlap(
                Booking(
                    id=uuid.uuid4().hex,
                    request_id=old.request_id,
                    response_id=old.response_id,
                    provider_user_id=old.provider_user_id,
                    client_id=old.client_id,
                    start_at=new_start,
                    duration_min=duration,
                    status=BookingStatus.CONFIRMED,
                    rescheduled_from_id=old.id,
                ),
                exclude_ids=(old.id,),
            )
            uow.update_status(
                old.id,
                BookingStatus.CONFIRMED,
                {
                    "status": new_status,
                    "rescheduled_to_id": created.id,
                    "rescheduled_at": now,
                    "reschedule_reason": reschedule_reason,
                },
            )

        logger.info(
            "Booking %s rescheduled to %s (start=%s) by %s",
            old.id, created.id, new_start.isoformat(), actor.role.value,
        )
        return created

    @with_request_id
    def list_bookings(self, actor: Actor, filters: Optional[BookingFilters] = None) -> list[Booking]:
        """
        List bookings visible to the actor, newest start first.

        Clients see their own bookings, providers theirs, admins all.
        ``from`` is inclusive and ``to`` exclusive on ``startAt``.
        """
        filters = filters or BookingFilters()
        rules = self.config.booking

        if filters.from_ and filters.to and filters.to < filters.from_:
            raise InvalidRequestError("to must be >= from")

        limit = rules.default_list_limit if filters.limit is None else filters.limit
        limit = min(max(limit, 1), rules.max_list_limit)

        client_id = actor.user_id if actor.role == Role.CLIENT else None
        provider_user_id = actor.user_id if actor.role == Role.PROVIDER else None

        return self.store.list_bookings(
            client_id=client_id,
            provider_user_id=provider_user_id,
            status=filters.status,
            start_from=filters.from_,
            start_to=filters.to,
            limit=limit,
            offset=filters.offset,
        )
