"""
Persistence collaborator for the scheduling core.

``SchedulingStore`` is the contract the core consumes; any document store
can implement it. ``InMemorySchedulingStore`` is the thread-safe reference
implementation used by the console demo and the test suite.

Concurrency model:
- Every single read or write is atomic under one data lock.
- ``insert_if_no_overlap`` refuses a booking whose ``[startAt, endAt)``
  overlaps any non-cancelled booking of the same provider.
- ``update_status`` is a conditional write on the expected current status.
- ``provider_transaction`` serializes read-check-write units for one
  provider and undoes the unit's own writes if the block raises.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, Optional

from slotbook.errors import ChainCorruptionError, ConflictError, NotFoundError
from slotbook.logging_context import get_request_logger
from slotbook.schemas.availability_schema import Blackout, WeeklyAvailability
from slotbook.schemas.booking_schema import Booking, BookingStatus

logger = get_request_logger(__name__)


class SchedulingStore(ABC):
    """Operations the scheduling core needs from persistence."""

    @abstractmethod
    def get_availability(self, provider_user_id: str) -> Optional[WeeklyAvailability]: ...

    @abstractmethod
    def save_availability(self, availability: WeeklyAvailability) -> WeeklyAvailability: ...

    @abstractmethod
    def list_blackouts(self, provider_user_id: str) -> list[Blackout]: ...

    @abstractmethod
    def find_active_blackouts(
        self, provider_user_id: str, start: datetime, end: datetime
    ) -> list[Blackout]: ...

    @abstractmethod
    def add_blackout(self, blackout: Blackout) -> Blackout: ...

    @abstractmethod
    def delete_blackout(self, provider_user_id: str, blackout_id: str) -> bool: ...

    @abstractmethod
    def get_booking(self, booking_id: str) -> Optional[Booking]: ...

    @abstractmethod
    def find_overlapping(
        self,
        provider_user_id: str,
        start: datetime,
        end: datetime,
        exclude_ids: Iterable[str] = (),
    ) -> list[Booking]: ...

    @abstractmethod
    def insert_if_no_overlap(self, booking: Booking, exclude_ids: Iterable[str] = ()) -> Booking: ...

    @abstractmethod
    def update_status(
        self, booking_id: str, expected_status: BookingStatus, patch: dict[str, Any]
    ) -> Booking: ...

    @abstractmethod
    def find_chain_candidates(self, booking: Booking) -> list[Booking]: ...

    @abstractmethod
    def list_bookings(
        self,
        client_id: Optional[str] = None,
        provider_user_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Booking]: ...

    @abstractmethod
    def provider_transaction(self, provider_user_id: str) -> Any: ...


class UnitOfWork:
    """Writes made inside one provider transaction, with their undo steps."""

    def __init__(self, store: "InMemorySchedulingStore", provider_user_id: str) -> None:
        self._store = store
        self.provider_user_id = provider_user_id
        self._undo: list[tuple[str, Callable[[], bool]]] = []

    def insert_if_no_overlap(self, booking: Booking, exclude_ids: Iterable[str] = ()) -> Booking:
        created = self._store.insert_if_no_overlap(booking, exclude_ids)
        self._undo.append((created.id, lambda: self._store._remove_if_same(created)))
        return created

    def update_status(
        self, booking_id: str, expected_status: BookingStatus, patch: dict[str, Any]
    ) -> Booking:
        before, after = self._store._conditional_update(booking_id, expected_status, patch)
        self._undo.append((booking_id, lambda: self._store._replace_if_same(after, before)))
        return after

    def rollback(self) -> None:
        """Undo this unit's writes newest first.

        Raises:
            ChainCorruptionError: If a write was changed by someone else in
                the meantime and can no longer be undone.
        """
        failed: list[str] = []
        for booking_id, undo in reversed(self._undo):
            if not undo():
                failed.append(booking_id)
        self._undo.clear()
        if failed:
            logger.warning("Rollback incomplete for booking(s) %s", failed)
            raise ChainCorruptionError(
                f"Could not roll back booking(s) {', '.join(failed)}; chain may be inconsistent"
            )


class InMemorySchedulingStore(SchedulingStore):
    """Thread-safe in-memory store keyed by id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._provider_locks: dict[str, threading.RLock] = {}
        self._availability: dict[str, WeeklyAvailability] = {}
        self._blackouts: dict[str, Blackout] = {}
        self._bookings: dict[str, Booking] = {}

    # --- availability ---

    def get_availability(self, provider_user_id: str) -> Optional[WeeklyAvailability]:
        with self._lock:
            return self._availability.get(provider_user_id)

    def save_availability(self, availability: WeeklyAvailability) -> WeeklyAvailability:
        with self._lock:
            self._availability[availability.provider_user_id] = availability
            return availability

    # --- blackouts ---

    def list_blackouts(self, provider_user_id: str) -> list[Blackout]:
        with self._lock:
            found = [b for b in self._blackouts.values() if b.provider_user_id == provider_user_id]
        return sorted(found, key=lambda b: (b.start_at, b.end_at, b.id))

    def find_active_blackouts(
        self, provider_user_id: str, start: datetime, end: datetime
    ) -> list[Blackout]:
        return [
            b
            for b in self.list_blackouts(provider_user_id)
            if b.is_active and b.start_at < end and b.end_at > start
        ]

    def add_blackout(self, blackout: Blackout) -> Blackout:
        with self._lock:
            if blackout.id in self._blackouts:
                raise ConflictError(f"Blackout {blackout.id} already exists")
            self._blackouts[blackout.id] = blackout
            return blackout

    def delete_blackout(self, provider_user_id: str, blackout_id: str) -> bool:
        with self._lock:
            existing = self._blackouts.get(blackout_id)
            if existing is None or existing.provider_user_id != provider_user_id:
                return False
            del self._blackouts[blackout_id]
            return True

    # --- bookings ---

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            return self._bookings.get(booking_id)

    def find_overlapping(
        self,
        provider_user_id: str,
        start: datetime,
        end: datetime,
        exclude_ids: Iterable[str] = (),
    ) -> list[Booking]:
        excluded = set(exclude_ids)
        with self._lock:
            found = [
                b
                for b in self._bookings.values()
                if b.provider_user_id == provider_user_id
                and b.status != BookingStatus.CANCELLED
                and b.id not in excluded
                and b.start_at < end
                and b.end_at > start
            ]
        return sorted(found, key=lambda b: (b.start_at, b.id))

    def insert_if_no_overlap(self, booking: Booking, exclude_ids: Iterable[str] = ()) -> Booking:
        with self._lock:
            if booking.id in self._bookings:
                raise ConflictError(f"Booking {booking.id} already exists")
            if booking.status != BookingStatus.CANCELLED:
                clash = self.find_overlapping(
                    booking.provider_user_id, booking.start_at, booking.end_at, exclude_ids
                )
                if clash:
                    raise ConflictError("Slot is not available (overlaps another booking)")
            if booking.rescheduled_from_id and any(
                b.rescheduled_from_id == booking.rescheduled_from_id
                for b in self._bookings.values()
            ):
                raise ConflictError(
                    f"Booking {booking.rescheduled_from_id} was already rescheduled"
                )
            self._bookings[booking.id] = booking
            return booking

    def update_status(
        self, booking_id: str, expected_status: BookingStatus, patch: dict[str, Any]
    ) -> Booking:
        _, after = self._conditional_update(booking_id, expected_status, patch)
        return after

    def _conditional_update(
        self, booking_id: str, expected_status: BookingStatus, patch: dict[str, Any]
    ) -> tuple[Booking, Booking]:
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None:
                raise NotFoundError("Booking not found")
            if current.status != expected_status:
                raise ConflictError("Booking state changed; try again")
            updated = current.model_copy(update=patch)
            self._bookings[booking_id] = updated
            return current, updated

    def _remove_if_same(self, booking: Booking) -> bool:
        with self._lock:
            if self._bookings.get(booking.id) is not booking:
                return False
            del self._bookings[booking.id]
            return True

    def _replace_if_same(self, expected: Booking, replacement: Booking) -> bool:
        with self._lock:
            if self._bookings.get(expected.id) is not expected:
                return False
            self._bookings[expected.id] = replacement
            return True

    def find_chain_candidates(self, booking: Booking) -> list[Booking]:
        """Bookings sharing request, response, provider and client with ``booking``."""
        with self._lock:
            return [
                b
                for b in self._bookings.values()
                if b.request_id == booking.request_id
                and b.response_id == booking.response_id
                and b.provider_user_id == booking.provider_user_id
                and b.client_id == booking.client_id
            ]

    def list_bookings(
        self,
        client_id: Optional[str] = None,
        provider_user_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Booking]:
        with self._lock:
            found = [
                b
                for b in self._bookings.values()
                if (client_id is None or b.client_id == client_id)
                and (provider_user_id is None or b.provider_user_id == provider_user_id)
                and (status is None or b.status == status)
                and (start_from is None or b.start_at >= start_from)
                and (start_to is None or b.start_at < start_to)
            ]
        found.sort(key=lambda b: (b.start_at, b.id), reverse=True)
        end = None if limit is None else offset + limit
        return found[offset:end]

    # --- transactions ---

    def _provider_lock(self, provider_user_id: str) -> threading.RLock:
        with self._lock:
            lock = self._provider_locks.get(provider_user_id)
            if lock is None:
                lock = threading.RLock()
                self._provider_locks[provider_user_id] = lock
            return lock

    @contextmanager
    def provider_transaction(self, provider_user_id: str) -> Iterator[UnitOfWork]:
        """Serialize a read-check-write unit for one provider.

        Usage:
            with store.provider_transaction("p1") as uow:
                ...  # recompute slots
                uow.insert_if_no_overlap(booking)
        """
        with self._provider_lock(provider_user_id):
            uow = UnitOfWork(self, provider_user_id)
            try:
                yield uow
            except BaseException:
                uow.rollback()
                raise
