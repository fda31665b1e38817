"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from slotbook.bookings.history import HistoryChainResolver
from slotbook.bookings.lifecycle import BookingLifecycle
from slotbook.scheduling.availability import AvailabilityService
from slotbook.schemas.availability_schema import WeeklyAvailability
from slotbook.schemas.booking_schema import Actor, Booking, BookingStatus, Role
from slotbook.store import InMemorySchedulingStore

# Sunday 2026-03-01 00:00 UTC; Europe/Berlin is on CET (+01:00) until 2026-03-29.
NOW = datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)

PROVIDER = "prov-1"
CLIENT = "client-1"

WEEKDAYS_9_TO_17 = [
    {"dayOfWeek": day, "ranges": [{"start": "09:00", "end": "17:00"}]} for day in range(1, 6)
]


class FixedClock:
    """Settable clock; tests move it forward to cross notice windows."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def utc(*args: int) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


def client_actor(user_id: str = CLIENT) -> Actor:
    return Actor(user_id=user_id, role=Role.CLIENT)


def provider_actor(user_id: str = PROVIDER) -> Actor:
    return Actor(user_id=user_id, role=Role.PROVIDER)


def admin_actor(user_id: str = "admin-1") -> Actor:
    return Actor(user_id=user_id, role=Role.ADMIN)


def make_availability(
    provider_user_id: str = PROVIDER,
    weekly: Optional[list[dict]] = None,
    time_zone: str = "Europe/Berlin",
    slot_duration_min: int = 60,
    buffer_min: int = 0,
    is_active: bool = True,
) -> WeeklyAvailability:
    """Helper to create a WeeklyAvailability from camelCase weekly dicts."""
    return WeeklyAvailability.model_validate(
        {
            "providerUserId": provider_user_id,
            "timeZone": time_zone,
            "slotDurationMin": slot_duration_min,
            "bufferMin": buffer_min,
            "isActive": is_active,
            "weekly": WEEKDAYS_9_TO_17 if weekly is None else weekly,
        }
    )


def make_booking(
    booking_id: str = "b1",
    start_at: datetime = utc(2026, 3, 9, 8, 0),
    duration_min: int = 60,
    status: BookingStatus = BookingStatus.CONFIRMED,
    rescheduled_from_id: Optional[str] = None,
    rescheduled_to_id: Optional[str] = None,
    provider_user_id: str = PROVIDER,
    client_id: str = CLIENT,
) -> Booking:
    """Helper to create a Booking with sensible defaults."""
    return Booking(
        id=booking_id,
        request_id="req-1",
        response_id="resp-1",
        provider_user_id=provider_user_id,
        client_id=client_id,
        start_at=start_at,
        duration_min=duration_min,
        status=status,
        rescheduled_from_id=rescheduled_from_id,
        rescheduled_to_id=rescheduled_to_id,
    )


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return InMemorySchedulingStore()


@pytest.fixture
def seeded_store(store):
    """Store with PROVIDER available Mon-Fri 09:00-17:00 Europe/Berlin, 60 min slots."""
    store.save_availability(make_availability())
    return store


@pytest.fixture
def availability_service(seeded_store, clock):
    return AvailabilityService(seeded_store, clock=clock)


@pytest.fixture
def lifecycle(seeded_store, availability_service, clock):
    return BookingLifecycle(seeded_store, availability_service, clock=clock)


@pytest.fixture
def resolver(seeded_store):
    return HistoryChainResolver(seeded_store)
