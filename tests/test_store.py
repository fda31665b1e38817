"""Tests for the in-memory store and its provider transactions."""

import pytest

from slotbook.errors import ChainCorruptionError, ConflictError, NotFoundError
from slotbook.schemas.availability_schema import Blackout
from slotbook.schemas.booking_schema import BookingStatus

from tests.conftest import PROVIDER, make_booking, utc


class TestBookingWrites:
    def test_insert_and_get(self, store):
        booking = make_booking()
        store.insert_if_no_overlap(booking)
        assert store.get_booking("b1") is booking

    def test_overlap_refused(self, store):
        store.insert_if_no_overlap(make_booking("b1", start_at=utc(2026, 3, 9, 8)))
        with pytest.raises(ConflictError, match="overlaps another booking"):
            store.insert_if_no_overlap(make_booking("b2", start_at=utc(2026, 3, 9, 8, 30)))

    def test_touching_allowed(self, store):
        store.insert_if_no_overlap(make_booking("b1", start_at=utc(2026, 3, 9, 8)))
        store.insert_if_no_overlap(make_booking("b2", start_at=utc(2026, 3, 9, 9)))

    def test_other_provider_not_blocked(self, store):
        store.insert_if_no_overlap(make_booking("b1"))
        store.insert_if_no_overlap(make_booking("b2", provider_user_id="prov-2"))

    def test_excluded_booking_ignored(self, store):
        store.insert_if_no_overlap(make_booking("b1"))
        store.insert_if_no_overlap(make_booking("b2"), exclude_ids=("b1",))

    def test_duplicate_id_refused(self, store):
        store.insert_if_no_overlap(make_booking("b1"))
        with pytest.raises(ConflictError, match="already exists"):
            store.insert_if_no_overlap(make_booking("b1", start_at=utc(2026, 3, 10, 8)))

    def test_second_successor_refused(self, store):
        store.insert_if_no_overlap(make_booking("b2", start_at=utc(2026, 3, 10, 8), rescheduled_from_id="b1"))
        with pytest.raises(ConflictError, match="b1 was already rescheduled"):
            store.insert_if_no_overlap(
                make_booking("b3", start_at=utc(2026, 3, 11, 8), rescheduled_from_id="b1")
            )

    def test_update_status(self, store):
        store.insert_if_no_overlap(make_booking("b1"))
        updated = store.update_status("b1", BookingStatus.CONFIRMED, {"status": BookingStatus.COMPLETED})
        assert updated.status == BookingStatus.COMPLETED
        assert store.get_booking("b1") == updated

    def test_update_status_on_changed_state(self, store):
        store.insert_if_no_overlap(make_booking("b1", status=BookingStatus.CANCELLED))
        with pytest.raises(ConflictError, match="state changed"):
            store.update_status("b1", BookingStatus.CONFIRMED, {"status": BookingStatus.COMPLETED})

    def test_update_status_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.update_status("ghost", BookingStatus.CONFIRMED, {})

    def test_list_newest_first_with_paging(self, store):
        for day in (9, 10, 11):
            store.insert_if_no_overlap(make_booking(f"b{day}", start_at=utc(2026, 3, day, 8)))
        assert [b.id for b in store.list_bookings(limit=2)] == ["b11", "b10"]
        assert [b.id for b in store.list_bookings(limit=2, offset=2)] == ["b9"]


class TestBlackoutStorage:
    def test_find_active_uses_half_open_overlap(self, store):
        store.add_blackout(
            Blackout(id="x", provider_user_id=PROVIDER, start_at=utc(2026, 3, 2, 8), end_at=utc(2026, 3, 2, 9))
        )
        store.add_blackout(
            Blackout(
                id="y", provider_user_id=PROVIDER, start_at=utc(2026, 3, 2, 9),
                end_at=utc(2026, 3, 2, 10), is_active=False,
            )
        )
        assert [b.id for b in store.find_active_blackouts(PROVIDER, utc(2026, 3, 2, 8, 30), utc(2026, 3, 2, 12))] == ["x"]
        assert store.find_active_blackouts(PROVIDER, utc(2026, 3, 2, 9), utc(2026, 3, 2, 12)) == []

    def test_delete_requires_owner(self, store):
        store.add_blackout(
            Blackout(id="x", provider_user_id=PROVIDER, start_at=utc(2026, 3, 2, 8), end_at=utc(2026, 3, 2, 9))
        )
        assert store.delete_blackout("prov-2", "x") is False
        assert store.delete_blackout(PROVIDER, "x") is True
        assert store.list_blackouts(PROVIDER) == []


class TestProviderTransaction:
    def test_commit_keeps_writes(self, store):
        store.insert_if_no_overlap(make_booking("b1"))
        with store.provider_transaction(PROVIDER) as uow:
            uow.insert_if_no_overlap(make_booking("b2", start_at=utc(2026, 3, 10, 8)))
            uow.update_status("b1", BookingStatus.CONFIRMED, {"status": BookingStatus.CANCELLED})
        assert store.get_booking("b2") is not None
        assert store.get_booking("b1").status == BookingStatus.CANCELLED

    def test_rollback_on_error(self, store):
        original = make_booking("b1")
        store.insert_if_no_overlap(original)
        with pytest.raises(RuntimeError):
            with store.provider_transaction(PROVIDER) as uow:
                uow.insert_if_no_overlap(make_booking("b2", start_at=utc(2026, 3, 10, 8)))
                uow.update_status("b1", BookingStatus.CONFIRMED, {"status": BookingStatus.CANCELLED})
                raise RuntimeError("boom")
        assert store.get_booking("b2") is None
        assert store.get_booking("b1") is original

    def test_rollback_leaves_foreign_writes_alone(self, store):
        store.insert_if_no_overlap(make_booking("b1"))
        with pytest.raises(ChainCorruptionError, match="b1"):
            with store.provider_transaction(PROVIDER) as uow:
                uow.update_status("b1", BookingStatus.CONFIRMED, {"status": BookingStatus.CANCELLED})
                # someone else rewrites b1 before the unit fails
                store.update_status("b1", BookingStatus.CANCELLED, {"cancel_reason": "foreign"})
                raise RuntimeError("boom")
        assert store.get_booking("b1").cancel_reason == "foreign"
