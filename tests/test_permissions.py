"""Tests for the booking permission table."""

import pytest

from slotbook.bookings.permissions import (
    PERMISSIONS,
    Capability,
    Operation,
    authorize,
    capabilities_for,
    is_allowed,
)
from slotbook.errors import ForbiddenError
from slotbook.schemas.booking_schema import Actor, Role

OWNER_CLIENT = Actor(user_id="c1", role=Role.CLIENT)
OWNER_PROVIDER = Actor(user_id="p1", role=Role.PROVIDER)
ADMIN = Actor(user_id="a1", role=Role.ADMIN)
OTHER_CLIENT = Actor(user_id="c2", role=Role.CLIENT)


class TestCapabilities:
    def test_client_owner(self):
        assert capabilities_for(OWNER_CLIENT, "c1", "p1") == {Capability.CLIENT_OWNER}

    def test_provider_owner(self):
        assert capabilities_for(OWNER_PROVIDER, "c1", "p1") == {Capability.PROVIDER_OWNER}

    def test_admin(self):
        assert capabilities_for(ADMIN, "c1", "p1") == {Capability.ADMIN}

    def test_stranger_has_none(self):
        assert capabilities_for(OTHER_CLIENT, "c1", "p1") == frozenset()

    def test_role_must_match_id(self):
        # a provider whose id happens to equal the client id is not the client
        assert capabilities_for(Actor(user_id="c1", role=Role.PROVIDER), "c1", "p1") == frozenset()


class TestPermissionTable:
    def test_every_operation_listed(self):
        assert set(PERMISSIONS) == set(Operation)

    @pytest.mark.parametrize(
        "operation,actor,allowed",
        [
            (Operation.CANCEL, OWNER_CLIENT, True),
            (Operation.CANCEL, OWNER_PROVIDER, True),
            (Operation.CANCEL, ADMIN, True),
            (Operation.CANCEL, OTHER_CLIENT, False),
            (Operation.COMPLETE, OWNER_CLIENT, False),
            (Operation.COMPLETE, OWNER_PROVIDER, True),
            (Operation.COMPLETE, ADMIN, True),
            (Operation.RESCHEDULE, OWNER_CLIENT, True),
            (Operation.RESCHEDULE, OWNER_PROVIDER, True),
            (Operation.RESCHEDULE, ADMIN, False),
            (Operation.VIEW_HISTORY, ADMIN, True),
            (Operation.VIEW_HISTORY, OTHER_CLIENT, False),
            (Operation.CREATE, OWNER_CLIENT, True),
            (Operation.CREATE, ADMIN, False),
        ],
    )
    def test_table(self, operation, actor, allowed):
        assert is_allowed(operation, capabilities_for(actor, "c1", "p1")) is allowed


class TestAuthorize:
    def test_returns_capabilities(self):
        assert authorize(Operation.VIEW, ADMIN, "c1", "p1") == {Capability.ADMIN}

    def test_denied(self):
        with pytest.raises(ForbiddenError, match="Access denied") as excinfo:
            authorize(Operation.CANCEL, OTHER_CLIENT, "c1", "p1")
        assert excinfo.value.code == "forbidden"
