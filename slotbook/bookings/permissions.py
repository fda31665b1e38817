"""
Booking authorization as an explicit permission table.

An actor's relationship to a booking is reduced to a capability set
drawn from {is-client-owner, is-provider-owner, is-admin}. Each operation
lists the capabilities that allow it; the actor is allowed when the two
sets intersect. The policy lives in one table instead of conditionals
spread through the lifecycle code.

Usage:
    authorize(Operation.CANCEL, actor, client_id="c1", provider_user_id="p1")
"""

from enum import Enum

from slotbook.errors import ForbiddenError
from slotbook.logging_context import get_request_logger
from slotbook.schemas.booking_schema import Actor, Role

logger = get_request_logger(__name__)


class Capability(str, Enum):
    CLIENT_OWNER = "is-client-owner"
    PROVIDER_OWNER = "is-provider-owner"
    ADMIN = "is-admin"


class Operation(str, Enum):
    CREATE = "create"
    VIEW = "view"
    CANCEL = "cancel"
    COMPLETE = "complete"
    RESCHEDULE = "reschedule"
    VIEW_HISTORY = "view_history"


ANY_PARTY = frozenset({Capability.CLIENT_OWNER, Capability.PROVIDER_OWNER, Capability.ADMIN})

PERMISSIONS: dict[Operation, frozenset[Capability]] = {
    Operation.CREATE: frozenset({Capability.CLIENT_OWNER}),
    Operation.VIEW: ANY_PARTY,
    Operation.CANCEL: ANY_PARTY,
    Operation.COMPLETE: frozenset({Capability.PROVIDER_OWNER, Capability.ADMIN}),
    Operation.RESCHEDULE: frozenset({Capability.CLIENT_OWNER, Capability.PROVIDER_OWNER}),
    Operation.VIEW_HISTORY: ANY_PARTY,
}


def capabilities_for(actor: Actor, client_id: str, provider_user_id: str) -> frozenset[Capability]:
    """Capabilities an actor holds over a booking owned by the given parties."""
    caps: set[Capability] = set()
    if actor.role == Role.CLIENT and actor.user_id == client_id:
        caps.add(Capability.CLIENT_OWNER)
    if actor.role == Role.PROVIDER and actor.user_id == provider_user_id:
        caps.add(Capability.PROVIDER_OWNER)
    if actor.role == Role.ADMIN:
        caps.add(Capability.ADMIN)
    return frozenset(caps)


def is_allowed(operation: Operation, capabilities: frozenset[Capability]) -> bool:
    return bool(PERMISSIONS[operation] & capabilities)


def authorize(
    operation: Operation, actor: Actor, client_id: str, provider_user_id: str
) -> frozenset[Capability]:
    """Return the actor's capabilities, or raise if the operation is not allowed.

    Raises:
        ForbiddenError: If no held capability grants the operation.
    """
    caps = capabilities_for(actor, client_id, provider_user_id)
    if not is_allowed(operation, caps):
        logger.debug(
            "Denied %s for %s:%s (capabilities: %s)",
            operation.value, actor.role.value, actor.user_id, sorted(c.value for c in caps),
        )
        raise ForbiddenError("Access denied")
    return caps
