"""Error kinds raised by the scheduling and booking core.

Callers map these onto their own transport (HTTP status codes, CLI exit
codes). ``code`` is stable and safe to expose; ``message`` is for humans.
"""


class SchedulingError(Exception):
    """Base class for every expected failure of the core."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(SchedulingError):
    """Malformed input. Raised before any computation or side effect."""

    code = "validation"


class ForbiddenError(SchedulingError):
    """The actor lacks the role or ownership the operation requires."""

    code = "forbidden"


class NotFoundError(SchedulingError):
    """Unknown booking or blackout id, or an id the actor does not own."""

    code = "not_found"


class ConflictError(SchedulingError):
    """The slot is no longer free or the target is already terminal.

    Expected outcome of a lost race; callers re-query and retry.
    """

    code = "conflict"


class ChainCorruptionError(SchedulingError):
    """The reschedule chain is cyclic, too long, or half-written."""

    code = "chain_corruption"
