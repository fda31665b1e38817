"""
Reschedule chain reconstruction.

Bookings link to each other only by id (``rescheduledFromId`` backward,
``rescheduledToId`` forward). The resolver loads every booking that can be
part of the same chain, indexes them by id, walks back to the root and then
forward to the latest. Traversal depth is bounded and revisits are
detected, so corrupted cyclic data fails loudly instead of looping.
"""

from typing import Optional

from slotbook.bookings.permissions import Operation, authorize
from slotbook.config import AppConfig, settings
from slotbook.errors import ChainCorruptionError, InvalidRequestError, NotFoundError
from slotbook.logging_context import get_request_logger, with_request_id
from slotbook.schemas.booking_schema import Actor, Booking, BookingHistory
from slotbook.store import SchedulingStore
from slotbook.utils import normalize_id

logger = get_request_logger(__name__)


class HistoryChainResolver:
    """Builds the ordered root -> latest reschedule chain of a booking."""

    def __init__(self, store: SchedulingStore, config: AppConfig = settings) -> None:
        self.store = store
        self.max_hops = config.booking.max_history_hops

    @with_request_id
    def get_history(self, actor: Actor, booking_id: str) -> BookingHistory:
        """
        Reconstruct the chain containing ``booking_id``.

        Returns:
            BookingHistory with items ordered oldest -> newest and
            ``current_index`` pointing at the requested booking (-1 if it is
            not on the reconstructed chain).

        Raises:
            InvalidRequestError: Blank id.
            NotFoundError: Unknown booking.
            ForbiddenError: Actor is not the client, the provider, or an admin.
            ChainCorruptionError: A cycle, or more links than the safety bound.
        """
        requested_id = normalize_id(booking_id)
        if not requested_id:
            raise InvalidRequestError("bookingId is required")

        requested = self.store.get_booking(requested_id)
        if requested is None:
            raise NotFoundError("Booking not found")
        authorize(Operation.VIEW_HISTORY, actor, requested.client_id, requested.provider_user_id)

        by_id = {b.id: b for b in self.store.find_chain_candidates(requested)}
        by_id[requested.id] = requested

        root = self._walk_back(requested, by_id)
        items = self._walk_forward(root, by_id)

        current_index = next(
            (i for i, b in enumerate(items) if b.id == requested_id), -1
        )
        if current_index == -1:
            logger.warning(
                "Booking %s is not on its own reconstructed chain (root %s)",
                requested_id, root.id,
            )

        return BookingHistory(
            root_id=root.id,
            requested_id=requested_id,
            latest_id=items[-1].id,
            current_index=current_index,
            items=items,
        )

    def _walk_back(self, start: Booking, by_id: dict[str, Booking]) -> Booking:
        node = start
        visited = {node.id}
        for _ in range(self.max_hops):
            prev = self._follow(node.rescheduled_from_id, by_id)
            if prev is None:
                return node
            if prev.id in visited:
                raise self._corrupted(f"Booking history cycle detected at {prev.id}")
            visited.add(prev.id)
            node = prev
        if self._follow(node.rescheduled_from_id, by_id) is not None:
            raise self._corrupted(f"Booking history exceeds {self.max_hops} links")
        return node

    def _walk_forward(self, root: Booking, by_id: dict[str, Booking]) -> list[Booking]:
        items = [root]
        visited = {root.id}
        for _ in range(self.max_hops):
            nxt = self._follow(items[-1].rescheduled_to_id, by_id)
            if nxt is None:
                return items
            if nxt.id in visited:
                raise self._corrupted(f"Booking history cycle detected at {nxt.id}")
            visited.add(nxt.id)
            items.append(nxt)
        if self._follow(items[-1].rescheduled_to_id, by_id) is not None:
            raise self._corrupted(f"Booking history exceeds {self.max_hops} links")
        return items

    @staticmethod
    def _follow(link: Optional[str], by_id: dict[str, Booking]) -> Optional[Booking]:
        # A dangling link ends the walk; the chain is reported up to it.
        if not link:
            return None
        return by_id.get(link)

    @staticmethod
    def _corrupted(message: str) -> ChainCorruptionError:
        logger.warning(message)
        return ChainCorruptionError(message)
