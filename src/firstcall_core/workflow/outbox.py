"""Outbox for workflow domain events.

The engine appends CaseFinalized events here only after the registry write
has committed. Delivery is at-most-once: an event leaves the outbox before
any handler sees it, so a failing or re-entrant handler can never cause a
second delivery.
"""

import logging
from collections import deque
from typing import Callable, Deque, List

from firstcall_core.models.events import CaseFinalized

logger = logging.getLogger(__name__)

EventHandler = Callable[[CaseFinalized], None]


class EventOutbox:
    """Queue of pending CaseFinalized events with synchronous subscribers."""

    def __init__(self):
        self._pending: Deque[CaseFinalized] = deque()
        self._handlers: List[EventHandler] = []

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def pending(self) -> List[CaseFinalized]:
        return list(self._pending)

    def append(self, event: CaseFinalized) -> None:
        self._pending.append(event)
        logger.debug(f"Queued {type(event).__name__} {event.event_id} for case {event.case_id}")

    def subscribe(self, handler: EventHandler) -> None:
        """Register a handler called for every dispatched event."""
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def drain(self) -> List[CaseFinalized]:
        """Remove and return every pending event (for async publishers)."""
        events = list(self._pending)
        self._pending.clear()
        return events

    def dispatch(self) -> int:
        """Deliver pending events to the subscribers, oldest first.

        Returns:
            Number of events delivered

        Raises:
            Exception: Whatever a handler raises. The event being delivered
                has already left the outbox; later events stay queued.
        """
        delivered = 0
        while self._pending:
            event = self._pending.popleft()
            for handler in list(self._handlers):
                handler(event)
            delivered += 1
            logger.info(
                f"Dispatched case-finalized event {event.event_id} "
                f"(case {event.case_id}, {event.case_number}) to {len(self._handlers)} handler(s)"
            )
        return delivered
