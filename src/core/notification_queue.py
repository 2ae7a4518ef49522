"""
Queue of pending notifications.

Transitions that changed status are collected while units are processed
and dispatched together once every unit has finished.
"""

import logging

from core.models import TransitionEvent

logger = logging.getLogger(__name__)


class NotificationQueue:
    """
    Ordered queue of transition events awaiting dispatch.

    Owned by a single run coordinator; holds at most one event per
    changed transition.
    """

    def __init__(self):
        """Initialize an empty notification queue."""
        self._queue: list[TransitionEvent] = []

    def add(self, event: TransitionEvent) -> None:
        """
        Queue an event for dispatch.

        Args:
            event: Transition event for one changed coordinate
        """
        self._queue.append(event)
        logger.debug(
            f"Queued notification for {event.coordinate} "
            f"({event.previous_status.value} → {event.current_status.value})"
        )

    def get_all(self) -> list[TransitionEvent]:
        """
        Get all queued events in insertion order.

        Returns:
            Copy of the queued events
        """
        return self._queue.copy()

    def size(self) -> int:
        return len(self._queue)

    def clear(self) -> None:
        """Clear the queue."""
        self._queue.clear()

    def is_empty(self) -> bool:
        return len(self._queue) == 0
