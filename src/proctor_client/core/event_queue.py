"""
Event Queue - Bounded, ordered, durable-until-flushed local buffer.

Keeps events while the socket is down, the network is lost or the
transport is still connecting. When full, the oldest entry is evicted:
approximate freshness is preferred over exact completeness.
"""

import logging
import threading
from collections import deque
from typing import Iterable

from ..models.events import ProctorEvent
from ..utils.constants import DEFAULT_QUEUE_CAPACITY

logger = logging.getLogger(__name__)


class EventQueue:
    """Thread-safe FIFO of pending events with oldest-first eviction."""

    def __init__(self, capacity: int = DEFAULT_QUEUE_CAPACITY):
        """
        Args:
            capacity: Maximum number of events held at once
        """
        if capacity <= 0:
            raise ValueError(f"Queue capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._events: deque[ProctorEvent] = deque()
        self._lock = threading.Lock()
        self._total_enqueued = 0
        self._dropped = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def enqueue(self, event: ProctorEvent) -> None:
        """
        Append an event, evicting the oldest entry if at capacity.

        Never raises; eviction is logged as lossy.
        """
        with self._lock:
            if len(self._events) >= self._capacity:
                dropped = self._events.popleft()
                self._dropped += 1
                logger.warning(
                    f"Event queue full ({self._capacity}), dropping oldest event "
                    f"{dropped.type} [seq: {dropped.sequence}]"
                )
            self._events.append(event)
            self._total_enqueued += 1
            size = len(self._events)

        logger.debug(
            f"Queued event: {event.type} [seq: {event.sequence}] ({size} in queue)"
        )

    def drain_all(self) -> list[ProctorEvent]:
        """
        Atomically take every queued event in insertion order.

        This is the only bulk-removal entry point; two drains never see
        the same event.
        """
        with self._lock:
            events = list(self._events)
            self._events.clear()
        return events

    def peek_all(self) -> list[ProctorEvent]:
        """Copy of the queued events in order, without removing them."""
        with self._lock:
            return list(self._events)

    def restore(self, events: Iterable[ProctorEvent]) -> None:
        """
        Put a drained batch back at the head of the queue.

        Used when a batch could not be sent. Newer events already queued
        stay behind the restored ones; if the result exceeds capacity the
        oldest entries are evicted.
        """
        events = list(events)
        if not events:
            return
        with self._lock:
            self._events.extendleft(reversed(events))
            overflow = len(self._events) - self._capacity
            for _ in range(max(0, overflow)):
                self._events.popleft()
                self._dropped += 1
        if overflow > 0:
            logger.warning(
                f"Event queue over capacity after restore, dropped {overflow} oldest"
            )
        logger.info(f"Restored {len(events)} unsent events to queue")

    def discard(self, event_ids: Iterable[str]) -> int:
        """
        Remove specific events the server has acknowledged.

        Returns:
            Number of events removed
        """
        ids = set(event_ids)
        if not ids:
            return 0
        with self._lock:
            before = len(self._events)
            self._events = deque(e for e in self._events if e.event_id not in ids)
            removed = before - len(self._events)
        if removed:
            logger.debug(f"Discarded {removed} acknowledged events")
        return removed

    def size(self) -> int:
        with self._lock:
            return len(self._events)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._events

    def get_stats(self) -> dict:
        """Get queue statistics."""
        with self._lock:
            return {
                "current_size": len(self._events),
                "capacity": self._capacity,
                "total_events": self._total_enqueued,
                "dropped_events": self._dropped,
            }
