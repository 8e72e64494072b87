"""
Throttle Policy - Per-event-type minimum re-emission interval.

Suppression happens before an event gets a sequence number, so throttled
events leave no gaps and are never retried. This trades completeness for
noise reduction.
"""

import logging
import threading

from ..utils.constants import DEFAULT_THROTTLE_INTERVALS_MS

logger = logging.getLogger(__name__)


class ThrottlePolicy:
    """Decides whether an event of a given type is a noisy repeat."""

    def __init__(self, intervals_ms: dict[str, int] | None = None):
        """
        Args:
            intervals_ms: Minimum interval per event type in milliseconds.
                          Types not listed are unthrottled.
        """
        if intervals_ms is None:
            intervals_ms = DEFAULT_THROTTLE_INTERVALS_MS
        self._intervals = {k: int(v) for k, v in intervals_ms.items()}
        self._last_emit: dict[str, int] = {}
        self._lock = threading.Lock()

    def interval_for(self, event_type: str) -> int:
        return self._intervals.get(event_type, 0)

    def should_suppress(self, event_type: str, now_ms: int) -> bool:
        """
        Check and record an emission attempt.

        Args:
            event_type: Event type being emitted
            now_ms: Current time in epoch milliseconds

        Returns:
            True if the event falls within its type's interval and must be
            dropped. The last-emit time is only updated when it is not.
        """
        interval = self.interval_for(event_type)
        with self._lock:
            last = self._last_emit.get(event_type)
            if interval > 0 and last is not None and now_ms - last < interval:
                logger.debug(
                    f"Throttled {event_type} ({now_ms - last}ms < {interval}ms)"
                )
                return True
            self._last_emit[event_type] = now_ms
            return False

    def reset(self) -> None:
        """Forget all emission history (new session)."""
        with self._lock:
            self._last_emit.clear()
