"""
Event Emitter - The single entry point every producer calls.

Media monitor, tab/fullscreen hooks, network status and the violation
controller all emit through here. Order of operations:

    throttle -> sequence -> build -> enqueue -> best-effort send

Queueing always happens before any network attempt, so an event survives
a send that silently fails. A successful immediate send does not remove
the event from the queue; the transport replays the queue on reconnect.
"""

import logging
import threading
import time
from typing import Any, Callable, Protocol

from ..models.events import ProctorEvent
from ..utils.event_schema import get_event_summary, normalize_payload
from .event_queue import EventQueue
from .sequencer import Sequencer
from .throttle import ThrottlePolicy

logger = logging.getLogger(__name__)


class EventSender(Protocol):
    """Anything that can attempt a live send (normally the Transport)."""

    def send(self, event: ProctorEvent) -> bool: ...


class EventEmitter:
    """Composes Sequencer, ThrottlePolicy, EventQueue and a sender."""

    def __init__(
        self,
        sequencer: Sequencer,
        throttle: ThrottlePolicy,
        queue: EventQueue,
        sender: EventSender | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            sequencer: Per-session sequence source
            throttle: Noise suppression policy
            queue: Durable local buffer
            sender: Transport used for the best-effort immediate send
            clock: Returns epoch seconds (injectable for simulation)
        """
        self.sequencer = sequencer
        self.throttle = throttle
        self.queue = queue
        self.sender = sender
        self._clock = clock
        # Throttle check, numbering and enqueue must be one atomic step so
        # queue order always equals sequence order
        self._lock = threading.Lock()

    def emit(
        self,
        session_id: str,
        user_id: str,
        event_type: str,
        payload: dict[str, Any] | None = None,
    ) -> ProctorEvent | None:
        """
        Emit a proctor event.

        Args:
            session_id: Exam session identifier
            user_id: Candidate identifier
            event_type: Event type (camera_status, tab_blur, ...)
            payload: Event-specific data

        Returns:
            The created event, or None if it was throttled

        Raises:
            ValueError: If the payload cannot be encoded as JSON. Nothing
                        is throttled, numbered or queued in that case.
        """
        payload = normalize_payload(payload)
        now_ms = int(self._clock() * 1000)

        with self._lock:
            if self.throttle.should_suppress(event_type, now_ms):
                return None

            event = ProctorEvent(
                event_id=self.sequencer.new_event_id(),
                session_id=session_id,
                user_id=user_id,
                type=event_type,
                payload=payload,
                timestamp=now_ms,
                sequence=self.sequencer.next(),
            )
            self.queue.enqueue(event)

        logger.info(f"Emitted: {get_event_summary(event)}")

        if self.sender is not None:
            # Never raises; failure leaves the event for the next batch flush
            self.sender.send(event)

        return event

    def reset(self) -> None:
        """Prepare for a new session: sequence restarts at 1, throttle forgets."""
        with self._lock:
            self.sequencer.reset()
            self.throttle.reset()
        logger.info("Sequence counter reset")
