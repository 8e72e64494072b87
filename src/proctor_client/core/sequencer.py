"""
Sequencer - Per-session event numbering and identifiers.
"""

import threading
import uuid


class Sequencer:
    """
    Issues strictly increasing sequence numbers starting at 1.

    Not persisted: a process restart starts a new count, so callers must
    not rely on numbering surviving a restart.
    """

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        """Return the next sequence number."""
        with self._lock:
            self._value += 1
            return self._value

    def reset(self) -> None:
        """Return the counter to zero. Only call at the start of a session."""
        with self._lock:
            self._value = 0

    @property
    def current(self) -> int:
        """Last issued sequence number (0 if none yet)."""
        with self._lock:
            return self._value

    @staticmethod
    def new_event_id() -> str:
        """Globally unique event identifier."""
        return str(uuid.uuid4())
