"""
Proctor Event - Canonical unit of integrity telemetry.

Created once by the emitter, then shared read-only by the event queue
and the transport. Used everywhere: client -> wire -> backend.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class ProctorEvent:
    """
    A single integrity event.

    Attributes:
        event_id: UUID string (server-side deduplication key)
        session_id: Exam session identifier
        user_id: Candidate identifier
        type: Event type (camera_status, tab_blur, fullscreen_exit, ...)
        payload: Event-specific data
        timestamp: Creation time in epoch milliseconds, never rewritten
        sequence: Monotonic per-session sequence number starting at 1
    """

    event_id: str
    session_id: str
    user_id: str
    type: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0
    sequence: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation."""
        return {
            "event_id": self.event_id,
            "session_id": self.session_id,
            "user_id": self.user_id,
            "type": self.type,
            "payload": dict(self.payload),
            "timestamp": self.timestamp,
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProctorEvent":
        """Build an event from its wire representation."""
        return cls(
            event_id=data["event_id"],
            session_id=data["session_id"],
            user_id=data["user_id"],
            type=data["type"],
            payload=dict(data.get("payload", {})),
            timestamp=int(data.get("timestamp", 0)),
            sequence=int(data.get("sequence", 0)),
        )


class ConnectionState(Enum):
    """Transport connection state, one value per active session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass
class ServerNotice:
    """
    Parsed message pushed by the backend monitor.

    Attributes:
        kind: violation_warning, violation_critical, exam_terminated, ack or unknown
        message: Human-readable text (empty when absent)
        raw: The decoded JSON payload, unchanged
    """

    kind: str
    message: str
    raw: Any
