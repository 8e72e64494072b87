"""
Event Schema - Contract between the proctoring client and the backend monitor.

Client -> server messages:
    EVENT: One live event, sent as soon as it is emitted
    BATCH_EVENTS: Bulk replay of the local queue, sent once per (re)connect

Server -> client messages are opaque JSON. Recognized shapes carry a
``type`` discriminator plus a human-readable ``message``:
    violation_warning: Soft warning shown to the candidate
    violation_critical: Critical warning
    exam_terminated: Session ended by the proctor
    ACK: Event ids the server has persisted
Anything else is passed through unchanged.
"""

import json
import logging
from typing import Any, Iterable

from ..models.events import ProctorEvent, ServerNotice

logger = logging.getLogger(__name__)

# Client -> server message kinds
MESSAGE_TYPE_EVENT = "EVENT"
MESSAGE_TYPE_BATCH = "BATCH_EVENTS"

# Server -> client message kinds
SERVER_VIOLATION_WARNING = "violation_warning"
SERVER_VIOLATION_CRITICAL = "violation_critical"
SERVER_EXAM_TERMINATED = "exam_terminated"
SERVER_ACK = "ACK"

NOTICE_KIND_ACK = "ack"
NOTICE_KIND_UNKNOWN = "unknown"

RECOGNIZED_SERVER_TYPES = {
    SERVER_VIOLATION_WARNING,
    SERVER_VIOLATION_CRITICAL,
    SERVER_EXAM_TERMINATED,
}

# Event type constants
EVENT_TYPE_CAMERA_STATUS = "camera_status"
EVENT_TYPE_MIC_STATUS = "mic_status"
EVENT_TYPE_TAB_BLUR = "tab_blur"
EVENT_TYPE_FULLSCREEN_EXIT = "fullscreen_exit"
EVENT_TYPE_STREAM_LOST = "stream_lost"
EVENT_TYPE_NETWORK_INTERRUPTION = "network_interruption"
EVENT_TYPE_AI_VIOLATION = "ai_violation"

KNOWN_EVENT_TYPES = frozenset(
    {
        EVENT_TYPE_CAMERA_STATUS,
        EVENT_TYPE_MIC_STATUS,
        EVENT_TYPE_TAB_BLUR,
        EVENT_TYPE_FULLSCREEN_EXIT,
        EVENT_TYPE_STREAM_LOST,
        EVENT_TYPE_NETWORK_INTERRUPTION,
        EVENT_TYPE_AI_VIOLATION,
    }
)


def normalize_payload(payload: dict[str, Any] | None) -> dict[str, Any]:
    """
    Copy a payload into plain JSON types.

    Values json cannot encode (datetime, numpy scalars, ...) become strings.

    Raises:
        ValueError: If the payload still cannot be encoded (non-string
                    keys, circular references)
    """
    try:
        return json.loads(json.dumps(dict(payload or {}), default=str))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Event payload is not JSON serializable: {e}") from e


def build_event_message(event: ProctorEvent) -> str:
    """Serialize a single live event."""
    return json.dumps({"type": MESSAGE_TYPE_EVENT, "event": event.to_dict()})


def build_batch_message(events: Iterable[ProctorEvent]) -> str:
    """Serialize a queue replay batch, preserving order."""
    return json.dumps(
        {"type": MESSAGE_TYPE_BATCH, "events": [e.to_dict() for e in events]}
    )


def decode_server_message(raw: str | bytes) -> Any | None:
    """
    Decode an inbound frame.

    Returns:
        Decoded JSON value, or None if the frame is not valid JSON
    """
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to parse server message: {e}")
        return None


def classify_server_message(data: Any) -> ServerNotice:
    """
    Wrap a decoded server payload in a ServerNotice.

    The core is unopinionated about what a notice means; it only labels
    the shapes it recognizes.
    """
    if not isinstance(data, dict):
        return ServerNotice(kind=NOTICE_KIND_UNKNOWN, message="", raw=data)

    msg_type = data.get("type")
    message = data.get("message") or ""
    if msg_type in RECOGNIZED_SERVER_TYPES:
        return ServerNotice(kind=msg_type, message=str(message), raw=data)
    if msg_type == SERVER_ACK:
        return ServerNotice(kind=NOTICE_KIND_ACK, message=str(message), raw=data)
    return ServerNotice(kind=NOTICE_KIND_UNKNOWN, message=str(message), raw=data)


def acknowledged_ids(data: Any) -> list[str]:
    """Return event ids carried by an ACK message (empty for anything else)."""
    if not isinstance(data, dict) or data.get("type") != SERVER_ACK:
        return []
    ids = data.get("event_ids") or []
    if not isinstance(ids, list):
        return []
    return [str(event_id) for event_id in ids]


def get_event_summary(event: ProctorEvent) -> str:
    """
    Get a human-readable summary of an event.

    Args:
        event: Event to summarize

    Returns:
        Summary string for logging
    """
    payload = event.payload

    if event.type in (EVENT_TYPE_CAMERA_STATUS, EVENT_TYPE_MIC_STATUS):
        status = payload.get("status", "?")
        reason = payload.get("reason")
        suffix = f" reason={reason}" if reason else ""
        return f"{event.type} status={status}{suffix} [seq: {event.sequence}]"

    elif event.type == EVENT_TYPE_STREAM_LOST:
        severity = payload.get("severity", "?")
        return f"stream_lost severity={severity} [seq: {event.sequence}]"

    elif event.type == EVENT_TYPE_AI_VIOLATION:
        violation = payload.get("violation_type", "?")
        return f"ai_violation type={violation} [seq: {event.sequence}]"

    else:
        return f"{event.type} [seq: {event.sequence}]"
