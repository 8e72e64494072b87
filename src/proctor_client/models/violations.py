"""
Violation models - alerts, cooling period status and detector signals.
"""

from dataclasses import dataclass, field
from enum import Enum


class ViolationType(str, Enum):
    """Violation categories produced from detector signals."""

    NO_FACE = "no_face"
    MULTIPLE_FACES = "multiple_faces"
    OBJECT_DETECTED = "object_detected"
    LOOKING_AWAY = "looking_away"


@dataclass(frozen=True)
class ViolationAlert:
    """
    A recorded violation.

    Attributes:
        id: Unique alert identifier
        type: Violation category
        message: Human-readable description
        timestamp: Epoch milliseconds when recorded
        image: Base64 JPEG of the offending frame, if one was captured
    """

    id: str
    type: ViolationType
    message: str
    timestamp: int
    image: str | None = None


@dataclass(frozen=True)
class CoolingPeriodStatus:
    """Snapshot of the cooling window."""

    active: bool = False
    remaining_seconds: int = 0
    start_time: int | None = None  # epoch ms


@dataclass
class DetectionSignal:
    """
    One detector pass over a frame.

    Attributes:
        detected: False when the pass could not run (not ready, bad frame, error)
        face_count: Number of faces/persons in frame
        objects: Suspicious object class names seen in frame
        looking_away: Head pose points away from the screen
    """

    detected: bool
    face_count: int = 0
    objects: list[str] = field(default_factory=list)
    looking_away: bool = False
