"""
Data models for the proctoring client
"""

from .devices import (
    DEFAULT_REQUIREMENTS,
    DEVICE_CAMERA,
    DEVICE_MICROPHONE,
    REQUIREMENT_PRESETS,
    TRACK_KIND_AUDIO,
    TRACK_KIND_VIDEO,
    CaptureHandle,
    DeviceRequirement,
    MediaTrack,
    is_device_on,
    tracks_of_kind,
)
from .events import ConnectionState, ProctorEvent, ServerNotice
from .violations import (
    CoolingPeriodStatus,
    DetectionSignal,
    ViolationAlert,
    ViolationType,
)

__all__ = [
    "DEFAULT_REQUIREMENTS",
    "DEVICE_CAMERA",
    "DEVICE_MICROPHONE",
    "REQUIREMENT_PRESETS",
    "TRACK_KIND_AUDIO",
    "TRACK_KIND_VIDEO",
    "CaptureHandle",
    "ConnectionState",
    "CoolingPeriodStatus",
    "DetectionSignal",
    "DeviceRequirement",
    "MediaTrack",
    "ProctorEvent",
    "ServerNotice",
    "ViolationAlert",
    "ViolationType",
    "is_device_on",
    "tracks_of_kind",
]
