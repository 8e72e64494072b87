"""
Capture device models.

The core never acquires devices itself; it only reads track status from
whatever capture handle the caller owns.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

TRACK_KIND_VIDEO = "video"
TRACK_KIND_AUDIO = "audio"

DEVICE_CAMERA = "camera"
DEVICE_MICROPHONE = "microphone"


@dataclass(frozen=True)
class DeviceRequirement:
    """Which capture devices are mandatory for the current session."""

    camera: bool = True
    microphone: bool = True

    def any_required(self) -> bool:
        return self.camera or self.microphone

    def required_devices(self) -> list[str]:
        devices = []
        if self.camera:
            devices.append(DEVICE_CAMERA)
        if self.microphone:
            devices.append(DEVICE_MICROPHONE)
        return devices


DEFAULT_REQUIREMENTS = DeviceRequirement(camera=True, microphone=True)

REQUIREMENT_PRESETS = {
    "CAMERA_ONLY": DeviceRequirement(camera=True, microphone=False),
    "AUDIO_ONLY": DeviceRequirement(camera=False, microphone=True),
    "BOTH": DeviceRequirement(camera=True, microphone=True),
}


@dataclass
class MediaTrack:
    """
    Status of one capture track.

    Attributes:
        kind: 'video' or 'audio'
        live: False once the track has ended (device unplugged, revoked, etc)
        enabled: False when muted/disabled by the user
        label: Device label for logging
    """

    kind: str
    live: bool = True
    enabled: bool = True
    label: str = ""


@runtime_checkable
class CaptureHandle(Protocol):
    """
    A live capture-device handle.

    Release is owned by whoever acquired the handle; monitors only read it.
    """

    def tracks(self) -> list[MediaTrack]:
        """Return the handle's current tracks."""
        ...

    def release(self) -> None:
        """Stop all tracks and free the device."""
        ...


def tracks_of_kind(handle: CaptureHandle, kind: str) -> list[MediaTrack]:
    """Return the handle's tracks of the given kind, in handle order."""
    return [track for track in handle.tracks() if track.kind == kind]


def is_device_on(handle: CaptureHandle, kind: str) -> bool:
    """
    A device is 'on' when its first track exists, is live and is enabled.

    Args:
        handle: Capture handle to inspect
        kind: Track kind ('video' or 'audio')

    Returns:
        True if the device is currently delivering media
    """
    tracks = tracks_of_kind(handle, kind)
    if not tracks:
        return False
    first = tracks[0]
    return bool(first.live and first.enabled)
