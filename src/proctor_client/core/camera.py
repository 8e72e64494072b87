"""
Camera acquisition and capture handle.
"""

import base64
import logging
import threading
import time

import cv2
import numpy as np

from ..models.devices import (
    DEVICE_CAMERA,
    DEVICE_MICROPHONE,
    TRACK_KIND_VIDEO,
    DeviceRequirement,
    MediaTrack,
)
from ..utils.constants import (
    CAMERA_RECONNECT_DELAY,
    EVIDENCE_FRAME_SIZE,
    EVIDENCE_JPEG_QUALITY,
    MAX_CAMERA_RECONNECT_ATTEMPTS,
)

logger = logging.getLogger(__name__)


class RequiredDeviceUnavailable(RuntimeError):
    """A required capture device could not be acquired."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__(
            "Required device unavailable: "
            + "; ".join(f"{device}: {msg}" for device, msg in self.errors.items())
        )

    @property
    def camera(self) -> str | None:
        return self.errors.get(DEVICE_CAMERA)

    @property
    def microphone(self) -> str | None:
        return self.errors.get(DEVICE_MICROPHONE)


def _camera_source(camera_url: str) -> int | str:
    """Numeric strings are local device indexes, anything else is a URL/path."""
    return int(camera_url) if str(camera_url).isdigit() else camera_url


class OpenCVCaptureHandle:
    """Capture handle backed by cv2.VideoCapture. Video only."""

    def __init__(self, camera_url: str, label: str = ""):
        self.camera_url = camera_url
        self.label = label or f"camera {camera_url}"
        self._cap: cv2.VideoCapture | None = None
        self._enabled = True
        self._lock = threading.Lock()

    def open(
        self,
        attempts: int = MAX_CAMERA_RECONNECT_ATTEMPTS,
        delay: float = CAMERA_RECONNECT_DELAY,
    ) -> "OpenCVCaptureHandle":
        """
        Open the camera with retry logic.

        Raises:
            RuntimeError: If the camera cannot be opened after retries
        """
        source = _camera_source(self.camera_url)
        for attempt in range(attempts + 1):
            logger.info(f"Connecting to camera: {self.camera_url} (attempt {attempt + 1})")
            cap = cv2.VideoCapture(source)

            if cap.isOpened():
                logger.info("Camera connected successfully")
                with self._lock:
                    self._cap = cap
                return self

            cap.release()
            if attempt < attempts:
                logger.warning(f"Failed to connect, retrying in {delay}s...")
                time.sleep(delay)

        logger.error(f"Failed to connect to camera after {attempts + 1} attempts")
        raise RuntimeError(f"Cannot connect to camera: {self.camera_url}")

    def tracks(self) -> list[MediaTrack]:
        with self._lock:
            live = self._cap is not None and self._cap.isOpened()
            return [
                MediaTrack(
                    kind=TRACK_KIND_VIDEO,
                    live=live,
                    enabled=self._enabled,
                    label=self.label,
                )
            ]

    def set_enabled(self, enabled: bool) -> None:
        """Mute/unmute the video track without releasing the device."""
        with self._lock:
            self._enabled = enabled
        logger.info(f"Camera {'enabled' if enabled else 'disabled'}")

    def read_frame(self) -> np.ndarray | None:
        """Latest BGR frame, or None if the camera is closed, disabled or failing."""
        with self._lock:
            if self._cap is None or not self._enabled:
                return None
            ret, frame = self._cap.read()
        if not ret:
            logger.warning("Failed to read frame")
            return None
        return frame

    def release(self) -> None:
        with self._lock:
            cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()
            logger.info("Camera released")


def acquire_capture(
    requirements: DeviceRequirement,
    camera_url: str,
) -> OpenCVCaptureHandle | None:
    """
    Acquire the required capture devices.

    Each required device is tried separately so every failure is reported.

    Args:
        requirements: Which devices are mandatory
        camera_url: Camera URL or device index

    Returns:
        An open handle, or None when no video device is required

    Raises:
        RequiredDeviceUnavailable: With one message per failed device
    """
    errors: dict[str, str] = {}
    handle = None

    if requirements.camera:
        try:
            handle = OpenCVCaptureHandle(camera_url).open()
        except RuntimeError as e:
            errors[DEVICE_CAMERA] = f"Camera access failed: {e}"

    if requirements.microphone:
        errors[DEVICE_MICROPHONE] = (
            "Microphone access failed: audio capture is not supported by this client"
        )

    if errors:
        if handle is not None:
            handle.release()
        for message in errors.values():
            logger.error(message)
        raise RequiredDeviceUnavailable(errors)

    return handle


def encode_frame_base64(
    frame: np.ndarray,
    size: tuple[int, int] = EVIDENCE_FRAME_SIZE,
    quality: int = EVIDENCE_JPEG_QUALITY,
) -> str | None:
    """
    Encode a frame as base64 JPEG for violation evidence.

    Returns:
        Base64 string, or None if encoding fails
    """
    if frame is None or frame.size == 0:
        return None
    resized = cv2.resize(frame, size)
    ok, buffer = cv2.imencode(".jpg", resized, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        logger.warning("Failed to encode evidence frame")
        return None
    return base64.b64encode(buffer.tobytes()).decode("ascii")
