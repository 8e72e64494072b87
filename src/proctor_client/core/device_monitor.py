"""
Device Status Monitor - Edge-triggered capture-device status events.

- Only monitors and reports on REQUIRED devices
- One event per state change (plus the first observation)
- No permission queries in the poll loop
- Never releases the capture handle (owned by the caller)
"""

import logging
import threading
from typing import Any, Callable

from ..models.devices import (
    DEVICE_CAMERA,
    DEVICE_MICROPHONE,
    TRACK_KIND_AUDIO,
    TRACK_KIND_VIDEO,
    CaptureHandle,
    DeviceRequirement,
    is_device_on,
)
from ..utils.constants import DEVICE_POLL_INTERVAL
from ..utils.event_schema import (
    EVENT_TYPE_CAMERA_STATUS,
    EVENT_TYPE_MIC_STATUS,
    EVENT_TYPE_STREAM_LOST,
)
from ..utils.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

# device -> (track kind, event type)
_DEVICE_CHANNELS = {
    DEVICE_CAMERA: (TRACK_KIND_VIDEO, EVENT_TYPE_CAMERA_STATUS),
    DEVICE_MICROPHONE: (TRACK_KIND_AUDIO, EVENT_TYPE_MIC_STATUS),
}


class DeviceStatusMonitor:
    """
    Polls a capture handle and emits status transitions.

    The emit callable is bound to the session, e.g. SessionContext.emit.
    Throttling of repeated 'stream_lost' events is the emitter's job.
    """

    def __init__(
        self,
        emit: Callable[[str, dict[str, Any]], Any],
        requirements: DeviceRequirement,
        handle_provider: Callable[[], CaptureHandle | None],
        scheduler: Scheduler,
        poll_interval: float = DEVICE_POLL_INTERVAL,
    ):
        """
        Args:
            emit: Session-bound emit(event_type, payload)
            requirements: Which devices are mandatory
            handle_provider: Returns the current capture handle (or None)
            scheduler: Timer source for the poll
            poll_interval: Seconds between polls
        """
        self._emit = emit
        self._requirements = requirements
        self._handle_provider = handle_provider
        self._scheduler = scheduler
        self._poll_interval = poll_interval

        # Last observed status per required device; None = not yet observed
        self._last_status: dict[str, bool | None] = {
            device: None for device in requirements.required_devices()
        }
        self._task: ScheduledTask | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        """Run one poll immediately, then poll on a fixed interval."""
        if self._task is not None:
            return
        logger.info(
            f"Device monitor started (required: "
            f"{', '.join(self._requirements.required_devices()) or 'none'}, "
            f"every {self._poll_interval}s)"
        )
        self.poll()
        self._task = self._scheduler.call_every(self._poll_interval, self.poll)

    def stop(self) -> None:
        """Stop polling. Does NOT release the capture handle."""
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.info("Device monitor stopped")

    def poll(self) -> None:
        """Check every required device once and emit any transitions."""
        handle = self._handle_provider()

        if handle is None:
            if self._requirements.any_required():
                self._emit(
                    EVENT_TYPE_STREAM_LOST,
                    {
                        "error": "Required media stream not initialized",
                        "severity": "critical",
                    },
                )
            return

        transitions = []
        with self._lock:
            for device, previous in self._last_status.items():
                kind, event_type = _DEVICE_CHANNELS[device]
                current = is_device_on(handle, kind)
                if current != previous:
                    self._last_status[device] = current
                    transitions.append((device, event_type, current))

        for device, event_type, is_on in transitions:
            logger.info(f"{device} is now {'on' if is_on else 'off'}")
            self._emit(
                event_type,
                {
                    "status": "on" if is_on else "off",
                    "device": device,
                    "required": True,
                    "timestamp": int(self._scheduler.time() * 1000),
                },
            )
