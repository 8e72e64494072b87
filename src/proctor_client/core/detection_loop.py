"""
Violation detection loop - periodic detector pass gated by the cooling window.

Each tick, in order:
    cooling? -> detector ready? -> frame? -> signal detected? -> classify
    -> encode evidence -> record -> report

At most one violation is recorded per tick. Once recorded, the cooling
window suppresses every following tick until it expires.
"""

import logging
from typing import Callable, Protocol

import numpy as np

from ..models.violations import DetectionSignal, ViolationAlert, ViolationType
from ..utils.constants import DETECTION_CHECK_INTERVAL
from ..utils.scheduler import ScheduledTask, Scheduler
from .camera import encode_frame_base64
from .cooling import CoolingPeriodController

logger = logging.getLogger(__name__)


class Detector(Protocol):
    def is_ready(self) -> bool: ...

    def detect(self, frame: np.ndarray) -> DetectionSignal: ...


class AlertReporter(Protocol):
    def submit(self, alert: ViolationAlert) -> None: ...


def classify_signal(signal: DetectionSignal) -> tuple[ViolationType, str] | None:
    """
    Map a detector signal to the violation it represents.

    Returns:
        (violation type, message), or None if the frame is clean
    """
    if not signal.detected:
        return None
    if signal.face_count == 0:
        return ViolationType.NO_FACE, "No face detected in frame"
    if signal.face_count > 1:
        return (
            ViolationType.MULTIPLE_FACES,
            f"Multiple faces detected ({signal.face_count} faces)",
        )
    if signal.objects:
        return (
            ViolationType.OBJECT_DETECTED,
            f"Prohibited object detected: {', '.join(signal.objects)}",
        )
    if signal.looking_away:
        return ViolationType.LOOKING_AWAY, "Candidate looking away from screen"
    return None


class ViolationDetectionLoop:
    """Drives the detector on a fixed interval."""

    def __init__(
        self,
        scheduler: Scheduler,
        detector: Detector,
        controller: CoolingPeriodController,
        frame_source: Callable[[], np.ndarray | None],
        reporter: AlertReporter | None = None,
        interval: float = DETECTION_CHECK_INTERVAL,
        encoder: Callable[[np.ndarray], str | None] = encode_frame_base64,
    ):
        self._scheduler = scheduler
        self._detector = detector
        self._controller = controller
        self._frame_source = frame_source
        self._reporter = reporter
        self._interval = interval
        self._encoder = encoder
        self._task: ScheduledTask | None = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        if self._task is not None:
            return
        logger.info(f"Starting violation detection (checking every {self._interval}s)")
        self._task = self._scheduler.call_every(self._interval, self.tick)

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.info("Violation detection stopped")

    def tick(self) -> ViolationAlert | None:
        """Run one detection pass. Returns the recorded alert, if any."""
        if self._controller.is_in_cooling_period:
            logger.debug("Skipped: in cooling period")
            return None

        if not self._detector.is_ready():
            logger.debug("Skipped: detection not ready")
            return None

        frame = self._frame_source()
        if frame is None:
            logger.debug("Skipped: no frame available")
            return None

        violation = classify_signal(self._detector.detect(frame))
        if violation is None:
            return None

        violation_type, message = violation
        try:
            image = self._encoder(frame)
        except Exception as e:
            logger.warning(f"Failed to capture evidence frame: {e}")
            image = None

        alert = self._controller.record_violation(violation_type, message, image)
        if self._reporter is not None:
            self._reporter.submit(alert)
        return alert
