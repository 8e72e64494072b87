"""
Offline dry-run - simulate a session on a virtual clock.

No socket is opened, no camera is touched and nothing is uploaded. A
scripted timeline drives the real emitter, monitor, cooling controller
and detection loop so their interaction can be inspected end to end.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

import numpy as np

from .config.schemas import ClientConfig
from .models.devices import TRACK_KIND_AUDIO, TRACK_KIND_VIDEO, MediaTrack
from .models.violations import DetectionSignal, ViolationAlert
from .session import SessionContext
from .utils.scheduler import ManualScheduler

logger = logging.getLogger(__name__)

SIMULATION_START = 1_700_000_000.0  # Fixed epoch so runs are reproducible
DEFAULT_SIMULATION_SECONDS = 120


class StaticCaptureHandle:
    """In-memory capture handle whose tracks can be toggled by the script."""

    def __init__(self, video: bool = True, audio: bool = False):
        self._tracks = []
        if video:
            self._tracks.append(MediaTrack(kind=TRACK_KIND_VIDEO, label="simulated camera"))
        if audio:
            self._tracks.append(MediaTrack(kind=TRACK_KIND_AUDIO, label="simulated microphone"))
        self.released = False

    def tracks(self) -> list[MediaTrack]:
        return list(self._tracks)

    def set_enabled(self, kind: str, enabled: bool) -> None:
        for track in self._tracks:
            if track.kind == kind:
                track.enabled = enabled

    def read_frame(self) -> np.ndarray:
        return np.zeros((480, 640, 3), dtype=np.uint8)

    def release(self) -> None:
        self.released = True


class ScriptedDetector:
    """Returns a preset signal for each time window; clean otherwise."""

    def __init__(self, scheduler: ManualScheduler, script: list[tuple[float, DetectionSignal]]):
        self._scheduler = scheduler
        self._script = sorted(script, key=lambda item: item[0])
        self._start = scheduler.time()

    def is_ready(self) -> bool:
        return True

    def detect(self, frame: np.ndarray) -> DetectionSignal:
        elapsed = self._scheduler.time() - self._start
        signal = DetectionSignal(detected=True, face_count=1)
        for at, scripted in self._script:
            if elapsed >= at:
                signal = scripted
        return signal


class _LoggingReporter:
    def submit(self, alert: ViolationAlert) -> None:
        logger.info(f"[dry-run] would upload violation {alert.type.value} ({alert.id})")


@dataclass
class SimulationReport:
    """What a simulated session left behind."""

    last_sequence: int
    queue: dict
    event_counts: dict[str, int]
    alerts: list[ViolationAlert]
    cooling_active: bool
    cooling_remaining: int
    events: list = field(default_factory=list)


def _default_detection_script() -> list[tuple[float, DetectionSignal]]:
    return [
        (20, DetectionSignal(detected=True, face_count=0)),
        (25, DetectionSignal(detected=True, face_count=2)),
        (85, DetectionSignal(detected=True, face_count=1, objects=["cell phone"])),
        (90, DetectionSignal(detected=True, face_count=1)),
    ]


def simulate_session(
    config: ClientConfig,
    session_id: str = "dry-run-session",
    user_id: str = "dry-run-user",
    duration_seconds: float = DEFAULT_SIMULATION_SECONDS,
) -> SimulationReport:
    """
    Run a scripted session on a ManualScheduler.

    Timeline (seconds):
        0   monitoring starts, camera reported on
        5   tab blur, repeated 0.5s later (throttled)
        10  camera disabled, re-enabled at 15
        12  fullscreen exit
        20  no face -> violation, cooling starts
        25  two faces, suppressed while cooling
        80  cooling ends, two faces -> violation
        85  phone in frame, suppressed while cooling
    """
    scheduler = ManualScheduler(start_time=SIMULATION_START)
    handle = StaticCaptureHandle(
        video=config.devices.camera, audio=config.devices.microphone
    )
    detector = None
    if config.detection.enabled and config.devices.camera:
        detector = ScriptedDetector(scheduler, _default_detection_script())

    session = SessionContext(
        config,
        session_id,
        user_id,
        scheduler=scheduler,
        capture_handle=handle,
        detector=detector,
        reporter=_LoggingReporter(),
    )

    # Same as SessionContext.start() minus the socket
    session.emitter.reset()
    session.monitor.start()
    if session.detection_loop is not None:
        session.detection_loop.start()

    script = [
        (5.0, session.report_tab_blur),
        (5.5, session.report_tab_blur),
        (10.0, lambda: handle.set_enabled(TRACK_KIND_VIDEO, False)),
        (12.0, session.report_fullscreen_exit),
        (15.0, lambda: handle.set_enabled(TRACK_KIND_VIDEO, True)),
    ]
    for at, action in script:
        if at <= duration_seconds:
            scheduler.call_later(at, action)

    scheduler.advance(duration_seconds)

    status = session.controller.status
    events = session.queue.peek_all()
    report = SimulationReport(
        last_sequence=session.sequencer.current,
        queue=session.queue.get_stats(),
        event_counts=dict(Counter(event.type for event in events)),
        alerts=session.controller.alerts,
        cooling_active=status.active,
        cooling_remaining=status.remaining_seconds,
        events=events,
    )

    if session.detection_loop is not None:
        session.detection_loop.stop()
    session.monitor.stop()
    session.controller.close()
    return report


def print_simulation_report(report: SimulationReport) -> None:
    print()
    print("Dry-run Session")
    print("=" * 60)
    print(f"  Last sequence:   {report.last_sequence}")
    print(f"  Queued events:   {len(report.events)} (capacity {report.queue['capacity']})")
    for event_type, count in sorted(report.event_counts.items()):
        print(f"    {event_type}: {count}")
    print(f"  Violations:      {len(report.alerts)}")
    for alert in report.alerts:
        print(f"    {alert.type.value}: {alert.message}")
    if report.cooling_active:
        print(f"  Cooling period:  active ({report.cooling_remaining}s remaining)")
    else:
        print("  Cooling period:  inactive")
    print()
