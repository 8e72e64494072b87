"""
Session Context - one exam session's object graph.

Owns the sequencer, throttle, queue, transport, emitter, device monitor,
cooling controller, violation reporter and (optionally) the detection
loop. Nothing here is module-global, so two sessions never share state.
"""

import logging
from typing import Any, Callable

from .config.schemas import ClientConfig
from .core.cooling import CoolingPeriodController
from .core.detection_loop import Detector, ViolationDetectionLoop
from .core.device_monitor import DeviceStatusMonitor
from .core.emitter import EventEmitter
from .core.event_queue import EventQueue
from .core.sequencer import Sequencer
from .core.throttle import ThrottlePolicy
from .core.transport import Connector, ReconnectPolicy, Transport
from .models.devices import DEVICE_CAMERA, DEVICE_MICROPHONE, CaptureHandle
from .models.events import ConnectionState, ProctorEvent, ServerNotice
from .notifiers.violation_store import ViolationReporter
from .utils.event_schema import (
    EVENT_TYPE_CAMERA_STATUS,
    EVENT_TYPE_FULLSCREEN_EXIT,
    EVENT_TYPE_MIC_STATUS,
    EVENT_TYPE_NETWORK_INTERRUPTION,
    EVENT_TYPE_TAB_BLUR,
    NOTICE_KIND_ACK,
    NOTICE_KIND_UNKNOWN,
    SERVER_EXAM_TERMINATED,
    classify_server_message,
)
from .utils.scheduler import Scheduler, ThreadScheduler

logger = logging.getLogger(__name__)

_DEVICE_EVENT_TYPES = {
    DEVICE_CAMERA: EVENT_TYPE_CAMERA_STATUS,
    DEVICE_MICROPHONE: EVENT_TYPE_MIC_STATUS,
}


class SessionContext:
    """Explicit per-session wiring of every proctoring component."""

    def __init__(
        self,
        config: ClientConfig,
        session_id: str,
        user_id: str,
        scheduler: Scheduler | None = None,
        connector: Connector | None = None,
        capture_handle: CaptureHandle | None = None,
        detector: Detector | None = None,
        reporter: ViolationReporter | None = None,
        spawn: Callable[[Callable[[], None]], None] | None = None,
    ):
        """
        Args:
            config: Parsed client configuration
            session_id: Exam session identifier (also the exam id for HTTP)
            user_id: Candidate identifier
            scheduler: Timer source (ThreadScheduler by default)
            connector: Socket factory (websockets sync client by default)
            capture_handle: Caller-owned capture handle; never released here
            detector: Optional detector; enables the detection loop
            reporter: Evidence uploader (built from config by default)
            spawn: Runs the socket reader loop (daemon thread by default)
        """
        self.config = config
        self.session_id = session_id
        self.user_id = user_id
        self.scheduler = scheduler or ThreadScheduler()
        self._capture_handle = capture_handle

        reconnect = config.transport.reconnect
        self.sequencer = Sequencer()
        self.throttle = ThrottlePolicy(config.throttle)
        self.queue = EventQueue(config.queue.capacity)
        self.transport = Transport(
            self.queue,
            config.server.resolved_ws_base_url(),
            self.scheduler,
            reconnect_policy=ReconnectPolicy(
                strategy=reconnect.strategy,
                base_delay=reconnect.base_delay,
                max_delay=reconnect.max_delay,
                jitter=reconnect.jitter,
            ),
            connector=connector,
            spawn=spawn,
        )
        self.emitter = EventEmitter(
            self.sequencer,
            self.throttle,
            self.queue,
            sender=self.transport,
            clock=self.scheduler.time,
        )
        self.monitor = DeviceStatusMonitor(
            self.emit,
            config.devices.requirements(),
            lambda: self._capture_handle,
            self.scheduler,
            poll_interval=config.devices.poll_interval,
        )
        self.controller = CoolingPeriodController(
            self.scheduler,
            duration_seconds=config.violations.cooling_period_seconds,
            emit=self.emit,
        )
        self.reporter = reporter or ViolationReporter(
            config.server.api_base_url,
            exam_id=session_id,
            candidate_id=user_id,
            timeout=config.server.request_timeout,
        )
        self.detection_loop = None
        if detector is not None:
            self.detection_loop = ViolationDetectionLoop(
                self.scheduler,
                detector,
                self.controller,
                frame_source=self._read_frame,
                reporter=self.reporter,
                interval=config.violations.check_interval,
            )

        self.on_notice(self._log_notice)
        self._last_state = self.transport.state
        self.transport.add_state_listener(self._on_connection_state)
        self._started = False

    @property
    def capture_handle(self) -> CaptureHandle | None:
        return self._capture_handle

    def set_capture_handle(self, handle: CaptureHandle | None) -> None:
        """Swap or clear the handle the monitor polls."""
        self._capture_handle = handle

    def start(self) -> None:
        """Reset numbering, connect, and start monitoring."""
        if self._started:
            return
        self._started = True
        logger.info(f"Starting session {self.session_id} for {self.user_id}")
        self.emitter.reset()
        self.transport.connect(self.session_id, self.user_id)
        self.monitor.start()
        if self.detection_loop is not None:
            self.detection_loop.start()

    def stop(self) -> None:
        """Stop every timer and close the socket. The capture handle is left alone."""
        if not self._started:
            return
        self._started = False
        if self.detection_loop is not None:
            self.detection_loop.stop()
        self.monitor.stop()
        self.controller.close()
        self.transport.disconnect()
        logger.info(f"Session {self.session_id} stopped")

    def emit(self, event_type: str, payload: dict[str, Any] | None = None) -> ProctorEvent | None:
        """Emit an event bound to this session."""
        return self.emitter.emit(self.session_id, self.user_id, event_type, payload)

    def on_notice(self, callback: Callable[[ServerNotice], None]) -> Callable[[], None]:
        """Subscribe to parsed server notices. Returns an unsubscribe callable."""
        return self.transport.add_message_listener(
            lambda data: callback(classify_server_message(data))
        )

    def report_device_failure(self, errors: dict[str, str]) -> None:
        """Emit 'off / permission_denied' for each required device that failed."""
        required = set(self.config.devices.requirements().required_devices())
        for device, message in errors.items():
            event_type = _DEVICE_EVENT_TYPES.get(device)
            if event_type is None or device not in required:
                continue
            self.emit(
                event_type,
                {
                    "status": "off",
                    "device": device,
                    "required": True,
                    "reason": "permission_denied",
                    "error": message,
                },
            )

    def report_tab_blur(self) -> ProctorEvent | None:
        return self.emit(
            EVENT_TYPE_TAB_BLUR,
            {"blurred": True, "timestamp": int(self.scheduler.time() * 1000)},
        )

    def report_fullscreen_exit(self, reason: str = "user_action") -> ProctorEvent | None:
        return self.emit(EVENT_TYPE_FULLSCREEN_EXIT, {"exited": True, "reason": reason})

    def get_stats(self) -> dict:
        status = self.controller.status
        return {
            "session_id": self.session_id,
            "connection": self.transport.state.value,
            "last_sequence": self.sequencer.current,
            "queue": self.queue.get_stats(),
            "violations": len(self.controller.alerts),
            "cooling": status.active,
            "cooling_remaining": status.remaining_seconds,
        }

    def _read_frame(self):
        reader = getattr(self._capture_handle, "read_frame", None)
        return reader() if reader is not None else None

    def _on_connection_state(self, state: ConnectionState) -> None:
        previous, self._last_state = self._last_state, state
        # Only a live connection going down counts; failed retries do not
        if previous == ConnectionState.CONNECTED and state == ConnectionState.RECONNECTING:
            self.emit(
                EVENT_TYPE_NETWORK_INTERRUPTION,
                {"status": "offline", "timestamp": int(self.scheduler.time() * 1000)},
            )

    def _log_notice(self, notice: ServerNotice) -> None:
        if notice.kind in (NOTICE_KIND_ACK, NOTICE_KIND_UNKNOWN):
            return
        if notice.kind == SERVER_EXAM_TERMINATED:
            logger.error(f"Exam terminated by proctor: {notice.message}")
        else:
            logger.warning(f"Proctor {notice.kind}: {notice.message}")
