"""
Violation / Cooling-Period Controller

Handles:
- Violation history (append-only for the session)
- Cooling period after each violation (60 seconds by default)
- Countdown of remaining seconds for display

Callers must check ``is_in_cooling_period`` before running a detection
pass at all; recording itself is never guarded. A new violation during an
active window resets the countdown rather than extending it.
"""

import logging
import math
import threading
import uuid
from typing import Any, Callable

from ..models.violations import CoolingPeriodStatus, ViolationAlert, ViolationType
from ..utils.constants import COOLING_COUNTDOWN_INTERVAL, COOLING_PERIOD_SECONDS
from ..utils.event_schema import EVENT_TYPE_AI_VIOLATION
from ..utils.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)


class CoolingPeriodController:
    """Records violations and enforces a suppression window after each one."""

    def __init__(
        self,
        scheduler: Scheduler,
        duration_seconds: int = COOLING_PERIOD_SECONDS,
        emit: Callable[[str, dict[str, Any]], Any] | None = None,
    ):
        """
        Args:
            scheduler: Timer source for the countdown and expiry
            duration_seconds: Length of each cooling window
            emit: Optional session-bound emit(event_type, payload)
        """
        self._scheduler = scheduler
        self._duration = int(duration_seconds)
        self._emit = emit

        self._lock = threading.Lock()
        self._alerts: list[ViolationAlert] = []
        self._status = CoolingPeriodStatus()
        self._countdown_task: ScheduledTask | None = None
        self._expiry_task: ScheduledTask | None = None
        # Bumped per window; stale timer callbacks compare against it
        self._window = 0
        self._listeners: list[Callable[[ViolationAlert], None]] = []

    @property
    def duration_seconds(self) -> int:
        return self._duration

    @property
    def is_in_cooling_period(self) -> bool:
        """The single gate a detection driver checks before each pass."""
        with self._lock:
            return self._status.active

    @property
    def status(self) -> CoolingPeriodStatus:
        with self._lock:
            return self._status

    @property
    def alerts(self) -> list[ViolationAlert]:
        with self._lock:
            return list(self._alerts)

    def add_listener(self, listener: Callable[[ViolationAlert], None]) -> Callable[[], None]:
        """Subscribe to new alerts. Returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def record_violation(
        self,
        violation_type: ViolationType | str,
        message: str,
        image: str | None = None,
    ) -> ViolationAlert:
        """
        Log a violation and (re)start the cooling window.

        Args:
            violation_type: Violation category
            message: Human-readable description
            image: Optional base64 JPEG evidence

        Returns:
            The recorded alert
        """
        violation_type = ViolationType(violation_type)
        now = self._scheduler.time()
        alert = ViolationAlert(
            id=f"{int(now * 1000)}-{uuid.uuid4().hex[:9]}",
            type=violation_type,
            message=message,
            timestamp=int(now * 1000),
            image=image,
        )

        with self._lock:
            self._alerts.append(alert)
            self._start_window_locked(now)
            listeners = list(self._listeners)

        logger.warning(f"Violation logged: {violation_type.value} - {message}")
        logger.info(f"Cooling period started - {self._duration} seconds")

        if self._emit is not None:
            self._emit(
                EVENT_TYPE_AI_VIOLATION,
                {
                    "violation_type": violation_type.value,
                    "message": message,
                    "alert_id": alert.id,
                },
            )

        for listener in listeners:
            try:
                listener(alert)
            except Exception as e:
                logger.error(f"Violation listener failed: {e}", exc_info=True)

        return alert

    def latest_alert(self, violation_type: ViolationType | str) -> ViolationAlert | None:
        """Most recent alert of a given type."""
        violation_type = ViolationType(violation_type)
        with self._lock:
            matching = [a for a in self._alerts if a.type == violation_type]
        if not matching:
            return None
        return max(matching, key=lambda a: a.timestamp)

    def close(self) -> None:
        """Cancel both timers (session teardown)."""
        with self._lock:
            self._cancel_timers_locked()

    def _start_window_locked(self, now: float) -> None:
        """Cancel any in-flight window and start a fresh one."""
        self._cancel_timers_locked()

        self._window += 1
        window = self._window
        start_ms = int(now * 1000)
        self._status = CoolingPeriodStatus(
            active=True,
            remaining_seconds=self._duration,
            start_time=start_ms,
        )
        self._countdown_task = self._scheduler.call_every(
            COOLING_COUNTDOWN_INTERVAL, lambda: self._tick(window)
        )
        self._expiry_task = self._scheduler.call_later(
            self._duration, lambda: self._expire(window)
        )

    def _tick(self, window: int) -> None:
        with self._lock:
            if window != self._window or not self._status.active:
                return  # Window was replaced or has ended
            start_ms = self._status.start_time
            elapsed = math.floor((self._scheduler.time() * 1000 - start_ms) / 1000)
            remaining = max(0, self._duration - elapsed)
            self._status = CoolingPeriodStatus(
                active=self._status.active,
                remaining_seconds=remaining,
                start_time=start_ms,
            )
            if remaining == 0 and self._countdown_task is not None:
                self._countdown_task.cancel()
                self._countdown_task = None

    def _expire(self, window: int) -> None:
        with self._lock:
            if window != self._window:
                return
            self._status = CoolingPeriodStatus()
            self._expiry_task = None
            if self._countdown_task is not None:
                self._countdown_task.cancel()
                self._countdown_task = None
        logger.info("Cooling period ended - resuming detection")

    def _cancel_timers_locked(self) -> None:
        if self._countdown_task is not None:
            self._countdown_task.cancel()
            self._countdown_task = None
        if self._expiry_task is not None:
            self._expiry_task.cancel()
            self._expiry_task = None
