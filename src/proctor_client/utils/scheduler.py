"""
Scheduler - Cancellable timers for polls, countdowns and reconnects.

Two implementations share one interface:
  ThreadScheduler  - real wall-clock timers (threading.Timer / Event loops)
  ManualScheduler  - virtual clock advanced explicitly (simulation, tests)

Components only ever hold the ScheduledTask they created, so cancelling a
poll can never touch a timer owned by another component.
"""

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ScheduledTask(Protocol):
    """Handle to a pending one-shot or repeating callback."""

    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


@runtime_checkable
class Scheduler(Protocol):
    """Timer source used by every time-driven component."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run callback once after delay seconds."""
        ...

    def call_every(
        self, interval: float, callback: Callable[[], None]
    ) -> ScheduledTask:
        """Run callback every interval seconds until cancelled."""
        ...

    def time(self) -> float:
        """Current time in epoch seconds."""
        ...


def _run_callback(callback: Callable[[], None]) -> None:
    """Run a timer callback; a failing callback must not kill its timer."""
    try:
        callback()
    except Exception as e:
        logger.error(f"Scheduled callback failed: {e}", exc_info=True)


class _TimerTask:
    """One-shot task backed by threading.Timer."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self._cancelled = threading.Event()

        def fire():
            if not self._cancelled.is_set():
                _run_callback(callback)

        self._timer = threading.Timer(delay, fire)
        self._timer.daemon = True  # Dies with parent process

    def start(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        self._cancelled.set()
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class _IntervalTask:
    """
    Repeating task on a dedicated thread.

    Uses threading.Event for efficient blocking that can be interrupted
    immediately on cancel - no polling, no hanging.
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: str):
        self._interval = interval
        self._callback = callback
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        # wait() returns True once cancelled, False on timeout
        while not self._stop.wait(timeout=self._interval):
            _run_callback(self._callback)

    def cancel(self) -> None:
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()


class ThreadScheduler:
    """Wall-clock scheduler; callbacks run on timer threads."""

    def __init__(self, name: str = "proctor"):
        self._name = name

    def call_later(self, delay: float, callback: Callable[[], None]) -> _TimerTask:
        task = _TimerTask(max(0.0, delay), callback)
        task.start()
        return task

    def call_every(self, interval: float, callback: Callable[[], None]) -> _IntervalTask:
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        task = _IntervalTask(interval, callback, name=f"{self._name}-interval")
        task.start()
        return task

    def time(self) -> float:
        return time.time()


class _ManualTask:
    def __init__(self, interval: float | None, callback: Callable[[], None]):
        self.interval = interval
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """
    Deterministic scheduler driven by advance().

    Due callbacks fire in (due time, creation order). Callbacks run on the
    caller's thread, so a simulated session behaves like a single-threaded
    run-to-completion event loop.
    """

    def __init__(self, start_time: float = 0.0):
        self._now = start_time
        self._heap: list[tuple[float, int, _ManualTask]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualTask:
        task = _ManualTask(None, callback)
        self._push(self._now + max(0.0, delay), task)
        return task

    def call_every(self, interval: float, callback: Callable[[], None]) -> _ManualTask:
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        task = _ManualTask(interval, callback)
        self._push(self._now + interval, task)
        return task

    def time(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing everything that comes due."""
        target = self._now + seconds
        while self._heap and self._heap[0][0] <= target:
            due, _, task = heapq.heappop(self._heap)
            if task.cancelled:
                continue
            self._now = due
            if task.interval is not None:
                self._push(due + task.interval, task)
            _run_callback(task.callback)
        self._now = target

    def pending(self) -> int:
        """Number of live (not cancelled) scheduled tasks."""
        return sum(1 for _, _, task in self._heap if not task.cancelled)

    def _push(self, due: float, task: _ManualTask) -> None:
        heapq.heappush(self._heap, (due, next(self._counter), task))
