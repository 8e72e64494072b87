"""
Transport - WebSocket connection with automatic reconnection.

Features:
- Batch flush of the local event queue on every (re)connect
- Exactly one pending reconnect timer at a time
- Manual disconnect that wins against late-arriving close notifications
- Multi-subscriber state and message listeners

State machine:
    disconnected -> connecting -> connected -> (reconnecting <-> connecting)
    any -> disconnected on disconnect()

Network errors never propagate to callers. They surface only as state
changes and log lines.
"""

import logging
import random
import threading
from typing import Any, Callable, Iterator, Protocol
from urllib.parse import quote

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect as ws_connect

from ..models.events import ConnectionState, ProctorEvent
from ..utils.constants import (
    MANUAL_DISCONNECT_REASON,
    NORMAL_CLOSURE_CODE,
    PROCTOR_SOCKET_PATH,
    RECONNECT_BASE_DELAY,
    RECONNECT_JITTER,
    RECONNECT_MAX_DELAY,
)
from ..utils.event_schema import (
    acknowledged_ids,
    build_batch_message,
    build_event_message,
    decode_server_message,
)
from ..utils.scheduler import ScheduledTask, Scheduler
from .event_queue import EventQueue

logger = logging.getLogger(__name__)

# Errors that mean "the network let us down" rather than a bug
NETWORK_ERRORS = (ConnectionClosed, WebSocketException, OSError)
# Payloads that bypassed the emitter may still fail to encode
SERIALIZATION_ERRORS = (TypeError, ValueError)

STRATEGY_FIXED = "fixed"
STRATEGY_EXPONENTIAL = "exponential"


class Connection(Protocol):
    """The subset of a websockets sync ClientConnection the transport uses."""

    def send(self, message: str) -> None: ...

    def close(self, code: int = NORMAL_CLOSURE_CODE, reason: str = "") -> None: ...

    def __iter__(self) -> Iterator[str | bytes]: ...


Connector = Callable[[str], Connection]


def default_connector(url: str) -> Connection:
    """Open a WebSocket using the websockets synchronous client."""
    return ws_connect(url, open_timeout=10, close_timeout=5)


def _spawn_thread(target: Callable[[], None]) -> None:
    thread = threading.Thread(target=target, name="ProctorSocket", daemon=True)
    thread.start()


class ReconnectPolicy:
    """
    Delay before the next reconnection attempt.

    Strategies:
        fixed: always base_delay
        exponential: base_delay * 2**attempt, +/- jitter, capped at max_delay

    The attempt counter resets when a connection opens.
    """

    def __init__(
        self,
        strategy: str = STRATEGY_EXPONENTIAL,
        base_delay: float = RECONNECT_BASE_DELAY,
        max_delay: float = RECONNECT_MAX_DELAY,
        jitter: float = RECONNECT_JITTER,
        rng: Callable[[], float] = random.random,
    ):
        if strategy not in (STRATEGY_FIXED, STRATEGY_EXPONENTIAL):
            raise ValueError(f"Unknown reconnect strategy: {strategy}")
        self.strategy = strategy
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self._rng = rng
        self._attempt = 0

    @property
    def attempt(self) -> int:
        return self._attempt

    def next_delay(self) -> float:
        """Return the delay for the upcoming attempt and count it."""
        attempt = self._attempt
        self._attempt += 1

        if self.strategy == STRATEGY_FIXED:
            return self.base_delay

        delay = min(self.max_delay, self.base_delay * (2**attempt))
        if self.jitter:
            delay *= 1 + self.jitter * (2 * self._rng() - 1)
        return max(0.0, min(self.max_delay, delay))

    def reset(self) -> None:
        self._attempt = 0


class Transport:
    """Owns the proctor socket for one session."""

    def __init__(
        self,
        queue: EventQueue,
        ws_base_url: str,
        scheduler: Scheduler,
        reconnect_policy: ReconnectPolicy | None = None,
        connector: Connector | None = None,
        spawn: Callable[[Callable[[], None]], None] | None = None,
    ):
        """
        Args:
            queue: Event queue drained on every successful open
            ws_base_url: e.g. ws://localhost:8000
            scheduler: Timer source for reconnect delays
            reconnect_policy: Delay strategy (exponential with jitter by default)
            connector: Opens a connection for a URL (websockets sync client by default)
            spawn: Runs the connection loop in the background (daemon thread by default)
        """
        self._queue = queue
        self._ws_base_url = ws_base_url.rstrip("/")
        self._scheduler = scheduler
        self._policy = reconnect_policy or ReconnectPolicy()
        self._connector = connector or default_connector
        self._spawn = spawn or _spawn_thread

        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._socket: Connection | None = None
        self._generation = 0  # Bumped per connection attempt; older closes are stale
        self._reconnect_task: ScheduledTask | None = None
        self._manual_disconnect = False
        self._session_id: str | None = None
        self._user_id: str | None = None

        self._state_listeners: list[Callable[[ConnectionState], None]] = []
        self._message_listeners: list[Callable[[Any], None]] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def current_session(self) -> str | None:
        with self._lock:
            return self._session_id

    @property
    def reconnect_pending(self) -> bool:
        with self._lock:
            return self._reconnect_task is not None

    def is_connected(self) -> bool:
        with self._lock:
            return self._state == ConnectionState.CONNECTED and self._socket is not None

    def endpoint_for(self, session_id: str, user_id: str) -> str:
        """Session-scoped socket address."""
        path = PROCTOR_SOCKET_PATH.format(
            session_id=quote(session_id, safe=""),
            user_id=quote(user_id, safe=""),
        )
        return f"{self._ws_base_url}{path}"

    def add_state_listener(
        self, listener: Callable[[ConnectionState], None]
    ) -> Callable[[], None]:
        """Subscribe to state changes. Returns an unsubscribe callable."""
        with self._lock:
            self._state_listeners.append(listener)
        return lambda: self._remove(self._state_listeners, listener)

    def add_message_listener(self, listener: Callable[[Any], None]) -> Callable[[], None]:
        """Subscribe to decoded inbound messages. Returns an unsubscribe callable."""
        with self._lock:
            self._message_listeners.append(listener)
        return lambda: self._remove(self._message_listeners, listener)

    def connect(self, session_id: str, user_id: str) -> None:
        """
        Open the proctor socket for a session.

        No-op if already connecting or connected. Never raises on network
        failure; failures move the transport to 'reconnecting'.
        """
        with self._lock:
            if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
                logger.info("Already connected or connecting")
                return

            self._session_id = session_id
            self._user_id = user_id
            self._manual_disconnect = False
            if self._reconnect_task is not None:
                self._reconnect_task.cancel()
                self._reconnect_task = None

            self._generation += 1
            generation = self._generation
            url = self.endpoint_for(session_id, user_id)
            changed = self._set_state(ConnectionState.CONNECTING)

        self._notify_state(changed)
        logger.info(f"Connecting to: {url}")
        self._spawn(lambda: self._run_connection(generation, url))

    def disconnect(self) -> None:
        """
        Close the socket on purpose.

        Cancels any pending reconnect and suppresses reconnects triggered
        by a close notification that races in afterwards.
        """
        with self._lock:
            self._manual_disconnect = True
            if self._reconnect_task is not None:
                self._reconnect_task.cancel()
                self._reconnect_task = None
            socket = self._socket
            self._socket = None
            self._session_id = None
            self._user_id = None
            changed = self._set_state(ConnectionState.DISCONNECTED)

        if socket is not None:
            try:
                socket.close(code=NORMAL_CLOSURE_CODE, reason=MANUAL_DISCONNECT_REASON)
            except NETWORK_ERRORS as e:
                logger.debug(f"Error closing socket: {e}")

        self._notify_state(changed)
        logger.info("Socket disconnected")

    def send(self, event: ProctorEvent) -> bool:
        """
        Best-effort live send of a single event.

        Returns:
            True if the frame was written. Failure is only logged; the
            event stays queued for the next batch flush.
        """
        with self._lock:
            socket = self._socket if self._state == ConnectionState.CONNECTED else None

        if socket is None:
            logger.debug(f"Socket not ready, event queued: {event.type}")
            return False

        try:
            message = build_event_message(event)
        except SERIALIZATION_ERRORS as e:
            logger.error(f"Cannot encode event {event.event_id}: {e}")
            return False

        try:
            socket.send(message)
            logger.debug(f"Sent: {event.type} [seq: {event.sequence}]")
            return True
        except NETWORK_ERRORS as e:
            logger.error(f"Failed to send event: {e}")
            return False

    # ------------------------------------------------------------------
    # Connection lifecycle (runs on the socket thread / timer threads)
    # ------------------------------------------------------------------

    def _run_connection(self, generation: int, url: str) -> None:
        try:
            socket = self._connector(url)
        except NETWORK_ERRORS as e:
            logger.warning(f"Failed to connect to {url}: {e}")
            self._handle_close(generation)
            return

        if not self._handle_open(generation, socket):
            return

        try:
            for raw in socket:
                self._handle_message(raw)
        except ConnectionClosed as e:
            logger.warning(f"Socket closed: {e}")
        except NETWORK_ERRORS as e:
            logger.error(f"Socket error: {e}")
        finally:
            self._handle_close(generation)

    def _handle_open(self, generation: int, socket: Connection) -> bool:
        with self._lock:
            stale = generation != self._generation or self._manual_disconnect
            if not stale:
                self._socket = socket
                self._policy.reset()
                changed = self._set_state(ConnectionState.CONNECTED)

        if stale:
            logger.debug("Discarding connection opened after disconnect")
            try:
                socket.close(code=NORMAL_CLOSURE_CODE, reason=MANUAL_DISCONNECT_REASON)
            except NETWORK_ERRORS:
                pass
            return False

        logger.info("Proctor socket connected")
        self._notify_state(changed)
        self._flush_queue(socket)
        return True

    def _flush_queue(self, socket: Connection) -> None:
        """Replay everything queued as one BATCH_EVENTS message."""
        events = self._queue.drain_all()
        if not events:
            return

        logger.info(f"Flushing {len(events)} queued events...")
        try:
            socket.send(build_batch_message(events))
            logger.info(f"Batch sent: {len(events)} events")
        except SERIALIZATION_ERRORS as e:
            logger.error(f"Batch could not be encoded, keeping events queued: {e}")
            self._queue.restore(events)
        except NETWORK_ERRORS as e:
            logger.error(f"Batch send failed, keeping events queued: {e}")
            self._queue.restore(events)

    def _handle_message(self, raw: str | bytes) -> None:
        data = decode_server_message(raw)
        if data is None:
            return

        acked = acknowledged_ids(data)
        if acked:
            self._queue.discard(acked)

        with self._lock:
            listeners = list(self._message_listeners)
        for listener in listeners:
            try:
                listener(data)
            except Exception as e:
                logger.error(f"Message listener failed: {e}", exc_info=True)

    def _handle_close(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("Ignoring close from superseded connection")
                return
            self._socket = None
            if self._manual_disconnect:
                return
            if self._reconnect_task is not None:
                # Error followed by close: one timer is enough
                return

            changed = self._set_state(ConnectionState.RECONNECTING)
            delay = self._policy.next_delay()
            self._reconnect_task = self._scheduler.call_later(delay, self._reconnect)

        logger.warning(f"Socket disconnected, reconnecting in {delay:.1f}s")
        self._notify_state(changed)

    def _reconnect(self) -> None:
        with self._lock:
            self._reconnect_task = None
            if self._manual_disconnect or self._session_id is None:
                return
            session_id, user_id = self._session_id, self._user_id

        logger.info("Attempting to reconnect...")
        self.connect(session_id, user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> ConnectionState | None:
        """Set state under lock; returns the new state if it changed."""
        if self._state == state:
            return None
        self._state = state
        return state

    def _notify_state(self, state: ConnectionState | None) -> None:
        if state is None:
            return
        with self._lock:
            listeners = list(self._state_listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception as e:
                logger.error(f"State listener failed: {e}", exc_info=True)

    def _remove(self, listeners: list, listener: Callable) -> None:
        with self._lock:
            if listener in listeners:
                listeners.remove(listener)
