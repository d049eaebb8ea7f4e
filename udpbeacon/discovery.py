"""
Peer discovery via UDP broadcast beacons.

While running, a background worker broadcasts this node's beacon every
``interval_ms`` and listens on the same port for beacons from peers.  Beacons
carrying our own identity (broadcast loopback) are ignored; all others are
handed to the CallbackDispatcher and delivered to observers on its thread.

State machine::

    CREATED -> RUNNING <-> STOPPED
    (any state) -> RELEASED

RELEASED is terminal.  start/stop/release are serialized; stop() joins the
worker and drains pending notifications before it returns.
"""

import enum
import logging
import socket
import threading
import time
import uuid

from typing_extensions import Callable

from .config import (
    BEACON_INTERVAL_MS,
    BEACON_PORT,
    RECEIVE_BUFFER_SIZE,
    RECEIVE_TIMEOUT_MS,
)
from .dispatcher import BeaconCallback, CallbackDispatcher
from .errors import AlreadyReleasedError, AlreadyRunningError
from .protocol import Beacon, decode
from .transport import UdpTransport

logger = logging.getLogger(__name__)

# (port, timeout_seconds) -> object with send/receive/close
TransportFactory = Callable[[int, float], UdpTransport]


class EngineState(enum.Enum):
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    RELEASED = "released"


class BeaconDiscovery:
    """Broadcasts our beacon and reports peers' beacons to observers.

    *port* is the listening port advertised inside our beacon; beacons
    themselves travel on *beacon_port*.
    """

    def __init__(
        self,
        callback: BeaconCallback | None = None,
        port: int = BEACON_PORT,
        interval_ms: int = BEACON_INTERVAL_MS,
        receive_only: bool = False,
        *,
        beacon_port: int = BEACON_PORT,
        receive_timeout_ms: int = RECEIVE_TIMEOUT_MS,
        transport_factory: TransportFactory = UdpTransport,
    ):
        self.identity = uuid.uuid4()
        self.port = port
        self.beacon_port = beacon_port
        self.interval_ms = interval_ms
        self.receive_timeout_ms = receive_timeout_ms
        self._transport_factory = transport_factory

        self.beacon = Beacon(self.identity, port)
        self._beacon_bytes = self.beacon.to_bytes()

        self._dispatcher = CallbackDispatcher()
        self._dispatcher.add(callback)

        self._receive_only = receive_only
        self._state = EngineState.CREATED
        # Serializes start/stop/release, including the worker join.
        self._lifecycle_lock = threading.RLock()
        # Guards the fields below; the worker takes it on exit.
        self._lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._worker_stop: threading.Event | None = None
        # Set by stop()/release() to cut short in-flight shot() waits.
        self._shot_cancel = threading.Event()

    def __repr__(self) -> str:
        return f"BeaconDiscovery(identity={self.identity}, port={self.port}, state={self._state.value})"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def released(self) -> bool:
        return self._state is EngineState.RELEASED

    def is_active(self) -> bool:
        return self._state is EngineState.RUNNING

    def is_receive_only(self) -> bool:
        return self._receive_only

    def set_receive_only(self, receive_only: bool) -> None:
        """Only allowed while stopped; call stop() first."""
        with self._lock:
            self._check_released()
            if self._state is EngineState.RUNNING:
                raise AlreadyRunningError()
            self._receive_only = bool(receive_only)

    def _check_released(self) -> None:
        if self._state is EngineState.RELEASED:
            raise AlreadyReleasedError()

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def add_callback(self, callback: BeaconCallback | None) -> None:
        if not self.released:
            self._dispatcher.add(callback)

    def remove_callback(self, callback: BeaconCallback | None) -> None:
        self._dispatcher.remove(callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start broadcasting (unless receive-only) and listening."""
        with self._lifecycle_lock:
            with self._lock:
                self._check_released()
                if self._state is EngineState.RUNNING:
                    return
                stop_event = threading.Event()
                worker = threading.Thread(
                    target=self._run, args=(stop_event,), name="UdpBeaconTask", daemon=True
                )
                self._worker = worker
                self._worker_stop = stop_event
                self._state = EngineState.RUNNING
            worker.start()
            logger.debug("Beacon %s started on UDP port %d", self.identity, self.beacon_port)

    def stop(self) -> None:
        """Stop the worker and wait for it. Safe to call repeatedly."""
        with self._lifecycle_lock:
            self._stop_worker()
        # Outside the lifecycle lock so an observer calling start()/stop()
        # from the delivery thread cannot deadlock against us.
        self._dispatcher.drain()

    def release(self) -> None:
        """Stop for good and drop every observer. Safe to call repeatedly."""
        with self._lifecycle_lock:
            with self._lock:
                if self._state is EngineState.RELEASED:
                    return
                self._state = EngineState.RELEASED
            self._stop_worker()
        self._dispatcher.clear()
        self._dispatcher.close()
        logger.debug("Beacon %s released", self.identity)

    def _stop_worker(self) -> None:
        with self._lock:
            worker, stop_event = self._worker, self._worker_stop
            self._worker = None
            self._worker_stop = None
            if self._state is EngineState.RUNNING:
                self._state = EngineState.STOPPED
            self._shot_cancel.set()
            self._shot_cancel = threading.Event()

        if stop_event is not None:
            stop_event.set()
        if worker is not None and worker is not threading.current_thread():
            worker.join()
            logger.debug("Beacon worker %s joined", worker.name)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.release()

    # ------------------------------------------------------------------
    # One-shot bursts
    # ------------------------------------------------------------------

    def shot(self, n: int = 1) -> threading.Thread:
        """Broadcast our beacon *n* times on a separate short-lived thread.

        Independent of start()/stop(); it uses its own transport.  Returns
        the thread so callers can join() it.
        """
        with self._lock:
            self._check_released()
            cancel = self._shot_cancel
        thread = threading.Thread(
            target=self._shot, args=(n, cancel), name="UdpOneShotBeaconTask", daemon=True
        )
        thread.start()
        return thread

    def _shot(self, n: int, cancel: threading.Event) -> None:
        try:
            transport = self._open_transport()
        except OSError as e:
            logger.error("Could not open beacon transport for shot: %s", e)
            self._report_error(e)
            return
        try:
            for i in range(n):
                if self.released:
                    break
                self._send_beacon(transport)
                if i + 1 < n and cancel.wait(self.interval_ms / 1000):
                    break
        finally:
            transport.close()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _open_transport(self):
        return self._transport_factory(self.beacon_port, self.receive_timeout_ms / 1000)

    def _run(self, stop_event: threading.Event) -> None:
        error = None
        try:
            error = self._serve(stop_event)
        finally:
            self._worker_exited(error)

    def _serve(self, stop_event: threading.Event) -> OSError | None:
        """Run one discovery session. Returns the error that ended it, if any."""
        try:
            transport = self._open_transport()
        except OSError as e:
            logger.error("Could not open beacon transport on port %d: %s", self.beacon_port, e)
            return e

        try:
            self._loop(transport, stop_event)
        except OSError as e:
            if not stop_event.is_set():
                logger.error("Beacon transport failed: %s", e)
                return e
        finally:
            transport.close()
        return None

    def _loop(self, transport, stop_event: threading.Event) -> None:
        interval = self.interval_ms / 1000
        next_send = time.monotonic()

        while not stop_event.is_set() and not self.released:
            if not self._receive_only and time.monotonic() >= next_send:
                next_send = time.monotonic() + interval
                self._send_beacon(transport)

            try:
                data, address, remote_port = transport.receive(RECEIVE_BUFFER_SIZE)
            except socket.timeout:
                continue
            if stop_event.is_set():
                break

            beacon = decode(data)
            if beacon is None:
                logger.debug("Ignoring %d byte datagram from %s:%d", len(data), address, remote_port)
                continue
            if beacon.identity == self.identity:
                continue
            self._dispatcher.post_beacon(beacon.identity, address, beacon.port)

    def _worker_exited(self, error: Exception | None = None) -> None:
        # The error is queued under the same lock that drops the worker handle,
        # so a concurrent stop() either joins us or drains after the post.
        with self._lock:
            if self._worker is threading.current_thread():
                self._worker = None
                self._worker_stop = None
                if self._state is EngineState.RUNNING:
                    self._state = EngineState.STOPPED
            if error is not None:
                self._report_error(error)

    def _send_beacon(self, transport) -> None:
        try:
            transport.send(self._beacon_bytes)
        except OSError as e:
            logger.warning("Failed to send beacon: %s", e)

    def _report_error(self, error: Exception) -> None:
        if self.released:
            logger.warning("Beacon error after release: %s", error)
            return
        self._dispatcher.post_error(error)
