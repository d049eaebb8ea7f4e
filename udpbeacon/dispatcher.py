"""
Observer registry and callback delivery.

Notifications posted from network threads are queued and run, in order, on a
single delivery thread so that a slow observer never stalls beacon I/O.
An observer that raises is dropped from the registry; the others still run.
"""

import logging
import queue
import threading
import uuid

from typing_extensions import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# Queue sentinel that ends the delivery thread.
_STOP = object()


@runtime_checkable
class BeaconCallback(Protocol):
    """What the discovery engine calls back into."""

    def on_receive_beacon(self, identity: uuid.UUID, remote_address: str, remote_port: int) -> None:
        ...

    def on_error(self, error: Exception) -> None:
        ...


class CallbackDispatcher:
    """Thread-safe observer set plus a single-consumer FIFO delivery queue."""

    def __init__(self, name: str = "UdpBeaconAsync"):
        self.name = name
        # Keyed by id() so unhashable observers work; dict keeps insertion order.
        self._callbacks: dict[int, BeaconCallback] = {}
        self._lock = threading.Lock()
        self._queue: queue.Queue = queue.Queue()
        self._thread: threading.Thread | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def add(self, callback: BeaconCallback | None) -> None:
        if callback is None:
            return
        with self._lock:
            self._callbacks[id(callback)] = callback

    def remove(self, callback: BeaconCallback | None) -> None:
        with self._lock:
            self._callbacks.pop(id(callback), None)

    def clear(self) -> None:
        with self._lock:
            self._callbacks.clear()

    def snapshot(self) -> list[BeaconCallback]:
        """Current observers, safe to iterate while others add or remove."""
        with self._lock:
            return list(self._callbacks.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def __contains__(self, callback) -> bool:
        with self._lock:
            return id(callback) in self._callbacks

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def post_beacon(self, identity: uuid.UUID, remote_address: str, remote_port: int) -> bool:
        return self._post("on_receive_beacon", (identity, remote_address, remote_port))

    def post_error(self, error: Exception) -> bool:
        return self._post("on_error", (error,))

    def _post(self, method: str, args: tuple) -> bool:
        with self._lock:
            if self._closed:
                logger.debug("Dispatcher closed, dropping %s%r", method, args)
                return False
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
                self._thread.start()
            self._queue.put((method, args))
        return True

    def drain(self, timeout: float | None = None) -> bool:
        """Wait until every notification posted so far has been delivered.

        Returns immediately when called from the delivery thread itself,
        since it could never see its own marker.
        """
        with self._lock:
            thread = self._thread
            if self._closed or thread is None or thread is threading.current_thread():
                return True
            done = threading.Event()
            self._queue.put(done)
        return done.wait(timeout)

    def close(self) -> None:
        """Stop the delivery thread. Later posts are dropped."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
            if thread is not None:
                self._queue.put(_STOP)
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        logger.debug("Dispatcher %s closed", self.name)

    # ------------------------------------------------------------------
    # Delivery thread
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            if isinstance(item, threading.Event):
                item.set()
                continue
            method, args = item
            self._deliver(method, args)

    def _deliver(self, method: str, args: tuple) -> None:
        for callback in self.snapshot():
            try:
                getattr(callback, method)(*args)
            except Exception:
                self.remove(callback)
                logger.warning(
                    "Removed callback %r after %s raised", callback, method, exc_info=True
                )
