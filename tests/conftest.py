"""
Shared fixtures: an in-memory broadcast network and a recording observer.
"""

import itertools
import queue
import socket
import threading
import time

import pytest


# ---------------------------------------------------------------------------
# In-memory broadcast network
# ---------------------------------------------------------------------------


class BroadcastHub:
    """Stands in for a LAN segment.

    Every transport opened on a port receives every datagram sent to that
    port, including its own (broadcast loopback).
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._endpoints: list["HubTransport"] = []
        self._addresses = itertools.count(1)
        self.sent: list[tuple[float, bytes]] = []
        self.opened = 0

    def factory(self, port: int, timeout: float) -> "HubTransport":
        transport = HubTransport(self, port, timeout, f"10.0.0.{next(self._addresses)}")
        with self._lock:
            self._endpoints.append(transport)
            self.opened += 1
        return transport

    def broadcast(self, data: bytes, source: "HubTransport") -> None:
        with self._lock:
            self.sent.append((time.monotonic(), data))
            targets = [e for e in self._endpoints if e.port == source.port]
        for endpoint in targets:
            endpoint.inbox.put((data, source.address, source.port))

    def inject(self, port: int, data: bytes, address: str = "10.0.0.250") -> None:
        """Deliver a datagram as if sent by a host outside the test."""
        with self._lock:
            targets = [e for e in self._endpoints if e.port == port]
        for endpoint in targets:
            endpoint.inbox.put((data, address, port))

    def detach(self, transport: "HubTransport") -> None:
        with self._lock:
            if transport in self._endpoints:
                self._endpoints.remove(transport)

    @property
    def open_endpoints(self) -> int:
        with self._lock:
            return len(self._endpoints)


class HubTransport:
    def __init__(self, hub: BroadcastHub, port: int, timeout: float, address: str):
        self.hub = hub
        self.port = port
        self.timeout = timeout
        self.address = address
        self.inbox: queue.Queue = queue.Queue()
        self.closed = False

    def send(self, data: bytes) -> None:
        if self.closed:
            raise OSError("transport is closed")
        self.hub.broadcast(data, self)

    def receive(self, bufsize: int = 256) -> tuple[bytes, str, int]:
        try:
            data, address, port = self.inbox.get(timeout=self.timeout)
        except queue.Empty:
            raise socket.timeout("timed out")
        return data[:bufsize], address, port

    def close(self) -> None:
        self.closed = True
        self.hub.detach(self)


# ---------------------------------------------------------------------------
# Observer
# ---------------------------------------------------------------------------


class Recorder:
    """Observer that remembers every notification it receives."""

    def __init__(self):
        self.beacons: list[tuple] = []
        self.errors: list[Exception] = []
        self.threads: set[str] = set()
        self._cond = threading.Condition()

    def on_receive_beacon(self, identity, remote_address, remote_port):
        with self._cond:
            self.beacons.append((identity, remote_address, remote_port))
            self.threads.add(threading.current_thread().name)
            self._cond.notify_all()

    def on_error(self, error):
        with self._cond:
            self.errors.append(error)
            self._cond.notify_all()

    def wait_for_beacons(self, count: int = 1, timeout: float = 2.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.beacons) >= count, timeout)

    def wait_for_errors(self, count: int = 1, timeout: float = 2.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.errors) >= count, timeout)


@pytest.fixture
def hub():
    return BroadcastHub()


@pytest.fixture
def recorder():
    return Recorder()
