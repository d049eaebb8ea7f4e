"""
UDP transport used by the discovery engine.

One UdpTransport is one bound socket: broadcast enabled, address reuse
enabled (several transports share the beacon port on the same host), and a
short receive timeout so the owning loop can re-check its running flag.
"""

import logging
import socket

from .config import BROADCAST_ADDRESS, RECEIVE_BUFFER_SIZE

logger = logging.getLogger(__name__)


class UdpTransport:
    """Broadcast-capable UDP endpoint bound to *port*.

    Raises OSError from the constructor if the socket cannot be set up.
    ``receive`` raises ``socket.timeout`` when nothing arrives in time.
    """

    def __init__(
        self,
        port: int,
        timeout: float | None = None,
        broadcast_address: str = BROADCAST_ADDRESS,
    ):
        self.port = port
        self.broadcast_address = broadcast_address
        self._sock: socket.socket | None = self._create_socket(port, timeout)

    @staticmethod
    def _create_socket(port: int, timeout: float | None) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                try:
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
                except OSError:
                    pass
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind(("", port))
            sock.settimeout(timeout)
        except Exception:
            sock.close()
            raise
        logger.debug("UDP transport bound on port %d", port)
        return sock

    def send(self, data: bytes) -> None:
        """Broadcast *data* to the beacon port."""
        self._socket().sendto(data, (self.broadcast_address, self.port))

    def receive(self, bufsize: int = RECEIVE_BUFFER_SIZE) -> tuple[bytes, str, int]:
        """Block for one datagram. Returns (data, remote_address, remote_port)."""
        data, (address, port) = self._socket().recvfrom(bufsize)
        return data, address, port

    def close(self) -> None:
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None

    def _socket(self) -> socket.socket:
        if self._sock is None:
            raise OSError("transport is closed")
        return self._sock

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
