"""
Known-peers table built from received beacons.

PeerTable is an ordinary observer: register it with BeaconDiscovery and it
keeps the latest address and port per identity, expiring entries that have
not been seen for PEER_TIMEOUT seconds.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, replace

from typing_extensions import Callable

from .config import PEER_TIMEOUT

logger = logging.getLogger(__name__)


@dataclass
class Peer:
    identity: uuid.UUID
    address: str
    port: int
    first_seen: float
    last_seen: float

    @property
    def endpoint(self) -> str:
        return f"{self.address}:{self.port}"


class PeerTable:
    """Tracks discovered peers. Safe to read from any thread."""

    def __init__(
        self,
        timeout: float = PEER_TIMEOUT,
        on_change: Callable[[Peer, bool], None] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.timeout = timeout
        self.on_change = on_change
        self.last_error: Exception | None = None
        self._clock = clock
        self._peers: dict[uuid.UUID, Peer] = {}
        self._lock = threading.Lock()

    def on_receive_beacon(self, identity: uuid.UUID, remote_address: str, remote_port: int) -> None:
        now = self._clock()
        with self._lock:
            peer = self._peers.get(identity)
            is_new = peer is None
            if is_new:
                peer = Peer(identity, remote_address, remote_port, now, now)
                self._peers[identity] = peer
            else:
                peer.address = remote_address
                peer.port = remote_port
                peer.last_seen = now
            snapshot = replace(peer)

        if is_new:
            logger.info("Discovered peer %s at %s", identity, snapshot.endpoint)
        if self.on_change:
            try:
                self.on_change(snapshot, is_new)
            except Exception:
                logger.warning("on_change listener failed for peer %s", identity, exc_info=True)

    def on_error(self, error: Exception) -> None:
        logger.error("Discovery error: %s", error)
        self.last_error = error

    def get_peers(self) -> list[Peer]:
        """Return currently active peers, oldest first, dropping expired ones."""
        now = self._clock()
        with self._lock:
            expired = [
                identity
                for identity, peer in self._peers.items()
                if now - peer.last_seen > self.timeout
            ]
            for identity in expired:
                del self._peers[identity]
            active = [replace(peer) for peer in self._peers.values()]
        for identity in expired:
            logger.info("Peer %s timed out", identity)
        return active

    def get(self, identity: uuid.UUID) -> Peer | None:
        with self._lock:
            peer = self._peers.get(identity)
            return replace(peer) if peer else None

    def clear(self) -> None:
        with self._lock:
            self._peers.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._peers)
