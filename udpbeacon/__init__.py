"""
udpbeacon - LAN peer discovery over UDP broadcast

Nodes broadcast a fixed 23-byte identity beacon and listen for their peers'
beacons, learning each peer's identity and listening port without any prior
configuration.
"""

__version__ = "1.0.0"

from .config import (
    BEACON_INTERVAL_MS,
    BEACON_PORT,
    BEACON_SIZE,
    PEER_TIMEOUT,
    RECEIVE_TIMEOUT_MS,
)
from .discovery import BeaconDiscovery, EngineState
from .dispatcher import BeaconCallback, CallbackDispatcher
from .errors import AlreadyReleasedError, AlreadyRunningError, BeaconError
from .peers import Peer, PeerTable
from .protocol import Beacon, decode, encode
from .transport import UdpTransport

__all__ = [
    "BEACON_PORT",
    "BEACON_INTERVAL_MS",
    "BEACON_SIZE",
    "RECEIVE_TIMEOUT_MS",
    "PEER_TIMEOUT",
    "Beacon",
    "encode",
    "decode",
    "UdpTransport",
    "BeaconCallback",
    "CallbackDispatcher",
    "BeaconDiscovery",
    "EngineState",
    "BeaconError",
    "AlreadyReleasedError",
    "AlreadyRunningError",
    "Peer",
    "PeerTable",
]
