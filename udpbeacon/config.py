"""
Configuration constants for UDP beacon discovery.
"""

# --- Networking ---
BEACON_PORT = 9999           # UDP port beacons are broadcast and received on
BEACON_INTERVAL_MS = 3000    # Milliseconds between periodic beacons
RECEIVE_TIMEOUT_MS = 200     # Receive timeout, also the worker's re-check interval
RECEIVE_BUFFER_SIZE = 256    # Bytes read per datagram
BROADCAST_ADDRESS = "<broadcast>"
PEER_TIMEOUT = 15            # Seconds before a peer is considered gone

# --- Protocol ---
BEACON_MAGIC = b"SAKI"
BEACON_VERSION = 0x01
BEACON_SIZE = 23             # magic(4) + version(1) + identity(16) + port(2)
