"""
Beacon wire format.

Every beacon is exactly 23 bytes, all fields in network (big-endian) order:

    [ 4 bytes: magic "SAKI" ][ 1 byte: version 0x01 ]
    [ 16 bytes: identity, two 64-bit halves ][ 2 bytes: unsigned port ]

Anything else arriving on the beacon port is foreign traffic and decodes to
None rather than raising.
"""

import struct
import uuid
from dataclasses import dataclass

from .config import BEACON_MAGIC, BEACON_SIZE, BEACON_VERSION

_BEACON_STRUCT = struct.Struct("!4sB16sH")


@dataclass(frozen=True)
class Beacon:
    """A decoded beacon: who sent it and which port they listen on."""

    identity: uuid.UUID
    port: int

    def to_bytes(self) -> bytes:
        return encode(self.identity, self.port)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Beacon | None":
        return decode(data)

    def __str__(self) -> str:
        return f"Beacon({self.identity},port={self.port})"


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def encode(identity: uuid.UUID, port: int) -> bytes:
    """Serialize *identity* and *port* into a 23-byte beacon.

    The port is truncated to 16 bits; callers are expected to pass 0-65535.
    """
    return _BEACON_STRUCT.pack(BEACON_MAGIC, BEACON_VERSION, identity.bytes, port & 0xFFFF)


def decode(data: bytes) -> Beacon | None:
    """Parse a received datagram. Returns None if it is not a beacon.

    Wrong length, wrong magic and unsupported versions are all expected on a
    shared broadcast port and are not errors.
    """
    if len(data) != BEACON_SIZE:
        return None
    magic, version, raw_identity, port = _BEACON_STRUCT.unpack(bytes(data))
    if magic != BEACON_MAGIC or version != BEACON_VERSION:
        return None
    # "H" is already unsigned; the mask keeps the 16-bit contract explicit.
    return Beacon(identity=uuid.UUID(bytes=raw_identity), port=port & 0xFFFF)
