"""Wire protocol for RCON (Source RCON as spoken by Minecraft servers).

Every frame is little-endian:

  [size:i32][id:i32][kind:i32][payload bytes][0x00][0x00]

  - size counts everything after itself: id + kind + payload + 2 NULs,
    so a frame with an empty payload has size 10. Sizes outside
    [MIN_PACKET_SIZE, MAX_PACKET_SIZE] are framing errors.
  - id is chosen by the client and echoed back by the server. An id of -1
    in the reply to an AUTHENTICATE packet means the password was wrong.
  - kind is AUTHENTICATE or EXEC_COMMAND on requests. Replies mirror these
    or use RESPONSE_VALUE; the client treats kind as informational.
"""

import asyncio
import struct
from dataclasses import dataclass
from enum import IntEnum

from rconsole.errors import ConnectionClosedError, FramingError


class PacketType(IntEnum):
    RESPONSE_VALUE = 0
    EXEC_COMMAND = 2
    AUTHENTICATE = 3


MIN_PACKET_SIZE = 10
MAX_PACKET_SIZE = 4096

# Reserved by the protocol to signal a rejected password.
AUTH_FAILED_ID = -1

# Fixed correlation id used for every request this client sends.
CLIENT_ID = 0x0BADC0DE

_SIZE = struct.Struct("<i")
_HEADER = struct.Struct("<ii")
_TERMINATOR = b"\x00\x00"


@dataclass(frozen=True)
class Packet:
    id: int
    kind: int
    payload: str

    def encode(self) -> bytes:
        return encode_packet(self.id, self.kind, self.payload)


def encode_packet(id: int, kind: int, payload: str) -> bytes:
    """Serialize one frame, size prefix included.

    Raises FramingError if the payload would push the size past
    MAX_PACKET_SIZE, before anything is written.
    """
    body = payload.encode("utf-8")
    size = _HEADER.size + len(body) + len(_TERMINATOR)
    if size > MAX_PACKET_SIZE:
        raise FramingError(
            f"Payload too long: {len(body)} bytes (limit {MAX_PACKET_SIZE - MIN_PACKET_SIZE})"
        )
    return _SIZE.pack(size) + _HEADER.pack(id, kind) + body + _TERMINATOR


def decode_size(header: bytes) -> int:
    """Parse the 4-byte size prefix and check it is within bounds."""
    if len(header) < _SIZE.size:
        raise FramingError(f"Short size field: {len(header)} bytes")
    (size,) = _SIZE.unpack_from(header)
    if not MIN_PACKET_SIZE <= size <= MAX_PACKET_SIZE:
        raise FramingError(f"Invalid packet size: {size}")
    return size


def decode_body(body: bytes) -> Packet:
    """Decode the bytes that follow the size prefix.

    The payload is everything between the header and the two trailing
    terminator bytes. Invalid UTF-8 is replaced rather than rejected so a
    garbled reply never takes the console down.
    """
    if len(body) < _HEADER.size:
        raise FramingError(f"Short packet: {len(body)} bytes")
    if len(body) < MIN_PACKET_SIZE:
        raise FramingError(f"Short payload: {len(body)} bytes")
    id, kind = _HEADER.unpack_from(body)
    payload = body[_HEADER.size:-len(_TERMINATOR)].decode("utf-8", errors="replace")
    return Packet(id=id, kind=kind, payload=payload)


def decode_packet(data: bytes) -> Packet:
    """Decode a single complete frame, size prefix included."""
    size = decode_size(data[:_SIZE.size])
    body = data[_SIZE.size:_SIZE.size + size]
    if len(body) < size:
        raise FramingError(
            f"Truncated packet: declared {size} bytes, got {len(body)}"
        )
    return decode_body(body)


async def read_packet(reader: asyncio.StreamReader) -> Packet:
    """Read exactly one frame from the stream."""
    try:
        header = await reader.readexactly(_SIZE.size)
        size = decode_size(header)
        body = await reader.readexactly(size)
    except asyncio.IncompleteReadError as e:
        raise ConnectionClosedError(
            f"Connection closed while reading ({len(e.partial)} of {e.expected} bytes)"
        ) from e
    return decode_body(body)
