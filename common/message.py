"""RCP frame layer.

Every RCP message travels in one frame on the byte stream:

  offset 0          sync magic 0x52435001 ("RCP" + protocol version 1)
  offset 4          payload length N, at most MAX_MESSAGE_LENGTH (1 MiB)
  offset 8          payload (type byte, connection id, request id, JSON body)
  offset 8 + N      CRC32 of the payload

All integers are little-endian unsigned 32-bit. A reader that lands inside
a frame (a reply abandoned when its request timed out, or line noise) skips
forward to the next sync magic, giving up after MAX_RESYNC_BYTES.
"""

import logging
import zlib
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

UINT32_SIZE = 4
BYTE_ORDER: Literal["little", "big"] = "little"

SYNC_MAGIC = 0x52435001
SYNC_MAGIC_BYTES = SYNC_MAGIC.to_bytes(UINT32_SIZE, BYTE_ORDER, signed=False)

# Largest JSON body plus message header the host or client will accept
MAX_MESSAGE_LENGTH = 1 << 20

# Bytes skipped looking for the sync magic before decode() gives up
MAX_RESYNC_BYTES = 8192

# Sync + length before the payload, CRC after it
FRAME_OVERHEAD = UINT32_SIZE * 3


class Reader(Protocol):
    """Anything with a blocking read(size), such as a pyserial port."""

    def read(self, size: int) -> bytes: ...


def uint32_to_bytes(value: int) -> bytes:
    return value.to_bytes(UINT32_SIZE, BYTE_ORDER, signed=False)


def uint32_from_bytes(data: bytes) -> int:
    return int.from_bytes(data, BYTE_ORDER, signed=False)


def frame_size(payload_len: int) -> int:
    """Bytes on the wire for a payload of payload_len bytes."""
    return FRAME_OVERHEAD + payload_len


def encode(payload: bytes) -> bytes:
    """Wrap a message payload in an RCP frame.

    Raises ValueError if the payload is larger than MAX_MESSAGE_LENGTH; the
    peer would drop such a frame and resync past it.
    """
    if len(payload) > MAX_MESSAGE_LENGTH:
        raise ValueError(f"Payload of {len(payload)} bytes exceeds max {MAX_MESSAGE_LENGTH}")
    frame = bytearray(SYNC_MAGIC_BYTES)
    frame += uint32_to_bytes(len(payload))
    frame += payload
    frame += uint32_to_bytes(zlib.crc32(payload))
    return bytes(frame)


def _read_exact(reader: Reader, size: int) -> bytes | None:
    """One read of size bytes; None if the reader timed out short."""
    data = reader.read(size)
    if len(data) < size:
        return None
    return data


def _find_sync(reader: Reader) -> bool:
    """Consume bytes up to and including the next sync magic."""
    window = _read_exact(reader, UINT32_SIZE)
    if window is None:
        return False

    skipped = 0
    while window != SYNC_MAGIC_BYTES:
        if skipped >= MAX_RESYNC_BYTES:
            logger.warning(f"No sync magic in {skipped} bytes, giving up on this frame")
            return False
        next_byte = _read_exact(reader, 1)
        if next_byte is None:
            return False
        window = window[1:] + next_byte
        skipped += 1

    if skipped:
        logger.debug(f"Resynced after skipping {skipped} bytes")
    return True


def decode(reader: Reader) -> tuple[bytes | None, bool]:
    """Read the next RCP frame.

    Returns (payload, crc_ok). (None, False) means no complete frame arrived
    before the reader timed out, or the length field was out of range. A
    payload with crc_ok False was read in full but is corrupt; the caller
    decides whether to drop it.
    """
    if not _find_sync(reader):
        return None, False

    length_bytes = _read_exact(reader, UINT32_SIZE)
    if length_bytes is None:
        return None, False
    length = uint32_from_bytes(length_bytes)
    if length > MAX_MESSAGE_LENGTH:
        logger.warning(f"Frame length {length} exceeds max {MAX_MESSAGE_LENGTH}, resyncing")
        return None, False

    payload = _read_exact(reader, length)
    crc_bytes = _read_exact(reader, UINT32_SIZE) if payload is not None else None
    if payload is None or crc_bytes is None:
        return None, False

    return payload, uint32_from_bytes(crc_bytes) == zlib.crc32(payload)
