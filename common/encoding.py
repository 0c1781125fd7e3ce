"""RCP message encoding/decoding.

Contains functions for encoding and decoding protocol messages carried in
frames (see common.message):
- Control messages (HELLO, HELLO_ACK, BYE, BYE_ACK) without a body
- Request/reply messages with a request ID and a JSON body

Message payload: [type=u8][4-byte conn_id][u32 request_id][JSON body]
"""

import json
import os
from dataclasses import dataclass
from typing import Any

from common import message
from common.protocol import CONN_ID_SIZE, MsgType, Transport

HEADER_SIZE = 1 + CONN_ID_SIZE + message.UINT32_SIZE


class EncodingError(Exception):
    """Raised when message decoding fails due to invalid message format."""

    pass


class NoMessageError(Exception):
    """Raised when no complete message could be read (timeout, truncation)."""

    pass


@dataclass
class Message:
    """A decoded protocol message."""

    msg_type: MsgType
    conn_id: bytes
    request_id: int
    body: bytes
    crc_ok: bool

    def json(self) -> dict[str, Any]:
        """Parse the body as a JSON object. An empty body is an empty object."""
        if not self.body:
            return {}
        try:
            value = json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise EncodingError(f"Invalid JSON body in {self.msg_type.name}: {e}")
        if not isinstance(value, dict):
            raise EncodingError(
                f"Expected JSON object in {self.msg_type.name}, got {type(value).__name__}"
            )
        return value

    def reason(self, default: str) -> str:
        """Return the body's "reason" field, or default if absent or unreadable."""
        try:
            return str(self.json().get("reason") or default)
        except EncodingError:
            return default


def generate_connection_id() -> bytes:
    """Generate random 4-byte connection ID."""
    return os.urandom(CONN_ID_SIZE)


def encode_message(
    msg_type: MsgType,
    conn_id: bytes,
    request_id: int = 0,
    body: dict[str, Any] | None = None,
) -> bytes:
    """Encode a message with an optional JSON body."""
    payload = bytes([msg_type]) + conn_id + message.uint32_to_bytes(request_id)
    if body is not None:
        payload += json.dumps(body, separators=(",", ":")).encode("utf-8")
    return message.encode(payload)


def encode_control(msg_type: MsgType, conn_id: bytes) -> bytes:
    """Encode a control message (HELLO_ACK/BYE/BYE_ACK)."""
    return encode_message(msg_type, conn_id)


def decode_message(reader: Transport) -> Message:
    """Decode message from reader.

    Raises:
        NoMessageError: On timeout or truncated frame.
        EncodingError: On invalid message format (bad MsgType, too short).
    """
    payload, crc_ok = message.decode(reader)
    if payload is None:
        raise NoMessageError("Timeout or truncated message")

    if len(payload) < HEADER_SIZE:
        raise EncodingError(f"Payload too short: {len(payload)} bytes, need at least {HEADER_SIZE}")

    try:
        msg_type = MsgType(payload[0])
    except ValueError:
        raise EncodingError(f"Invalid message type: {payload[0]}")

    conn_id = payload[1 : 1 + CONN_ID_SIZE]
    request_id = message.uint32_from_bytes(payload[1 + CONN_ID_SIZE : HEADER_SIZE])
    return Message(
        msg_type=msg_type,
        conn_id=conn_id,
        request_id=request_id,
        body=payload[HEADER_SIZE:],
        crc_ok=crc_ok,
    )
