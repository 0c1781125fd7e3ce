"""Transport I/O helpers for the RCP client.

Contains:
- drain_input: Clear stale data from input buffer
- send_message: Send a message, translating link failures
- wait_for: Wait for a message of given types on a connection
- request: One request/reply exchange, matched by request ID
"""

import logging
import time
from typing import Any

import serial

from common.connection import Connection
from common.encoding import (
    EncodingError,
    Message,
    NoMessageError,
    decode_message,
    encode_message,
)
from common.errors import ConnectionLostError, RequestTimeoutError
from common.protocol import TRACE, MsgType, Transport

logger = logging.getLogger(__name__)


def drain_input(port: Transport) -> int:
    """Drain stale data from input buffer. Returns bytes drained."""
    count = port.in_waiting
    if count > 0:
        port.read(count)
        logger.debug(f"Drained {count} stale bytes from input buffer")
    return count


def _transport(conn: Connection) -> Transport:
    if conn.transport is None:
        raise ConnectionLostError(f"Connection {conn.handle or conn.connection_id.hex()} is closed")
    return conn.transport


def send_message(
    conn: Connection,
    msg_type: MsgType,
    request_id: int = 0,
    body: dict[str, Any] | None = None,
) -> None:
    """Send a message on a connection.

    Raises ConnectionLostError if the transport fails.
    """
    port = _transport(conn)
    try:
        port.write(encode_message(msg_type, conn.connection_id, request_id, body))
    except (serial.SerialException, OSError) as e:
        raise ConnectionLostError(f"Send of {msg_type.name} failed: {e}")
    logger.log(TRACE, f"Sent {msg_type.name} (request_id={request_id})")


def wait_for(
    conn: Connection,
    accept: set[MsgType],
    timeout_s: float,
    request_id: int | None = None,
) -> Message | None:
    """Wait for a message of an accepted type on this connection.

    Messages with bad CRC, another connection ID or (when request_id is
    given) another request ID are ignored.

    Returns the message, or None on timeout.
    Raises ConnectionLostError if the transport fails.
    """
    port = _transport(conn)
    deadline = time.monotonic() + timeout_s

    while time.monotonic() < deadline:
        try:
            msg = decode_message(port)
        except (NoMessageError, EncodingError):
            continue
        except (serial.SerialException, OSError) as e:
            raise ConnectionLostError(f"Link lost: {e}")

        if not msg.crc_ok:
            logger.debug(f"Ignoring {msg.msg_type.name} with bad CRC")
            continue
        if msg.conn_id != conn.connection_id:
            logger.debug(
                f"Ignoring {msg.msg_type.name} for conn_id={msg.conn_id.hex()}, "
                f"expected {conn.connection_id.hex()}"
            )
            continue
        if request_id is not None and msg.request_id != request_id:
            logger.debug(f"Ignoring stale reply to request {msg.request_id}")
            continue
        if msg.msg_type in accept:
            return msg

        logger.debug(f"Ignoring unexpected {msg.msg_type.name}")

    return None


def request(
    conn: Connection,
    msg_type: MsgType,
    body: dict[str, Any] | None,
    timeout_s: float,
) -> Message:
    """Send a request and wait for its reply.

    Any reply type is accepted; callers interpret it.

    Raises:
        ConnectionLostError: If the transport fails.
        RequestTimeoutError: If no reply arrives within timeout_s.
    """
    with conn.io_lock:
        request_id = conn.next_request_id()
        send_message(conn, msg_type, request_id, body)
        reply = wait_for(conn, set(MsgType), timeout_s, request_id=request_id)

    if reply is None:
        raise RequestTimeoutError(f"No reply to {msg_type.name} within {timeout_s}s")
    logger.log(TRACE, f"Received {reply.msg_type.name} for request {request_id}")
    return reply
