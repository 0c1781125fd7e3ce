"""Client-side handshake functions for the RCP client.

Implements the client side of the connect handshake:
  1. Send HELLO with a proposed connection_id, retransmitting periodically
  2. Wait for HELLO_ACK (accepted) or HELLO_REJECT (refused)
"""

import logging
import time
from typing import Any

import serial

from common.encoding import (
    EncodingError,
    NoMessageError,
    decode_message,
    encode_message,
    generate_connection_id,
)
from common.errors import ConnectionRefusedByHostError, ConnectTimeoutError
from common.io import drain_input
from common.protocol import (
    DEFAULT_CONNECT_TIMEOUT_S,
    HELLO_INTERVAL_S,
    PROTOCOL_VERSION,
    MsgType,
    Transport,
)

logger = logging.getLogger(__name__)


class HandshakeRejectedError(ConnectionRefusedByHostError):
    """Raised when the host answers HELLO with HELLO_REJECT."""

    pass


def client_send_hello_wait_ack(
    port: Transport,
    conn_id: bytes,
    timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    hello_interval_s: float = HELLO_INTERVAL_S,
    client_name: str = "rcp-client",
) -> dict[str, Any]:
    """Send HELLO periodically and wait for HELLO_ACK.

    Returns the HELLO_ACK body (host info) on success.
    Raises ConnectTimeoutError on timeout, HandshakeRejectedError on
    HELLO_REJECT and ConnectionRefusedByHostError if the link closes.
    Note: Caller should drain_input() before calling if needed.
    """
    hello_msg = encode_message(
        MsgType.HELLO,
        conn_id,
        body={"client": client_name, "version": PROTOCOL_VERSION},
    )
    start = time.monotonic()
    last_hello = 0.0

    logger.info(f"Client: initiating connection (id={conn_id.hex()})")

    while time.monotonic() - start < timeout_s:
        try:
            # Retransmit HELLO periodically
            if time.monotonic() - last_hello > hello_interval_s:
                port.write(hello_msg)
                last_hello = time.monotonic()
                logger.debug("Client: sent HELLO")

            msg = decode_message(port)
        except (NoMessageError, EncodingError):
            continue
        except (serial.SerialException, OSError) as e:
            raise ConnectionRefusedByHostError(f"Host closed the link during handshake: {e}")

        if msg.conn_id != conn_id or not msg.crc_ok:
            continue

        if msg.msg_type == MsgType.HELLO_ACK:
            try:
                info = msg.json()
            except EncodingError:
                info = {}
            logger.info(f"Client: received HELLO_ACK (host={info.get('host', '?')})")
            return info

        if msg.msg_type == MsgType.HELLO_REJECT:
            reason = msg.reason("no reason given")
            raise HandshakeRejectedError(f"Host rejected connection: {reason}")

    raise ConnectTimeoutError(f"Client: timeout ({timeout_s}s) waiting for HELLO_ACK")


def client_handshake(
    port: Transport,
    timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    hello_interval_s: float = HELLO_INTERVAL_S,
    client_name: str = "rcp-client",
) -> bytes:
    """Perform client-side handshake.

    1. Send HELLO with proposed connection_id (every hello_interval_s)
    2. Wait for HELLO_ACK with matching connection_id (up to timeout_s)

    Returns the agreed connection_id on success.
    Raises ConnectTimeoutError or ConnectionRefusedByHostError on failure.
    """
    # Clear any stale data left on the link
    drain_input(port)

    conn_id = generate_connection_id()
    client_send_hello_wait_ack(
        port,
        conn_id,
        timeout_s=timeout_s,
        hello_interval_s=hello_interval_s,
        client_name=client_name,
    )
    return conn_id
