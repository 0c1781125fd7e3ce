"""Server-side handshake functions for the reference RCP host.

Implements the host side of the connect handshake:
  1. Wait for HELLO from a client
  2. Check the protocol version
  3. Send HELLO_ACK (or HELLO_REJECT)
"""

import logging
import threading
import time
from typing import Any

from common.encoding import (
    EncodingError,
    NoMessageError,
    decode_message,
    encode_message,
)
from common.io import drain_input
from common.protocol import (
    DEFAULT_CONNECT_TIMEOUT_S,
    PROTOCOL_VERSION,
    MsgType,
    Transport,
)

logger = logging.getLogger(__name__)


class HostHandshakeError(Exception):
    """Raised when the host-side handshake fails."""

    pass


def server_wait_for_hello(
    port: Transport,
    timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    stop: threading.Event | None = None,
) -> tuple[bytes, dict[str, Any]]:
    """Wait for HELLO from client.

    Returns (conn_id, hello_body) on success.
    Raises HostHandshakeError on timeout or when stop is set.
    """
    start = time.monotonic()

    while time.monotonic() - start < timeout_s:
        if stop is not None and stop.is_set():
            raise HostHandshakeError("Server: stopped while waiting for HELLO")
        try:
            msg = decode_message(port)
        except (NoMessageError, EncodingError):
            continue

        if msg.msg_type == MsgType.HELLO and msg.crc_ok:
            try:
                body = msg.json()
            except EncodingError:
                body = {}
            logger.info(f"Server: received HELLO (id={msg.conn_id.hex()}, client={body.get('client', '?')})")
            return msg.conn_id, body

    raise HostHandshakeError(f"Server: timeout ({timeout_s}s) waiting for client HELLO")


def server_handshake(
    port: Transport,
    host_name: str = "rcp-host",
    timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    stop: threading.Event | None = None,
) -> bytes:
    """Perform host-side handshake.

    Returns the client's connection_id on success.
    Raises HostHandshakeError on timeout or version mismatch (after
    sending HELLO_REJECT).
    """
    # Clear any stale data left on the link
    drain_input(port)

    conn_id, hello = server_wait_for_hello(port, timeout_s=timeout_s, stop=stop)

    version = hello.get("version")
    if version != PROTOCOL_VERSION:
        port.write(
            encode_message(
                MsgType.HELLO_REJECT,
                conn_id,
                body={"reason": f"unsupported protocol version {version!r}"},
            )
        )
        raise HostHandshakeError(f"Server: rejected client with protocol version {version!r}")

    port.write(encode_message(MsgType.HELLO_ACK, conn_id, body=host_info(host_name)))
    logger.info(f"Server: sent HELLO_ACK, connection established (id={conn_id.hex()})")
    return conn_id


def host_info(host_name: str) -> dict[str, Any]:
    """Body of HELLO_ACK."""
    return {"host": host_name, "version": PROTOCOL_VERSION}
