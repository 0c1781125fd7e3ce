"""Protocol definitions for the RCP client.

Contains:
- MsgType enum for RCP message types
- Transport Protocol for type checking
- Timing constants for connect, requests and shutdown
- Logging configuration
"""

import logging
import os
from enum import IntEnum
from typing import Protocol

# TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


class MsgType(IntEnum):
    """Message types for the RCP wire protocol."""

    HELLO = 0x01
    HELLO_ACK = 0x02
    HELLO_REJECT = 0x03
    AUTH = 0x10
    AUTH_OK = 0x11
    AUTH_FAIL = 0x12
    LIST_APPS = 0x20
    APP_LIST = 0x21
    LAUNCH = 0x30
    LAUNCH_OK = 0x31
    LAUNCH_REJECTED = 0x32
    NOT_FOUND = 0x33
    LOGOUT = 0x40
    LOGOUT_ACK = 0x41
    SESSION_INVALID = 0x50
    ERROR = 0x5F
    BYE = 0x60
    BYE_ACK = 0x61


class Transport(Protocol):
    """Protocol for the byte link a connection runs over.

    pyserial ports (including ``socket://`` URL handlers) satisfy it.
    """

    def write(self, data: bytes, /) -> int | None: ...
    def read(self, size: int = ..., /) -> bytes: ...
    @property
    def in_waiting(self) -> int: ...
    def close(self) -> None: ...


# Protocol version announced in HELLO
PROTOCOL_VERSION = 1

# Connection ID size in bytes
CONN_ID_SIZE = 4

# Default port of the reference application host
DEFAULT_PORT = 9000

# Default timing constants (configurable via envvar)
DEFAULT_CONNECT_TIMEOUT_S = float(os.environ.get("RCP_CONNECT_TIMEOUT_S", "5.0"))
DEFAULT_REQUEST_TIMEOUT_S = float(os.environ.get("RCP_REQUEST_TIMEOUT_S", "10.0"))
HELLO_INTERVAL_S = 1.0  # Client retransmits HELLO at this interval
BYE_WAIT_TIMEOUT_S = 2.0  # Wait for BYE_ACK before force close
READ_POLL_S = 0.1  # Per-read timeout on the transport
WRITE_TIMEOUT_S = 1.0
