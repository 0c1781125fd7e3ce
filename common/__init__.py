"""Common modules for the RCP client.

This package contains code shared by the client engine and the reference host:
- protocol: MsgType enum, timing constants, Transport Protocol
- message: Frame encoding/decoding
- encoding: RCP message encoding/decoding
- errors: Error taxonomy (ErrorKind, RcpError and subclasses)
- connection: ConnectionState, Connection
- handles: Generation-checked handle table
- transport: pyserial transport setup and open-error classification
- io: Transport I/O helpers (drain_input, send_message, wait_for, request)
- config: ClientConfig
- report: Console reports for the CLI
"""

from common.connection import Connection, ConnectionState
from common.encoding import EncodingError, Message, NoMessageError
from common.errors import (
    AuthenticationFailedError,
    ConnectionLostError,
    ConnectionRefusedByHostError,
    ConnectTimeoutError,
    ErrorKind,
    HostUnreachableError,
    InvalidStateError,
    LaunchRejectedError,
    NotFoundError,
    ProtocolError,
    RcpError,
    RequestTimeoutError,
    SessionExpiredError,
    StaleHandleError,
    TransportError,
    ValidationError,
)
from common.protocol import (
    BYE_WAIT_TIMEOUT_S,
    CONN_ID_SIZE,
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_REQUEST_TIMEOUT_S,
    HELLO_INTERVAL_S,
    MsgType,
    Transport,
)

__all__ = [
    # Protocol
    "MsgType",
    "Transport",
    "CONN_ID_SIZE",
    "DEFAULT_CONNECT_TIMEOUT_S",
    "DEFAULT_REQUEST_TIMEOUT_S",
    "HELLO_INTERVAL_S",
    "BYE_WAIT_TIMEOUT_S",
    # Connection
    "Connection",
    "ConnectionState",
    "Message",
    # Exceptions
    "AuthenticationFailedError",
    "ConnectionLostError",
    "ConnectionRefusedByHostError",
    "ConnectTimeoutError",
    "EncodingError",
    "ErrorKind",
    "HostUnreachableError",
    "InvalidStateError",
    "LaunchRejectedError",
    "NoMessageError",
    "NotFoundError",
    "ProtocolError",
    "RcpError",
    "RequestTimeoutError",
    "SessionExpiredError",
    "StaleHandleError",
    "TransportError",
    "ValidationError",
]
