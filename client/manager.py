"""Connection manager for the RCP client.

Owns every Connection record and its transport:
- connect: validate, open the transport, handshake, register a handle
- teardown: say BYE, release the transport, expire bound sessions
- mark_lost: move a connection to FAILED after a link failure
"""

import logging
import math
import time

from client.handshake import client_handshake
from client.shutdown import client_shutdown
from common.config import ClientConfig
from common.connection import Connection, ConnectionState
from common.errors import ConnectTimeoutError, StaleHandleError, ValidationError
from common.handles import Handle, HandleTable
from common.protocol import CONN_ID_SIZE
from common.transport import TransportFactory, open_transport
from session.models import SessionState

logger = logging.getLogger(__name__)

MIN_PORT = 1
MAX_PORT = 65535


def validate_endpoint(host: object, port: object, timeout_s: object) -> None:
    """Check connect() arguments before any I/O.

    Raises ValidationError describing the first invalid argument.
    """
    if not isinstance(host, str) or not host.strip():
        raise ValidationError("host must be a non-empty string")
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValidationError(f"port must be an integer, got {port!r}")
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValidationError(f"port {port} outside {MIN_PORT}..{MAX_PORT}")
    if isinstance(timeout_s, bool) or not isinstance(timeout_s, (int, float)):
        raise ValidationError(f"timeout must be a number, got {timeout_s!r}")
    if math.isnan(timeout_s) or timeout_s < 0:
        raise ValidationError(f"timeout must be non-negative, got {timeout_s}")


def expire_sessions(conn: Connection) -> None:
    """Invalidate every active session bound to conn. Caller holds conn.lock."""
    for session in conn.sessions:
        if session.state == SessionState.ACTIVE:
            session.state = SessionState.EXPIRED
            logger.debug(f"Session {session.handle} expired with connection {conn.handle}")
    conn.active_session = None


class ConnectionManager:
    """Creates, tracks and tears down connections."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport_factory: TransportFactory = open_transport,
    ) -> None:
        self.config = config or ClientConfig()
        self._transport_factory = transport_factory
        self._table: HandleTable[Connection] = HandleTable("conn")

    def connect(self, host: str, port: int, timeout_s: float) -> Connection:
        """Establish a connection. A timeout of 0 selects the configured default.

        Returns the Connected record, registered under conn.handle.
        Raises ValidationError, ConnectTimeoutError,
        ConnectionRefusedByHostError or HostUnreachableError. On failure the
        transport has been released and no handle exists.
        """
        validate_endpoint(host, port, timeout_s)
        timeout = float(timeout_s) or self.config.connect_timeout_s

        conn = Connection(
            connection_id=bytes(CONN_ID_SIZE),
            host=host,
            port=port,
            timeout_s=timeout,
            state=ConnectionState.CONNECTING,
        )
        logger.info(f"Connecting to {host}:{port} (timeout={timeout}s)")
        start = time.monotonic()

        try:
            conn.transport = self._transport_factory(host, port, timeout)
            remaining = timeout - (time.monotonic() - start)
            if remaining <= 0:
                raise ConnectTimeoutError(f"Timed out ({timeout}s) connecting to {host}:{port}")
            conn.connection_id = client_handshake(
                conn.transport,
                timeout_s=remaining,
                hello_interval_s=self.config.hello_interval_s,
                client_name=self.config.client_name,
            )
        except Exception as e:
            conn.state = ConnectionState.FAILED
            conn.release_transport()
            logger.warning(f"Connect to {host}:{port} failed: {e}")
            raise

        conn.state = ConnectionState.CONNECTED
        conn.handle = str(self._table.insert(conn))
        logger.info(
            f"Connected to {host}:{port} (handle={conn.handle}, id={conn.connection_id.hex()})"
        )
        return conn

    def get(self, handle: Handle | str | None) -> Connection:
        """Resolve a connection handle. Raises StaleHandleError."""
        return self._table.get(handle)

    def teardown(self, handle: Handle | str | None) -> bool:
        """Tear down a connection. Idempotent.

        Returns True if a live connection was torn down, False if the handle
        was unknown or already torn down.
        """
        try:
            conn = self._table.remove(handle)
        except StaleHandleError:
            logger.debug(f"Teardown of {handle}: already torn down")
            return False

        with conn.lock:
            if conn.state == ConnectionState.CONNECTED:
                client_shutdown(conn, timeout_s=self.config.bye_timeout_s)
            conn.release_transport()
            conn.state = ConnectionState.DISCONNECTED
            expire_sessions(conn)

        logger.info(f"Connection {conn.handle} to {conn.host}:{conn.port} torn down")
        return True

    def mark_lost(self, conn: Connection, reason: str) -> None:
        """Record a link failure: FAILED state, transport released, sessions expired."""
        with conn.lock:
            if conn.state in (ConnectionState.FAILED, ConnectionState.DISCONNECTED):
                return
            conn.state = ConnectionState.FAILED
            conn.release_transport()
            expire_sessions(conn)
        logger.warning(f"Connection {conn.handle} lost: {reason}")

    def teardown_all(self) -> int:
        """Tear down every live connection. Returns how many were torn down."""
        return sum(1 for conn in self._table.records() if self.teardown(conn.handle))

    def __len__(self) -> int:
        return len(self._table)
