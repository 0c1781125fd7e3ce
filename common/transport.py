"""Transport setup for the RCP client.

Contains:
- transport_url: Build the pyserial URL for a host/port
- classify_open_error: Map a failed open to Timeout/Refused/Unreachable
- open_transport: Open a pyserial port within a deadline
"""

import errno
import logging
import socket
import threading
from collections.abc import Callable

import serial

from common.errors import (
    ConnectionRefusedByHostError,
    ConnectTimeoutError,
    HostUnreachableError,
    RcpError,
)
from common.protocol import READ_POLL_S, WRITE_TIMEOUT_S, Transport

logger = logging.getLogger(__name__)

# Signature of a transport factory: (host, port, timeout_s) -> open transport.
# Factories raise RcpError subclasses on failure.
TransportFactory = Callable[[str, int, float], Transport]

_UNREACHABLE_ERRNOS = {errno.EHOSTUNREACH, errno.ENETUNREACH, errno.EHOSTDOWN}


def transport_url(host: str, port: int) -> str:
    """Return the pyserial URL for a host.

    Hosts given as full URLs (``rfc2217://...``, ``loop://``) are used as is.
    """
    if "://" in host:
        return host
    if ":" in host:
        return f"socket://[{host}]:{port}"
    return f"socket://{host}:{port}"


def classify_open_error(host: str, port: int, exc: BaseException) -> RcpError:
    """Translate a failed transport open into the connect error taxonomy."""
    # pyserial wraps the socket error; the original is chained as the context
    cause = exc.__cause__ or exc.__context__ or exc
    where = f"{host}:{port}"

    if isinstance(cause, ConnectionRefusedError):
        return ConnectionRefusedByHostError(f"Connection to {where} refused")
    if isinstance(cause, socket.timeout):
        return ConnectTimeoutError(f"Timed out connecting to {where}")
    if isinstance(cause, socket.gaierror):
        return HostUnreachableError(f"Cannot resolve {host}: {cause}")
    if isinstance(cause, OSError) and cause.errno is not None:
        if cause.errno == errno.ECONNREFUSED:
            return ConnectionRefusedByHostError(f"Connection to {where} refused")
        if cause.errno == errno.ETIMEDOUT:
            return ConnectTimeoutError(f"Timed out connecting to {where}")
        if cause.errno in _UNREACHABLE_ERRNOS:
            return HostUnreachableError(f"Host {where} unreachable: {cause}")
    return HostUnreachableError(f"Cannot open transport to {where}: {cause}")


class _PendingOpen:
    """Tracks an open running on a worker thread.

    If the caller gives up before the open finishes, the port is closed by
    the worker as soon as it does, so no half-open link outlives connect().
    """

    def __init__(self, port: serial.SerialBase) -> None:
        self.port = port
        self.lock = threading.Lock()
        self.done = False
        self.abandoned = False
        self.error: BaseException | None = None

    def run(self) -> None:
        error: BaseException | None = None
        try:
            self.port.open()
        except (serial.SerialException, OSError, ValueError) as e:
            error = e

        with self.lock:
            self.done = True
            self.error = error
            if self.abandoned and error is None:
                logger.debug(f"Closing late transport {self.port.port}")
                self.port.close()


def open_transport(host: str, port: int, timeout_s: float) -> Transport:
    """Open a pyserial port to host:port, giving up after timeout_s.

    Raises ConnectTimeoutError, ConnectionRefusedByHostError or
    HostUnreachableError.
    """
    url = transport_url(host, port)
    try:
        ser = serial.serial_for_url(
            url,
            do_not_open=True,
            timeout=READ_POLL_S,
            write_timeout=WRITE_TIMEOUT_S,
        )
    except (serial.SerialException, ValueError) as e:
        raise HostUnreachableError(f"Unsupported transport URL {url}: {e}")

    pending = _PendingOpen(ser)
    worker = threading.Thread(target=pending.run, name=f"rcp-open-{host}:{port}", daemon=True)
    worker.start()
    worker.join(timeout_s)

    with pending.lock:
        if not pending.done:
            pending.abandoned = True
            raise ConnectTimeoutError(f"Timed out ({timeout_s}s) connecting to {host}:{port}")

    if pending.error is not None:
        raise classify_open_error(host, port, pending.error)

    logger.debug(f"Opened transport {url}")
    return ser
