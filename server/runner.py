"""TCP runner for the reference RCP host.

Contains:
- SocketStream: Transport over an accepted TCP socket
- HostServer: threading TCP server handing each client to an AppHost
- run_server(): persistent loop with SIGINT/SIGTERM handling
"""

import logging
import select
import signal
import socket
import socketserver
import threading
from types import FrameType

from common.protocol import READ_POLL_S
from server.host import AppHost

logger = logging.getLogger(__name__)


class SocketStream:
    """Byte stream over a connected socket with serial-port read semantics.

    read() returns fewer bytes than asked when the poll timeout passes and
    raises ConnectionResetError when the peer has closed the socket.
    """

    def __init__(self, sock: socket.socket, timeout_s: float = READ_POLL_S) -> None:
        self._sock = sock
        self._sock.settimeout(timeout_s)

    def write(self, data: bytes, /) -> int:
        self._sock.sendall(data)
        return len(data)

    def read(self, size: int = 1, /) -> bytes:
        buf = bytearray()
        while len(buf) < size:
            try:
                chunk = self._sock.recv(size - len(buf))
            except socket.timeout:
                break
            if not chunk:
                raise ConnectionResetError("peer closed the connection")
            buf += chunk
        return bytes(buf)

    @property
    def in_waiting(self) -> int:
        readable, _, _ = select.select([self._sock], [], [], 0)
        return 1 if readable else 0

    def close(self) -> None:
        self._sock.close()


class _ClientHandler(socketserver.BaseRequestHandler):
    server: "HostServer"

    def handle(self) -> None:
        logger.info(f"Server: client connected from {self.client_address[0]}:{self.client_address[1]}")
        self.server.app_host.serve_connection(SocketStream(self.request), stop=self.server.stopping)
        logger.info(f"Server: client {self.client_address[0]}:{self.client_address[1]} done")


class HostServer(socketserver.ThreadingTCPServer):
    """Serves an AppHost to any number of concurrent TCP clients."""

    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address: tuple[str, int], app_host: AppHost) -> None:
        self.app_host = app_host
        self.stopping = threading.Event()
        super().__init__(address, _ClientHandler)

    def start_background(self) -> threading.Thread:
        """Run serve_forever() on a daemon thread."""
        thread = threading.Thread(target=self.serve_forever, name="rcp-host", daemon=True)
        thread.start()
        return thread

    def stop(self) -> None:
        """Stop accepting, end client loops and close the listener."""
        self.stopping.set()
        self.shutdown()
        self.server_close()


def run_server(bind: str, port: int, app_host: AppHost) -> int:
    """Run the host until SIGINT/SIGTERM. Returns 0 unless the listener fails."""
    stop_requested = threading.Event()

    def handle_signal(_sig: int, _frame: FrameType | None) -> None:
        logger.info("Signal received - shutting down")
        stop_requested.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        server = HostServer((bind, port), app_host)
    except OSError as e:
        logger.error(f"Failed to listen on {bind}:{port}: {e}")
        return 1

    server.start_background()
    logger.info(
        f"Server {app_host.name!r} listening on {bind}:{server.server_address[1]} "
        f"({len(app_host.apps)} apps, {len(app_host.accounts)} users)"
    )

    try:
        while not stop_requested.wait(0.5):
            pass
    finally:
        server.stop()

    logger.info("Server shutdown complete")
    return 0
