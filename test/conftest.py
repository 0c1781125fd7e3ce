"""pytest configuration and fixtures for RCP client tests.

Provides:
- MockSerialPort: Single-buffer mock for simple unit tests
- ConnectedMockPorts: Bidirectional mock pair that can be cut to simulate link loss
- MockHostLinks: transport factory backed by an AppHost served on mock pairs
- Markers for unit vs integration tests
"""

import io
import threading
from collections.abc import Generator

import pytest
import serial

from client.engine import RcpClient
from common.config import ClientConfig
from server.host import AppHost


class MockSerialPort:
    """Mock serial port for unit testing.

    Uses a single buffer shared between read and write operations.
    Data written to the port can be read back immediately.

    Use ConnectedMockPorts for testing scenarios that require
    separate send/receive channels (like timeout testing).
    """

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        self._read_pos = 0
        self._lock = threading.Lock()
        self.closed = False

    def write(self, data: bytes) -> int:
        with self._lock:
            pos = self._buffer.tell()
            self._buffer.seek(0, 2)  # Seek to end
            written = self._buffer.write(data)
            self._buffer.seek(pos)
            return written

    def read(self, size: int = 1, /) -> bytes:
        with self._lock:
            self._buffer.seek(self._read_pos)
            data = self._buffer.read(size)
            self._read_pos = self._buffer.tell()
            return data

    @property
    def in_waiting(self) -> int:
        with self._lock:
            end_pos = self._buffer.seek(0, 2)
            waiting = end_pos - self._read_pos
            return max(0, waiting)

    def inject(self, data: bytes) -> None:
        """Inject data into the buffer as if received from peer."""
        self.write(data)

    def close(self) -> None:
        self.closed = True


class ConnectedMockPorts:
    """Bidirectional mock port pair for testing client-host communication.

    Data written to port_a appears in port_b's read buffer and vice versa.
    Closing either end, or calling cut(), breaks the link for both ends:
    further reads and writes raise serial.SerialException.
    """

    def __init__(self) -> None:
        self._a_to_b = io.BytesIO()
        self._b_to_a = io.BytesIO()
        self._a_read_pos = 0
        self._b_read_pos = 0
        self._lock = threading.Lock()
        self.broken = False
        self.close_count = 0

    @property
    def port_a(self) -> "_ConnectedPort":
        """Port A: writes go to B's read buffer, reads come from B's writes."""
        return _ConnectedPort(self, is_port_a=True)

    @property
    def port_b(self) -> "_ConnectedPort":
        """Port B: writes go to A's read buffer, reads come from A's writes."""
        return _ConnectedPort(self, is_port_a=False)

    def cut(self) -> None:
        """Simulate the link dropping."""
        with self._lock:
            self.broken = True


class _ConnectedPort:
    """One end of a ConnectedMockPorts pair."""

    def __init__(self, parent: ConnectedMockPorts, is_port_a: bool) -> None:
        self._parent = parent
        self._is_port_a = is_port_a

    def _check(self) -> None:
        if self._parent.broken:
            raise serial.SerialException("link is down")

    def write(self, data: bytes) -> int:
        with self._parent._lock:
            self._check()
            # Write to the OTHER port's read buffer
            buffer = self._parent._a_to_b if self._is_port_a else self._parent._b_to_a
            pos = buffer.tell()
            buffer.seek(0, 2)  # Seek to end
            written = buffer.write(data)
            buffer.seek(pos)
            return written

    def read(self, size: int = 1, /) -> bytes:
        with self._parent._lock:
            self._check()
            # Read from OUR read buffer (filled by other port's writes)
            if self._is_port_a:
                buffer = self._parent._b_to_a
                self._parent._b_to_a.seek(self._parent._a_read_pos)
                data = buffer.read(size)
                self._parent._a_read_pos = buffer.tell()
            else:
                buffer = self._parent._a_to_b
                self._parent._a_to_b.seek(self._parent._b_read_pos)
                data = buffer.read(size)
                self._parent._b_read_pos = buffer.tell()
            return data

    @property
    def in_waiting(self) -> int:
        with self._parent._lock:
            if self._is_port_a:
                buffer = self._parent._b_to_a
                read_pos = self._parent._a_read_pos
            else:
                buffer = self._parent._a_to_b
                read_pos = self._parent._b_read_pos
            end_pos = buffer.seek(0, 2)
            return max(0, end_pos - read_pos)

    def inject(self, data: bytes) -> None:
        """Inject data as if it came from the peer (for testing)."""
        with self._parent._lock:
            # Inject into OUR read buffer
            if self._is_port_a:
                buffer = self._parent._b_to_a
            else:
                buffer = self._parent._a_to_b
            pos = buffer.tell()
            buffer.seek(0, 2)
            buffer.write(data)
            buffer.seek(pos)

    def close(self) -> None:
        with self._parent._lock:
            self._parent.broken = True
            self._parent.close_count += 1


class MockHostLinks:
    """Transport factory that serves an AppHost over a fresh mock pair per connect."""

    def __init__(self, app_host: AppHost) -> None:
        self.app_host = app_host
        self.stop = threading.Event()
        self.pairs: list[ConnectedMockPorts] = []
        self.calls: list[tuple[str, int, float]] = []
        self._threads: list[threading.Thread] = []

    def __call__(self, host: str, port: int, timeout_s: float) -> _ConnectedPort:
        self.calls.append((host, port, timeout_s))
        pair = ConnectedMockPorts()
        thread = threading.Thread(
            target=self.app_host.serve_connection,
            args=(pair.port_b,),
            kwargs={"stop": self.stop, "handshake_timeout_s": 5.0},
            daemon=True,
        )
        thread.start()
        self.pairs.append(pair)
        self._threads.append(thread)
        return pair.port_a

    @property
    def last_pair(self) -> ConnectedMockPorts:
        return self.pairs[-1]

    def close(self) -> None:
        self.stop.set()
        for thread in self._threads:
            thread.join(timeout=2.0)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test (uses local TCP sockets)")


def make_config(**overrides: object) -> ClientConfig:
    """ClientConfig with short timeouts for tests."""
    values: dict[str, object] = {
        "connect_timeout_s": 2.0,
        "request_timeout_s": 2.0,
        "hello_interval_s": 0.05,
        "bye_timeout_s": 0.5,
        "validate_app_ids": True,
        "client_name": "rcp-test",
    }
    values.update(overrides)
    return ClientConfig(**values)  # type: ignore[arg-type]


def make_app_host() -> AppHost:
    """Host with one user (alice/correct), the demo catalog and one rejected app."""
    host = AppHost(name="test-host", rejected_apps={"app2"})
    host.add_user("alice", "correct", display_name="Alice", email="alice@example.com")
    return host


@pytest.fixture
def app_host() -> AppHost:
    return make_app_host()


@pytest.fixture
def host_links(app_host: AppHost) -> Generator[MockHostLinks, None, None]:
    links = MockHostLinks(app_host)
    yield links
    links.close()


@pytest.fixture
def client(host_links: MockHostLinks) -> Generator[RcpClient, None, None]:
    """RcpClient whose connections reach the test AppHost over mock links."""
    rcp = RcpClient(config=make_config(), transport_factory=host_links)
    yield rcp
    rcp.close()
