"""Connection state for the RCP client.

Contains:
- ConnectionState: Lifecycle of a connection
- Connection: One logical link to a remote application host
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from common.protocol import Transport

if TYPE_CHECKING:
    from session.models import Session


class ConnectionState(Enum):
    """Lifecycle of a connection. FAILED and torn-down DISCONNECTED are terminal."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass
class Connection:
    """Established connection state.

    The transport is exclusively owned by this record and released exactly
    once by release_transport(). Sessions reference the connection; they are
    tracked here only so teardown can invalidate them.
    """

    connection_id: bytes  # 4 bytes, carried in every frame
    host: str
    port: int
    timeout_s: float
    transport: Transport | None = None
    state: ConnectionState = ConnectionState.DISCONNECTED
    handle: str = ""
    active_session: Session | None = None
    sessions: list[Session] = field(default_factory=list, repr=False)
    # Serializes state transitions (authenticate, logout, teardown)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    # One request/reply exchange in flight per transport
    io_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _next_request_id: int = field(default=1, repr=False)

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def next_request_id(self) -> int:
        """Allocate a request ID. Caller holds io_lock."""
        request_id = self._next_request_id
        self._next_request_id = request_id + 1 if request_id < 0xFFFFFFFF else 1
        return request_id

    def release_transport(self) -> None:
        """Close and drop the transport. Safe to call more than once."""
        transport, self.transport = self.transport, None
        if transport is not None:
            transport.close()
