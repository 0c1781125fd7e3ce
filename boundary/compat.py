"""Implicit "current handle" call shape.

Older callers use rcp_init(host, port) followed by argument-less
rcp_authenticate / rcp_get_available_apps / rcp_launch_app / rcp_logout.
CurrentHandleBoundary keeps the current connection and session ids and
forwards to the explicit RcpBoundary. Sessions it stops tracking (replaced,
logged out or shut down) are freed, since no caller holds their ids.
"""

import json
import logging
import threading

from boundary.api import RcpBoundary, default_boundary
from boundary.envelope import ResultEnvelope

logger = logging.getLogger(__name__)


class CurrentHandleBoundary:
    """Remembers one current connection and session for implicit calls."""

    def __init__(self, boundary: RcpBoundary | None = None, timeout_ms: int = 0) -> None:
        self.boundary = boundary or RcpBoundary()
        self.timeout_ms = timeout_ms
        self.connection_id: str | None = None
        self.session_id: str | None = None
        self._lock = threading.Lock()

    def rcp_init(self, host: str, port: int) -> ResultEnvelope:
        """Connect, replacing (and tearing down) any current connection."""
        with self._lock:
            self._drop_current()
            envelope = self.boundary.connect_to_server(host, port, self.timeout_ms)
            if envelope.success:
                self.connection_id = envelope.data
            return envelope

    def rcp_authenticate(self, username: str, password: str) -> ResultEnvelope:
        """Authenticate on the current connection; a success replaces the current session."""
        with self._lock:
            envelope = self.boundary.authenticate(self.connection_id, username, password)
            if envelope.success:
                session_id = json.loads(envelope.data or "{}").get("sessionId")
                if session_id != self.session_id:
                    self._forget_session()
                self.session_id = session_id
            return envelope

    def rcp_get_available_apps(self) -> ResultEnvelope:
        return self.boundary.get_available_apps(self.session_id)

    def rcp_launch_app(self, app_id: str) -> ResultEnvelope:
        return self.boundary.launch_app(self.session_id, app_id)

    def rcp_logout(self) -> ResultEnvelope:
        with self._lock:
            envelope = self.boundary.logout(self.session_id)
            self._forget_session()
            return envelope

    def rcp_shutdown(self) -> ResultEnvelope:
        """Tear down the current connection."""
        with self._lock:
            self._forget_session()
            envelope = self.boundary.disconnect(self.connection_id)
            self.connection_id = None
            return envelope

    def _forget_session(self) -> None:
        # The wrapper owns the session records it stops tracking
        if self.session_id is not None:
            self.boundary.free_session(self.session_id)
        self.session_id = None

    def _drop_current(self) -> None:
        self._forget_session()
        if self.connection_id is not None:
            logger.debug(f"Replacing current connection {self.connection_id}")
            self.boundary.disconnect(self.connection_id).release()
        self.connection_id = None


_current: CurrentHandleBoundary | None = None
_current_lock = threading.Lock()


def current_boundary() -> CurrentHandleBoundary:
    """Return the process-wide current-handle wrapper over default_boundary()."""
    global _current
    with _current_lock:
        if _current is None:
            _current = CurrentHandleBoundary(default_boundary())
        return _current


def rcp_init(host: str, port: int) -> ResultEnvelope:
    return current_boundary().rcp_init(host, port)


def rcp_authenticate(username: str, password: str) -> ResultEnvelope:
    return current_boundary().rcp_authenticate(username, password)


def rcp_get_available_apps() -> ResultEnvelope:
    return current_boundary().rcp_get_available_apps()


def rcp_launch_app(app_id: str) -> ResultEnvelope:
    return current_boundary().rcp_launch_app(app_id)


def rcp_logout() -> ResultEnvelope:
    return current_boundary().rcp_logout()
