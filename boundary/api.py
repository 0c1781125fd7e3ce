"""Boundary call surface of the RCP client.

Every operation is a blocking call taking strings and numbers and returning
a ResultEnvelope that the caller owns and must release exactly once with
rcp_free_result().

| function               | payload on success                        |
|------------------------|-------------------------------------------|
| rcp_connect_to_server  | connection id                             |
| rcp_authenticate       | {"sessionId": ..., "user": {...}} JSON    |
| rcp_get_available_apps | [{"id", "name", "description", "iconUrl"}] |
| rcp_launch_app         | "" (empty)                                |
| rcp_logout             | "" (empty), never fails                   |
| rcp_disconnect         | "" (empty), never fails                   |

RcpBoundary is the canonical form: it wraps one RcpClient and threads
explicit handles. The module-level rcp_* functions delegate to a lazily
created process-wide RcpBoundary for callers that need plain functions.
"""

import logging
import math
import threading

from boundary.envelope import ResultEnvelope
from boundary.marshal import apps_payload, guarded, session_payload
from client.engine import RcpClient
from common.errors import ValidationError

logger = logging.getLogger(__name__)


def _timeout_ms_to_s(timeout_ms: object) -> float:
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)):
        raise ValidationError(f"timeout must be a number of milliseconds, got {timeout_ms!r}")
    if math.isnan(timeout_ms) or timeout_ms < 0:
        raise ValidationError(f"timeout must be non-negative, got {timeout_ms}")
    return timeout_ms / 1000.0


class RcpBoundary:
    """Envelope-returning operations over one RcpClient."""

    def __init__(self, client: RcpClient | None = None) -> None:
        self.client = client or RcpClient()

    def connect_to_server(self, host: str, port: int, timeout_ms: int) -> ResultEnvelope:
        def op() -> str:
            timeout_s = _timeout_ms_to_s(timeout_ms)
            return self.client.connect(host, port, timeout_s).handle

        return guarded("connect", op)

    def authenticate(self, connection_id: str, username: str, password: str) -> ResultEnvelope:
        def op() -> str:
            return session_payload(self.client.authenticate(connection_id, username, password))

        return guarded("authenticate", op)

    def get_available_apps(self, session_id: str) -> ResultEnvelope:
        def op() -> str:
            return apps_payload(self.client.list_apps(session_id))

        return guarded("list_apps", op)

    def launch_app(self, session_id: str, app_id: str) -> ResultEnvelope:
        def op() -> str:
            self.client.launch_app(session_id, app_id)
            return ""

        return guarded("launch_app", op)

    def logout(self, session_id: str) -> ResultEnvelope:
        def op() -> str:
            self.client.logout(session_id)
            return ""

        return guarded("logout", op)

    def disconnect(self, connection_id: str) -> ResultEnvelope:
        def op() -> str:
            self.client.teardown(connection_id)
            return ""

        return guarded("disconnect", op)

    def free_session(self, session_id: str) -> None:
        """Drop a session record (logging it out first if still active)."""
        self.client.release_session(session_id)

    def close(self) -> None:
        self.client.close()


def rcp_free_result(envelope: ResultEnvelope | None) -> None:
    """Release an envelope. Passing None is a no-op.

    Each envelope must be released exactly once; a second release raises
    EnvelopeReleasedError.
    """
    if envelope is not None:
        envelope.release()


_default_boundary: RcpBoundary | None = None
_default_lock = threading.Lock()


def default_boundary() -> RcpBoundary:
    """Return the process-wide boundary, creating it on first use."""
    global _default_boundary
    with _default_lock:
        if _default_boundary is None:
            _default_boundary = RcpBoundary()
            logger.debug("Created default RCP boundary")
        return _default_boundary


def rcp_connect_to_server(host: str, port: int, timeout_ms: int) -> ResultEnvelope:
    return default_boundary().connect_to_server(host, port, timeout_ms)


def rcp_authenticate(connection_id: str, username: str, password: str) -> ResultEnvelope:
    return default_boundary().authenticate(connection_id, username, password)


def rcp_get_available_apps(session_id: str) -> ResultEnvelope:
    return default_boundary().get_available_apps(session_id)


def rcp_launch_app(session_id: str, app_id: str) -> ResultEnvelope:
    return default_boundary().launch_app(session_id, app_id)


def rcp_logout(session_id: str) -> ResultEnvelope:
    return default_boundary().logout(session_id)


def rcp_disconnect(connection_id: str) -> ResultEnvelope:
    return default_boundary().disconnect(connection_id)


def rcp_free_session(session_id: str) -> None:
    default_boundary().free_session(session_id)
