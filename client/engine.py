"""RcpClient: explicit-handle facade over the client components.

Every method takes and returns handles explicitly; the client keeps no
"current" connection or session. Failures raise RcpError subclasses; the
boundary package turns them into envelopes.
"""

import logging

from client.auth import SessionManager
from client.catalog import CatalogService
from client.commands import LaunchController
from client.manager import ConnectionManager
from common.config import ClientConfig
from common.connection import Connection
from common.handles import Handle
from common.transport import TransportFactory, open_transport
from session.models import AppInfo, Session

logger = logging.getLogger(__name__)


class RcpClient:
    """Connection, session, catalog and launch operations in one place."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport_factory: TransportFactory = open_transport,
    ) -> None:
        self.config = config or ClientConfig.from_env()
        self.connections = ConnectionManager(self.config, transport_factory)
        self.sessions = SessionManager(self.connections, self.config)
        self.catalog = CatalogService(self.sessions)
        self.commands = LaunchController(self.sessions, self.config)

    def connect(self, host: str, port: int, timeout_s: float = 0) -> Connection:
        return self.connections.connect(host, port, timeout_s)

    def teardown(self, conn_handle: Handle | str | None) -> bool:
        return self.connections.teardown(conn_handle)

    def authenticate(self, conn_handle: Handle | str | None, username: str, password: str) -> Session:
        return self.sessions.authenticate(conn_handle, username, password)

    def list_apps(self, session_handle: Handle | str | None) -> list[AppInfo]:
        return self.catalog.list_apps(session_handle)

    def launch_app(self, session_handle: Handle | str | None, app_id: str) -> None:
        self.commands.launch_app(session_handle, app_id)

    def logout(self, session_handle: Handle | str | None) -> None:
        self.commands.logout(session_handle)

    def release_session(self, session_handle: Handle | str | None) -> bool:
        return self.sessions.release(session_handle)

    def close(self) -> None:
        """Tear down every connection still open."""
        count = self.connections.teardown_all()
        if count:
            logger.info(f"Closed {count} connection(s)")

    def __enter__(self) -> "RcpClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
