"""Client package for the RCP client engine.

Contains the client-side components:
- handshake: client_send_hello_wait_ack, client_handshake
- shutdown: client_shutdown
- manager: ConnectionManager (connect/teardown)
- auth: SessionManager (authenticate/logout)
- catalog: CatalogService (list_apps)
- commands: LaunchController (launch_app/logout)
- engine: RcpClient, the explicit-handle facade
"""

from client.auth import SessionManager
from client.catalog import CatalogService
from client.commands import LaunchController
from client.engine import RcpClient
from client.handshake import (
    HandshakeRejectedError,
    client_handshake,
    client_send_hello_wait_ack,
)
from client.manager import ConnectionManager
from client.shutdown import client_shutdown

__all__ = [
    "CatalogService",
    "ConnectionManager",
    "HandshakeRejectedError",
    "LaunchController",
    "RcpClient",
    "SessionManager",
    "client_handshake",
    "client_send_hello_wait_ack",
    "client_shutdown",
]
