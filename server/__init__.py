"""Server package: a reference RCP application host.

Contains the host side of the protocol:
- handshake: server_wait_for_hello, server_handshake
- shutdown: server_shutdown
- host: AppHost (accounts, catalog, launch policy, request dispatch)

Note: the TCP runner is not exported here; import it from server.runner.
"""

from server.handshake import HostHandshakeError, server_handshake, server_wait_for_hello
from server.host import AppHost, HostAccount, LaunchDeclined
from server.shutdown import server_shutdown

__all__ = [
    "AppHost",
    "HostAccount",
    "HostHandshakeError",
    "LaunchDeclined",
    "server_handshake",
    "server_shutdown",
    "server_wait_for_hello",
]
