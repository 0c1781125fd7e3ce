"""Reference application host for the RCP protocol.

AppHost holds user accounts, a catalog and a launch policy, and serves one
client connection at a time per call to serve_connection(). Launching is
delegated to an optional callback; by default accepted launches are only
recorded.
"""

import json
import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from common.encoding import (
    EncodingError,
    Message,
    NoMessageError,
    decode_message,
    encode_message,
)
from common.protocol import DEFAULT_CONNECT_TIMEOUT_S, TRACE, MsgType, Transport
from server.handshake import HostHandshakeError, host_info, server_handshake
from server.shutdown import server_shutdown
from session.models import AppInfo, User

logger = logging.getLogger(__name__)

Reply = tuple[MsgType, dict[str, Any] | None]


class LaunchDeclined(Exception):
    """Raised by a launcher callback to decline a launch."""

    pass


@dataclass
class HostAccount:
    """A user the host accepts."""

    password: str
    display_name: str = ""
    email: str = ""


def default_apps() -> list[AppInfo]:
    """Demo catalog used when none is configured."""
    return [
        AppInfo(id="app1", name="Application 1", description="Sample application 1"),
        AppInfo(id="app2", name="Application 2", description="Sample application 2"),
    ]


class AppHost:
    """Accounts, catalog and launch policy of a reference host."""

    def __init__(
        self,
        name: str = "rcp-host",
        accounts: dict[str, HostAccount] | None = None,
        apps: list[AppInfo] | None = None,
        rejected_apps: set[str] | None = None,
        launcher: Callable[[User, AppInfo], None] | None = None,
    ) -> None:
        self.name = name
        self.accounts = accounts if accounts is not None else {}
        self.apps = apps if apps is not None else default_apps()
        self.rejected_apps = rejected_apps or set()
        self.launcher = launcher
        self.launched: list[tuple[str, str]] = []
        self._tokens: dict[str, str] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_file(cls, path: str | Path) -> "AppHost":
        """Load a host definition from JSON.

        {"name": ..., "users": {"alice": {"password": ..., "displayName": ...,
        "email": ...}}, "apps": [{"id", "name", "description", "iconUrl"}],
        "rejected": ["app-id", ...]}
        """
        data = json.loads(Path(path).read_text())
        accounts = {
            username: HostAccount(
                password=entry["password"],
                display_name=entry.get("displayName", ""),
                email=entry.get("email", ""),
            )
            for username, entry in data.get("users", {}).items()
        }
        apps = [AppInfo.from_dict(entry) for entry in data["apps"]] if "apps" in data else None
        return cls(
            name=data.get("name", "rcp-host"),
            accounts=accounts,
            apps=apps,
            rejected_apps=set(data.get("rejected", [])),
        )

    def add_user(self, username: str, password: str, display_name: str = "", email: str = "") -> None:
        self.accounts[username] = HostAccount(password, display_name, email)

    def user_for(self, token: str) -> User | None:
        """Return the user owning a live token."""
        with self._lock:
            username = self._tokens.get(token)
        if username is None or username not in self.accounts:
            return None
        account = self.accounts[username]
        return User(username=username, display_name=account.display_name, email=account.email)

    def revoke(self, token: str) -> None:
        with self._lock:
            self._tokens.pop(token, None)

    # -------------------------------------------------------------------------
    # Request handlers
    # -------------------------------------------------------------------------

    def _auth(self, body: dict[str, Any], tokens: set[str]) -> Reply:
        username = body.get("username")
        password = body.get("password")
        account = self.accounts.get(username) if isinstance(username, str) else None
        if account is None or not secrets.compare_digest(
            str(password).encode("utf-8"), account.password.encode("utf-8")
        ):
            logger.info(f"Server: rejected credentials for {username!r}")
            return MsgType.AUTH_FAIL, {"reason": "invalid username or password"}

        # One session per connection: a new login replaces the previous one
        for old in tokens:
            self.revoke(old)
        tokens.clear()

        token = secrets.token_hex(16)
        with self._lock:
            self._tokens[token] = username
        tokens.add(token)
        user = User(username=username, display_name=account.display_name, email=account.email)
        logger.info(f"Server: authenticated {username!r}")
        return MsgType.AUTH_OK, {"token": token, "user": user.to_dict()}

    def _launch(self, user: User, body: dict[str, Any]) -> Reply:
        app_id = body.get("appId")
        if not isinstance(app_id, str) or not app_id:
            return MsgType.ERROR, {"reason": "appId missing"}
        app = next((a for a in self.apps if a.id == app_id), None)
        if app is None:
            return MsgType.NOT_FOUND, {"reason": f"no application {app_id!r}"}
        if app_id in self.rejected_apps:
            return MsgType.LAUNCH_REJECTED, {"reason": f"{app_id!r} is not available"}
        if self.launcher is not None:
            try:
                self.launcher(user, app)
            except LaunchDeclined as e:
                return MsgType.LAUNCH_REJECTED, {"reason": str(e)}
        self.launched.append((user.username, app_id))
        logger.info(f"Server: launched {app_id!r} for {user.username!r}")
        return MsgType.LAUNCH_OK, None

    def handle(self, msg: Message, tokens: set[str]) -> Reply:
        """Compute the reply to one request on a connection owning tokens."""
        try:
            body = msg.json()
        except EncodingError as e:
            return MsgType.ERROR, {"reason": str(e)}

        match msg.msg_type:
            case MsgType.HELLO:
                # Client retransmitted HELLO before seeing our HELLO_ACK
                return MsgType.HELLO_ACK, host_info(self.name)
            case MsgType.AUTH:
                return self._auth(body, tokens)
            case MsgType.LOGOUT:
                token = body.get("token")
                if isinstance(token, str):
                    self.revoke(token)
                    tokens.discard(token)
                return MsgType.LOGOUT_ACK, None

        token = body.get("token")
        user = self.user_for(token) if isinstance(token, str) and token in tokens else None

        match msg.msg_type:
            case MsgType.LIST_APPS | MsgType.LAUNCH if user is None:
                return MsgType.SESSION_INVALID, {"reason": "unknown session"}
            case MsgType.LIST_APPS:
                return MsgType.APP_LIST, {"apps": [app.to_dict() for app in self.apps]}
            case MsgType.LAUNCH:
                assert user is not None
                return self._launch(user, body)
            case _:
                return MsgType.ERROR, {"reason": f"unsupported request {msg.msg_type.name}"}

    # -------------------------------------------------------------------------
    # Connection loop
    # -------------------------------------------------------------------------

    def serve_connection(
        self,
        port: Transport,
        stop: threading.Event | None = None,
        handshake_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    ) -> None:
        """Handshake with one client and answer its requests until BYE,
        link loss or stop."""
        tokens: set[str] = set()
        try:
            conn_id = server_handshake(port, host_name=self.name, timeout_s=handshake_timeout_s, stop=stop)

            while stop is None or not stop.is_set():
                try:
                    msg = decode_message(port)
                except (NoMessageError, EncodingError):
                    continue

                if not msg.crc_ok or msg.conn_id != conn_id:
                    continue
                if msg.msg_type == MsgType.BYE:
                    server_shutdown(port, conn_id)
                    return

                reply_type, reply_body = self.handle(msg, tokens)
                port.write(encode_message(reply_type, conn_id, msg.request_id, reply_body))
                logger.log(TRACE, f"Server: {msg.msg_type.name} -> {reply_type.name}")
        except HostHandshakeError as e:
            logger.warning(str(e))
        except OSError as e:
            logger.info(f"Server: client link closed ({e})")
        finally:
            for token in tokens:
                self.revoke(token)
