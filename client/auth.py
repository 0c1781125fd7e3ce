"""Session/auth manager for the RCP client.

Exchanges credentials for a session token over a connected link and owns
session validity:
- authenticate: AUTH -> AUTH_OK / AUTH_FAIL, one active session per connection
- logout: best-effort LOGOUT, session becomes LOGGED_OUT
- call: session-scoped request that maps link loss and SESSION_INVALID to
  SessionExpiredError
"""

import logging
from typing import Any

from client.manager import ConnectionManager
from common.config import ClientConfig
from common.encoding import EncodingError, Message
from common.errors import (
    AuthenticationFailedError,
    ConnectionLostError,
    InvalidStateError,
    ProtocolError,
    SessionExpiredError,
    StaleHandleError,
    TransportError,
    ValidationError,
)
from common.handles import Handle, HandleTable
from common.io import request
from common.protocol import MsgType
from session.models import Session, SessionState, User

logger = logging.getLogger(__name__)


def validate_credentials(username: object, password: object) -> None:
    """Raise ValidationError unless both credentials are non-empty strings."""
    if not isinstance(username, str) or not username:
        raise ValidationError("username must be a non-empty string")
    if not isinstance(password, str) or not password:
        raise ValidationError("password must be a non-empty string")


def _parse_auth_ok(reply: Message, username: str) -> tuple[str, User]:
    """Extract (token, user) from an AUTH_OK reply. Raises ProtocolError."""
    try:
        body = reply.json()
        token = body["token"]
        if not isinstance(token, str) or not token:
            raise ValueError("token must be a non-empty string")
        user_data = body.get("user") or {"username": username}
        if not isinstance(user_data, dict):
            raise ValueError("user must be an object")
        return token, User.from_dict(user_data)
    except (EncodingError, KeyError, ValueError) as e:
        raise ProtocolError(f"Malformed AUTH_OK reply: {e}")


class SessionManager:
    """Creates and invalidates sessions; guards session-scoped requests."""

    def __init__(self, connections: ConnectionManager, config: ClientConfig | None = None) -> None:
        self.config = config or connections.config
        self._connections = connections
        self._table: HandleTable[Session] = HandleTable("sess")

    def authenticate(self, conn_handle: Handle | str | None, username: str, password: str) -> Session:
        """Authenticate on a connected link and return the new active session.

        Raises:
            InvalidStateError: Connection unknown, torn down or not connected.
            ValidationError: Empty username or password.
            AuthenticationFailedError: Host rejected the credentials.
            ProtocolError: Malformed or unexpected reply.
            TransportError: Link lost or no reply in time.
        """
        conn = self._connections.get(conn_handle)

        # Serialize with other authenticate/logout/teardown calls on this link
        with conn.lock:
            if not conn.is_connected:
                raise InvalidStateError(f"Connection {conn.handle} is {conn.state.value}, not connected")
            validate_credentials(username, password)

            try:
                reply = request(
                    conn,
                    MsgType.AUTH,
                    {"username": username, "password": password},
                    self.config.request_timeout_s,
                )
            except ConnectionLostError as e:
                self._connections.mark_lost(conn, str(e))
                raise

            match reply.msg_type:
                case MsgType.AUTH_OK:
                    token, user = _parse_auth_ok(reply, username)
                case MsgType.AUTH_FAIL:
                    reason = reply.reason("credentials rejected")
                    logger.info(f"Authentication of {username!r} on {conn.handle} rejected: {reason}")
                    raise AuthenticationFailedError(f"Authentication failed for {username!r}: {reason}")
                case MsgType.ERROR:
                    raise ProtocolError(f"Host error during AUTH: {reply.reason('unspecified')}")
                case _:
                    raise ProtocolError(f"Unexpected reply to AUTH: {reply.msg_type.name}")

            prior = conn.active_session
            if prior is not None and prior.is_active:
                prior.state = SessionState.LOGGED_OUT
                logger.info(f"Session {prior.handle} replaced by re-authentication")

            session = Session(token=token, user=user, connection=conn)
            session.handle = str(self._table.insert(session))
            conn.sessions = [s for s in conn.sessions if s.is_active]
            conn.sessions.append(session)
            conn.active_session = session

        logger.info(f"Authenticated {user.username!r} on {conn.handle} (session={session.handle})")
        return session

    def resolve(self, handle: Handle | str | None) -> Session:
        """Resolve a session handle. Raises StaleHandleError."""
        return self._table.get(handle)

    def require_active(self, session: Session) -> None:
        """Raise SessionExpiredError unless the session and its link are usable."""
        if session.state in (SessionState.LOGGED_OUT, SessionState.EXPIRED):
            raise SessionExpiredError(f"Session {session.handle} is {session.state.value}")
        conn = session.connection
        if not conn.is_connected:
            with conn.lock:
                if session.is_active:
                    session.state = SessionState.EXPIRED
            raise SessionExpiredError(
                f"Session {session.handle} expired: connection {conn.handle} is {conn.state.value}"
            )

    def call(self, session: Session, msg_type: MsgType, body: dict[str, Any] | None = None) -> Message:
        """Send a session-scoped request and return the reply.

        Raises:
            SessionExpiredError: Link lost mid-call or host no longer knows the token.
            ProtocolError: Host answered ERROR.
            TransportError: No reply in time.
        """
        conn = session.connection
        try:
            reply = request(
                conn,
                msg_type,
                {"token": session.token, **(body or {})},
                self.config.request_timeout_s,
            )
        except ConnectionLostError as e:
            self._connections.mark_lost(conn, str(e))
            raise SessionExpiredError(f"Connection lost during {msg_type.name}: {e.message}")

        if reply.msg_type == MsgType.SESSION_INVALID:
            with conn.lock:
                if session.is_active:
                    session.state = SessionState.EXPIRED
                if conn.active_session is session:
                    conn.active_session = None
            raise SessionExpiredError(f"Host no longer recognizes session {session.handle}")
        if reply.msg_type == MsgType.ERROR:
            raise ProtocolError(f"Host error during {msg_type.name}: {reply.reason('unspecified')}")
        return reply

    def logout(self, handle: Handle | str | None) -> bool:
        """Log a session out. Idempotent; never raises for state or link problems.

        Returns True if an active session was logged out.
        """
        try:
            session = self._table.get(handle)
        except StaleHandleError:
            logger.debug(f"Logout of {handle}: no such session")
            return False

        conn = session.connection
        with conn.lock:
            if not session.is_active:
                logger.debug(f"Logout of {session.handle}: already {session.state.value}")
                return False

            if conn.is_connected:
                try:
                    reply = request(
                        conn,
                        MsgType.LOGOUT,
                        {"token": session.token},
                        self.config.request_timeout_s,
                    )
                    if reply.msg_type != MsgType.LOGOUT_ACK:
                        logger.debug(f"Host answered LOGOUT with {reply.msg_type.name}")
                except ConnectionLostError as e:
                    self._connections.mark_lost(conn, str(e))
                except TransportError as e:
                    logger.warning(f"Logout notification for {session.handle} failed: {e}")

            session.state = SessionState.LOGGED_OUT
            if conn.active_session is session:
                conn.active_session = None

        logger.info(f"Session {session.handle} logged out")
        return True

    def release(self, handle: Handle | str | None) -> bool:
        """Log out (if needed) and drop a session record. Idempotent."""
        self.logout(handle)
        try:
            self._table.remove(handle)
        except StaleHandleError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._table)
