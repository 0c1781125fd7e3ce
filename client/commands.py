"""Launch/logout controller for the RCP client.

Launch is fire-and-acknowledge: LAUNCH_OK means the host accepted the
command, not that the application finished starting.
"""

import logging

from client.auth import SessionManager
from common.config import ClientConfig
from common.errors import LaunchRejectedError, NotFoundError, ProtocolError, ValidationError
from common.handles import Handle
from common.protocol import MsgType

logger = logging.getLogger(__name__)


class LaunchController:
    """Issues launch and logout commands for sessions."""

    def __init__(self, sessions: SessionManager, config: ClientConfig | None = None) -> None:
        self._sessions = sessions
        self.config = config or sessions.config

    def launch_app(self, handle: Handle | str | None, app_id: str) -> None:
        """Ask the host to launch app_id.

        With validate_app_ids set, an id missing from the session's last
        catalog snapshot fails locally; the host stays authoritative either way.

        Raises:
            InvalidStateError: Unknown or released session handle.
            SessionExpiredError: Session logged out, expired or link lost.
            ValidationError: Empty app_id.
            NotFoundError: No such application.
            LaunchRejectedError: Host declined the launch.
            TransportError: No reply in time.
        """
        session = self._sessions.resolve(handle)
        self._sessions.require_active(session)

        if not isinstance(app_id, str) or not app_id:
            raise ValidationError("app id must be a non-empty string")

        known = session.known_app_ids
        if self.config.validate_app_ids and known is not None and app_id not in known:
            raise NotFoundError(f"App {app_id!r} is not in the catalog of session {session.handle}")

        reply = self._sessions.call(session, MsgType.LAUNCH, {"appId": app_id})

        match reply.msg_type:
            case MsgType.LAUNCH_OK:
                logger.info(f"Session {session.handle}: launch of {app_id!r} accepted")
            case MsgType.NOT_FOUND:
                raise NotFoundError(f"App {app_id!r} not found: {reply.reason('unknown app')}")
            case MsgType.LAUNCH_REJECTED:
                raise LaunchRejectedError(
                    f"Launch of {app_id!r} rejected: {reply.reason('no reason given')}"
                )
            case _:
                raise ProtocolError(f"Unexpected reply to LAUNCH: {reply.msg_type.name}")

    def logout(self, handle: Handle | str | None) -> None:
        """Log a session out. Already logged-out or unknown sessions are a no-op."""
        self._sessions.logout(handle)
