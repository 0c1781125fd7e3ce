"""Catalog service for the RCP client.

Fetches the point-in-time list of launchable applications for a session.
"""

import logging

from client.auth import SessionManager
from common.encoding import EncodingError, Message
from common.errors import ProtocolError
from common.handles import Handle
from common.protocol import MsgType
from session.models import AppInfo

logger = logging.getLogger(__name__)


def decode_catalog(reply: Message) -> list[AppInfo]:
    """Decode an APP_LIST reply, preserving the host's order.

    Raises ProtocolError on a malformed body, an invalid entry or a
    duplicate id.
    """
    try:
        body = reply.json()
    except EncodingError as e:
        raise ProtocolError(str(e))

    entries = body.get("apps")
    if not isinstance(entries, list):
        raise ProtocolError("APP_LIST body has no apps array")

    apps: list[AppInfo] = []
    seen: set[str] = set()
    for entry in entries:
        try:
            app = AppInfo.from_dict(entry)
        except ValueError as e:
            raise ProtocolError(f"Malformed catalog entry: {e}")
        if app.id in seen:
            raise ProtocolError(f"Duplicate app id {app.id!r} in catalog")
        seen.add(app.id)
        apps.append(app)
    return apps


class CatalogService:
    """Lists the applications available to a session."""

    def __init__(self, sessions: SessionManager) -> None:
        self._sessions = sessions

    def list_apps(self, handle: Handle | str | None) -> list[AppInfo]:
        """Fetch the catalog. An empty list is a valid result.

        Raises:
            InvalidStateError: Unknown or released session handle.
            SessionExpiredError: Session logged out, expired or link lost.
            ProtocolError: Malformed reply.
            TransportError: No reply in time.
        """
        session = self._sessions.resolve(handle)
        self._sessions.require_active(session)

        reply = self._sessions.call(session, MsgType.LIST_APPS)
        if reply.msg_type != MsgType.APP_LIST:
            raise ProtocolError(f"Unexpected reply to LIST_APPS: {reply.msg_type.name}")

        apps = decode_catalog(reply)
        session.known_app_ids = frozenset(app.id for app in apps)
        logger.info(f"Session {session.handle}: catalog has {len(apps)} app(s)")
        return apps
