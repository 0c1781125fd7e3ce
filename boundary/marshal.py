"""Conversion of typed results and errors into envelopes.

guarded() is the single place where exceptions stop: every RcpError becomes
a failed envelope, and anything unexpected is logged and reported as a
TransportError so no exception crosses the boundary.
"""

import json
import logging
from collections.abc import Callable, Iterable

from boundary.envelope import ResultEnvelope
from common.errors import RcpError, TransportError
from session.models import AppInfo, Session

logger = logging.getLogger(__name__)


def session_payload(session: Session) -> str:
    """Serialize an authenticated session for the caller."""
    return json.dumps({"sessionId": session.handle, "user": session.user.to_dict()})


def apps_payload(apps: Iterable[AppInfo]) -> str:
    """Serialize a catalog snapshot, preserving order."""
    return json.dumps([app.to_dict() for app in apps])


def guarded(operation: str, fn: Callable[[], str]) -> ResultEnvelope:
    """Run fn and wrap its payload, or its failure, in an envelope."""
    try:
        try:
            payload = fn()
        except RcpError as e:
            logger.debug(f"{operation} failed: {e.render()}")
            return ResultEnvelope.from_error(e)
        return ResultEnvelope.ok(payload)
    except Exception as e:
        logger.exception(f"Unexpected error in {operation}")
        return ResultEnvelope.fail(f"{TransportError.kind.value}: Internal error in {operation}: {e!r}")
