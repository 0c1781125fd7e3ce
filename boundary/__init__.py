"""Boundary package for the RCP client.

The call surface other components use:
- envelope: ResultEnvelope, EnvelopeReleasedError
- marshal: typed results and errors -> envelopes
- api: RcpBoundary and the rcp_* functions (explicit handles)
- compat: CurrentHandleBoundary (implicit current connection/session)
"""

from boundary.api import (
    RcpBoundary,
    default_boundary,
    rcp_authenticate,
    rcp_connect_to_server,
    rcp_disconnect,
    rcp_free_result,
    rcp_free_session,
    rcp_get_available_apps,
    rcp_launch_app,
    rcp_logout,
)
from boundary.compat import CurrentHandleBoundary
from boundary.envelope import EnvelopeReleasedError, ResultEnvelope

__all__ = [
    "CurrentHandleBoundary",
    "EnvelopeReleasedError",
    "RcpBoundary",
    "ResultEnvelope",
    "default_boundary",
    "rcp_authenticate",
    "rcp_connect_to_server",
    "rcp_disconnect",
    "rcp_free_result",
    "rcp_free_session",
    "rcp_get_available_apps",
    "rcp_launch_app",
    "rcp_logout",
]
