"""Session package for the RCP client.

This package holds the authenticated-session side of the engine:
- models: SessionState, User, AppInfo and Session records
"""

from session.models import AppInfo, Session, SessionState, User

__all__ = [
    "AppInfo",
    "Session",
    "SessionState",
    "User",
]
