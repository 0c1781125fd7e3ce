"""Session-scoped data types for the RCP client.

Contains:
- SessionState: Validity of an authenticated session
- User: Identity returned by the host on authentication
- AppInfo: One catalog entry
- Session: Authenticated identity bound to a connection
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from common.connection import Connection


class SessionState(Enum):
    """Validity of a session."""

    UNAUTHENTICATED = "unauthenticated"
    ACTIVE = "active"
    LOGGED_OUT = "logged_out"
    EXPIRED = "expired"


def _optional_str(data: dict[str, Any], key: str, owner: str) -> str:
    """Return an optional string field; absent or null reads as empty."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{owner} has non-string {key}")
    return value


@dataclass(frozen=True)
class User:
    """Identity of an authenticated user."""

    username: str
    display_name: str = ""
    email: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        """Build from the host's JSON form. Raises ValueError if malformed."""
        username = data.get("username")
        if not isinstance(username, str) or not username:
            raise ValueError("user.username must be a non-empty string")
        return cls(
            username=username,
            display_name=_optional_str(data, "displayName", "user"),
            email=_optional_str(data, "email", "user"),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "username": self.username,
            "displayName": self.display_name,
            "email": self.email,
        }


@dataclass(frozen=True)
class AppInfo:
    """A launchable application. icon_url may be empty."""

    id: str
    name: str
    description: str = ""
    icon_url: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> AppInfo:
        """Build from the host's JSON form. Raises ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"catalog entry must be an object, got {type(data).__name__}")
        app_id = data.get("id")
        if not isinstance(app_id, str) or not app_id:
            raise ValueError("catalog entry id must be a non-empty string")
        name = data.get("name")
        if not isinstance(name, str):
            raise ValueError(f"catalog entry {app_id!r} has no name")
        return cls(
            id=app_id,
            name=name,
            description=_optional_str(data, "description", f"catalog entry {app_id!r}"),
            icon_url=_optional_str(data, "iconUrl", f"catalog entry {app_id!r}"),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "iconUrl": self.icon_url,
        }


@dataclass
class Session:
    """Authenticated identity bound to a connection.

    The session references its connection but does not own it; tearing the
    connection down expires the session without destroying this record.
    """

    token: str
    user: User
    connection: Connection
    state: SessionState = SessionState.ACTIVE
    handle: str = ""
    # IDs from the last catalog snapshot, None until listApps succeeds
    known_app_ids: frozenset[str] | None = field(default=None, repr=False)

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE
