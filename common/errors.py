"""Error taxonomy for the RCP client.

Every failure the engine reports is an RcpError subclass carrying an
ErrorKind. The boundary layer renders them as "<Kind>: <message>".
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification callers branch on."""

    VALIDATION_ERROR = "ValidationError"
    INVALID_STATE = "InvalidState"
    TIMEOUT = "Timeout"
    REFUSED = "Refused"
    UNREACHABLE = "Unreachable"
    AUTHENTICATION_FAILED = "AuthenticationFailed"
    SESSION_EXPIRED = "SessionExpired"
    PROTOCOL_ERROR = "ProtocolError"
    NOT_FOUND = "NotFound"
    LAUNCH_REJECTED = "LaunchRejected"
    TRANSPORT_ERROR = "TransportError"


class RcpError(Exception):
    """Base class for all RCP client failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def render(self) -> str:
        """Return the boundary form of this error."""
        return f"{self.kind.value}: {self.message}"


class ValidationError(RcpError):
    """Raised for malformed caller input, before any I/O."""

    kind = ErrorKind.VALIDATION_ERROR


class InvalidStateError(RcpError):
    """Raised when an operation is not permitted in the current state."""

    kind = ErrorKind.INVALID_STATE


class StaleHandleError(InvalidStateError):
    """Raised when a handle is unknown, malformed or from a released slot."""

    pass


class ConnectTimeoutError(RcpError):
    """Raised when connection establishment exceeds its timeout."""

    kind = ErrorKind.TIMEOUT


class ConnectionRefusedByHostError(RcpError):
    """Raised when the host refuses the link or the handshake."""

    kind = ErrorKind.REFUSED


class HostUnreachableError(RcpError):
    """Raised when the host cannot be resolved or reached."""

    kind = ErrorKind.UNREACHABLE


class AuthenticationFailedError(RcpError):
    """Raised when the host rejects the credentials."""

    kind = ErrorKind.AUTHENTICATION_FAILED


class SessionExpiredError(RcpError):
    """Raised when a session was logged out or lost its connection."""

    kind = ErrorKind.SESSION_EXPIRED


class ProtocolError(RcpError):
    """Raised when the host sends a malformed or unexpected reply."""

    kind = ErrorKind.PROTOCOL_ERROR


class NotFoundError(RcpError):
    """Raised when the requested application does not exist."""

    kind = ErrorKind.NOT_FOUND


class LaunchRejectedError(RcpError):
    """Raised when the host declines to launch an application."""

    kind = ErrorKind.LAUNCH_REJECTED


class TransportError(RcpError):
    """Raised for generic I/O failures on an established link."""

    kind = ErrorKind.TRANSPORT_ERROR


class ConnectionLostError(TransportError):
    """Raised when the link drops while a request is in flight."""

    pass


class RequestTimeoutError(TransportError):
    """Raised when no reply arrives within the request timeout."""

    pass
