"""ResultEnvelope: the uniform outcome of every boundary operation.

An envelope is either a success carrying a payload (possibly the empty
string) or a failure carrying an error message, never both and never
neither. All of its text lives in one buffer owned by the envelope.
Accessors return copies, so nothing handed out aliases that buffer.

Ownership passes to the caller on return. The caller releases each envelope
exactly once with release() (or rcp_free_result()). Reading any field after
release, or releasing twice, is a caller bug and raises
EnvelopeReleasedError.
"""

from __future__ import annotations

import json
from typing import Any

from common.errors import ErrorKind, RcpError

_ENCODING = "utf-8"
# Lone surrogates (e.g. from undecodable host names) are stored escaped
_ENCODE_ERRORS = "backslashreplace"
_ABSENT = -1


class EnvelopeReleasedError(RuntimeError):
    """Raised when an envelope is used or released after release()."""

    pass


class ResultEnvelope:
    """Tagged success/error/payload container with a single release."""

    __slots__ = ("_success", "_arena", "_error_len", "_data_len", "_released")

    def __init__(
        self,
        success: bool,
        error_message: str | None = None,
        data: str | None = None,
    ) -> None:
        if success and (data is None or error_message is not None):
            raise ValueError("a successful envelope carries a payload and no error")
        if not success and (error_message is None or data is not None):
            raise ValueError("a failed envelope carries an error message and no payload")

        error_bytes = error_message.encode(_ENCODING, _ENCODE_ERRORS) if error_message is not None else b""
        data_bytes = data.encode(_ENCODING, _ENCODE_ERRORS) if data is not None else b""

        self._success = success
        self._arena = bytearray(error_bytes + data_bytes)
        self._error_len = len(error_bytes) if error_message is not None else _ABSENT
        self._data_len = len(data_bytes) if data is not None else _ABSENT
        self._released = False

    @classmethod
    def ok(cls, data: str = "") -> ResultEnvelope:
        return cls(True, data=data)

    @classmethod
    def fail(cls, error_message: str) -> ResultEnvelope:
        return cls(False, error_message=error_message)

    @classmethod
    def from_error(cls, error: RcpError) -> ResultEnvelope:
        return cls.fail(error.render())

    def _check_live(self) -> None:
        if self._released:
            raise EnvelopeReleasedError("envelope used after release")

    @property
    def released(self) -> bool:
        return self._released

    @property
    def success(self) -> bool:
        self._check_live()
        return self._success

    @property
    def error_message(self) -> str | None:
        """The error text (``"<Kind>: <message>"``) of a failed envelope."""
        self._check_live()
        if self._error_len == _ABSENT:
            return None
        return self._arena[: self._error_len].decode(_ENCODING)

    @property
    def data(self) -> str | None:
        """The payload of a successful envelope."""
        self._check_live()
        if self._data_len == _ABSENT:
            return None
        start = max(self._error_len, 0)
        return self._arena[start : start + self._data_len].decode(_ENCODING)

    @property
    def error_kind(self) -> ErrorKind | None:
        """Classification parsed from the error message prefix."""
        message = self.error_message
        if message is None:
            return None
        prefix, sep, _ = message.partition(":")
        if not sep:
            return None
        try:
            return ErrorKind(prefix)
        except ValueError:
            return None

    def json(self) -> Any:
        """Parse the payload as JSON."""
        data = self.data
        if data is None:
            raise ValueError("failed envelope has no payload")
        return json.loads(data)

    def release(self) -> None:
        """Free everything the envelope owns. Call exactly once."""
        if self._released:
            raise EnvelopeReleasedError("envelope released twice")
        self._arena[:] = bytes(len(self._arena))
        self._arena.clear()
        self._error_len = _ABSENT
        self._data_len = _ABSENT
        self._released = True

    def __repr__(self) -> str:
        if self._released:
            return "ResultEnvelope(<released>)"
        if self._success:
            return f"ResultEnvelope(success=True, data={self.data!r})"
        return f"ResultEnvelope(success=False, error_message={self.error_message!r})"
