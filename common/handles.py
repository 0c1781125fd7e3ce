"""Generation-checked handle table.

Connections and sessions are handed to callers as opaque strings of the form
``<kind>-<index>-<generation>``. The table owns the records; a slot's
generation is bumped when its record is removed, so a handle kept after
teardown or release no longer resolves and is reported as InvalidState
instead of reaching a recycled record.
"""

import re
import threading
from dataclasses import dataclass
from typing import Generic, TypeVar

from common.errors import StaleHandleError

T = TypeVar("T")

_HANDLE_RE = re.compile(
    r"(?P<kind>[a-z]+)-(?P<index>0|[1-9][0-9]*)-(?P<generation>[1-9][0-9]*)", re.ASCII
)


@dataclass(frozen=True)
class Handle:
    """Opaque reference to a slot in a HandleTable."""

    kind: str
    index: int
    generation: int

    def __str__(self) -> str:
        return f"{self.kind}-{self.index}-{self.generation}"

    @classmethod
    def parse(cls, text: str | None, kind: str) -> "Handle":
        """Parse a handle string, raising StaleHandleError if malformed.

        Only the canonical spelling produced by str() is accepted, so each
        handle has exactly one string form.
        """
        if not text:
            raise StaleHandleError(f"No {kind} handle given")
        match = _HANDLE_RE.fullmatch(text)
        if match is None or match.group("kind") != kind:
            raise StaleHandleError(f"Malformed {kind} handle: {text!r}")
        return cls(kind=kind, index=int(match.group("index")), generation=int(match.group("generation")))


@dataclass
class _Slot(Generic[T]):
    generation: int = 1
    record: T | None = None


class HandleTable(Generic[T]):
    """Arena of records addressed by generation-checked handles."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._slots: list[_Slot[T]] = []
        self._free: list[int] = []
        self._lock = threading.Lock()

    def insert(self, record: T) -> Handle:
        """Store a record and return its handle."""
        with self._lock:
            if self._free:
                index = self._free.pop()
            else:
                index = len(self._slots)
                self._slots.append(_Slot())
            slot = self._slots[index]
            slot.record = record
            return Handle(self.kind, index, slot.generation)

    def get(self, handle: Handle | str | None) -> T:
        """Return the record for a live handle.

        Raises StaleHandleError for unknown, malformed or released handles.
        """
        h = self._coerce(handle)
        with self._lock:
            slot = self._lookup(h)
            assert slot.record is not None
            return slot.record

    def remove(self, handle: Handle | str | None) -> T:
        """Remove and return a record, invalidating its handle."""
        h = self._coerce(handle)
        with self._lock:
            slot = self._lookup(h)
            record = slot.record
            assert record is not None
            slot.record = None
            slot.generation += 1
            self._free.append(h.index)
            return record

    def records(self) -> list[T]:
        """Snapshot of all live records."""
        with self._lock:
            return [s.record for s in self._slots if s.record is not None]

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for s in self._slots if s.record is not None)

    def _coerce(self, handle: Handle | str | None) -> Handle:
        if isinstance(handle, Handle):
            if handle.kind != self.kind:
                raise StaleHandleError(f"Expected {self.kind} handle, got {handle.kind}")
            return handle
        return Handle.parse(handle, self.kind)

    def _lookup(self, h: Handle) -> _Slot[T]:
        if not 0 <= h.index < len(self._slots):
            raise StaleHandleError(f"Unknown {self.kind} handle: {h}")
        slot = self._slots[h.index]
        if slot.generation != h.generation or slot.record is None:
            raise StaleHandleError(f"Stale {self.kind} handle: {h}")
        return slot
