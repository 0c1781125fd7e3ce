"""Reporting abstractions for the RCP command-line tool.

Contains:
- Report ABC: Base class for all reports
- OperationReport: Report of one operation's envelope
- CatalogReport: Report of a fetched application catalog
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from boundary.envelope import ResultEnvelope


class Report(ABC):
    """Abstract base class for console reports."""

    @abstractmethod
    def print(self) -> None:
        """Print the report to stdout."""
        pass

    @abstractmethod
    def success(self) -> bool:
        """Return True if the report indicates success."""
        pass


@dataclass
class OperationReport(Report):
    """Outcome of one boundary operation.

    The report copies what it needs out of the envelope, so the envelope can
    be released right after the report is built.
    """

    operation: str
    ok: bool
    detail: str

    @classmethod
    def from_envelope(cls, operation: str, envelope: ResultEnvelope) -> OperationReport:
        if envelope.success:
            return cls(operation=operation, ok=True, detail=envelope.data or "")
        return cls(operation=operation, ok=False, detail=envelope.error_message or "")

    def print(self) -> None:
        """Print the operation report."""
        if self.ok:
            suffix = f" ({self.detail})" if self.detail else ""
            print(f"{self.operation}: SUCCESS{suffix}")
        else:
            print(f"{self.operation}: FAILED ({self.detail})")

    def success(self) -> bool:
        return self.ok


@dataclass
class CatalogReport(Report):
    """Application catalog fetched with listApps."""

    apps_json: str

    def print(self) -> None:
        """Print one line per application."""
        apps = json.loads(self.apps_json)
        if not apps:
            print("Catalog: no applications available")
            return
        print(f"Catalog: {len(apps)} application(s)")
        for app in apps:
            description = f" - {app['description']}" if app.get("description") else ""
            print(f"  {app['id']}: {app['name']}{description}")

    def success(self) -> bool:
        return True
