"""Core data models for TCPWatcher."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import StoreError

TCP_BASE = "https://edraw.tcpharyana.gov.in"
HOME_PATH = "/tcp-dms/home"
MISSING_LINK = "N/A"

_REQUIRED_FIELDS = ("id", "name", "startDate", "endDate", "drawLink", "brochureLink")
_PROJECT_ID = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class ProjectRecord:
    """Represents a housing-scheme listing scraped from the TCP portal."""

    project_id: str
    name: str
    start_date: str
    end_date: str
    draw_link: str
    brochure_link: str
    full_html: Optional[str] = field(default=None, compare=False, repr=False)

    @property
    def display_name(self) -> str:
        return self.name.strip() or "Unknown"

    def to_json(self) -> Dict[str, str]:
        data = {
            "id": self.project_id,
            "name": self.name,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "drawLink": self.draw_link,
            "brochureLink": self.brochure_link,
        }
        if self.full_html is not None:
            data["fullHtml"] = self.full_html
        return data

    @classmethod
    def from_json(cls, key: str, raw: Any) -> "ProjectRecord":
        """Build a record from its persisted form, validating every field."""
        if not isinstance(raw, dict):
            raise StoreError(f"Entry {key!r} is not an object")
        if not is_valid_project_id(key):
            raise StoreError(f"Entry key {key!r} is not a numeric project id")

        values = dict(raw)
        values.setdefault("id", key)
        for name in _REQUIRED_FIELDS:
            if name not in values:
                raise StoreError(f"Entry {key!r} is missing field {name!r}")
            if not isinstance(values[name], str):
                raise StoreError(f"Entry {key!r} has non-string field {name!r}")
        if values["id"] != key:
            raise StoreError(
                f"Entry {key!r} carries mismatched id {values['id']!r}"
            )

        full_html = values.get("fullHtml")
        if full_html is not None and not isinstance(full_html, str):
            raise StoreError(f"Entry {key!r} has non-string field 'fullHtml'")

        return cls(
            project_id=key,
            name=values["name"],
            start_date=values["startDate"],
            end_date=values["endDate"],
            draw_link=values["drawLink"],
            brochure_link=values["brochureLink"],
            full_html=full_html,
        )


Snapshot = Dict[str, ProjectRecord]


def is_valid_project_id(project_id: str) -> bool:
    return bool(_PROJECT_ID.fullmatch(project_id))


def project_sort_key(project_id: str) -> Tuple[int, str]:
    return (int(project_id), project_id)


def ordered(records: List[ProjectRecord]) -> List[ProjectRecord]:
    return sorted(records, key=lambda record: project_sort_key(record.project_id))


@dataclass
class DiffResult:
    """Holds the result of comparing two snapshots."""

    added: List[ProjectRecord]
    removed: List[ProjectRecord]
    unchanged: List[ProjectRecord]

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)


@dataclass(frozen=True)
class NotificationPayload:
    """Rendered message ready to hand to a transport."""

    subject: str
    html_body: str
    text_body: str
    recipients: Tuple[str, ...] = ()


class RunState(enum.Enum):
    FETCHING = "fetching"
    DIFFING = "diffing"
    IDLE = "idle"
    NOTIFYING = "notifying"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunSummary:
    """Aggregated result returned by a monitoring cycle."""

    executed_at: str
    state: RunState = RunState.FETCHING
    diff: Optional[DiffResult] = None
    dry_run: bool = False
    notified: bool = False
    committed: bool = False
    error: Optional[str] = None
