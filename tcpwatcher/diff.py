"""Diff utilities for comparing project snapshots."""

from __future__ import annotations

from typing import List

from .models import DiffResult, ProjectRecord, Snapshot


def diff_projects(previous: Snapshot, current: Snapshot) -> DiffResult:
    """Compute added, removed, and unchanged projects.

    Identity is the snapshot key alone. Removed records are taken from the
    previous snapshot because the current one no longer has them.
    """
    added: List[ProjectRecord] = []
    unchanged: List[ProjectRecord] = []
    for project_id, record in current.items():
        if project_id in previous:
            unchanged.append(record)
        else:
            added.append(record)

    removed = [
        record for project_id, record in previous.items()
        if project_id not in current
    ]

    return DiffResult(added=added, removed=removed, unchanged=unchanged)


def should_commit(diff: DiffResult) -> bool:
    """Return True when the run must notify and then persist."""
    return diff.has_changes
