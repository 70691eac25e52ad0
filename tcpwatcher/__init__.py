"""TCPWatcher package initialization."""

from .diff import diff_projects, should_commit
from .errors import DispatchError, FetchError, StoreError, WatcherError
from .models import (
    DiffResult,
    NotificationPayload,
    ProjectRecord,
    RunState,
    RunSummary,
    Snapshot,
)
from .notifications import EmailNotifier, render_notification
from .runner import TCPWatcherRunner
from .scraper import scrape_projects
from .store import SnapshotStore

__all__ = [
    "DiffResult",
    "DispatchError",
    "EmailNotifier",
    "FetchError",
    "NotificationPayload",
    "ProjectRecord",
    "RunState",
    "RunSummary",
    "Snapshot",
    "SnapshotStore",
    "StoreError",
    "TCPWatcherRunner",
    "WatcherError",
    "diff_projects",
    "render_notification",
    "scrape_projects",
    "should_commit",
]
