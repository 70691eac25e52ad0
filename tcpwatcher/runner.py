"""Core execution workflow for TCPWatcher."""

from __future__ import annotations

import datetime as dt
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .diff import diff_projects, should_commit
from .errors import DispatchError, FetchError, WatcherError
from .models import HOME_PATH, TCP_BASE, RunState, RunSummary, Snapshot
from .notifications import Notifier, render_notification
from .scraper import scrape_projects
from .store import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_RUN_SECONDS = 300

Fetcher = Callable[..., Snapshot]


@dataclass
class TCPWatcherRunner:
    """Coordinates fetch, diff, notify, and commit steps."""

    store: SnapshotStore
    notifier: Optional[Notifier]
    base_url: str = TCP_BASE
    fetcher: Fetcher = field(default_factory=lambda: scrape_projects)
    max_run_seconds: float = DEFAULT_MAX_RUN_SECONDS
    allow_empty_snapshot: bool = False

    def run(self, dry_run: bool = False) -> RunSummary:
        """Execute a single monitoring cycle."""
        summary = RunSummary(
            executed_at=dt.datetime.now(dt.timezone.utc).isoformat(),
            dry_run=dry_run,
        )
        logger.info("Starting monitor cycle for %s", self.base_url)
        try:
            self._run(summary)
        except WatcherError as exc:
            self._transition(summary, RunState.FAILED)
            summary.error = str(exc)
            exc.summary = summary
            logger.error("Run failed: %s", exc)
            raise
        return summary

    def _run(self, summary: RunSummary) -> None:
        logger.debug("Run state %s", summary.state.name)
        deadline = time.monotonic() + self.max_run_seconds
        try:
            current = self.fetcher(self.base_url, deadline=deadline)
        except FetchError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise FetchError(f"Fetching projects failed: {exc}", exc) from exc
        logger.info("Fetched %d project(s) from %s", len(current), self.base_url)

        self._transition(summary, RunState.DIFFING)
        previous = self.store.load()
        if not current and previous and not self.allow_empty_snapshot:
            raise FetchError(
                f"Fetched snapshot is empty while history holds {len(previous)} project(s); "
                "refusing to report every project as removed"
            )
        diff = diff_projects(previous, current)
        summary.diff = diff
        logger.info(
            "Detected %d addition(s), %d removal(s), %d unchanged",
            len(diff.added),
            len(diff.removed),
            len(diff.unchanged),
        )

        if not should_commit(diff):
            self._transition(summary, RunState.IDLE)
            logger.info("No changes detected.")
            self._transition(summary, RunState.DONE)
            return

        portal_url = self.base_url.rstrip("/") + HOME_PATH
        payload = render_notification(diff, portal_url=portal_url)
        if summary.dry_run:
            logger.info("[DRY RUN] Would send: %s", payload.subject)
            logger.debug("[DRY RUN] Body:\n%s", payload.text_body)
            self._transition(summary, RunState.DONE)
            return

        self._transition(summary, RunState.NOTIFYING)
        if self.notifier is None:
            raise DispatchError("Changes detected but no notifier is configured")
        try:
            self.notifier.send(payload)
        except DispatchError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise DispatchError(f"Notification failed: {exc}", exc) from exc
        summary.notified = True

        self._transition(summary, RunState.COMMITTING)
        self.store.save(current)
        summary.committed = True
        self._transition(summary, RunState.DONE)

    @staticmethod
    def _transition(summary: RunSummary, state: RunState) -> None:
        logger.debug("Run state %s -> %s", summary.state.name, state.name)
        summary.state = state
