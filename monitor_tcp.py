"""CLI entrypoint for the TCPWatcher agent."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from tcpwatcher.errors import WatcherError
from tcpwatcher.notifications import build_notifier_from_env
from tcpwatcher.models import TCP_BASE
from tcpwatcher.runner import DEFAULT_MAX_RUN_SECONDS, TCPWatcherRunner
from tcpwatcher.store import SnapshotStore, resolve_history_path

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TCP Haryana scheme monitoring agent")
    parser.add_argument(
        "--run",
        action="store_true",
        help="execute one monitoring cycle",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="fetch and diff without sending email or updating history",
    )
    parser.add_argument(
        "--base-url",
        default=os.getenv("TCP_BASE_URL", TCP_BASE),
        help="portal base URL (overrides TCP_BASE_URL env var)",
    )
    parser.add_argument(
        "--history-file",
        default=os.getenv("HISTORY_FILE", "history.json"),
        help="snapshot file path (overrides HISTORY_FILE env var)",
    )
    parser.add_argument(
        "--max-run-seconds",
        type=float,
        default=os.getenv("MAX_RUN_SECONDS", str(DEFAULT_MAX_RUN_SECONDS)),
        help=(
            "upper bound on time spent fetching the portal; each portal request "
            "is clamped to the remaining budget, SMTP delivery keeps its own timeout"
        ),
    )
    parser.add_argument(
        "--allow-empty",
        action="store_true",
        help="accept an empty fetch and report every known project as removed",
    )
    parser.add_argument(
        "--export-xlsx",
        type=Path,
        help="write the stored snapshot to an xlsx workbook",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.run and not args.export_xlsx:
        parser.print_help()
        return 1

    try:
        store = SnapshotStore(path=resolve_history_path(args.history_file))
        if args.run:
            runner = TCPWatcherRunner(
                store=store,
                notifier=None if args.dry_run else build_notifier_from_env(),
                base_url=args.base_url,
                max_run_seconds=args.max_run_seconds,
                allow_empty_snapshot=args.allow_empty,
            )
            summary = runner.run(dry_run=args.dry_run)
            logger.info("Run finished in state %s", summary.state.name)
        if args.export_xlsx:
            store.export_to_xlsx(store.load(), args.export_xlsx)
    except (WatcherError, ValueError) as exc:
        if getattr(exc, "summary", None) is not None:
            logger.error("Run ended in state %s", exc.summary.state.name)
        print(f"CRITICAL ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
