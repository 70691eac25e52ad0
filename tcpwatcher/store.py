"""JSON-backed snapshot persistence helpers."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from openpyxl import Workbook

from .errors import StoreError
from .models import ProjectRecord, Snapshot, ordered

logger = logging.getLogger(__name__)

EXPORT_HEADERS = (
    "project_id",
    "name",
    "start_date",
    "end_date",
    "draw_link",
    "brochure_link",
)


def resolve_history_path(history_file: str) -> Path:
    """Translate a HISTORY_FILE setting into a filesystem path."""
    if not history_file:
        raise ValueError("HISTORY_FILE must not be empty")

    path = Path(history_file).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path

    return path.resolve()


@dataclass
class SnapshotStore:
    """Reads and atomically rewrites the project history file."""

    path: Path

    def load(self) -> Snapshot:
        """Return the persisted snapshot, or an empty one on first run."""
        if not self.path.exists():
            logger.info("No history at %s; starting from an empty snapshot", self.path)
            return {}

        try:
            raw_text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Could not read history file {self.path}: {exc}", exc) from exc
        except UnicodeDecodeError as exc:
            raise StoreError(f"History file {self.path} is not valid UTF-8: {exc}", exc) from exc

        try:
            data = json.loads(raw_text)
        except (ValueError, RecursionError) as exc:
            raise StoreError(f"History file {self.path} is not valid JSON: {exc}", exc) from exc

        if not isinstance(data, dict):
            raise StoreError(
                f"History file {self.path} must contain a JSON object, got {type(data).__name__}"
            )

        snapshot: Snapshot = {}
        for key, raw in data.items():
            snapshot[key] = ProjectRecord.from_json(key, raw)

        logger.info("Loaded %d project(s) from %s", len(snapshot), self.path)
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        """Replace the history file with the given snapshot."""
        payload = {
            record.project_id: record.to_json()
            for record in ordered(list(snapshot.values()))
        }
        text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

        temp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                suffix=".json",
                prefix=".history_",
                dir=self.path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, self.path)
        except OSError as exc:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)
            raise StoreError(f"Could not write history file {self.path}: {exc}", exc) from exc

        logger.info("Saved %d project(s) to %s", len(snapshot), self.path)

    def export_to_xlsx(self, snapshot: Snapshot, export_path: Path) -> None:
        """Write the snapshot to a single-sheet workbook."""
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = "projects"
        worksheet.append(list(EXPORT_HEADERS))
        for record in ordered(list(snapshot.values())):
            worksheet.append(
                [
                    record.project_id,
                    record.name,
                    record.start_date,
                    record.end_date,
                    record.draw_link,
                    record.brochure_link,
                ]
            )

        export_path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(export_path)
        logger.info("Exported %d project(s) to %s", len(snapshot), export_path)
