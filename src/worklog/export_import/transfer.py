"""Whole-dataset export and merge/replace import.

A bundle is a JSON-compatible dictionary::

    {
        "version": "1.0",
        "exported_at": "...",
        "tasks": [...],
        "artifacts": [...],
        "time_entries": [...],
        "entry_artifacts": [...],
    }

Folders are not part of the bundle. Tasks keep their ``folder_id`` so a
bundle re-imported into the same data directory stays filed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from jsonschema import Draft7Validator  # type: ignore[import-untyped]
from jsonschema.exceptions import best_match  # type: ignore[import-untyped]

from worklog.core.errors import ConflictError, MalformedBundleError
from worklog.core.models import Artifact, EntryArtifact, Task, TimeEntry
from worklog.core.storage import StorageManager
from worklog.core.timeutil import utc_now
from worklog.core.tracker import TimeTracker

logger = logging.getLogger(__name__)

BUNDLE_VERSION = "1.0"

_RECORD_ID = {"type": "string", "minLength": 1}
_NULLABLE_STRING = {"type": ["string", "null"]}
# Same rules Catalog applies to names and colors
_NAME = {"type": "string", "pattern": r"\S"}
_NULLABLE_COLOR = {"type": ["string", "null"], "pattern": "^#[0-9A-Fa-f]{6}$"}

BUNDLE_SCHEMA = {
    "type": "object",
    "required": ["version", "tasks", "time_entries"],
    "properties": {
        "version": {"type": "string"},
        "exported_at": _NULLABLE_STRING,
        "tasks": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "name"],
                "properties": {
                    "id": _RECORD_ID,
                    "name": _NAME,
                    "folder_id": _NULLABLE_STRING,
                    "description": _NULLABLE_STRING,
                    "color": _NULLABLE_COLOR,
                    "archived": {"type": "boolean"},
                },
            },
        },
        "artifacts": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "name", "artifact_type"],
                "properties": {
                    "id": _RECORD_ID,
                    "name": _NAME,
                    "artifact_type": _NAME,
                    "reference": _NULLABLE_STRING,
                    "metadata": {"type": ["object", "null"]},
                },
            },
        },
        "time_entries": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "started_at"],
                "properties": {
                    "id": _RECORD_ID,
                    "task_id": _NULLABLE_STRING,
                    "started_at": {"type": "string"},
                    "ended_at": _NULLABLE_STRING,
                    "memo": _NULLABLE_STRING,
                    "duration_seconds": {"type": ["integer", "null"]},
                },
            },
        },
        "entry_artifacts": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["entry_id", "artifact_id"],
                "properties": {
                    "entry_id": _RECORD_ID,
                    "artifact_id": _RECORD_ID,
                },
            },
        },
    },
}


@dataclass
class ImportResult:
    """Counts of records actually inserted by an import."""

    tasks_imported: int = 0
    entries_imported: int = 0
    artifacts_imported: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "tasks_imported": self.tasks_imported,
            "entries_imported": self.entries_imported,
            "artifacts_imported": self.artifacts_imported,
        }


@dataclass
class _ParsedBundle:
    tasks: list[Task]
    artifacts: list[Artifact]
    entries: list[TimeEntry]
    links: list[EntryArtifact]


def _unique_ids(kind: str, records: list[Any]) -> None:
    seen = set()
    for record in records:
        if record.id in seen:
            raise MalformedBundleError(f"Duplicate {kind} id in bundle: {record.id}")
        seen.add(record.id)


class DatasetTransfer:
    """Export the ledger to a bundle and apply bundles to it."""

    def __init__(
        self,
        storage: Optional[StorageManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
        backup_before_import: bool = True,
    ):
        """Initialize dataset transfer.

        Args:
            storage: Storage manager instance. Creates default if None.
            clock: Callable returning the current aware instant
            backup_before_import: Keep a dated backup of the data files before
                each import
        """
        self.storage = storage or StorageManager()
        self.clock = clock or utc_now
        self.backup_before_import = backup_before_import

    def export_data(self) -> dict[str, Any]:
        """Snapshot the whole ledger as a bundle.

        Open entries export with ``ended_at`` and ``duration_seconds`` null.
        """
        tasks = sorted(self.storage.load_tasks(), key=lambda t: (t.created_at, t.id))
        artifacts = sorted(self.storage.load_artifacts(), key=lambda a: (a.created_at, a.id))
        entries = sorted(self.storage.load_entries(), key=lambda e: (e.started_at, e.id))
        links = sorted(self.storage.load_links(), key=lambda x: (x.entry_id, x.artifact_id))

        return {
            "version": BUNDLE_VERSION,
            "exported_at": self.clock().isoformat(),
            "tasks": [t.to_dict() for t in tasks],
            "artifacts": [a.to_dict() for a in artifacts],
            "time_entries": [e.to_dict() for e in entries],
            "entry_artifacts": [link.to_dict() for link in links],
        }

    def validate_bundle(self, bundle: Any) -> _ParsedBundle:
        """Check the bundle shape and parse every record.

        Raises:
            MalformedBundleError: If anything in the bundle is invalid
        """
        if not isinstance(bundle, dict):
            raise MalformedBundleError("Bundle must be an object")

        first = best_match(Draft7Validator(BUNDLE_SCHEMA).iter_errors(bundle))
        if first is not None:
            location = "/".join(str(p) for p in first.absolute_path) or "<root>"
            raise MalformedBundleError(f"Invalid bundle at {location}: {first.message}")

        try:
            parsed = _ParsedBundle(
                tasks=[Task.from_dict(d) for d in bundle["tasks"]],
                artifacts=[Artifact.from_dict(d) for d in bundle.get("artifacts") or []],
                entries=[TimeEntry.from_dict(d) for d in bundle["time_entries"]],
                links=[EntryArtifact.from_dict(d) for d in bundle.get("entry_artifacts") or []],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedBundleError(f"Invalid record in bundle: {e}")

        _unique_ids("task", parsed.tasks)
        _unique_ids("artifact", parsed.artifacts)
        _unique_ids("time entry", parsed.entries)

        for entry in parsed.entries:
            if entry.ended_at is not None and entry.ended_at < entry.started_at:
                raise MalformedBundleError(f"Entry {entry.id} ends before it starts")

        open_entries = [e for e in parsed.entries if e.is_running]
        if len(open_entries) > 1:
            raise MalformedBundleError("Bundle contains more than one running entry")

        return parsed

    def import_data(self, bundle: Any, merge: bool) -> ImportResult:
        """Apply a bundle to the ledger.

        Replace mode clears tasks, artifacts, entries and links first and
        inserts every bundle record with its id. Merge mode keeps local
        records and skips incoming records whose id already exists.

        Args:
            bundle: Bundle dictionary
            merge: True for merge mode, False for replace mode

        Returns:
            Counts of newly inserted records

        Raises:
            MalformedBundleError: If the bundle is invalid (nothing is written)
            ConflictError: If the merge would leave two running entries
        """
        parsed = self.validate_bundle(bundle)
        mode = "merge" if merge else "replace"

        with self.storage.ledger_lock():
            if self.backup_before_import:
                label = f"pre-import-{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"
                self.storage.backup(label=label)

            with self.storage.transaction():
                if merge:
                    result = self._merge(parsed)
                else:
                    result = self._replace(parsed)
                TimeTracker(self.storage).rebuild_running_pointer()

        logger.info(
            f"Imported bundle ({mode}): {result.tasks_imported} tasks, "
            f"{result.entries_imported} entries, {result.artifacts_imported} artifacts"
        )
        return result

    def _replace(self, parsed: _ParsedBundle) -> ImportResult:
        self.storage.clear_ledger()

        entry_ids = {e.id for e in parsed.entries}
        artifact_ids = {a.id for a in parsed.artifacts}
        links = self._new_links(parsed.links, entry_ids, artifact_ids, set())

        self.storage.insert_tasks(parsed.tasks)
        self.storage.insert_artifacts(parsed.artifacts)
        self.storage.insert_entries(parsed.entries)
        self.storage.insert_links(links)

        return ImportResult(
            tasks_imported=len(parsed.tasks),
            entries_imported=len(parsed.entries),
            artifacts_imported=len(parsed.artifacts),
        )

    def _merge(self, parsed: _ParsedBundle) -> ImportResult:
        local_tasks = {t.id for t in self.storage.load_tasks()}
        local_artifacts = {a.id for a in self.storage.load_artifacts()}
        local_entries = {e.id for e in self.storage.load_entries()}

        tasks = [t for t in parsed.tasks if t.id not in local_tasks]
        artifacts = [a for a in parsed.artifacts if a.id not in local_artifacts]
        entries = [e for e in parsed.entries if e.id not in local_entries]

        incoming_open = [e for e in entries if e.is_running]
        if incoming_open:
            local_open = self.storage.find_open_entries()
            if local_open:
                raise ConflictError(
                    f"Bundle entry {incoming_open[0].id} is running while local entry "
                    f"{local_open[0].id} is running"
                )

        existing_links = set(self.storage.load_links())
        links = self._new_links(
            parsed.links,
            local_entries | {e.id for e in entries},
            local_artifacts | {a.id for a in artifacts},
            existing_links,
        )

        self.storage.insert_tasks(tasks)
        self.storage.insert_artifacts(artifacts)
        self.storage.insert_entries(entries)
        self.storage.insert_links(links)

        skipped = (
            len(parsed.tasks) - len(tasks)
            + len(parsed.artifacts) - len(artifacts)
            + len(parsed.entries) - len(entries)
        )
        if skipped:
            logger.info(f"Merge skipped {skipped} records with existing ids")

        return ImportResult(
            tasks_imported=len(tasks),
            entries_imported=len(entries),
            artifacts_imported=len(artifacts),
        )

    @staticmethod
    def _new_links(
        links: list[EntryArtifact],
        entry_ids: set[str],
        artifact_ids: set[str],
        existing: set[EntryArtifact],
    ) -> list[EntryArtifact]:
        """Links whose ends both exist and that are not already present."""
        result = []
        seen = set(existing)
        for link in links:
            if link in seen:
                continue
            if link.entry_id in entry_ids and link.artifact_id in artifact_ids:
                result.append(link)
                seen.add(link)
        return result
