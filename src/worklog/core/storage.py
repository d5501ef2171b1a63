"""CSV storage manager with atomic operations and a ledger-wide lock.

The storage layer offers keyed CRUD, a started_at range scan and simple
equality filters. It does not enforce references between record kinds;
that is left to the tracker and catalog.
"""

import csv
import json
import logging
import os
import shutil
import sys
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional

from worklog.core.models import Artifact, EntryArtifact, Folder, Task, TimeEntry

logger = logging.getLogger(__name__)

TASK_FIELDS = [
    "id",
    "folder_id",
    "name",
    "description",
    "color",
    "archived",
    "created_at",
    "updated_at",
]
FOLDER_FIELDS = ["id", "name", "color", "icon", "sort_order", "created_at", "updated_at"]
ENTRY_FIELDS = ["id", "task_id", "started_at", "ended_at", "memo", "created_at", "updated_at"]
ARTIFACT_FIELDS = ["id", "name", "artifact_type", "reference", "metadata", "created_at"]
LINK_FIELDS = ["entry_id", "artifact_id"]

TABLES = {
    "tasks": ("tasks.csv", TASK_FIELDS),
    "folders": ("folders.csv", FOLDER_FIELDS),
    "entries": ("entries.csv", ENTRY_FIELDS),
    "artifacts": ("artifacts.csv", ARTIFACT_FIELDS),
    "entry_artifacts": ("entry_artifacts.csv", LINK_FIELDS),
}

# Tables cleared by a replace-mode import. Folders are not part of the bundle.
LEDGER_TABLES = ("tasks", "artifacts", "entries", "entry_artifacts")


def _lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        mode = msvcrt.LK_LOCK if exclusive else msvcrt.LK_RLCK
        msvcrt.locking(file_obj.fileno(), mode, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def _unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way.

    Args:
        file_obj: File object to unlock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)


class _LedgerLock:
    """Re-entrant lock serializing ledger mutations for one data directory.

    Threads in this process contend on the RLock; other processes contend on
    an exclusive lock of ``.ledger.lock``, taken only at the outermost level.
    """

    def __init__(self, lock_path: Path):
        self.lock_path = lock_path
        self._rlock = threading.RLock()
        self._depth = 0
        self._handle: Any = None

    def acquire(self) -> None:
        self._rlock.acquire()
        if self._depth == 0:
            try:
                handle = open(self.lock_path, "a+", encoding="utf-8")
                handle.seek(0)
                _lock_file(handle, exclusive=True)
            except Exception:
                self._rlock.release()
                raise
            self._handle = handle
        self._depth += 1

    def release(self) -> None:
        self._depth -= 1
        if self._depth == 0 and self._handle is not None:
            _unlock_file(self._handle)
            self._handle.close()
            self._handle = None
        self._rlock.release()


_LEDGER_LOCKS: dict[str, _LedgerLock] = {}
_LEDGER_LOCKS_GUARD = threading.Lock()


def _ledger_lock_for(data_dir: Path) -> _LedgerLock:
    key = str(data_dir.resolve())
    with _LEDGER_LOCKS_GUARD:
        if key not in _LEDGER_LOCKS:
            _LEDGER_LOCKS[key] = _LedgerLock(data_dir / ".ledger.lock")
        return _LEDGER_LOCKS[key]


class StorageManager:
    """Manages CSV storage for the ledger with atomic operations."""

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize storage manager.

        Args:
            data_dir: Custom data directory. Defaults to ~/.worklog/data
        """
        if data_dir is None:
            data_dir = Path.home() / ".worklog" / "data"

        self.data_dir = Path(data_dir)
        self.state_dir = self.data_dir / ".state"
        self.backup_dir = self.data_dir / "backups"
        self.running_file = self.state_dir / "running.json"
        self.files = {kind: self.data_dir / name for kind, (name, _) in TABLES.items()}

        # Ensure directories exist
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.backup_dir.mkdir(parents=True, exist_ok=True)

        self._lock = _ledger_lock_for(self.data_dir)

        # Initialize CSV files if they don't exist
        self._initialize_files()

    def _initialize_files(self) -> None:
        """Create CSV files with headers if they don't exist."""
        for kind, (_, fieldnames) in TABLES.items():
            if not self.files[kind].exists():
                self._write_csv_atomic(self.files[kind], fieldnames, [])

    def _write_csv_atomic(
        self, file_path: Path, fieldnames: list[str], rows: Iterable[dict[str, Any]]
    ) -> None:
        """Write CSV file atomically using temporary file and rename.

        Args:
            file_path: Target file path
            fieldnames: CSV field names
            rows: Row dictionaries; keys outside ``fieldnames`` are dropped
        """
        temp_file = file_path.with_suffix(".tmp")

        try:
            with open(temp_file, "w", newline="", encoding="utf-8") as f:
                _lock_file(f, exclusive=True)

                writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
                writer.writeheader()
                writer.writerows(rows)

                f.flush()
                os.fsync(f.fileno())

                _unlock_file(f)

            temp_file.replace(file_path)

        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise e

    def _read_csv(self, file_path: Path) -> list[dict[str, Any]]:
        """Read CSV file with locking.

        Args:
            file_path: CSV file to read

        Returns:
            List of row dictionaries
        """
        if not file_path.exists():
            return []

        with open(file_path, encoding="utf-8", newline="") as f:
            _lock_file(f, exclusive=False)

            try:
                reader = csv.DictReader(f)
                rows = list(reader)
            finally:
                _unlock_file(f)

        return rows

    def _rows(self, kind: str) -> list[dict[str, Any]]:
        return self._read_csv(self.files[kind])

    def _write(self, kind: str, rows: Iterable[dict[str, Any]]) -> None:
        self._write_csv_atomic(self.files[kind], TABLES[kind][1], rows)

    def _upsert(self, kind: str, row: dict[str, Any]) -> None:
        """Replace the row with the same id, or append it."""
        rows = self._rows(kind)
        for i, existing in enumerate(rows):
            if existing["id"] == row["id"]:
                rows[i] = row
                break
        else:
            rows.append(row)
        self._write(kind, rows)

    def _append(self, kind: str, new_rows: list[dict[str, Any]]) -> None:
        if not new_rows:
            return
        rows = self._rows(kind)
        rows.extend(new_rows)
        self._write(kind, rows)

    def _delete_where(self, kind: str, predicate: Callable[[dict[str, Any]], bool]) -> int:
        """Delete rows matching ``predicate``.

        Returns:
            Number of rows removed
        """
        rows = self._rows(kind)
        kept = [r for r in rows if not predicate(r)]
        removed = len(rows) - len(kept)
        if removed:
            self._write(kind, kept)
        return removed

    def _find(self, kind: str, record_id: str) -> Optional[dict[str, Any]]:
        for row in self._rows(kind):
            if row["id"] == record_id:
                return row
        return None

    # Locking and transactions

    @contextmanager
    def ledger_lock(self) -> Iterator["StorageManager"]:
        """Serialize ledger mutations across threads and processes."""
        self._lock.acquire()
        try:
            yield self
        finally:
            self._lock.release()

    @contextmanager
    def transaction(self) -> Iterator["StorageManager"]:
        """Run a block of writes as one unit.

        All data files are snapshotted first and restored if the block raises.
        """
        with self.ledger_lock():
            snapshot = self.backup(label=f".txn-{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}")
            try:
                yield self
            except BaseException:
                logger.warning("Transaction failed, restoring ledger snapshot")
                self._restore(snapshot)
                raise
            finally:
                shutil.rmtree(snapshot, ignore_errors=True)

    def backup(self, label: Optional[str] = None) -> Path:
        """Create backup of all data files.

        Args:
            label: Optional label for backup. Defaults to timestamp

        Returns:
            Path to backup directory
        """
        if label is None:
            label = datetime.now().strftime("%Y%m%d_%H%M%S")

        backup_path = self.backup_dir / label
        backup_path.mkdir(parents=True, exist_ok=True)

        for file in [*self.files.values(), self.running_file]:
            if file.exists():
                shutil.copy2(file, backup_path / file.name)

        logger.debug(f"Backup written to {backup_path}")
        return backup_path

    def _restore(self, backup_path: Path) -> None:
        for file in [*self.files.values(), self.running_file]:
            source = backup_path / file.name
            if source.exists():
                temp_file = file.with_suffix(".restore")
                shutil.copy2(source, temp_file)
                temp_file.replace(file)
            elif file.exists():
                file.unlink()

    def clear_ledger(self) -> None:
        """Empty tasks, artifacts, entries and links. Folders are kept."""
        for kind in LEDGER_TABLES:
            self._write(kind, [])
        self.set_running_entry_id(None)

    # Running entry pointer

    def get_running_entry_id(self) -> Optional[str]:
        """Read the running-entry pointer.

        Returns:
            Entry id, or None when no entry is running

        Raises:
            FileNotFoundError: If the pointer has never been written
        """
        with open(self.running_file, encoding="utf-8") as f:
            data = json.load(f)
        entry_id: Optional[str] = data.get("entry_id")
        return entry_id

    def set_running_entry_id(self, entry_id: Optional[str]) -> None:
        """Persist the running-entry pointer atomically."""
        temp_file = self.running_file.with_suffix(".tmp")
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump({"entry_id": entry_id}, f)
            f.flush()
            os.fsync(f.fileno())
        temp_file.replace(self.running_file)

    # Task operations

    def load_tasks(self) -> list[Task]:
        """Load all tasks."""
        return [Task.from_dict(row) for row in self._rows("tasks")]

    def get_task(self, task_id: str) -> Optional[Task]:
        """Get task by ID, or None if not found."""
        row = self._find("tasks", task_id)
        return Task.from_dict(row) if row else None

    def save_task(self, task: Task) -> None:
        """Save or update a task. Timestamps are written as given."""
        self._upsert("tasks", task.to_dict())

    def insert_tasks(self, tasks: list[Task]) -> None:
        """Append tasks without checking for existing ids."""
        self._append("tasks", [t.to_dict() for t in tasks])

    def delete_task(self, task_id: str) -> bool:
        """Delete a task. Returns False if not found."""
        return self._delete_where("tasks", lambda r: r["id"] == task_id) > 0

    def clear_folder_references(self, folder_id: str, updated_at: datetime) -> int:
        """Set folder_id to null on every task filed under ``folder_id``.

        Returns:
            Number of tasks updated
        """
        rows = self._rows("tasks")
        count = 0
        for row in rows:
            if row["folder_id"] == folder_id:
                row["folder_id"] = ""
                row["updated_at"] = updated_at.isoformat()
                count += 1
        if count:
            self._write("tasks", rows)
        return count

    # Folder operations

    def load_folders(self) -> list[Folder]:
        """Load all folders."""
        return [Folder.from_dict(row) for row in self._rows("folders")]

    def get_folder(self, folder_id: str) -> Optional[Folder]:
        """Get folder by ID, or None if not found."""
        row = self._find("folders", folder_id)
        return Folder.from_dict(row) if row else None

    def save_folder(self, folder: Folder) -> None:
        """Save or update a folder."""
        self._upsert("folders", folder.to_dict())

    def delete_folder(self, folder_id: str) -> bool:
        """Delete a folder. Returns False if not found."""
        return self._delete_where("folders", lambda r: r["id"] == folder_id) > 0

    # Entry operations

    def load_entries(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        task_id: Optional[str] = None,
    ) -> list[TimeEntry]:
        """Load entries, most recent first.

        Args:
            start: Only entries with started_at >= start
            end: Only entries with started_at < end
            task_id: Only entries assigned to this task

        Returns:
            List of TimeEntry objects sorted by started_at descending
        """
        entries = []
        for row in self._rows("entries"):
            if task_id is not None and row["task_id"] != task_id:
                continue
            entry = TimeEntry.from_dict(row)
            if start is not None and entry.started_at < start:
                continue
            if end is not None and entry.started_at >= end:
                continue
            entries.append(entry)

        entries.sort(key=lambda e: e.started_at, reverse=True)
        return entries

    def get_entry(self, entry_id: str) -> Optional[TimeEntry]:
        """Get entry by ID, or None if not found."""
        row = self._find("entries", entry_id)
        return TimeEntry.from_dict(row) if row else None

    def find_open_entries(self) -> list[TimeEntry]:
        """Scan for entries without an end time."""
        return [TimeEntry.from_dict(r) for r in self._rows("entries") if not r["ended_at"]]

    def save_entry(self, entry: TimeEntry) -> None:
        """Save or update an entry. Timestamps are written as given."""
        self._upsert("entries", entry.to_dict())

    def insert_entries(self, entries: list[TimeEntry]) -> None:
        """Append entries without checking for existing ids."""
        self._append("entries", [e.to_dict() for e in entries])

    def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry by ID. Returns False if not found."""
        return self._delete_where("entries", lambda r: r["id"] == entry_id) > 0

    def unassign_task(self, task_id: str, updated_at: datetime) -> int:
        """Mark every entry of ``task_id`` as unclassified.

        Returns:
            Number of entries updated
        """
        rows = self._rows("entries")
        count = 0
        for row in rows:
            if row["task_id"] == task_id:
                row["task_id"] = ""
                row["updated_at"] = updated_at.isoformat()
                count += 1
        if count:
            self._write("entries", rows)
        return count

    # Artifact operations

    def load_artifacts(self) -> list[Artifact]:
        """Load all artifacts."""
        return [Artifact.from_dict(row) for row in self._rows("artifacts")]

    def get_artifact(self, artifact_id: str) -> Optional[Artifact]:
        """Get artifact by ID, or None if not found."""
        row = self._find("artifacts", artifact_id)
        return Artifact.from_dict(row) if row else None

    def save_artifact(self, artifact: Artifact) -> None:
        """Save or update an artifact."""
        self._upsert("artifacts", artifact.to_row())

    def insert_artifacts(self, artifacts: list[Artifact]) -> None:
        """Append artifacts without checking for existing ids."""
        self._append("artifacts", [a.to_row() for a in artifacts])

    def delete_artifact(self, artifact_id: str) -> bool:
        """Delete an artifact. Returns False if not found."""
        return self._delete_where("artifacts", lambda r: r["id"] == artifact_id) > 0

    # Entry/artifact link operations

    def load_links(
        self, entry_id: Optional[str] = None, artifact_id: Optional[str] = None
    ) -> list[EntryArtifact]:
        """Load links, optionally filtered by either end."""
        links = []
        for row in self._rows("entry_artifacts"):
            if entry_id is not None and row["entry_id"] != entry_id:
                continue
            if artifact_id is not None and row["artifact_id"] != artifact_id:
                continue
            links.append(EntryArtifact.from_dict(row))
        return links

    def add_link(self, link: EntryArtifact) -> bool:
        """Add a link. Returns False if it already existed."""
        if link in self.load_links(entry_id=link.entry_id):
            return False
        self._append("entry_artifacts", [link.to_dict()])
        return True

    def insert_links(self, links: list[EntryArtifact]) -> None:
        """Append links without checking for duplicates."""
        self._append("entry_artifacts", [link.to_dict() for link in links])

    def remove_link(self, link: EntryArtifact) -> bool:
        """Remove a single link. Returns False if not found."""
        return (
            self._delete_where(
                "entry_artifacts",
                lambda r: r["entry_id"] == link.entry_id and r["artifact_id"] == link.artifact_id,
            )
            > 0
        )

    def delete_links(
        self, entry_id: Optional[str] = None, artifact_id: Optional[str] = None
    ) -> int:
        """Remove every link touching an entry or an artifact.

        Returns:
            Number of links removed
        """
        if entry_id is None and artifact_id is None:
            raise ValueError("delete_links requires entry_id or artifact_id")
        return self._delete_where(
            "entry_artifacts",
            lambda r: (entry_id is not None and r["entry_id"] == entry_id)
            or (artifact_id is not None and r["artifact_id"] == artifact_id),
        )
