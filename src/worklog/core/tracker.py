"""Entry lifecycle: the single-running-entry invariant and entry CRUD."""

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from worklog.core.errors import AlreadyClosedError, ConflictError, NotFoundError, ValidationError
from worklog.core.models import UNSET, Artifact, EntryDetails, Task, TimeEntry
from worklog.core.storage import StorageManager
from worklog.core.timeutil import to_utc, utc_now

logger = logging.getLogger(__name__)


class TimeTracker:
    """Core time tracking functionality.

    Every mutation runs under the storage ledger lock, so ``start``, ``stop``,
    ``update`` and ``delete`` are serialized with respect to each other.
    """

    def __init__(
        self,
        storage: Optional[StorageManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize time tracker.

        Args:
            storage: Storage manager instance. Creates default if None.
            clock: Callable returning the current aware instant. Defaults to UTC now.
        """
        self.storage = storage or StorageManager()
        self.clock = clock or utc_now

    # Running entry pointer

    def get_running(self) -> Optional[TimeEntry]:
        """Get the running entry, if any.

        Reads the persisted pointer; a missing or stale pointer is rebuilt
        from a scan of the ledger.
        """
        try:
            entry_id = self.storage.get_running_entry_id()
        except (OSError, ValueError):
            return self.rebuild_running_pointer()

        if entry_id is None:
            return None

        entry = self.storage.get_entry(entry_id)
        if entry is not None and entry.is_running:
            return entry
        return self.rebuild_running_pointer()

    def rebuild_running_pointer(self) -> Optional[TimeEntry]:
        """Recompute the running-entry pointer from the ledger.

        Returns:
            The running entry, or None

        Raises:
            ConflictError: If the ledger holds more than one open entry
        """
        with self.storage.ledger_lock():
            open_entries = self.storage.find_open_entries()
            if len(open_entries) > 1:
                ids = ", ".join(e.id for e in open_entries)
                raise ConflictError(f"Ledger has more than one running entry: {ids}")
            running = open_entries[0] if open_entries else None
            self.storage.set_running_entry_id(running.id if running else None)
            logger.debug(f"Running pointer rebuilt: {running.id if running else None}")
            return running

    # Lifecycle

    def start(self, task_id: Optional[str] = None, memo: Optional[str] = None) -> TimeEntry:
        """Start tracking a new entry.

        Args:
            task_id: Task to assign (soft reference, not checked)
            memo: Free-form note

        Returns:
            Created entry

        Raises:
            ConflictError: If another entry is already running
        """
        with self.storage.ledger_lock():
            current = self.get_running()
            if current:
                raise ConflictError(
                    f"Entry already running: {current.id}. Stop it before starting another."
                )

            now = self.clock()
            entry = TimeEntry(
                task_id=task_id,
                started_at=now,
                memo=memo,
                created_at=now,
                updated_at=now,
            )
            self.storage.save_entry(entry)
            self.storage.set_running_entry_id(entry.id)

        logger.info(f"Started entry {entry.id} (task={task_id})")
        return entry

    def stop(self, entry_id: Optional[str] = None, memo: Optional[str] = None) -> TimeEntry:
        """Stop the running entry.

        Args:
            entry_id: Entry to stop. Defaults to the running entry.
            memo: Replaces the memo when given

        Returns:
            Stopped entry

        Raises:
            NotFoundError: If the entry does not exist or nothing is running
            AlreadyClosedError: If the entry has already been stopped
        """
        with self.storage.ledger_lock():
            if entry_id is None:
                entry = self.get_running()
                if entry is None:
                    raise NotFoundError("No entry is currently running")
            else:
                entry = self._require_entry(entry_id)

            if not entry.is_running:
                raise AlreadyClosedError(f"Entry {entry.id} has already been stopped")

            now = self.clock()
            entry.ended_at = now
            if memo is not None:
                entry.memo = memo
            entry.updated_at = now

            self.storage.save_entry(entry)
            self.storage.set_running_entry_id(None)

        logger.info(f"Stopped entry {entry.id} after {entry.duration_seconds}s")
        return entry

    def add_entry(
        self,
        started_at: datetime,
        ended_at: datetime,
        task_id: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> TimeEntry:
        """Add a completed entry after the fact.

        Raises:
            ValidationError: If ended_at is not after started_at
        """
        started_at = to_utc(started_at)
        ended_at = to_utc(ended_at)
        if ended_at <= started_at:
            raise ValidationError("ended_at must be after started_at")

        now = self.clock()
        entry = TimeEntry(
            task_id=task_id,
            started_at=started_at,
            ended_at=ended_at,
            memo=memo,
            created_at=now,
            updated_at=now,
        )
        with self.storage.ledger_lock():
            self.storage.save_entry(entry)

        logger.info(f"Added entry {entry.id} ({entry.duration_seconds}s)")
        return entry

    def update(
        self,
        entry_id: str,
        task_id: Any = UNSET,
        started_at: Any = UNSET,
        ended_at: Any = UNSET,
        memo: Any = UNSET,
    ) -> TimeEntry:
        """Edit an existing entry.

        Arguments left as UNSET are unchanged; None clears task_id or memo.
        Setting ended_at on the running entry stops it.

        Returns:
            Updated entry

        Raises:
            NotFoundError: If entry not found
            ValidationError: If the edit would reopen a closed entry or end it
                before it started
        """
        with self.storage.ledger_lock():
            entry = self._require_entry(entry_id)
            was_running = entry.is_running

            if task_id is not UNSET:
                entry.task_id = task_id
            if started_at is not UNSET:
                if started_at is None:
                    raise ValidationError("started_at cannot be cleared")
                entry.started_at = to_utc(started_at)
            if ended_at is not UNSET:
                if ended_at is None and not was_running:
                    raise ValidationError(f"Entry {entry_id} is closed and cannot be reopened")
                entry.ended_at = to_utc(ended_at) if ended_at is not None else None
            if memo is not UNSET:
                entry.memo = memo

            if entry.ended_at is not None and entry.ended_at < entry.started_at:
                raise ValidationError("ended_at must not be before started_at")

            entry.updated_at = self.clock()
            self.storage.save_entry(entry)

            if was_running and not entry.is_running:
                self.storage.set_running_entry_id(None)
                logger.info(f"Entry {entry_id} closed by edit")

        logger.debug(f"Updated entry {entry_id}")
        return entry

    def delete(self, entry_id: str) -> None:
        """Delete an entry and its artifact links.

        Raises:
            NotFoundError: If entry not found
        """
        with self.storage.ledger_lock():
            entry = self._require_entry(entry_id)
            removed_links = self.storage.delete_links(entry_id=entry_id)
            self.storage.delete_entry(entry_id)
            if entry.is_running:
                self.storage.set_running_entry_id(None)

        logger.info(f"Deleted entry {entry_id} ({removed_links} artifact links removed)")

    # Queries

    def get_entry(self, entry_id: str) -> EntryDetails:
        """Get one entry with its task and artifacts.

        Raises:
            NotFoundError: If entry not found
        """
        entry = self._require_entry(entry_id)
        return self._details([entry])[0]

    def list_entries(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        task_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[EntryDetails]:
        """Get filtered list of entries, most recent first.

        Args:
            start: Entries starting at or after this instant
            end: Entries starting at or before this instant
            task_id: Filter by task
            limit: Maximum number of entries to return

        Returns:
            Entries with their resolved task and artifacts
        """
        entries = self.storage.load_entries(
            start=to_utc(start) if start else None,
            task_id=task_id,
        )
        if end is not None:
            end = to_utc(end)
            entries = [e for e in entries if e.started_at <= end]
        if limit is not None:
            entries = entries[: max(0, limit)]
        return self._details(entries)

    def _require_entry(self, entry_id: str) -> TimeEntry:
        entry = self.storage.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Entry not found: {entry_id}")
        return entry

    def _details(self, entries: list[TimeEntry]) -> list[EntryDetails]:
        """Attach tasks and artifacts. Dangling references resolve to nothing."""
        if not entries:
            return []
        tasks: dict[str, Task] = {t.id: t for t in self.storage.load_tasks()}
        artifacts: dict[str, Artifact] = {a.id: a for a in self.storage.load_artifacts()}
        linked: dict[str, list[Artifact]] = {}
        for link in self.storage.load_links():
            artifact = artifacts.get(link.artifact_id)
            if artifact is not None:
                linked.setdefault(link.entry_id, []).append(artifact)

        return [
            EntryDetails(
                entry=entry,
                task=tasks.get(entry.task_id) if entry.task_id else None,
                artifacts=linked.get(entry.id, []),
            )
            for entry in entries
        ]
