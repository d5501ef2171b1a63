"""In-memory projection of the ledger for interactive front ends.

The store never patches its own state: every mutation goes through the
service and is followed by a re-fetch of the collections it can affect.
Subscribers are called synchronously, on the calling thread, after each
state replacement, and from the ticker thread once per tick while an entry
is running.
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from typing import Any, Callable, Optional

from worklog.core.config import ConfigManager
from worklog.core.models import UNSET, Artifact, EntryDetails, Task, TimeEntry
from worklog.core.service import WorklogService
from worklog.core.timeutil import calendar_date_key
from worklog.export_import.transfer import ImportResult

logger = logging.getLogger(__name__)

Listener = Callable[["StoreState"], None]


@dataclass(frozen=True)
class StoreState:
    """Immutable snapshot of everything the store has fetched."""

    tasks: tuple[Task, ...] = ()
    entries: tuple[EntryDetails, ...] = ()
    running_entry: Optional[EntryDetails] = None
    artifacts: tuple[Artifact, ...] = ()
    is_loading: bool = False
    error: Optional[str] = None


@dataclass
class EntryFilter:
    """Filter applied whenever entries are re-fetched."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    task_id: Optional[str] = None
    limit: Optional[int] = None


@dataclass
class _Subscriptions:
    listeners: dict[int, Listener] = field(default_factory=dict)
    next_id: int = 0


class SyncStore:
    """Publish/subscribe cache over a ``WorklogService``."""

    def __init__(
        self,
        service: WorklogService,
        tick_interval: float = 1.0,
        tz: Any = UNSET,
    ):
        """Initialize the store.

        Args:
            service: Service used for every read and write
            tick_interval: Seconds between elapsed-time notifications
            tz: Zone for date grouping. None means system local. Defaults to
                the zone the service reports in.
        """
        self.service = service
        self.tick_interval = tick_interval
        self.tz: Optional[tzinfo] = service.tz if tz is UNSET else tz
        self.entry_filter = EntryFilter()

        self._state = StoreState()
        self._state_lock = threading.Lock()
        self._subs = _Subscriptions()
        self._subs_lock = threading.Lock()

        self._stop_event = threading.Event()
        self._ticker: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, service: WorklogService, config: ConfigManager) -> "SyncStore":
        """Build a store ticking at ``client.tick_interval``."""
        return cls(service, tick_interval=config.get("client.tick_interval", 1.0))

    # State and subscriptions

    @property
    def state(self) -> StoreState:
        """Current snapshot."""
        with self._state_lock:
            return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            Callable that removes the listener again
        """
        with self._subs_lock:
            token = self._subs.next_id
            self._subs.next_id += 1
            self._subs.listeners[token] = listener

        def unsubscribe() -> None:
            with self._subs_lock:
                self._subs.listeners.pop(token, None)

        return unsubscribe

    def _notify(self) -> None:
        with self._subs_lock:
            listeners = list(self._subs.listeners.values())
        state = self.state
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                # Logged and skipped; later listeners still run
                logger.exception(f"Store listener {listener!r} failed")

    def _set_state(self, **changes: Any) -> None:
        with self._state_lock:
            self._state = replace(self._state, **changes)
        self._notify()

    # Fetching

    def _fetch_tasks(self) -> tuple[Task, ...]:
        return tuple(self.service.list_tasks(include_archived=True))

    def _fetch_entries(self) -> tuple[EntryDetails, ...]:
        f = self.entry_filter
        return tuple(self.service.list_entries(f.start, f.end, f.task_id, f.limit))

    def _fetch_artifacts(self) -> tuple[Artifact, ...]:
        return tuple(self.service.list_artifacts())

    def initialize(self) -> None:
        """Load every collection from the service, then start the ticker.

        Raises:
            WorklogError: Any failure from the service, after it has been
                recorded in ``state.error``
        """
        self._set_state(is_loading=True, error=None)
        try:
            tasks = self._fetch_tasks()
            entries = self._fetch_entries()
            running = self.service.get_running_entry()
            artifacts = self._fetch_artifacts()
        except Exception as e:
            logger.warning(f"Store initialization failed: {e}")
            self._set_state(is_loading=False, error=str(e))
            raise
        self._set_state(
            tasks=tasks,
            entries=entries,
            running_entry=running,
            artifacts=artifacts,
            is_loading=False,
            error=None,
        )
        self.start_ticker()

    def set_entry_filter(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        task_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> None:
        """Change the entry filter and re-fetch entries."""
        self.entry_filter = EntryFilter(start, end, task_id, limit)
        self._refresh_entries()

    def _refresh_tasks(self) -> None:
        self._set_state(tasks=self._fetch_tasks())

    def _refresh_entries(self) -> None:
        self._set_state(
            entries=self._fetch_entries(), running_entry=self.service.get_running_entry()
        )

    def _refresh_artifacts(self) -> None:
        self._set_state(artifacts=self._fetch_artifacts())

    # Task commands

    def create_task(self, name: str, **fields: Any) -> Task:
        task = self.service.create_task(name, **fields)
        self._refresh_tasks()
        return task

    def update_task(self, task_id: str, **patch: Any) -> Task:
        task = self.service.update_task(task_id, **patch)
        # Entry listings embed the task
        self._refresh_tasks()
        self._refresh_entries()
        return task

    def archive_task(self, task_id: str, archived: bool = True) -> Task:
        task = self.service.archive_task(task_id, archived)
        self._refresh_tasks()
        return task

    def delete_task(self, task_id: str) -> int:
        count = self.service.delete_task(task_id)
        self._refresh_tasks()
        self._refresh_entries()
        return count

    # Entry commands

    def start_entry(self, task_id: Optional[str] = None, memo: Optional[str] = None) -> TimeEntry:
        entry = self.service.start_entry(task_id, memo)
        self._refresh_entries()
        return entry

    def stop_entry(self, entry_id: Optional[str] = None, memo: Optional[str] = None) -> TimeEntry:
        entry = self.service.stop_entry(entry_id, memo)
        self._refresh_entries()
        return entry

    def update_entry(self, entry_id: str, **patch: Any) -> TimeEntry:
        entry = self.service.update_entry(entry_id, **patch)
        self._refresh_entries()
        return entry

    def delete_entry(self, entry_id: str) -> None:
        self.service.delete_entry(entry_id)
        self._refresh_entries()

    # Artifact commands

    def create_artifact(self, name: str, artifact_type: str, **fields: Any) -> Artifact:
        artifact = self.service.create_artifact(name, artifact_type, **fields)
        self._refresh_artifacts()
        if fields.get("entry_id"):
            self._refresh_entries()
        return artifact

    def link_artifact(self, entry_id: str, artifact_id: str) -> None:
        self.service.link_artifact(entry_id, artifact_id)
        self._refresh_entries()

    def unlink_artifact(self, entry_id: str, artifact_id: str) -> None:
        self.service.unlink_artifact(entry_id, artifact_id)
        self._refresh_entries()

    def delete_artifact(self, artifact_id: str) -> None:
        self.service.delete_artifact(artifact_id)
        self._refresh_artifacts()
        self._refresh_entries()

    # Data commands

    def import_data(self, bundle: Any, merge: bool) -> ImportResult:
        """Import a bundle, then reload everything."""
        result = self.service.import_data(bundle, merge)
        self.initialize()
        return result

    # Derived views

    def get_task_by_id(self, task_id: Optional[str]) -> Optional[Task]:
        if task_id is None:
            return None
        for task in self.state.tasks:
            if task.id == task_id:
                return task
        return None

    def get_active_tasks(self) -> list[Task]:
        return [t for t in self.state.tasks if not t.archived]

    def get_entries_grouped_by_date(self) -> "OrderedDict[str, list[EntryDetails]]":
        """Entries bucketed by local calendar date, most recent date first."""
        groups: dict[str, list[EntryDetails]] = {}
        for details in self.state.entries:
            key = calendar_date_key(details.entry.started_at, self.tz)
            groups.setdefault(key, []).append(details)
        return OrderedDict((k, groups[k]) for k in sorted(groups, reverse=True))

    # Ticker

    def start_ticker(self) -> None:
        """Start re-notifying subscribers while an entry is running."""
        if self._ticker is not None and self._ticker.is_alive():
            return
        self._stop_event.clear()
        self._ticker = threading.Thread(
            target=self._tick_loop, name="worklog-store-ticker", daemon=True
        )
        self._ticker.start()
        logger.debug(f"Store ticker started ({self.tick_interval}s)")

    def _tick_loop(self) -> None:
        while not self._stop_event.wait(self.tick_interval):
            if self.state.running_entry is not None:
                self._notify()

    def destroy(self) -> None:
        """Stop the ticker and drop every subscriber."""
        self._stop_event.set()
        if self._ticker is not None:
            self._ticker.join(timeout=5.0)
            self._ticker = None
        with self._subs_lock:
            self._subs.listeners.clear()
        logger.debug("Store destroyed")
