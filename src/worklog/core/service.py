"""Command surface shared by the CLI, the REST API and the client store."""

import logging
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any, Callable, Optional

from worklog.analysis.reports import MonthlyReport, ReportAggregator
from worklog.core.catalog import Catalog
from worklog.core.config import ConfigManager
from worklog.core.models import UNSET, Artifact, EntryArtifact, EntryDetails, Folder, Task, TimeEntry
from worklog.core.storage import StorageManager
from worklog.core.timeutil import resolve_timezone, utc_now
from worklog.core.tracker import TimeTracker
from worklog.export_import.transfer import DatasetTransfer, ImportResult

logger = logging.getLogger(__name__)


class WorklogService:
    """One method per user-facing command, delegating to the domain parts."""

    def __init__(
        self,
        storage: Optional[StorageManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
        tracker: Optional[TimeTracker] = None,
        catalog: Optional[Catalog] = None,
        reports: Optional[ReportAggregator] = None,
        transfer: Optional[DatasetTransfer] = None,
    ):
        self.storage = storage or StorageManager()
        self.clock = clock or utc_now
        self.tracker = tracker or TimeTracker(self.storage, clock=self.clock)
        self.catalog = catalog or Catalog(self.storage, clock=self.clock)
        self.reports = reports or ReportAggregator(self.storage, clock=self.clock)
        self.transfer = transfer or DatasetTransfer(self.storage, clock=self.clock)

    @property
    def tz(self) -> Optional[tzinfo]:
        """Zone used for month and day boundaries (None is system local)."""
        return self.reports.tz

    @classmethod
    def from_config(
        cls,
        config: ConfigManager,
        data_dir: Optional[Path] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "WorklogService":
        """Build a service wired to the configured data directory and options.

        Args:
            config: Configuration manager
            data_dir: Overrides ``general.data_dir``
            clock: Callable returning the current aware instant

        Raises:
            ValidationError: If ``general.timezone`` names an unknown zone
        """
        storage = StorageManager(Path(data_dir) if data_dir else config.data_dir())
        clock = clock or utc_now
        tz = resolve_timezone(config.get("general.timezone", "local"))
        logger.debug(f"Service using data dir {storage.data_dir}")
        return cls(
            storage=storage,
            clock=clock,
            catalog=Catalog(
                storage,
                clock=clock,
                default_task_color=config.get("tracking.default_task_color", "#3b82f6"),
                default_folder_color=config.get("tracking.default_folder_color", "#6b7280"),
            ),
            reports=ReportAggregator(
                storage,
                tz=tz,
                unclassified_label=config.get("reports.unclassified_label", "Unclassified"),
                unclassified_color=config.get("reports.unclassified_color", "#6b7280"),
                clock=clock,
            ),
            transfer=DatasetTransfer(
                storage,
                clock=clock,
                backup_before_import=config.get("export.backup_before_import", True),
            ),
        )

    # Tasks

    def list_tasks(self, include_archived: bool = False) -> list[Task]:
        return self.catalog.list_tasks(include_archived)

    def get_task(self, task_id: str) -> Task:
        return self.catalog.get_task(task_id)

    def create_task(
        self,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        folder_id: Optional[str] = None,
    ) -> Task:
        return self.catalog.create_task(name, description, color, folder_id)

    def update_task(self, task_id: str, **patch: Any) -> Task:
        """Apply a partial update. Keys absent from ``patch`` are unchanged."""
        return self.catalog.update_task(task_id, **patch)

    def archive_task(self, task_id: str, archived: bool = True) -> Task:
        return self.catalog.archive_task(task_id, archived)

    def delete_task(self, task_id: str) -> int:
        return self.catalog.delete_task(task_id)

    # Folders

    def list_folders(self) -> list[Folder]:
        return self.catalog.list_folders()

    def create_folder(
        self, name: str, color: Optional[str] = None, icon: Optional[str] = None
    ) -> Folder:
        return self.catalog.create_folder(name, color, icon)

    def update_folder(self, folder_id: str, **patch: Any) -> Folder:
        return self.catalog.update_folder(folder_id, **patch)

    def delete_folder(self, folder_id: str) -> int:
        return self.catalog.delete_folder(folder_id)

    # Entries

    def list_entries(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        task_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[EntryDetails]:
        return self.tracker.list_entries(start, end, task_id, limit)

    def get_entry(self, entry_id: str) -> EntryDetails:
        return self.tracker.get_entry(entry_id)

    def get_running_entry(self) -> Optional[EntryDetails]:
        """The running entry with its task and artifacts, or None."""
        running = self.tracker.get_running()
        if running is None:
            return None
        return self.tracker.get_entry(running.id)

    def start_entry(self, task_id: Optional[str] = None, memo: Optional[str] = None) -> TimeEntry:
        return self.tracker.start(task_id, memo)

    def stop_entry(self, entry_id: Optional[str] = None, memo: Optional[str] = None) -> TimeEntry:
        return self.tracker.stop(entry_id, memo)

    def add_entry(
        self,
        started_at: datetime,
        ended_at: datetime,
        task_id: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> TimeEntry:
        return self.tracker.add_entry(started_at, ended_at, task_id, memo)

    def update_entry(
        self,
        entry_id: str,
        task_id: Any = UNSET,
        started_at: Any = UNSET,
        ended_at: Any = UNSET,
        memo: Any = UNSET,
    ) -> TimeEntry:
        return self.tracker.update(
            entry_id, task_id=task_id, started_at=started_at, ended_at=ended_at, memo=memo
        )

    def delete_entry(self, entry_id: str) -> None:
        self.tracker.delete(entry_id)

    # Artifacts

    def list_artifacts(self, limit: Optional[int] = None) -> list[Artifact]:
        return self.catalog.list_artifacts(limit)

    def create_artifact(
        self,
        name: str,
        artifact_type: str,
        reference: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        entry_id: Optional[str] = None,
    ) -> Artifact:
        return self.catalog.create_artifact(name, artifact_type, reference, metadata, entry_id)

    def link_artifact(self, entry_id: str, artifact_id: str) -> EntryArtifact:
        return self.catalog.link_artifact(entry_id, artifact_id)

    def unlink_artifact(self, entry_id: str, artifact_id: str) -> None:
        self.catalog.unlink_artifact(entry_id, artifact_id)

    def delete_artifact(self, artifact_id: str) -> None:
        self.catalog.delete_artifact(artifact_id)

    # Data

    def export_data(self) -> dict[str, Any]:
        return self.transfer.export_data()

    def import_data(self, bundle: Any, merge: bool) -> ImportResult:
        return self.transfer.import_data(bundle, merge)

    # Reports

    def get_monthly_report(self, year: int, month: int) -> MonthlyReport:
        return self.reports.monthly_report(year, month)

    def get_available_months(self) -> list[tuple[int, int]]:
        return self.reports.available_months()
