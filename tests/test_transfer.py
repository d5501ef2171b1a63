"""Tests for dataset export and import."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pandas as pd  # type: ignore[import-untyped]
import pytest  # type: ignore[import-not-found]

from worklog.analysis.reports import MonthlyReport, ReportAggregator
from worklog.core.errors import ConflictError, MalformedBundleError
from worklog.core.models import Artifact, EntryArtifact, Task, TimeEntry
from worklog.core.storage import StorageManager
from worklog.core.tracker import TimeTracker
from worklog.export_import import (
    BUNDLE_VERSION,
    DatasetTransfer,
    JSONExporter,
    JSONImporter,
    MarkdownExporter,
    ParquetExporter,
)

from conftest import FakeClock

UTC = timezone.utc


def task_record(task_id: str, name: str) -> dict[str, Any]:
    return {
        "id": task_id,
        "name": name,
        "color": "#3b82f6",
        "archived": False,
        "folder_id": None,
        "description": None,
        "created_at": "2024-03-01T08:00:00+00:00",
        "updated_at": "2024-03-01T08:00:00+00:00",
    }


def entry_record(entry_id: str, day: int, task_id: Any = None, open_: bool = False) -> dict[str, Any]:
    return {
        "id": entry_id,
        "task_id": task_id,
        "started_at": f"2024-03-{day:02d}T09:00:00+00:00",
        "ended_at": None if open_ else f"2024-03-{day:02d}T10:00:00+00:00",
        "duration_seconds": None if open_ else 3600,
        "memo": None,
        "created_at": f"2024-03-{day:02d}T09:00:00+00:00",
        "updated_at": f"2024-03-{day:02d}T10:00:00+00:00",
    }


def make_bundle(**overrides: Any) -> dict[str, Any]:
    bundle: dict[str, Any] = {
        "version": BUNDLE_VERSION,
        "exported_at": "2024-03-31T12:00:00+00:00",
        "tasks": [task_record(f"t{i}", f"Task {i}") for i in range(1, 4)],
        "artifacts": [],
        "time_entries": [entry_record(f"e{i}", i, f"t{(i % 3) + 1}") for i in range(1, 6)],
        "entry_artifacts": [],
    }
    bundle.update(overrides)
    return bundle


@pytest.fixture  # type: ignore[misc]
def transfer(storage: StorageManager, clock: FakeClock) -> DatasetTransfer:
    return DatasetTransfer(storage, clock=clock)


def populate(storage: StorageManager) -> None:
    """One task, two entries (one open), one artifact linked to the closed entry."""
    task = Task(id="local-task", name="Local")
    storage.save_task(task)
    start = datetime(2024, 2, 1, 9, tzinfo=UTC)
    closed = TimeEntry(id="local-closed", started_at=start, ended_at=start + timedelta(hours=1))
    running = TimeEntry(id="local-open", started_at=start + timedelta(days=1), task_id=task.id)
    storage.save_entry(closed)
    storage.save_entry(running)
    storage.set_running_entry_id(running.id)
    artifact = Artifact(id="local-artifact", name="Doc", artifact_type="document", metadata={"k": "v"})
    storage.save_artifact(artifact)
    storage.add_link(EntryArtifact(closed.id, artifact.id))


class TestExport:
    """Test DatasetTransfer.export_data."""

    def test_export_shape(
        self, storage: StorageManager, transfer: DatasetTransfer, clock: FakeClock
    ) -> None:
        populate(storage)

        bundle = transfer.export_data()

        assert bundle["version"] == BUNDLE_VERSION
        assert bundle["exported_at"] == clock.now.isoformat()
        assert [t["id"] for t in bundle["tasks"]] == ["local-task"]
        assert [e["id"] for e in bundle["time_entries"]] == ["local-closed", "local-open"]
        assert bundle["entry_artifacts"] == [
            {"entry_id": "local-closed", "artifact_id": "local-artifact"}
        ]
        assert bundle["artifacts"][0]["metadata"] == {"k": "v"}

    def test_open_entry_exports_nulls(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        populate(storage)
        running = [e for e in transfer.export_data()["time_entries"] if e["id"] == "local-open"][0]

        assert running["ended_at"] is None
        assert running["duration_seconds"] is None

    def test_export_is_json_serializable(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        populate(storage)
        json.dumps(transfer.export_data())

    def test_export_empty_ledger(self, transfer: DatasetTransfer) -> None:
        bundle = transfer.export_data()
        assert bundle["tasks"] == []
        assert bundle["time_entries"] == []


class TestReplaceImport:
    """Test replace-mode import."""

    def test_replace_inserts_everything(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        populate(storage)

        result = transfer.import_data(make_bundle(), merge=False)

        assert result.to_dict() == {
            "tasks_imported": 3,
            "entries_imported": 5,
            "artifacts_imported": 0,
        }
        assert {t.id for t in storage.load_tasks()} == {"t1", "t2", "t3"}
        assert len(storage.load_entries()) == 5
        assert storage.load_artifacts() == []
        assert storage.load_links() == []
        assert storage.get_running_entry_id() is None

    def test_replace_keeps_ids_and_timestamps(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        transfer.import_data(make_bundle(), merge=False)

        entry = storage.get_entry("e1")
        assert entry is not None
        assert entry.task_id == "t2"
        assert entry.started_at == datetime(2024, 3, 1, 9, tzinfo=UTC)
        assert entry.duration_seconds == 3600

    def test_round_trip(self, storage: StorageManager, transfer: DatasetTransfer, clock: FakeClock) -> None:
        """Export, replace-import and re-export agree except exported_at."""
        populate(storage)
        original = transfer.export_data()

        transfer.import_data(original, merge=False)
        clock.advance(3600)
        again = transfer.export_data()

        assert again["exported_at"] != original["exported_at"]
        original.pop("exported_at")
        again.pop("exported_at")
        assert again == original

    def test_replace_sets_running_pointer(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        bundle = make_bundle(time_entries=[entry_record("open", 3, open_=True)])

        transfer.import_data(bundle, merge=False)

        assert storage.get_running_entry_id() == "open"
        assert TimeTracker(storage).get_running().id == "open"  # type: ignore[union-attr]

    def test_replace_drops_dangling_links(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        bundle = make_bundle(
            artifacts=[{"id": "a1", "name": "Doc", "artifact_type": "document"}],
            entry_artifacts=[
                {"entry_id": "e1", "artifact_id": "a1"},
                {"entry_id": "e1", "artifact_id": "a1"},
                {"entry_id": "missing", "artifact_id": "a1"},
            ],
        )

        transfer.import_data(bundle, merge=False)

        assert storage.load_links() == [EntryArtifact("e1", "a1")]

    def test_replace_writes_backup(self, storage: StorageManager, transfer: DatasetTransfer) -> None:
        transfer.import_data(make_bundle(), merge=False)
        assert any(p.name.startswith("pre-import-") for p in storage.backup_dir.iterdir())

    def test_backup_can_be_disabled(self, storage: StorageManager) -> None:
        DatasetTransfer(storage, backup_before_import=False).import_data(make_bundle(), merge=False)
        assert list(storage.backup_dir.iterdir()) == []


class TestMergeImport:
    """Test merge-mode import."""

    def test_merge_adds_new_records(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        populate(storage)
        storage.set_running_entry_id(None)

        result = transfer.import_data(make_bundle(), merge=True)

        assert result.tasks_imported == 3
        assert result.entries_imported == 5
        assert len(storage.load_tasks()) == 4
        assert len(storage.load_entries()) == 7
        assert storage.get_running_entry_id() == "local-open"

    def test_merge_same_bundle_twice_imports_nothing(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        """Colliding ids are skipped and not counted."""
        bundle = make_bundle()
        transfer.import_data(bundle, merge=True)

        result = transfer.import_data(bundle, merge=True)

        assert result.to_dict() == {
            "tasks_imported": 0,
            "entries_imported": 0,
            "artifacts_imported": 0,
        }
        assert len(storage.load_entries()) == 5

    def test_merge_does_not_overwrite_local_record(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        storage.save_task(Task(id="t1", name="Mine"))

        transfer.import_data(make_bundle(), merge=True)

        assert storage.get_task("t1").name == "Mine"  # type: ignore[union-attr]

    def test_merge_links_to_existing_entry(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        populate(storage)
        bundle = make_bundle(
            tasks=[],
            time_entries=[],
            artifacts=[{"id": "a-new", "name": "Design notes", "artifact_type": "document"}],
            entry_artifacts=[
                {"entry_id": "local-closed", "artifact_id": "a-new"},
                {"entry_id": "local-closed", "artifact_id": "local-artifact"},
            ],
        )

        result = transfer.import_data(bundle, merge=True)

        assert result.artifacts_imported == 1
        assert set(storage.load_links(entry_id="local-closed")) == {
            EntryArtifact("local-closed", "local-artifact"),
            EntryArtifact("local-closed", "a-new"),
        }

    def test_merge_second_running_entry_conflicts(
        self, storage: StorageManager, transfer: DatasetTransfer
    ) -> None:
        populate(storage)
        before = transfer.export_data()
        bundle = make_bundle(time_entries=[entry_record("incoming-open", 4, open_=True)])

        with pytest.raises(ConflictError):
            transfer.import_data(bundle, merge=True)

        after = transfer.export_data()
        assert after["tasks"] == before["tasks"]
        assert after["time_entries"] == before["time_entries"]


class TestMalformedBundles:
    """Malformed bundles are rejected before anything is written."""

    @pytest.mark.parametrize(
        "bundle",
        [
            [],
            {"tasks": [], "time_entries": []},
            make_bundle(tasks="nope"),
            make_bundle(tasks=[{"id": "t1"}]),
            make_bundle(time_entries=[{"id": "e1", "started_at": "not a time"}]),
            make_bundle(time_entries=[{"id": "e1", "started_at": 5}]),
            make_bundle(tasks=[task_record("dup", "A"), task_record("dup", "B")]),
            make_bundle(
                time_entries=[entry_record("o1", 1, open_=True), entry_record("o2", 2, open_=True)]
            ),
            make_bundle(
                time_entries=[
                    {
                        "id": "e1",
                        "started_at": "2024-03-01T10:00:00+00:00",
                        "ended_at": "2024-03-01T09:00:00+00:00",
                    }
                ]
            ),
            make_bundle(
                artifacts=[{"id": "a1", "name": "Doc", "artifact_type": "doc", "metadata": [1]}]
            ),
            make_bundle(tasks=[{"id": "t1", "name": "   "}]),
            make_bundle(tasks=[{"id": "t1", "name": ""}]),
            make_bundle(tasks=[{"id": "t1", "name": "Review", "color": "red"}]),
            make_bundle(tasks=[{"id": "t1", "name": "Review", "color": "#12345"}]),
            make_bundle(artifacts=[{"id": "a1", "name": " ", "artifact_type": "doc"}]),
            make_bundle(artifacts=[{"id": "a1", "name": "Doc", "artifact_type": ""}]),
        ],
    )
    def test_rejected_without_partial_write(
        self, storage: StorageManager, transfer: DatasetTransfer, bundle: Any
    ) -> None:
        populate(storage)
        before = transfer.export_data()

        with pytest.raises(MalformedBundleError):
            transfer.import_data(bundle, merge=False)

        after = transfer.export_data()
        before.pop("exported_at")
        after.pop("exported_at")
        assert after == before
        assert list(storage.backup_dir.iterdir()) == []


class TestFileFormats:
    """Test JSON bundle files and Markdown reports."""

    def test_json_file_round_trip(
        self, storage: StorageManager, transfer: DatasetTransfer, temp_dir: Path
    ) -> None:
        populate(storage)
        path = temp_dir / "bundle.json"

        JSONExporter(path).export(transfer.export_data())
        loaded = JSONImporter(path).read()

        assert loaded["tasks"][0]["name"] == "Local"
        assert path.read_text(encoding="utf-8").endswith("\n")

    def test_json_importer_rejects_invalid_json(self, temp_dir: Path) -> None:
        path = temp_dir / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(MalformedBundleError):
            JSONImporter(path).read()

    def test_json_importer_rejects_non_object(self, temp_dir: Path) -> None:
        path = temp_dir / "list.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(MalformedBundleError):
            JSONImporter(path).read()

    def test_json_importer_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(FileNotFoundError):
            JSONImporter(temp_dir / "missing.json").read()

    def test_json_importer_wrong_extension(self, temp_dir: Path) -> None:
        path = temp_dir / "bundle.txt"
        path.write_text("{}", encoding="utf-8")

        with pytest.raises(ValueError):
            JSONImporter(path).read()

    def test_markdown_report(
        self, storage: StorageManager, clock: FakeClock, temp_dir: Path
    ) -> None:
        task = Task(name="Review")
        storage.save_task(task)
        start = datetime(2024, 3, 1, 9, tzinfo=UTC)
        storage.save_entry(
            TimeEntry(started_at=start, ended_at=start + timedelta(minutes=90), task_id=task.id)
        )
        report = ReportAggregator(storage, tz=UTC, clock=clock).monthly_report(2024, 3)
        path = temp_dir / "report.md"

        MarkdownExporter(path).export(report, title="March")
        content = path.read_text(encoding="utf-8")

        assert content.startswith("# March")
        assert "| Review | 1.50 | 1 | 100.0% |" in content
        assert "2024-03-01" in content

    def test_markdown_rejects_other_data(self, temp_dir: Path) -> None:
        with pytest.raises(TypeError):
            MarkdownExporter(temp_dir / "report.md").export({"not": "a report"})

    def test_markdown_empty_report(self, temp_dir: Path) -> None:
        report = MonthlyReport(2024, 3, 0, 0, 0, 0, [], [])
        text = MarkdownExporter(temp_dir / "r.md").render(report)
        assert "**Total Entries:** 0" in text


class TestParquetExport:
    """Test per-table Parquet export."""

    def test_writes_one_file_per_table(
        self, storage: StorageManager, transfer: DatasetTransfer, temp_dir: Path
    ) -> None:
        populate(storage)
        out_dir = temp_dir / "parquet"

        written = ParquetExporter(out_dir).export(transfer.export_data())

        assert [p.name for p in written] == [
            "tasks.parquet",
            "artifacts.parquet",
            "time_entries.parquet",
            "entry_artifacts.parquet",
        ]
        assert all(p.exists() for p in written)

        tasks = pd.read_parquet(out_dir / "tasks.parquet")
        assert tasks["id"].tolist() == ["local-task"]
        assert tasks["name"].tolist() == ["Local"]

        entries = pd.read_parquet(out_dir / "time_entries.parquet")
        assert entries["id"].tolist() == ["local-closed", "local-open"]
        assert entries["started_at"].iloc[0] == pd.Timestamp("2024-02-01T09:00:00Z")
        assert pd.isna(entries["ended_at"].iloc[1])
        assert entries["duration_seconds"].iloc[0] == 3600

        artifacts = pd.read_parquet(out_dir / "artifacts.parquet")
        assert json.loads(artifacts["metadata"].iloc[0]) == {"k": "v"}

        links = pd.read_parquet(out_dir / "entry_artifacts.parquet")
        assert links.to_dict("records") == [
            {"entry_id": "local-closed", "artifact_id": "local-artifact"}
        ]

    def test_empty_ledger(self, transfer: DatasetTransfer, temp_dir: Path) -> None:
        written = ParquetExporter(temp_dir / "empty").export(transfer.export_data())

        assert len(written) == 4
        links = pd.read_parquet(written[3])
        assert len(links) == 0
        assert list(links.columns) == ["entry_id", "artifact_id"]
