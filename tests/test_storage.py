"""Tests for storage manager."""

import threading
from datetime import datetime, timedelta, timezone

import pytest  # type: ignore[import-not-found]

from worklog.core.models import Artifact, EntryArtifact, Folder, Task, TimeEntry
from worklog.core.storage import StorageManager

UTC = timezone.utc
BASE = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


def make_entry(hours: int = 0, **kwargs) -> TimeEntry:  # type: ignore[no-untyped-def]
    start = BASE + timedelta(hours=hours)
    kwargs.setdefault("ended_at", start + timedelta(minutes=30))
    return TimeEntry(started_at=start, **kwargs)


class TestStorageManager:
    """Test StorageManager."""

    def test_initialization_creates_directories(self, storage: StorageManager) -> None:
        """Test that initialization creates required directories."""
        assert storage.data_dir.exists()
        assert storage.state_dir.exists()
        assert storage.backup_dir.exists()

    def test_initialization_creates_csv_files(self, storage: StorageManager) -> None:
        """Test that initialization creates CSV files with headers."""
        for kind in ("tasks", "folders", "entries", "artifacts", "entry_artifacts"):
            assert storage.files[kind].exists()

        with open(storage.files["entries"]) as f:
            header = f.readline().strip()
        assert header == "id,task_id,started_at,ended_at,memo,created_at,updated_at"

    def test_save_and_load_entry(self, storage: StorageManager) -> None:
        entry = make_entry(task_id="t1", memo="Standup")
        storage.save_entry(entry)

        entries = storage.load_entries()
        assert entries == [entry]

    def test_update_existing_entry(self, storage: StorageManager) -> None:
        entry = make_entry()
        storage.save_entry(entry)

        entry.memo = "changed"
        storage.save_entry(entry)

        entries = storage.load_entries()
        assert len(entries) == 1
        assert entries[0].memo == "changed"

    def test_load_entries_sorted_and_filtered(self, storage: StorageManager) -> None:
        """Entries come back newest first; filters use started_at."""
        first = make_entry(0, task_id="t1")
        second = make_entry(1, task_id="t2")
        third = make_entry(2, task_id="t1")
        for entry in (second, third, first):
            storage.save_entry(entry)

        assert [e.id for e in storage.load_entries()] == [third.id, second.id, first.id]
        assert [e.id for e in storage.load_entries(task_id="t1")] == [third.id, first.id]

        window = storage.load_entries(start=BASE + timedelta(hours=1), end=BASE + timedelta(hours=2))
        assert [e.id for e in window] == [second.id]

    def test_get_and_delete_entry(self, storage: StorageManager) -> None:
        entry = make_entry()
        storage.save_entry(entry)

        assert storage.get_entry(entry.id) == entry
        assert storage.delete_entry(entry.id) is True
        assert storage.get_entry(entry.id) is None
        assert storage.delete_entry(entry.id) is False

    def test_find_open_entries(self, storage: StorageManager) -> None:
        storage.save_entry(make_entry(0))
        running = make_entry(1, ended_at=None)
        storage.save_entry(running)

        assert storage.find_open_entries() == [running]

    def test_unassign_task(self, storage: StorageManager) -> None:
        storage.save_entry(make_entry(0, task_id="t1"))
        storage.save_entry(make_entry(1, task_id="t1"))
        storage.save_entry(make_entry(2, task_id="t2"))

        count = storage.unassign_task("t1", BASE)

        assert count == 2
        assert sorted(str(e.task_id) for e in storage.load_entries()) == ["None", "None", "t2"]

    def test_tasks_and_folder_references(self, storage: StorageManager) -> None:
        folder = Folder(name="Clients")
        storage.save_folder(folder)
        task = Task(name="Acme", folder_id=folder.id)
        storage.save_task(task)

        assert storage.get_task(task.id) == task
        assert storage.clear_folder_references(folder.id, BASE) == 1
        assert storage.get_task(task.id).folder_id is None  # type: ignore[union-attr]

        assert storage.delete_folder(folder.id) is True
        assert storage.load_folders() == []

    def test_artifacts_and_links(self, storage: StorageManager) -> None:
        artifact = Artifact(name="PR", artifact_type="pull_request", metadata={"n": 1})
        storage.save_artifact(artifact)
        link = EntryArtifact("e1", artifact.id)

        assert storage.get_artifact(artifact.id) == artifact
        assert storage.add_link(link) is True
        assert storage.add_link(link) is False
        assert storage.load_links(entry_id="e1") == [link]

        assert storage.remove_link(link) is True
        assert storage.remove_link(link) is False

        storage.add_link(link)
        storage.add_link(EntryArtifact("e2", artifact.id))
        assert storage.delete_links(artifact_id=artifact.id) == 2

    def test_delete_links_requires_filter(self, storage: StorageManager) -> None:
        with pytest.raises(ValueError):
            storage.delete_links()


class TestRunningPointer:
    """Test the running-entry pointer file."""

    def test_missing_pointer_raises(self, storage: StorageManager) -> None:
        with pytest.raises(FileNotFoundError):
            storage.get_running_entry_id()

    def test_set_and_clear(self, storage: StorageManager) -> None:
        storage.set_running_entry_id("e1")
        assert storage.get_running_entry_id() == "e1"

        storage.set_running_entry_id(None)
        assert storage.get_running_entry_id() is None


class TestTransactions:
    """Test backups and transactions."""

    def test_backup_copies_files(self, storage: StorageManager) -> None:
        storage.save_task(Task(name="Review"))
        backup_path = storage.backup(label="manual")

        assert (backup_path / "tasks.csv").exists()
        assert backup_path.parent == storage.backup_dir

    def test_transaction_restores_on_error(self, storage: StorageManager) -> None:
        """A failing block leaves every file as it was."""
        kept = Task(name="Kept")
        storage.save_task(kept)

        with pytest.raises(RuntimeError):
            with storage.transaction():
                storage.clear_ledger()
                storage.save_task(Task(name="Transient"))
                raise RuntimeError("boom")

        assert storage.load_tasks() == [kept]

    def test_transaction_commits(self, storage: StorageManager) -> None:
        with storage.transaction():
            storage.save_task(Task(name="Committed"))

        assert [t.name for t in storage.load_tasks()] == ["Committed"]
        assert not any(p.name.startswith(".txn-") for p in storage.backup_dir.iterdir())

    def test_clear_ledger_keeps_folders(self, storage: StorageManager) -> None:
        storage.save_folder(Folder(name="Clients"))
        storage.save_task(Task(name="Review"))
        storage.save_entry(make_entry())

        storage.clear_ledger()

        assert storage.load_tasks() == []
        assert storage.load_entries() == []
        assert len(storage.load_folders()) == 1
        assert storage.get_running_entry_id() is None

    def test_ledger_lock_is_shared_per_directory(self, storage: StorageManager) -> None:
        """Two managers on one directory serialize on the same lock."""
        other = StorageManager(storage.data_dir)
        order = []

        def worker() -> None:
            with other.ledger_lock():
                order.append("worker")

        with storage.ledger_lock():
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join(timeout=0.2)
            order.append("main")

        thread.join(timeout=5)
        assert order == ["main", "worker"]

    def test_ledger_lock_is_reentrant(self, storage: StorageManager) -> None:
        with storage.ledger_lock():
            with storage.ledger_lock():
                storage.save_task(Task(name="Nested"))

        assert len(storage.load_tasks()) == 1
