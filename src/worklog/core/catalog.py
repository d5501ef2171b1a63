"""Task, folder and artifact management.

References between records are soft: a task may point at a folder that no
longer exists and an entry at a task that no longer exists. Deletions here
null such references out instead of cascading.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from worklog.core.errors import NotFoundError, ValidationError
from worklog.core.models import (
    DEFAULT_FOLDER_COLOR,
    DEFAULT_TASK_COLOR,
    UNSET,
    Artifact,
    EntryArtifact,
    Folder,
    Task,
    is_valid_color,
)
from worklog.core.storage import StorageManager
from worklog.core.timeutil import utc_now

logger = logging.getLogger(__name__)


def _require_name(name: Optional[str], label: str) -> str:
    if name is None or not name.strip():
        raise ValidationError(f"{label} cannot be empty")
    return name.strip()


def _require_color(color: str) -> str:
    if not is_valid_color(color):
        raise ValidationError(f"Invalid color code: {color} (expected #RRGGBB)")
    return color


class Catalog:
    """CRUD for the records time entries refer to."""

    def __init__(
        self,
        storage: Optional[StorageManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
        default_task_color: str = DEFAULT_TASK_COLOR,
        default_folder_color: str = DEFAULT_FOLDER_COLOR,
    ):
        self.storage = storage or StorageManager()
        self.clock = clock or utc_now
        self.default_task_color = default_task_color
        self.default_folder_color = default_folder_color

    # Tasks

    def list_tasks(self, include_archived: bool = False) -> list[Task]:
        """List tasks, newest first.

        Args:
            include_archived: Include archived tasks

        Returns:
            Tasks ordered by created_at descending
        """
        tasks = self.storage.load_tasks()
        if not include_archived:
            tasks = [t for t in tasks if not t.archived]
        tasks.sort(key=lambda t: t.created_at, reverse=True)
        return tasks

    def get_task(self, task_id: str) -> Task:
        """Get a task by ID.

        Raises:
            NotFoundError: If task not found
        """
        task = self.storage.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        return task

    def create_task(
        self,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        folder_id: Optional[str] = None,
    ) -> Task:
        """Create a task.

        Raises:
            ValidationError: If the name is empty or the color malformed
        """
        now = self.clock()
        task = Task(
            name=_require_name(name, "Task name"),
            description=description,
            color=_require_color(color) if color else self.default_task_color,
            folder_id=folder_id,
            created_at=now,
            updated_at=now,
        )
        with self.storage.ledger_lock():
            self.storage.save_task(task)
        logger.info(f"Created task {task.id} ({task.name})")
        return task

    def update_task(
        self,
        task_id: str,
        name: Any = UNSET,
        description: Any = UNSET,
        color: Any = UNSET,
        folder_id: Any = UNSET,
    ) -> Task:
        """Update task fields. UNSET arguments are left unchanged.

        Raises:
            NotFoundError: If task not found
            ValidationError: If the name is empty or the color malformed
        """
        with self.storage.ledger_lock():
            task = self.get_task(task_id)
            if name is not UNSET:
                task.name = _require_name(name, "Task name")
            if description is not UNSET:
                task.description = description
            if color is not UNSET:
                task.color = _require_color(color or "")
            if folder_id is not UNSET:
                task.folder_id = folder_id
            task.updated_at = self.clock()
            self.storage.save_task(task)
        return task

    def archive_task(self, task_id: str, archived: bool = True) -> Task:
        """Archive or restore a task.

        Raises:
            NotFoundError: If task not found
        """
        with self.storage.ledger_lock():
            task = self.get_task(task_id)
            task.archived = archived
            task.updated_at = self.clock()
            self.storage.save_task(task)
        logger.info(f"Task {task_id} {'archived' if archived else 'restored'}")
        return task

    def delete_task(self, task_id: str) -> int:
        """Delete a task. Its entries become unclassified.

        Returns:
            Number of entries that were unassigned

        Raises:
            NotFoundError: If task not found
        """
        with self.storage.ledger_lock():
            self.get_task(task_id)
            unassigned = self.storage.unassign_task(task_id, self.clock())
            self.storage.delete_task(task_id)
        logger.info(f"Deleted task {task_id}, {unassigned} entries now unclassified")
        return unassigned

    # Folders

    def list_folders(self) -> list[Folder]:
        """List folders by sort order, then name."""
        folders = self.storage.load_folders()
        folders.sort(key=lambda f: (f.sort_order, f.name))
        return folders

    def get_folder(self, folder_id: str) -> Folder:
        """Get a folder by ID.

        Raises:
            NotFoundError: If folder not found
        """
        folder = self.storage.get_folder(folder_id)
        if folder is None:
            raise NotFoundError(f"Folder not found: {folder_id}")
        return folder

    def create_folder(
        self, name: str, color: Optional[str] = None, icon: Optional[str] = None
    ) -> Folder:
        """Create a folder at the end of the sort order.

        Raises:
            ValidationError: If the name is empty or the color malformed
        """
        name = _require_name(name, "Folder name")
        color = _require_color(color) if color else self.default_folder_color
        with self.storage.ledger_lock():
            max_order = max((f.sort_order for f in self.storage.load_folders()), default=0)
            now = self.clock()
            folder = Folder(
                name=name,
                color=color,
                icon=icon,
                sort_order=max_order + 1,
                created_at=now,
                updated_at=now,
            )
            self.storage.save_folder(folder)
        logger.info(f"Created folder {folder.id} ({folder.name})")
        return folder

    def update_folder(
        self,
        folder_id: str,
        name: Any = UNSET,
        color: Any = UNSET,
        icon: Any = UNSET,
        sort_order: Any = UNSET,
    ) -> Folder:
        """Update folder fields. UNSET arguments are left unchanged.

        Raises:
            NotFoundError: If folder not found
            ValidationError: If the name is empty or the color malformed
        """
        with self.storage.ledger_lock():
            folder = self.get_folder(folder_id)
            if name is not UNSET:
                folder.name = _require_name(name, "Folder name")
            if color is not UNSET:
                folder.color = _require_color(color or "")
            if icon is not UNSET:
                folder.icon = icon
            if sort_order is not UNSET:
                if sort_order is None:
                    raise ValidationError("sort_order cannot be cleared")
                folder.sort_order = int(sort_order)
            folder.updated_at = self.clock()
            self.storage.save_folder(folder)
        return folder

    def delete_folder(self, folder_id: str) -> int:
        """Delete a folder. Tasks filed under it become unclassified.

        Returns:
            Number of tasks moved out of the folder

        Raises:
            NotFoundError: If folder not found
        """
        with self.storage.ledger_lock():
            self.get_folder(folder_id)
            moved = self.storage.clear_folder_references(folder_id, self.clock())
            self.storage.delete_folder(folder_id)
        logger.info(f"Deleted folder {folder_id}, {moved} tasks unfiled")
        return moved

    # Artifacts

    def list_artifacts(self, limit: Optional[int] = None) -> list[Artifact]:
        """List artifacts, newest first."""
        artifacts = self.storage.load_artifacts()
        artifacts.sort(key=lambda a: a.created_at, reverse=True)
        if limit is not None:
            artifacts = artifacts[: max(0, limit)]
        return artifacts

    def get_artifact(self, artifact_id: str) -> Artifact:
        """Get an artifact by ID.

        Raises:
            NotFoundError: If artifact not found
        """
        artifact = self.storage.get_artifact(artifact_id)
        if artifact is None:
            raise NotFoundError(f"Artifact not found: {artifact_id}")
        return artifact

    def create_artifact(
        self,
        name: str,
        artifact_type: str,
        reference: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        entry_id: Optional[str] = None,
    ) -> Artifact:
        """Create an artifact, optionally linking it to an entry.

        Raises:
            ValidationError: If name or type is empty
            NotFoundError: If entry_id does not exist (nothing is written)
        """
        artifact = Artifact(
            name=_require_name(name, "Artifact name"),
            artifact_type=_require_name(artifact_type, "Artifact type"),
            reference=reference,
            metadata=metadata,
            created_at=self.clock(),
        )
        with self.storage.ledger_lock():
            if entry_id is not None and self.storage.get_entry(entry_id) is None:
                raise NotFoundError(f"Entry not found: {entry_id}")
            self.storage.save_artifact(artifact)
            if entry_id is not None:
                self.storage.add_link(EntryArtifact(entry_id, artifact.id))
        logger.info(f"Created artifact {artifact.id} ({artifact.artifact_type})")
        return artifact

    def link_artifact(self, entry_id: str, artifact_id: str) -> EntryArtifact:
        """Link an artifact to an entry. Linking twice is a no-op.

        Raises:
            NotFoundError: If the entry or the artifact does not exist
        """
        with self.storage.ledger_lock():
            if self.storage.get_entry(entry_id) is None:
                raise NotFoundError(f"Entry not found: {entry_id}")
            self.get_artifact(artifact_id)
            link = EntryArtifact(entry_id, artifact_id)
            self.storage.add_link(link)
        return link

    def unlink_artifact(self, entry_id: str, artifact_id: str) -> None:
        """Remove the link between an entry and an artifact.

        Raises:
            NotFoundError: If no such link exists
        """
        with self.storage.ledger_lock():
            if not self.storage.remove_link(EntryArtifact(entry_id, artifact_id)):
                raise NotFoundError(
                    f"Artifact {artifact_id} is not linked to entry {entry_id}"
                )

    def delete_artifact(self, artifact_id: str) -> None:
        """Delete an artifact and every link to it.

        Raises:
            NotFoundError: If artifact not found
        """
        with self.storage.ledger_lock():
            self.get_artifact(artifact_id)
            self.storage.delete_links(artifact_id=artifact_id)
            self.storage.delete_artifact(artifact_id)
        logger.info(f"Deleted artifact {artifact_id}")
