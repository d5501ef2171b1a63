"""Core data models for the time entry ledger."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from worklog.core.timeutil import elapsed_seconds, parse_timestamp, utc_now

DEFAULT_TASK_COLOR = "#3b82f6"
DEFAULT_FOLDER_COLOR = "#6b7280"


class _Unset:
    """Marker for patch arguments that were not supplied.

    Lets callers distinguish "leave unchanged" from an explicit None
    (e.g. clearing a task assignment).
    """

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def new_id() -> str:
    """Generate a new opaque record identifier."""
    return str(uuid4())


def is_valid_color(color: str) -> bool:
    """Check that a color is a ``#RRGGBB`` hex code."""
    if len(color) != 7 or not color.startswith("#"):
        return False
    return all(c in "0123456789abcdefABCDEF" for c in color[1:])


def _optional_str(value: Any) -> Optional[str]:
    """Map empty CSV/JSON values to None."""
    if value is None or value == "":
        return None
    return str(value)


def _optional_time(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    return parse_timestamp(value)


def _as_bool(value: Any) -> bool:
    """Read a boolean from CSV ("True"/"False") or JSON (true/false)."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


@dataclass
class Task:
    """A unit of work time entries can be assigned to.

    Attributes:
        id: Unique identifier
        name: Display name
        description: Longer description (optional)
        color: Display color (hex)
        archived: Hidden from active pickers when True
        folder_id: Folder this task is filed under (weak reference)
        created_at: When this record was created
        updated_at: Last update time
    """

    name: str
    id: str = field(default_factory=new_id)
    description: Optional[str] = None
    color: str = DEFAULT_TASK_COLOR
    archived: bool = False
    folder_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "folder_id": self.folder_id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "archived": self.archived,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create Task from dictionary (CSV/JSON deserialization)."""
        created_at = _optional_time(data.get("created_at")) or utc_now()
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=_optional_str(data.get("description")),
            color=data.get("color") or DEFAULT_TASK_COLOR,
            archived=_as_bool(data.get("archived", False)),
            folder_id=_optional_str(data.get("folder_id")),
            created_at=created_at,
            updated_at=_optional_time(data.get("updated_at")) or created_at,
        )


@dataclass
class Folder:
    """Grouping for tasks. Tasks point at folders, folders own nothing.

    Attributes:
        id: Unique identifier
        name: Display name
        color: Display color (hex)
        icon: Symbolic icon name (optional)
        sort_order: Position among folders
        created_at: When this record was created
        updated_at: Last update time
    """

    name: str
    id: str = field(default_factory=new_id)
    color: str = DEFAULT_FOLDER_COLOR
    icon: Optional[str] = None
    sort_order: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "icon": self.icon,
            "sort_order": self.sort_order,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Folder":
        """Create Folder from dictionary (CSV/JSON deserialization)."""
        created_at = _optional_time(data.get("created_at")) or utc_now()
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            color=data.get("color") or DEFAULT_FOLDER_COLOR,
            icon=_optional_str(data.get("icon")),
            sort_order=int(data.get("sort_order") or 0),
            created_at=created_at,
            updated_at=_optional_time(data.get("updated_at")) or created_at,
        )


@dataclass
class TimeEntry:
    """A tracked span of work. Open (running) while ``ended_at`` is None.

    Attributes:
        id: Unique identifier
        task_id: Task this entry is assigned to (weak reference, None = unclassified)
        started_at: When the entry started
        ended_at: When the entry ended (None if running)
        memo: Free-form note
        created_at: When this record was created
        updated_at: Last update time
    """

    started_at: datetime
    id: str = field(default_factory=new_id)
    task_id: Optional[str] = None
    ended_at: Optional[datetime] = None
    memo: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_running(self) -> bool:
        """Check if this entry is currently running."""
        return self.ended_at is None

    @property
    def duration_seconds(self) -> Optional[int]:
        """Closed duration in seconds. Returns None if entry is running."""
        if self.ended_at is None:
            return None
        return elapsed_seconds(self.started_at, self.ended_at)

    def elapsed_seconds(self, now: Optional[datetime] = None) -> int:
        """Duration in seconds, evaluated live for a running entry."""
        return elapsed_seconds(self.started_at, self.ended_at, now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "task_id": self.task_id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_seconds": self.duration_seconds,
            "memo": self.memo,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeEntry":
        """Create TimeEntry from dictionary (CSV/JSON deserialization).

        A ``duration_seconds`` key, if present, is ignored: durations are
        always derived from the timestamps.
        """
        created_at = _optional_time(data.get("created_at")) or utc_now()
        return cls(
            id=str(data["id"]),
            task_id=_optional_str(data.get("task_id")),
            started_at=parse_timestamp(data["started_at"]),
            ended_at=_optional_time(data.get("ended_at")),
            memo=_optional_str(data.get("memo")),
            created_at=created_at,
            updated_at=_optional_time(data.get("updated_at")) or created_at,
        )


@dataclass
class Artifact:
    """Something produced during work: a document, URL, commit and so on.

    Attributes:
        id: Unique identifier
        name: Display name
        artifact_type: Free-form type tag
        reference: URL, path or commit id (optional)
        metadata: Open key-value bag (optional)
        created_at: When this record was created
    """

    name: str
    artifact_type: str
    id: str = field(default_factory=new_id)
    reference: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "artifact_type": self.artifact_type,
            "reference": self.reference,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }

    def to_row(self) -> dict[str, Any]:
        """Flatten for CSV storage (metadata encoded as JSON text)."""
        row = self.to_dict()
        row["reference"] = self.reference or ""
        row["metadata"] = json.dumps(self.metadata) if self.metadata is not None else ""
        return row

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Artifact":
        """Create Artifact from dictionary (CSV/JSON deserialization)."""
        metadata = data.get("metadata")
        if isinstance(metadata, str):
            metadata = json.loads(metadata) if metadata else None
        if metadata is not None and not isinstance(metadata, dict):
            raise ValueError("Artifact metadata must be an object")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            artifact_type=str(data["artifact_type"]),
            reference=_optional_str(data.get("reference")),
            metadata=metadata,
            created_at=_optional_time(data.get("created_at")) or utc_now(),
        )


@dataclass(frozen=True)
class EntryArtifact:
    """Link between a time entry and an artifact."""

    entry_id: str
    artifact_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"entry_id": self.entry_id, "artifact_id": self.artifact_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EntryArtifact":
        """Create EntryArtifact from dictionary."""
        return cls(entry_id=str(data["entry_id"]), artifact_id=str(data["artifact_id"]))


@dataclass
class EntryDetails:
    """A time entry together with its resolved task and linked artifacts.

    ``task`` is None both for unclassified entries and for entries whose
    task reference no longer resolves.
    """

    entry: TimeEntry
    task: Optional[Task] = None
    artifacts: list[Artifact] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.entry.id

    @property
    def is_running(self) -> bool:
        return self.entry.is_running

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = self.entry.to_dict()
        data["task"] = self.task.to_dict() if self.task else None
        data["artifacts"] = [a.to_dict() for a in self.artifacts]
        return data
