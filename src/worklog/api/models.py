"""Pydantic models for API requests and responses.

Update requests carry patch semantics: only the fields present in the
request body are applied, so an explicit ``null`` clears a value while an
omitted field leaves it unchanged.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field  # type: ignore[import-untyped]

from worklog.analysis.reports import MonthlyReport
from worklog.core.models import Artifact, EntryArtifact, EntryDetails, Folder, Task, TimeEntry

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def patch_of(request: BaseModel) -> dict[str, Any]:
    """Fields explicitly present in a request body."""
    return {name: getattr(request, name) for name in request.model_fields_set}


# ============================================================================
# Response Models
# ============================================================================


class TaskResponse(BaseModel):
    """Response model for task."""

    id: str
    name: str
    description: Optional[str] = None
    color: str
    archived: bool = False
    folder_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            name=task.name,
            description=task.description,
            color=task.color,
            archived=task.archived,
            folder_id=task.folder_id,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class FolderResponse(BaseModel):
    """Response model for folder."""

    id: str
    name: str
    color: str
    icon: Optional[str] = None
    sort_order: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_folder(cls, folder: Folder) -> "FolderResponse":
        return cls(
            id=folder.id,
            name=folder.name,
            color=folder.color,
            icon=folder.icon,
            sort_order=folder.sort_order,
            created_at=folder.created_at,
            updated_at=folder.updated_at,
        )


class ArtifactResponse(BaseModel):
    """Response model for artifact."""

    id: str
    name: str
    artifact_type: str
    reference: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    created_at: datetime

    @classmethod
    def from_artifact(cls, artifact: Artifact) -> "ArtifactResponse":
        return cls(
            id=artifact.id,
            name=artifact.name,
            artifact_type=artifact.artifact_type,
            reference=artifact.reference,
            metadata=artifact.metadata,
            created_at=artifact.created_at,
        )


class EntryResponse(BaseModel):
    """Response model for time entry.

    ``task`` and ``artifacts`` are filled for reads; ``task`` is None when the
    entry is unclassified or its task no longer exists.
    """

    id: str
    task_id: Optional[str] = None
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    memo: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    task: Optional[TaskResponse] = None
    artifacts: list[ArtifactResponse] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: TimeEntry) -> "EntryResponse":
        return cls(
            id=entry.id,
            task_id=entry.task_id,
            started_at=entry.started_at,
            ended_at=entry.ended_at,
            duration_seconds=entry.duration_seconds,
            memo=entry.memo,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )

    @classmethod
    def from_details(cls, details: EntryDetails) -> "EntryResponse":
        response = cls.from_entry(details.entry)
        response.task = TaskResponse.from_task(details.task) if details.task else None
        response.artifacts = [ArtifactResponse.from_artifact(a) for a in details.artifacts]
        return response


class LinkResponse(BaseModel):
    """Response model for an entry/artifact link."""

    entry_id: str
    artifact_id: str

    @classmethod
    def from_link(cls, link: EntryArtifact) -> "LinkResponse":
        return cls(entry_id=link.entry_id, artifact_id=link.artifact_id)


class TaskSummaryResponse(BaseModel):
    task_id: Optional[str] = None
    task_name: str
    task_color: str
    total_seconds: int
    entry_count: int


class DailySummaryResponse(BaseModel):
    date: str
    total_seconds: int
    entry_count: int


class MonthlyReportResponse(BaseModel):
    """Response model for a monthly report."""

    year: int
    month: int
    total_seconds: int
    total_entries: int
    working_days: int
    average_seconds_per_day: int
    task_summaries: list[TaskSummaryResponse]
    daily_summaries: list[DailySummaryResponse]

    @classmethod
    def from_report(cls, report: MonthlyReport) -> "MonthlyReportResponse":
        return cls.model_validate(report.to_dict())


class MonthResponse(BaseModel):
    year: int
    month: int


class ImportResultResponse(BaseModel):
    """Counts of records inserted by an import."""

    tasks_imported: int
    entries_imported: int
    artifacts_imported: int


# ============================================================================
# Request Models
# ============================================================================


class CreateTaskRequest(BaseModel):
    """Request model for creating a task."""

    name: str = Field(..., max_length=500, description="Task name")
    description: Optional[str] = Field(None, max_length=5000)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN, description="Hex color code")
    folder_id: Optional[str] = None


class UpdateTaskRequest(BaseModel):
    """Request model for updating a task. Omitted fields are unchanged."""

    name: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    folder_id: Optional[str] = None


class ArchiveTaskRequest(BaseModel):
    """Request model for archiving or restoring a task."""

    archived: bool = True


class CreateFolderRequest(BaseModel):
    """Request model for creating a folder."""

    name: str = Field(..., max_length=200)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=100)


class UpdateFolderRequest(BaseModel):
    """Request model for updating a folder. Omitted fields are unchanged."""

    name: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=100)
    sort_order: Optional[int] = None


class StartEntryRequest(BaseModel):
    """Request model for starting a new time entry."""

    task_id: Optional[str] = None
    memo: Optional[str] = Field(None, max_length=5000)


class StopEntryRequest(BaseModel):
    """Request model for stopping an entry."""

    memo: Optional[str] = Field(None, max_length=5000, description="Replaces the memo when set")


class CreateEntryRequest(BaseModel):
    """Request model for creating a completed entry."""

    started_at: datetime
    ended_at: datetime
    task_id: Optional[str] = None
    memo: Optional[str] = Field(None, max_length=5000)


class UpdateEntryRequest(BaseModel):
    """Request model for updating an entry. Omitted fields are unchanged."""

    task_id: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    memo: Optional[str] = Field(None, max_length=5000)


class CreateArtifactRequest(BaseModel):
    """Request model for creating an artifact."""

    name: str = Field(..., max_length=500)
    artifact_type: str = Field(..., max_length=100)
    reference: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    entry_id: Optional[str] = Field(None, description="Entry to link the artifact to")


class ImportRequest(BaseModel):
    """Request model for importing a bundle."""

    bundle: dict[str, Any]
    merge: bool = Field(True, description="Merge into the ledger instead of replacing it")


# ============================================================================
# System Models
# ============================================================================


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Current server time")
    version: str = Field(..., description="API version")


class StatusResponse(BaseModel):
    """Response model for system status."""

    api_enabled: bool
    authentication_enabled: bool
    cors_enabled: bool
    running_entry_id: Optional[str] = None
    uptime_seconds: float


class TokenResponse(BaseModel):
    """Response model for authentication token."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiry in seconds")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Machine-readable error code")
