"""Task endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query, status  # type: ignore[import-untyped]

from worklog.api.auth import verify_token
from worklog.api.dependencies import get_service
from worklog.api.models import (
    ArchiveTaskRequest,
    CreateTaskRequest,
    TaskResponse,
    UpdateTaskRequest,
    patch_of,
)
from worklog.core.service import WorklogService

router = APIRouter()


@router.get("/", response_model=list[TaskResponse])
def list_tasks(
    include_archived: bool = Query(False, description="Include archived tasks"),
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> list[TaskResponse]:
    """List tasks, newest first."""
    return [TaskResponse.from_task(t) for t in service.list_tasks(include_archived)]


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    request: CreateTaskRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> TaskResponse:
    """Create a task. A blank name is rejected with 422."""
    task = service.create_task(
        request.name,
        description=request.description,
        color=request.color,
        folder_id=request.folder_id,
    )
    return TaskResponse.from_task(task)


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: str,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> TaskResponse:
    """Get a task by ID."""
    return TaskResponse.from_task(service.get_task(task_id))


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: str,
    request: UpdateTaskRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> TaskResponse:
    """Update the fields present in the request body."""
    return TaskResponse.from_task(service.update_task(task_id, **patch_of(request)))


@router.post("/{task_id}/archive", response_model=TaskResponse)
def archive_task(
    task_id: str,
    request: ArchiveTaskRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> TaskResponse:
    """Archive (or, with ``archived: false``, restore) a task."""
    return TaskResponse.from_task(service.archive_task(task_id, request.archived))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> None:
    """Delete a task. Its entries become unclassified."""
    service.delete_task(task_id)
