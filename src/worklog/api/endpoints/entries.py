"""Entry endpoints for time tracking operations.

This module provides CRUD operations for time entries, the start/stop
lifecycle and entry/artifact links.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status  # type: ignore[import-untyped]

from worklog.api.auth import verify_token
from worklog.api.dependencies import get_service
from worklog.api.models import (
    CreateEntryRequest,
    EntryResponse,
    LinkResponse,
    StartEntryRequest,
    StopEntryRequest,
    UpdateEntryRequest,
    patch_of,
)
from worklog.core.service import WorklogService

router = APIRouter()


@router.get("/", response_model=list[EntryResponse])
def list_entries(
    start: Optional[datetime] = Query(None, description="Entries starting at or after"),
    end: Optional[datetime] = Query(None, description="Entries starting at or before"),
    task_id: Optional[str] = Query(None, description="Filter by task"),
    limit: Optional[int] = Query(None, ge=1, le=10000, description="Maximum number of entries"),
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> list[EntryResponse]:
    """List entries, most recent first.

    Example:
        >>> GET /api/v1/entries?start=2024-03-01T00:00:00Z&limit=10
    """
    entries = service.list_entries(start=start, end=end, task_id=task_id, limit=limit)
    return [EntryResponse.from_details(e) for e in entries]


@router.get("/running", response_model=Optional[EntryResponse])
def get_running_entry(
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> Optional[EntryResponse]:
    """Get the running entry, or null when nothing is running."""
    running = service.get_running_entry()
    return EntryResponse.from_details(running) if running else None


@router.post("/start", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
def start_entry(
    request: StartEntryRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> EntryResponse:
    """Start a new entry. Responds 409 if another entry is running.

    Example:
        >>> POST /api/v1/entries/start
        {"task_id": "uuid", "memo": "Reviewing"}
    """
    entry = service.start_entry(task_id=request.task_id, memo=request.memo)
    return EntryResponse.from_details(service.get_entry(entry.id))


@router.post("/stop", response_model=EntryResponse)
def stop_running_entry(
    request: StopEntryRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> EntryResponse:
    """Stop the running entry. Responds 404 if nothing is running."""
    entry = service.stop_entry(memo=request.memo)
    return EntryResponse.from_details(service.get_entry(entry.id))


@router.post("/", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
def create_entry(
    request: CreateEntryRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> EntryResponse:
    """Record a completed entry after the fact."""
    entry = service.add_entry(
        request.started_at, request.ended_at, task_id=request.task_id, memo=request.memo
    )
    return EntryResponse.from_details(service.get_entry(entry.id))


@router.get("/{entry_id}", response_model=EntryResponse)
def get_entry(
    entry_id: str,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> EntryResponse:
    """Get an entry with its task and artifacts."""
    return EntryResponse.from_details(service.get_entry(entry_id))


@router.post("/{entry_id}/stop", response_model=EntryResponse)
def stop_entry(
    entry_id: str,
    request: StopEntryRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> EntryResponse:
    """Stop a specific entry. Responds 409 if it has already been stopped."""
    service.stop_entry(entry_id, memo=request.memo)
    return EntryResponse.from_details(service.get_entry(entry_id))


@router.patch("/{entry_id}", response_model=EntryResponse)
def update_entry(
    entry_id: str,
    request: UpdateEntryRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> EntryResponse:
    """Update the fields present in the request body.

    Example:
        >>> PATCH /api/v1/entries/{uuid}
        {"task_id": null}
    """
    service.update_entry(entry_id, **patch_of(request))
    return EntryResponse.from_details(service.get_entry(entry_id))


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: str,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> None:
    """Delete an entry and its artifact links."""
    service.delete_entry(entry_id)


@router.put("/{entry_id}/artifacts/{artifact_id}", response_model=LinkResponse)
def link_artifact(
    entry_id: str,
    artifact_id: str,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> LinkResponse:
    """Link an artifact to an entry. Linking twice is a no-op."""
    return LinkResponse.from_link(service.link_artifact(entry_id, artifact_id))


@router.delete("/{entry_id}/artifacts/{artifact_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_artifact(
    entry_id: str,
    artifact_id: str,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> None:
    """Remove the link between an entry and an artifact."""
    service.unlink_artifact(entry_id, artifact_id)
