"""Folder endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, status  # type: ignore[import-untyped]

from worklog.api.auth import verify_token
from worklog.api.dependencies import get_service
from worklog.api.models import (
    CreateFolderRequest,
    FolderResponse,
    UpdateFolderRequest,
    patch_of,
)
from worklog.core.service import WorklogService

router = APIRouter()


@router.get("/", response_model=list[FolderResponse])
def list_folders(
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> list[FolderResponse]:
    """List folders in display order."""
    return [FolderResponse.from_folder(f) for f in service.list_folders()]


@router.post("/", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
def create_folder(
    request: CreateFolderRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> FolderResponse:
    """Create a folder at the end of the display order."""
    folder = service.create_folder(request.name, color=request.color, icon=request.icon)
    return FolderResponse.from_folder(folder)


@router.patch("/{folder_id}", response_model=FolderResponse)
def update_folder(
    folder_id: str,
    request: UpdateFolderRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> FolderResponse:
    """Update the fields present in the request body."""
    return FolderResponse.from_folder(service.update_folder(folder_id, **patch_of(request)))


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_folder(
    folder_id: str,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> None:
    """Delete a folder. Its tasks are moved out of it."""
    service.delete_folder(folder_id)
