"""Artifact endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status  # type: ignore[import-untyped]

from worklog.api.auth import verify_token
from worklog.api.dependencies import get_service
from worklog.api.models import ArtifactResponse, CreateArtifactRequest
from worklog.core.service import WorklogService

router = APIRouter()


@router.get("/", response_model=list[ArtifactResponse])
def list_artifacts(
    limit: Optional[int] = Query(None, ge=1, le=10000),
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> list[ArtifactResponse]:
    """List artifacts, newest first."""
    return [ArtifactResponse.from_artifact(a) for a in service.list_artifacts(limit)]


@router.post("/", response_model=ArtifactResponse, status_code=status.HTTP_201_CREATED)
def create_artifact(
    request: CreateArtifactRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> ArtifactResponse:
    """Create an artifact, optionally linked to an entry.

    Responds 404 without creating anything if ``entry_id`` is unknown.
    """
    artifact = service.create_artifact(
        request.name,
        request.artifact_type,
        reference=request.reference,
        metadata=request.metadata,
        entry_id=request.entry_id,
    )
    return ArtifactResponse.from_artifact(artifact)


@router.get("/{artifact_id}", response_model=ArtifactResponse)
def get_artifact(
    artifact_id: str,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> ArtifactResponse:
    """Get an artifact by ID."""
    return ArtifactResponse.from_artifact(service.catalog.get_artifact(artifact_id))


@router.delete("/{artifact_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_artifact(
    artifact_id: str,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> None:
    """Delete an artifact and every link to it."""
    service.delete_artifact(artifact_id)
