"""Dataset export and import endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends  # type: ignore[import-untyped]

from worklog.api.auth import verify_token
from worklog.api.dependencies import get_service
from worklog.api.models import ImportRequest, ImportResultResponse
from worklog.core.service import WorklogService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/export")
def export_data(
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> dict[str, Any]:
    """Export the whole ledger as a bundle."""
    return service.export_data()


@router.post("/import", response_model=ImportResultResponse)
def import_data(
    request: ImportRequest,
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> ImportResultResponse:
    """Apply a bundle in merge or replace mode.

    Responds 422 for a malformed bundle (nothing is written) and 409 when
    a merge would leave two running entries.
    """
    logger.info(f"API import requested (merge={request.merge})")
    result = service.import_data(request.bundle, merge=request.merge)
    return ImportResultResponse(**result.to_dict())
