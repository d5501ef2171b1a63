"""System endpoints for health checks and status."""

import time
from typing import Any

from fastapi import APIRouter, Depends  # type: ignore[import-untyped]

from worklog import __version__
from worklog.api.auth import verify_token
from worklog.api.dependencies import get_config, get_service
from worklog.api.models import HealthResponse, StatusResponse
from worklog.core.config import ConfigManager
from worklog.core.service import WorklogService
from worklog.core.timeutil import utc_now

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint.

    This endpoint is public (no authentication required).
    """
    return HealthResponse(status="healthy", timestamp=utc_now(), version=__version__)


@router.get("/status", response_model=StatusResponse)
def get_status(
    config: ConfigManager = Depends(get_config),
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> StatusResponse:
    """Get system status, including the running entry id."""
    running = service.tracker.get_running()
    return StatusResponse(
        api_enabled=config.get("api.enabled", False),
        authentication_enabled=config.get("api.authentication.enabled", True),
        cors_enabled=config.get("api.cors.enabled", True),
        running_entry_id=running.id if running else None,
        uptime_seconds=time.time() - _server_start_time,
    )
