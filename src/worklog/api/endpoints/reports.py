"""Report endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Path  # type: ignore[import-untyped]

from worklog.api.auth import verify_token
from worklog.api.dependencies import get_service
from worklog.api.models import MonthlyReportResponse, MonthResponse
from worklog.core.service import WorklogService
from worklog.core.timeutil import MAX_YEAR, MIN_YEAR

router = APIRouter()


@router.get("/months", response_model=list[MonthResponse])
def available_months(
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> list[MonthResponse]:
    """Months that have at least one entry, most recent first."""
    return [MonthResponse(year=y, month=m) for y, m in service.get_available_months()]


@router.get("/monthly/{year}/{month}", response_model=MonthlyReportResponse)
def monthly_report(
    year: int = Path(..., ge=MIN_YEAR, le=MAX_YEAR),
    month: int = Path(..., ge=1, le=12),
    service: WorklogService = Depends(get_service),
    _: dict[str, Any] = Depends(verify_token),
) -> MonthlyReportResponse:
    """Monthly totals, per-task and per-day summaries.

    A month without entries returns zeroed totals and empty summaries.

    Example:
        >>> GET /api/v1/reports/monthly/2024/3
    """
    return MonthlyReportResponse.from_report(service.get_monthly_report(year, month))
