"""Report generation over the time entry ledger."""

from worklog.analysis.reports import (
    DailySummary,
    MonthlyReport,
    ReportAggregator,
    ReportRenderer,
    TaskSummary,
)

__all__ = [
    "DailySummary",
    "MonthlyReport",
    "ReportAggregator",
    "ReportRenderer",
    "TaskSummary",
]
