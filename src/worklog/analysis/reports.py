"""Monthly statistics over the time entry ledger."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Callable, Optional

from rich.console import Console  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]
from rich.text import Text  # type: ignore[import-not-found]

from worklog.core.storage import StorageManager
from worklog.core.timeutil import calendar_date_key, local_date, month_bounds, utc_now

logger = logging.getLogger(__name__)

UNCLASSIFIED_LABEL = "Unclassified"
UNCLASSIFIED_COLOR = "#6b7280"


@dataclass
class TaskSummary:
    """Time spent on one task within a report period.

    ``task_id`` is None for the unclassified group, which also collects
    entries whose task no longer exists.
    """

    task_id: Optional[str]
    task_name: str
    task_color: str
    total_seconds: int = 0
    entry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "task_name": self.task_name,
            "task_color": self.task_color,
            "total_seconds": self.total_seconds,
            "entry_count": self.entry_count,
        }


@dataclass
class DailySummary:
    """Time tracked on one calendar day."""

    date: str
    total_seconds: int = 0
    entry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "total_seconds": self.total_seconds,
            "entry_count": self.entry_count,
        }


@dataclass
class MonthlyReport:
    """Statistics for one calendar month."""

    year: int
    month: int
    total_seconds: int = 0
    total_entries: int = 0
    working_days: int = 0
    average_seconds_per_day: int = 0
    task_summaries: list[TaskSummary] = field(default_factory=list)
    daily_summaries: list[DailySummary] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "total_seconds": self.total_seconds,
            "total_entries": self.total_entries,
            "working_days": self.working_days,
            "average_seconds_per_day": self.average_seconds_per_day,
            "task_summaries": [s.to_dict() for s in self.task_summaries],
            "daily_summaries": [s.to_dict() for s in self.daily_summaries],
        }


class ReportAggregator:
    """Turn raw entries into monthly statistics.

    Reports are read-only snapshots of the ledger at call time. Open entries
    are included with their duration evaluated against the clock.
    """

    def __init__(
        self,
        storage: Optional[StorageManager] = None,
        tz: Optional[tzinfo] = None,
        unclassified_label: str = UNCLASSIFIED_LABEL,
        unclassified_color: str = UNCLASSIFIED_COLOR,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize report aggregator.

        Args:
            storage: Storage manager instance. Creates default if None.
            tz: Zone used for month and day boundaries. None means system local.
            unclassified_label: Name shown for entries without a task
            unclassified_color: Color shown for entries without a task
            clock: Callable returning the current aware instant
        """
        self.storage = storage or StorageManager()
        self.tz = tz
        self.unclassified_label = unclassified_label
        self.unclassified_color = unclassified_color
        self.clock = clock or utc_now

    def monthly_report(self, year: int, month: int) -> MonthlyReport:
        """Build the report for one month.

        Args:
            year: Calendar year
            month: Calendar month (1-12)

        Returns:
            MonthlyReport. A month without entries yields zeroed totals and
            empty summaries.

        Raises:
            ValidationError: If month is outside 1..12 or the year outside
                MIN_YEAR..MAX_YEAR
        """
        start, end = month_bounds(year, month, self.tz)
        entries = self.storage.load_entries(start=start, end=end)
        tasks = {t.id: t for t in self.storage.load_tasks()}
        now = self.clock()

        by_task: dict[Optional[str], TaskSummary] = {}
        by_day: dict[str, DailySummary] = {}
        total = 0

        for entry in entries:
            seconds = entry.elapsed_seconds(now)
            total += seconds

            task = tasks.get(entry.task_id) if entry.task_id else None
            key = task.id if task else None
            summary = by_task.get(key)
            if summary is None:
                if task:
                    summary = TaskSummary(task.id, task.name, task.color)
                else:
                    summary = TaskSummary(None, self.unclassified_label, self.unclassified_color)
                by_task[key] = summary
            summary.total_seconds += seconds
            summary.entry_count += 1

            day_key = calendar_date_key(entry.started_at, self.tz)
            day = by_day.setdefault(day_key, DailySummary(day_key))
            day.total_seconds += seconds
            day.entry_count += 1

        task_summaries = sorted(
            by_task.values(),
            key=lambda s: (-s.total_seconds, s.task_name, s.task_id or ""),
        )
        daily_summaries = [by_day[k] for k in sorted(by_day)]
        working_days = len(daily_summaries)

        logger.debug(f"Report {year}-{month:02d}: {len(entries)} entries, {total}s")
        return MonthlyReport(
            year=year,
            month=month,
            total_seconds=total,
            total_entries=len(entries),
            working_days=working_days,
            average_seconds_per_day=total // working_days if working_days else 0,
            task_summaries=task_summaries,
            daily_summaries=daily_summaries,
        )

    def available_months(self) -> list[tuple[int, int]]:
        """Every (year, month) with at least one entry, most recent first."""
        months = set()
        for entry in self.storage.load_entries():
            day = local_date(entry.started_at, self.tz)
            months.add((day.year, day.month))
        return sorted(months, reverse=True)


class ReportRenderer:
    """Print reports as rich tables."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize report renderer.

        Args:
            console: Rich console for output. Creates default if None.
        """
        self.console = console or Console()

    def monthly(self, report: MonthlyReport) -> None:
        """Display a monthly report."""
        title = f"{report.year}-{report.month:02d}"
        if report.total_entries == 0:
            self.console.print(f"[yellow]No entries found for {title}[/yellow]")
            return

        self.console.print(f"\n[bold cyan]Worklog - {title}[/bold cyan]\n")

        overview_table = Table(show_header=False, box=None, padding=(0, 2))
        overview_table.add_column(style="dim")
        overview_table.add_column(style="bold")
        overview_table.add_row("Total Time:", self._format_duration(report.total_seconds))
        overview_table.add_row("Entries:", str(report.total_entries))
        overview_table.add_row("Working Days:", str(report.working_days))
        overview_table.add_row(
            "Daily Average:", self._format_duration(report.average_seconds_per_day)
        )
        self.console.print(overview_table)
        self.console.print()

        task_table = Table(title="Time by Task")
        task_table.add_column("Task", style="cyan")
        task_table.add_column("Duration", style="magenta", justify="right")
        task_table.add_column("Entries", justify="right")
        task_table.add_column("% Total", style="green", justify="right")
        task_table.add_column("Bar", style="blue")

        for summary in report.task_summaries:
            pct = self._percentage(summary.total_seconds, report.total_seconds)
            name = summary.task_name
            task_table.add_row(
                Text(name[:50] + "..." if len(name) > 50 else name, style=summary.task_color),
                self._format_duration(summary.total_seconds),
                str(summary.entry_count),
                f"{pct:.1f}%",
                self._create_bar(pct),
            )
        self.console.print(task_table)
        self.console.print()

        day_table = Table(title="Time by Day")
        day_table.add_column("Date", style="cyan")
        day_table.add_column("Duration", style="magenta", justify="right")
        day_table.add_column("Entries", justify="right")
        for day in report.daily_summaries:
            day_table.add_row(
                day.date, self._format_duration(day.total_seconds), str(day.entry_count)
            )
        self.console.print(day_table)

    def months(self, months: list[tuple[int, int]]) -> None:
        """Display the months that have entries."""
        if not months:
            self.console.print("[yellow]No entries recorded yet[/yellow]")
            return
        for year, month in months:
            self.console.print(f"{year}-{month:02d}")

    @staticmethod
    def _percentage(part: int, whole: int) -> float:
        return (part / whole) * 100 if whole > 0 else 0.0

    @staticmethod
    def _format_duration(seconds: Optional[int]) -> str:
        """Format duration in seconds to human-readable string.

        Args:
            seconds: Duration in seconds

        Returns:
            Formatted duration string
        """
        if seconds is None:
            return "ongoing"

        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        secs = seconds % 60

        if hours > 0:
            return f"{hours}h {minutes}m"
        elif minutes > 0:
            return f"{minutes}m {secs}s"
        else:
            return f"{secs}s"

    @staticmethod
    def _create_bar(percentage: float, width: int = 25) -> Text:
        """Create a visual bar for percentage display.

        Args:
            percentage: Percentage value (0-100)
            width: Width of the bar in characters

        Returns:
            Rich Text object with colored bar
        """
        filled = int((percentage / 100) * width)
        empty = width - filled

        bar = Text()
        bar.append("█" * filled, style="blue")
        bar.append("░" * empty, style="dim")

        return bar
