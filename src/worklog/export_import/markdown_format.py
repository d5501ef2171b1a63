"""Markdown export of monthly reports."""

from datetime import datetime
from typing import Any

from worklog.analysis.reports import MonthlyReport
from worklog.export_import.base import Exporter


def _hours(seconds: int) -> str:
    return f"{seconds / 3600:.2f} hours"


class MarkdownExporter(Exporter):
    """Export a monthly report to Markdown format."""

    def get_file_extension(self) -> str:
        """Get Markdown file extension.

        Returns:
            '.md'
        """
        return ".md"

    def export(self, data: Any, **kwargs: Any) -> None:
        """Export a report to Markdown file.

        Args:
            data: MonthlyReport to render
            **kwargs: Additional options
                - title (str): Document title (default: "Worklog Report YYYY-MM")
                - include_daily (bool): Include the per-day table (default: True)
        """
        if not isinstance(data, MonthlyReport):
            raise TypeError("MarkdownExporter exports MonthlyReport objects")

        self.ensure_output_path()
        content = self.render(
            data,
            title=kwargs.get("title"),
            include_daily=kwargs.get("include_daily", True),
        )
        with open(self.output_path, "w", encoding="utf-8") as f:
            f.write(content)

    def render(self, report: MonthlyReport, title: Any = None, include_daily: bool = True) -> str:
        """Generate markdown content for a report.

        Returns:
            Markdown formatted string
        """
        lines = []
        lines.append(f"# {title or f'Worklog Report {report.year}-{report.month:02d}'}\n")

        generated = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        lines.append(f"**Generated:** {generated}\n")

        lines.append("## Summary\n")
        lines.append(f"**Total Time Tracked:** {_hours(report.total_seconds)}")
        lines.append(f"**Total Entries:** {report.total_entries}")
        lines.append(f"**Working Days:** {report.working_days}")
        lines.append(f"**Daily Average:** {_hours(report.average_seconds_per_day)}\n")

        if report.task_summaries:
            lines.append("## Time by Task\n")
            lines.append("| Task | Hours | Entries | % Total |")
            lines.append("|------|-------|---------|---------|")
            for summary in report.task_summaries:
                pct = (
                    summary.total_seconds / report.total_seconds * 100
                    if report.total_seconds
                    else 0.0
                )
                lines.append(
                    f"| {summary.task_name} | {summary.total_seconds / 3600:.2f} "
                    f"| {summary.entry_count} | {pct:.1f}% |"
                )
            lines.append("")

        if include_daily and report.daily_summaries:
            lines.append("## Time by Day\n")
            lines.append("| Date | Hours | Entries |")
            lines.append("|------|-------|---------|")
            for day in report.daily_summaries:
                lines.append(
                    f"| {day.date} | {day.total_seconds / 3600:.2f} | {day.entry_count} |"
                )
            lines.append("")

        return "\n".join(lines)
