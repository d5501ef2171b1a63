"""Main CLI application."""

import json
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from worklog import __version__
from worklog.analysis.reports import ReportRenderer
from worklog.cli.common import (
    console,
    error_console,
    format_datetime,
    format_duration,
    get_config,
    get_service,
    parse_time,
    resolve_entry_id,
    resolve_task_id,
    short_id,
)
from worklog.core.config import configure_logging
from worklog.core.errors import WorklogError
from worklog.core.models import UNSET
from worklog.export_import import MarkdownExporter


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", envvar="WORKLOG_DATA_DIR", help="Custom data directory", type=click.Path())
@click.option("--config", "config_path", envvar="WORKLOG_CONFIG", help="Path to config file", type=click.Path())
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    data_dir: Optional[str],
    config_path: Optional[str],
    no_color: bool,
    verbose: bool,
) -> None:
    """Worklog - time entry ledger with monthly reports.

    Track work against tasks, attach artifacts, and export or import the
    whole dataset.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["config_path"] = config_path

    if no_color:
        console.no_color = True

    try:
        config = get_config(ctx)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    configure_logging(config, verbose=verbose)


@cli.command()
@click.option("-t", "--task", "task_id", help="Task ID (or unique prefix)")
@click.option("-m", "--memo", help="Memo for the entry")
@click.pass_context
def start(ctx: click.Context, task_id: Optional[str], memo: Optional[str]) -> None:
    """Start tracking a new entry.

    Fails if another entry is already running.

    Example:
        worklog start -t 3f2a -m "Reviewing pull requests"
    """
    try:
        service = get_service(ctx)
        if task_id:
            task_id = resolve_task_id(service, task_id)
        entry = service.start_entry(task_id=task_id, memo=memo)
        task = service.catalog.storage.get_task(task_id) if task_id else None

        console.print(f"[green]✓[/green] Started entry {short_id(entry.id)}")
        console.print(f"  Task: {task.name if task else 'Unclassified'}")
        console.print(f"  Started: {format_datetime(entry.started_at)}")

    except WorklogError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument("entry_id", required=False)
@click.option("-m", "--memo", help="Replace the memo of the stopped entry")
@click.pass_context
def stop(ctx: click.Context, entry_id: Optional[str], memo: Optional[str]) -> None:
    """Stop the running entry (or a specific entry).

    Example:
        worklog stop
        worklog stop -m "Done with review"
    """
    try:
        service = get_service(ctx)
        if entry_id:
            entry_id = resolve_entry_id(service, entry_id)
        entry = service.stop_entry(entry_id, memo=memo)

        console.print(f"[green]✓[/green] Stopped entry {short_id(entry.id)}")
        console.print(f"  Duration: {format_duration(entry.duration_seconds)}")

    except WorklogError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the running entry.

    Example:
        worklog status
    """
    try:
        service = get_service(ctx)
        running = service.get_running_entry()
    except WorklogError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if running is None:
        console.print("[yellow]No entry is currently running[/yellow]")
        console.print("\nStart tracking with: [cyan]worklog start[/cyan]")
        return

    entry = running.entry
    content = f"""[bold]{running.task.name if running.task else 'Unclassified'}[/bold]

[dim]Started:[/dim] {format_datetime(entry.started_at)}
[dim]Duration:[/dim] {format_duration(entry.elapsed_seconds(service.clock()))}"""

    if entry.memo:
        content += f"\n[dim]Memo:[/dim] {entry.memo}"
    if running.artifacts:
        content += f"\n[dim]Artifacts:[/dim] {', '.join(a.name for a in running.artifacts)}"
    content += f"\n[dim]Entry ID:[/dim] {entry.id}"

    console.print(Panel(content, title="Currently Tracking", border_style="green"))


@cli.command()
@click.option("--start", "start_time", required=True, help="Start time (YYYY-MM-DD HH:MM or HH:MM for today)")
@click.option("--end", "end_time", required=True, help="End time (YYYY-MM-DD HH:MM or HH:MM for today)")
@click.option("-t", "--task", "task_id", help="Task ID (or unique prefix)")
@click.option("-m", "--memo", help="Memo for the entry")
@click.pass_context
def add(
    ctx: click.Context,
    start_time: str,
    end_time: str,
    task_id: Optional[str],
    memo: Optional[str],
) -> None:
    """Add a completed entry.

    Example:
        worklog add --start "09:00" --end "09:30" -m "Standup"
        worklog add --start "2024-03-01 14:00" --end "2024-03-01 15:30"
    """
    started_at = parse_time(start_time)
    ended_at = parse_time(end_time)

    try:
        service = get_service(ctx)
        if task_id:
            task_id = resolve_task_id(service, task_id)
        entry = service.add_entry(started_at, ended_at, task_id=task_id, memo=memo)

        console.print(f"[green]✓[/green] Added entry {short_id(entry.id)}")
        console.print(f"  Duration: {format_duration(entry.duration_seconds)}")
        console.print(
            f"  Time: {format_datetime(entry.started_at)} → {format_datetime(entry.ended_at)}"  # type: ignore[arg-type]
        )

    except WorklogError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.option("-n", "--count", default=10, help="Number of entries to show")
@click.option("-d", "--date", help="Filter by date (YYYY-MM-DD or 'today', 'yesterday')")
@click.option("-t", "--task", "task_id", help="Filter by task ID (or unique prefix)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def log(
    ctx: click.Context,
    count: int,
    date: Optional[str],
    task_id: Optional[str],
    as_json: bool,
) -> None:
    """List recent entries.

    Example:
        worklog log
        worklog log -n 20
        worklog log -d today
    """
    start_date = None
    end_date = None
    if date:
        today = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
        if date.lower() == "today":
            start_date = today
        elif date.lower() == "yesterday":
            start_date = today - timedelta(days=1)
        else:
            try:
                start_date = datetime.strptime(date, "%Y-%m-%d")
            except ValueError:
                error_console.print(
                    "[red]Error:[/red] Invalid date format. Use YYYY-MM-DD, 'today', or 'yesterday'"
                )
                sys.exit(1)
        end_date = start_date + timedelta(days=1) - timedelta(microseconds=1)

    try:
        service = get_service(ctx)
        if task_id:
            task_id = resolve_task_id(service, task_id)
        entries = service.list_entries(start=start_date, end=end_date, task_id=task_id, limit=count)
    except WorklogError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if as_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return

    if not entries:
        console.print("[yellow]No entries found[/yellow]")
        return

    now = service.clock()
    table = Table(title=f"Time Entries (showing {len(entries)})")
    table.add_column("ID", style="dim")
    table.add_column("Start", style="cyan")
    table.add_column("Duration", style="magenta")
    table.add_column("Task", style="bold")
    table.add_column("Memo")

    for details in entries:
        entry = details.entry
        status_icon = "▶" if entry.is_running else "■"
        task_name = details.task.name if details.task else "Unclassified"
        table.add_row(
            short_id(entry.id),
            format_datetime(entry.started_at),
            format_duration(entry.elapsed_seconds(now)),
            f"{status_icon} {task_name}",
            entry.memo or "-",
        )

    console.print(table)


@cli.command()
@click.argument("entry_id")
@click.option("-t", "--task", "task_id", help="Assign to task ID (or unique prefix)")
@click.option("--no-task", is_flag=True, help="Make the entry unclassified")
@click.option("--start", "start_time", help="New start time")
@click.option("--end", "end_time", help="New end time (stops a running entry)")
@click.option("-m", "--memo", help="New memo")
@click.option("--clear-memo", is_flag=True, help="Remove the memo")
@click.pass_context
def edit(
    ctx: click.Context,
    entry_id: str,
    task_id: Optional[str],
    no_task: bool,
    start_time: Optional[str],
    end_time: Optional[str],
    memo: Optional[str],
    clear_memo: bool,
) -> None:
    """Edit an entry. Only the given options are changed.

    Example:
        worklog edit 3f2a --end "17:30"
        worklog edit 3f2a --no-task
    """
    if task_id and no_task:
        raise click.UsageError("--task and --no-task are mutually exclusive")
    if memo is not None and clear_memo:
        raise click.UsageError("--memo and --clear-memo are mutually exclusive")

    try:
        service = get_service(ctx)
        entry_id = resolve_entry_id(service, entry_id)
        patch = {
            "task_id": None if no_task else (resolve_task_id(service, task_id) if task_id else UNSET),
            "started_at": parse_time(start_time) if start_time else UNSET,
            "ended_at": parse_time(end_time) if end_time else UNSET,
            "memo": None if clear_memo else (memo if memo is not None else UNSET),
        }
        entry = service.update_entry(entry_id, **patch)

        console.print(f"[green]✓[/green] Updated entry {short_id(entry.id)}")
        console.print(f"  Duration: {format_duration(entry.duration_seconds)}")

    except WorklogError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument("entry_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete(ctx: click.Context, entry_id: str, yes: bool) -> None:
    """Delete an entry and its artifact links.

    Example:
        worklog delete 3f2a --yes
    """
    try:
        service = get_service(ctx)
        entry_id = resolve_entry_id(service, entry_id)

        if not yes and not click.confirm(f"Delete entry {short_id(entry_id)}?"):
            console.print("Cancelled")
            return

        service.delete_entry(entry_id)
        console.print(f"[green]✓[/green] Deleted entry {short_id(entry_id)}")

    except WorklogError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument("year", type=int, required=False)
@click.argument("month", type=int, required=False)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--markdown", "markdown_file", type=click.Path(), help="Also write the report as Markdown")
@click.pass_context
def report(
    ctx: click.Context,
    year: Optional[int],
    month: Optional[int],
    as_json: bool,
    markdown_file: Optional[str],
) -> None:
    """Show the monthly report (current month by default).

    Examples:
        worklog report
        worklog report 2024 3
        worklog report 2024 3 --markdown march.md
    """
    today = datetime.now()
    year = year or today.year
    month = month or today.month

    try:
        service = get_service(ctx)
        monthly = service.get_monthly_report(year, month)
    except WorklogError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if as_json:
        print(json.dumps(monthly.to_dict(), indent=2))
    else:
        ReportRenderer(console).monthly(monthly)

    if markdown_file:
        MarkdownExporter(Path(markdown_file)).export(monthly)
        console.print(f"[green]✓[/green] Report written to {markdown_file}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def months(ctx: click.Context, as_json: bool) -> None:
    """List months that have entries, most recent first."""
    try:
        available = get_service(ctx).get_available_months()
    except WorklogError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if as_json:
        print(json.dumps([{"year": y, "month": m} for y, m in available]))
        return
    ReportRenderer(console).months(available)


def _register_groups() -> None:
    from worklog.cli.api_commands import api
    from worklog.cli.catalog_commands import artifact, folder, task
    from worklog.cli.config_commands import config
    from worklog.cli.export_import_commands import data

    for group in (task, folder, artifact, data, config, api):
        cli.add_command(group)


_register_groups()


if __name__ == "__main__":
    cli(obj={})
