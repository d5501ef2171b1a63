"""CLI commands for dataset export and import."""

import sys
from pathlib import Path

import click

from worklog.cli.common import console, error_console, get_config, get_service
from worklog.core.errors import WorklogError
from worklog.export_import import JSONExporter, JSONImporter, ParquetExporter


@click.group()
def data() -> None:
    """Export and import the whole dataset."""
    pass


@data.command(name="export")
@click.argument("output", type=click.Path())
@click.option(
    "--format",
    "-f",
    "export_format",
    type=click.Choice(["json", "parquet"]),
    default="json",
    help="JSON bundle file, or a directory of Parquet files (one per table)",
)
@click.pass_context
def export_command(ctx: click.Context, output: str, export_format: str) -> None:
    """Export tasks, entries, artifacts and links.

    Examples:
        worklog data export backup.json
        worklog data export --format parquet backup/
    """
    try:
        bundle = get_service(ctx).export_data()
        if export_format == "parquet":
            written = ParquetExporter(Path(output)).export(bundle)
        else:
            indent = get_config(ctx).get("export.indent", 2)
            JSONExporter(Path(output)).export(bundle, indent=indent)
            written = [Path(output)]
    except (WorklogError, OSError, ImportError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(
        f"[green]✓[/green] Exported {len(bundle['tasks'])} tasks, "
        f"{len(bundle['time_entries'])} entries and {len(bundle['artifacts'])} artifacts "
        f"to {output}"
    )
    if export_format == "parquet":
        for path in written:
            console.print(f"  {path}")


@data.command(name="import")
@click.argument("input_file", type=click.Path(exists=True))
@click.option(
    "--merge/--replace",
    default=True,
    help="Merge with existing data or replace all of it (default: merge)",
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation when replacing")
@click.pass_context
def import_command(ctx: click.Context, input_file: str, merge: bool, yes: bool) -> None:
    """Import a JSON bundle.

    Merging keeps existing records and skips incoming records whose id is
    already present. Replacing deletes everything first.

    Examples:
        worklog data import backup.json
        worklog data import backup.json --replace --yes
    """
    try:
        bundle = JSONImporter(Path(input_file)).read()

        if not merge and not yes:
            confirm = click.confirm(
                "This will DELETE all existing tasks, entries and artifacts. Are you sure?",
                default=False,
            )
            if not confirm:
                console.print("Import cancelled")
                return

        result = get_service(ctx).import_data(bundle, merge=merge)

    except (FileNotFoundError, ValueError, WorklogError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    action = "Merged" if merge else "Replaced data with"
    console.print(
        f"[green]✓[/green] {action} {result.tasks_imported} tasks, "
        f"{result.entries_imported} entries and {result.artifacts_imported} artifacts"
    )
