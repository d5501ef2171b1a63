"""CLI commands for tasks, folders and artifacts."""

import json
import sys
from typing import Any, Optional

import click
from rich.table import Table

from worklog.cli.common import (
    console,
    error_console,
    format_datetime,
    get_service,
    resolve_artifact_id,
    resolve_entry_id,
    resolve_folder_id,
    resolve_task_id,
    short_id,
)
from worklog.core.errors import WorklogError
from worklog.core.models import UNSET


def _fail(e: Exception) -> None:
    error_console.print(f"[red]Error:[/red] {e}")
    sys.exit(1)


# Tasks


@click.group()
def task() -> None:
    """Manage tasks."""
    pass


@task.command("add")
@click.argument("name")
@click.option("-d", "--description", help="Task description")
@click.option("-c", "--color", help="Color code (#RRGGBB)")
@click.option("-f", "--folder", "folder_id", help="Folder ID (or unique prefix)")
@click.pass_context
def task_add(
    ctx: click.Context,
    name: str,
    description: Optional[str],
    color: Optional[str],
    folder_id: Optional[str],
) -> None:
    """Create a task.

    Example:
        worklog task add "Code review" -c "#10b981"
    """
    try:
        service = get_service(ctx)
        if folder_id:
            folder_id = resolve_folder_id(service, folder_id)
        created = service.create_task(name, description=description, color=color, folder_id=folder_id)
        console.print(f"[green]✓[/green] Created task {short_id(created.id)}: {created.name}")
    except WorklogError as e:
        _fail(e)


@task.command("list")
@click.option("--all", "include_archived", is_flag=True, help="Include archived tasks")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def task_list(ctx: click.Context, include_archived: bool, as_json: bool) -> None:
    """List tasks, newest first."""
    try:
        tasks = get_service(ctx).list_tasks(include_archived=include_archived)
    except WorklogError as e:
        _fail(e)
        return

    if as_json:
        print(json.dumps([t.to_dict() for t in tasks], indent=2))
        return

    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(title="Tasks")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Color")
    table.add_column("Folder", style="dim")
    table.add_column("Created", style="cyan")

    for t in tasks:
        name = f"{t.name} [dim](archived)[/dim]" if t.archived else t.name
        table.add_row(
            short_id(t.id),
            name,
            f"[{t.color}]■[/{t.color}] {t.color}",
            short_id(t.folder_id),
            format_datetime(t.created_at),
        )

    console.print(table)


@task.command("edit")
@click.argument("task_id")
@click.option("-n", "--name", help="New name")
@click.option("-d", "--description", help="New description")
@click.option("-c", "--color", help="New color code (#RRGGBB)")
@click.option("-f", "--folder", "folder_id", help="Move to folder ID (or unique prefix)")
@click.option("--no-folder", is_flag=True, help="Remove from its folder")
@click.pass_context
def task_edit(
    ctx: click.Context,
    task_id: str,
    name: Optional[str],
    description: Optional[str],
    color: Optional[str],
    folder_id: Optional[str],
    no_folder: bool,
) -> None:
    """Edit a task. Only the given options are changed."""
    if folder_id and no_folder:
        raise click.UsageError("--folder and --no-folder are mutually exclusive")

    try:
        service = get_service(ctx)
        task_id = resolve_task_id(service, task_id)
        patch: dict[str, Any] = {}
        if name is not None:
            patch["name"] = name
        if description is not None:
            patch["description"] = description
        if color is not None:
            patch["color"] = color
        if no_folder:
            patch["folder_id"] = None
        elif folder_id:
            patch["folder_id"] = resolve_folder_id(service, folder_id)

        updated = service.update_task(task_id, **patch)
        console.print(f"[green]✓[/green] Updated task {short_id(updated.id)}: {updated.name}")
    except WorklogError as e:
        _fail(e)


@task.command("archive")
@click.argument("task_id")
@click.pass_context
def task_archive(ctx: click.Context, task_id: str) -> None:
    """Archive a task. Its entries are kept."""
    try:
        service = get_service(ctx)
        archived = service.archive_task(resolve_task_id(service, task_id), True)
        console.print(f"[green]✓[/green] Archived task {archived.name}")
    except WorklogError as e:
        _fail(e)


@task.command("unarchive")
@click.argument("task_id")
@click.pass_context
def task_unarchive(ctx: click.Context, task_id: str) -> None:
    """Restore an archived task."""
    try:
        service = get_service(ctx)
        restored = service.archive_task(resolve_task_id(service, task_id), False)
        console.print(f"[green]✓[/green] Restored task {restored.name}")
    except WorklogError as e:
        _fail(e)


@task.command("delete")
@click.argument("task_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def task_delete(ctx: click.Context, task_id: str, yes: bool) -> None:
    """Delete a task. Its entries become unclassified."""
    try:
        service = get_service(ctx)
        target = service.get_task(resolve_task_id(service, task_id))

        if not yes and not click.confirm(f"Delete task '{target.name}'?"):
            console.print("Cancelled")
            return

        unassigned = service.delete_task(target.id)
        console.print(f"[green]✓[/green] Deleted task {target.name}")
        if unassigned:
            console.print(f"  {unassigned} entries are now unclassified")
    except WorklogError as e:
        _fail(e)


# Folders


@click.group()
def folder() -> None:
    """Manage task folders."""
    pass


@folder.command("add")
@click.argument("name")
@click.option("-c", "--color", help="Color code (#RRGGBB)")
@click.option("-i", "--icon", help="Icon name")
@click.pass_context
def folder_add(ctx: click.Context, name: str, color: Optional[str], icon: Optional[str]) -> None:
    """Create a folder at the end of the list."""
    try:
        created = get_service(ctx).create_folder(name, color=color, icon=icon)
        console.print(f"[green]✓[/green] Created folder {short_id(created.id)}: {created.name}")
    except WorklogError as e:
        _fail(e)


@folder.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def folder_list(ctx: click.Context, as_json: bool) -> None:
    """List folders in sort order."""
    try:
        folders = get_service(ctx).list_folders()
    except WorklogError as e:
        _fail(e)
        return

    if as_json:
        print(json.dumps([f.to_dict() for f in folders], indent=2))
        return

    if not folders:
        console.print("[yellow]No folders found[/yellow]")
        return

    table = Table(title="Folders")
    table.add_column("#", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Color")
    table.add_column("Icon")

    for f in folders:
        table.add_row(
            str(f.sort_order),
            short_id(f.id),
            f.name,
            f"[{f.color}]■[/{f.color}] {f.color}",
            f.icon or "-",
        )

    console.print(table)


@folder.command("edit")
@click.argument("folder_id")
@click.option("-n", "--name", help="New name")
@click.option("-c", "--color", help="New color code (#RRGGBB)")
@click.option("-i", "--icon", help="New icon name")
@click.option("--order", "sort_order", type=int, help="New sort position")
@click.pass_context
def folder_edit(
    ctx: click.Context,
    folder_id: str,
    name: Optional[str],
    color: Optional[str],
    icon: Optional[str],
    sort_order: Optional[int],
) -> None:
    """Edit a folder. Only the given options are changed."""
    try:
        service = get_service(ctx)
        updated = service.update_folder(
            resolve_folder_id(service, folder_id),
            name=UNSET if name is None else name,
            color=UNSET if color is None else color,
            icon=UNSET if icon is None else icon,
            sort_order=UNSET if sort_order is None else sort_order,
        )
        console.print(f"[green]✓[/green] Updated folder {short_id(updated.id)}: {updated.name}")
    except WorklogError as e:
        _fail(e)


@folder.command("delete")
@click.argument("folder_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def folder_delete(ctx: click.Context, folder_id: str, yes: bool) -> None:
    """Delete a folder. Its tasks are kept, without a folder."""
    try:
        service = get_service(ctx)
        folder_id = resolve_folder_id(service, folder_id)

        if not yes and not click.confirm(f"Delete folder {short_id(folder_id)}?"):
            console.print("Cancelled")
            return

        moved = service.delete_folder(folder_id)
        console.print(f"[green]✓[/green] Deleted folder {short_id(folder_id)}")
        if moved:
            console.print(f"  {moved} tasks no longer have a folder")
    except WorklogError as e:
        _fail(e)


# Artifacts


def _parse_metadata(pairs: tuple[str, ...]) -> Optional[dict[str, Any]]:
    if not pairs:
        return None
    metadata: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--meta")
        metadata[key] = value
    return metadata


@click.group()
def artifact() -> None:
    """Manage artifacts attached to entries."""
    pass


@artifact.command("add")
@click.argument("name")
@click.argument("artifact_type")
@click.option("-r", "--reference", help="URL, path or other locator")
@click.option("--meta", multiple=True, help="Metadata as KEY=VALUE (repeatable)")
@click.option("-e", "--entry", "entry_id", help="Link to entry ID (or unique prefix)")
@click.pass_context
def artifact_add(
    ctx: click.Context,
    name: str,
    artifact_type: str,
    reference: Optional[str],
    meta: tuple[str, ...],
    entry_id: Optional[str],
) -> None:
    """Create an artifact, optionally linked to an entry.

    Example:
        worklog artifact add "PR #42" pull_request -r https://example.com/pr/42 -e 3f2a
    """
    metadata = _parse_metadata(meta)

    try:
        service = get_service(ctx)
        if entry_id:
            entry_id = resolve_entry_id(service, entry_id)
        created = service.create_artifact(
            name, artifact_type, reference=reference, metadata=metadata, entry_id=entry_id
        )
        console.print(f"[green]✓[/green] Created artifact {short_id(created.id)}: {created.name}")
        if entry_id:
            console.print(f"  Linked to entry {short_id(entry_id)}")
    except WorklogError as e:
        _fail(e)


@artifact.command("list")
@click.option("-n", "--count", type=int, help="Maximum number of artifacts")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def artifact_list(ctx: click.Context, count: Optional[int], as_json: bool) -> None:
    """List artifacts, newest first."""
    try:
        artifacts = get_service(ctx).list_artifacts(limit=count)
    except WorklogError as e:
        _fail(e)
        return

    if as_json:
        print(json.dumps([a.to_dict() for a in artifacts], indent=2))
        return

    if not artifacts:
        console.print("[yellow]No artifacts found[/yellow]")
        return

    table = Table(title="Artifacts")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Type", style="magenta")
    table.add_column("Reference")
    table.add_column("Created", style="cyan")

    for a in artifacts:
        table.add_row(
            short_id(a.id), a.name, a.artifact_type, a.reference or "-", format_datetime(a.created_at)
        )

    console.print(table)


@artifact.command("link")
@click.argument("entry_id")
@click.argument("artifact_id")
@click.pass_context
def artifact_link(ctx: click.Context, entry_id: str, artifact_id: str) -> None:
    """Link an artifact to an entry."""
    try:
        service = get_service(ctx)
        link = service.link_artifact(
            resolve_entry_id(service, entry_id), resolve_artifact_id(service, artifact_id)
        )
        console.print(
            f"[green]✓[/green] Linked artifact {short_id(link.artifact_id)} "
            f"to entry {short_id(link.entry_id)}"
        )
    except WorklogError as e:
        _fail(e)


@artifact.command("unlink")
@click.argument("entry_id")
@click.argument("artifact_id")
@click.pass_context
def artifact_unlink(ctx: click.Context, entry_id: str, artifact_id: str) -> None:
    """Remove the link between an entry and an artifact."""
    try:
        service = get_service(ctx)
        entry_id = resolve_entry_id(service, entry_id)
        artifact_id = resolve_artifact_id(service, artifact_id)
        service.unlink_artifact(entry_id, artifact_id)
        console.print(
            f"[green]✓[/green] Unlinked artifact {short_id(artifact_id)} from entry {short_id(entry_id)}"
        )
    except WorklogError as e:
        _fail(e)


@artifact.command("delete")
@click.argument("artifact_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def artifact_delete(ctx: click.Context, artifact_id: str, yes: bool) -> None:
    """Delete an artifact and all of its links."""
    try:
        service = get_service(ctx)
        artifact_id = resolve_artifact_id(service, artifact_id)

        if not yes and not click.confirm(f"Delete artifact {short_id(artifact_id)}?"):
            console.print("Cancelled")
            return

        service.delete_artifact(artifact_id)
        console.print(f"[green]✓[/green] Deleted artifact {short_id(artifact_id)}")
    except WorklogError as e:
        _fail(e)
