"""Shared helpers for CLI commands."""

from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import click
from rich.console import Console

from worklog.core.config import ConfigManager
from worklog.core.service import WorklogService

console = Console()
error_console = Console(stderr=True)


def get_config(ctx: click.Context) -> ConfigManager:
    """Configuration loaded by the root command (or from the default path)."""
    obj = ctx.find_root().ensure_object(dict)
    if obj.get("config") is None:
        config_path = obj.get("config_path")
        obj["config"] = ConfigManager(Path(config_path) if config_path else None)
    config: ConfigManager = obj["config"]
    return config


def get_service(ctx: click.Context) -> WorklogService:
    """Service for the selected config and data directory."""
    obj = ctx.find_root().ensure_object(dict)
    if obj.get("service") is None:
        data_dir = obj.get("data_dir")
        obj["service"] = WorklogService.from_config(
            get_config(ctx), data_dir=Path(data_dir) if data_dir else None
        )
    service: WorklogService = obj["service"]
    return service


def format_duration(seconds: Optional[int]) -> str:
    """Format duration in seconds to human-readable string."""
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


def format_datetime(dt: datetime) -> str:
    """Format an instant for display in the local zone."""
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def parse_time(time_str: str) -> datetime:
    """Parse 'YYYY-MM-DD HH:MM', 'HH:MM' (today) or an ISO timestamp.

    Naive values are local time.

    Raises:
        click.BadParameter: If the value matches no format
    """
    for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(time_str, fmt)
        except ValueError:
            pass

    try:
        time_part = datetime.strptime(time_str, "%H:%M").time()
        return datetime.combine(datetime.now().date(), time_part)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(time_str.replace("Z", "+00:00"))
    except ValueError:
        raise click.BadParameter(
            f"Invalid time format: {time_str}. Use 'HH:MM' or 'YYYY-MM-DD HH:MM'"
        )


def short_id(record_id: Optional[str]) -> str:
    """First 8 characters of an id, for tables."""
    return record_id[:8] if record_id else "-"


def resolve_id(ids: Iterable[str], value: str, kind: str) -> str:
    """Expand an id prefix to a full id.

    Returns ``value`` unchanged when nothing matches so the command reports
    the usual not-found error.

    Raises:
        click.UsageError: If the prefix matches more than one id
    """
    known = list(ids)
    if value in known:
        return value
    matches = [i for i in known if i.startswith(value)]
    if len(matches) > 1:
        raise click.UsageError(f"Ambiguous {kind} id prefix '{value}' ({len(matches)} matches)")
    return matches[0] if matches else value


def resolve_entry_id(service: WorklogService, value: str) -> str:
    return resolve_id((e.id for e in service.storage.load_entries()), value, "entry")


def resolve_task_id(service: WorklogService, value: str) -> str:
    return resolve_id((t.id for t in service.storage.load_tasks()), value, "task")


def resolve_folder_id(service: WorklogService, value: str) -> str:
    return resolve_id((f.id for f in service.storage.load_folders()), value, "folder")


def resolve_artifact_id(service: WorklogService, value: str) -> str:
    return resolve_id((a.id for a in service.storage.load_artifacts()), value, "artifact")
