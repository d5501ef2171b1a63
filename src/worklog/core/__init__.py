"""Core functionality for the time entry ledger."""

from worklog.core.models import Artifact, EntryArtifact, Folder, Task, TimeEntry
from worklog.core.tracker import TimeTracker

__all__ = ["Artifact", "EntryArtifact", "Folder", "Task", "TimeEntry", "TimeTracker"]
