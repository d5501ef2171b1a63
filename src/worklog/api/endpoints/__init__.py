"""API endpoints.

Each module defines a FastAPI router that is included in the main application.

Available routers:
- system: Health checks and system status
- tasks: Task management
- folders: Folder management
- entries: Time entry lifecycle, CRUD and artifact links
- artifacts: Artifact management
- reports: Monthly reports
- data: Dataset export and import
"""

__all__ = ["artifacts", "data", "entries", "folders", "reports", "system", "tasks"]

from worklog.api.endpoints import (  # noqa: F401
    artifacts,
    data,
    entries,
    folders,
    reports,
    system,
    tasks,
)
