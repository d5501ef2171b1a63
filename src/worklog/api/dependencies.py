"""Dependency injection for FastAPI endpoints.

The application builds one ``WorklogService`` at startup and keeps it in
``app.state``; endpoints receive it through ``get_service``.
"""

from fastapi import Request  # type: ignore[import-untyped]

from worklog.core.config import ConfigManager
from worklog.core.service import WorklogService


def get_config(request: Request) -> ConfigManager:
    """Get the configuration manager the app was created with.

    Note:
        This is a dependency function for FastAPI endpoints.
        Use with Depends(get_config) in endpoint parameters.
    """
    config: ConfigManager = request.app.state.config
    return config


def get_service(request: Request) -> WorklogService:
    """Get the service the app was created with.

    Note:
        This is a dependency function for FastAPI endpoints.
        Use with Depends(get_service) in endpoint parameters.
    """
    service: WorklogService = request.app.state.service
    return service
