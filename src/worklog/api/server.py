"""FastAPI application server.

This module contains the main FastAPI application setup and server runner.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI  # type: ignore[import-untyped]
from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

from worklog import __version__
from worklog.api.middleware import setup_middleware
from worklog.core.config import ConfigManager
from worklog.core.service import WorklogService

logger = logging.getLogger(__name__)

# Read by the uvicorn factory, which cannot receive arguments
CONFIG_ENV = "WORKLOG_CONFIG"
DATA_DIR_ENV = "WORKLOG_DATA_DIR"


def create_app(
    config: Optional[ConfigManager] = None,
    data_dir: Optional[Path] = None,
    service: Optional[WorklogService] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Configuration manager. Loaded from ``WORKLOG_CONFIG`` (or the
            default path) if None.
        data_dir: Overrides ``general.data_dir``; falls back to ``WORKLOG_DATA_DIR``
        service: Prebuilt service. Built from ``config`` if None.

    Returns:
        Configured FastAPI application instance
    """
    if config is None:
        config_path = os.environ.get(CONFIG_ENV)
        config = ConfigManager(Path(config_path) if config_path else None)
    if data_dir is None and os.environ.get(DATA_DIR_ENV):
        data_dir = Path(os.environ[DATA_DIR_ENV])
    if service is None:
        service = WorklogService.from_config(config, data_dir=data_dir)

    app = FastAPI(
        title="Worklog API",
        description="REST API for the Worklog time entry ledger",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Shared by all requests so ledger mutations go through one lock
    app.state.config = config
    app.state.service = service

    setup_middleware(app, config)

    from worklog.api.endpoints import artifacts, data, entries, folders, reports, system, tasks

    app.include_router(system.router, prefix="/api/v1", tags=["system"])
    app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["tasks"])
    app.include_router(folders.router, prefix="/api/v1/folders", tags=["folders"])
    app.include_router(entries.router, prefix="/api/v1/entries", tags=["entries"])
    app.include_router(artifacts.router, prefix="/api/v1/artifacts", tags=["artifacts"])
    app.include_router(reports.router, prefix="/api/v1/reports", tags=["reports"])
    app.include_router(data.router, prefix="/api/v1/data", tags=["data"])

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Root endpoint - points at the docs."""
        return JSONResponse(
            {
                "message": "Worklog API",
                "version": __version__,
                "docs": "/docs",
                "health": "/api/v1/health",
            }
        )

    logger.debug(f"API app created for data dir {service.storage.data_dir}")
    return app


def run_server(
    host: str = "localhost",
    port: int = 8000,
    reload: bool = False,
    workers: int = 1,
    ssl_certfile: Optional[Path] = None,
    ssl_keyfile: Optional[Path] = None,
    config: Optional[ConfigManager] = None,
    data_dir: Optional[Path] = None,
) -> None:
    """Run the API server using Uvicorn.

    Args:
        host: Host address to bind to
        port: Port number to bind to
        reload: Enable auto-reload for development
        workers: Number of worker processes
        ssl_certfile: Path to SSL certificate file
        ssl_keyfile: Path to SSL key file
        config: Configuration manager. Its path is passed to the workers.
        data_dir: Data directory override passed to the workers

    Note:
        This function blocks until the server is stopped.
        SSL requires both cert_file and key_file to be specified.
    """
    import uvicorn  # type: ignore[import-untyped]

    if config is None:
        config = ConfigManager()

    os.environ[CONFIG_ENV] = str(config.config_path)
    if data_dir is not None:
        os.environ[DATA_DIR_ENV] = str(data_dir)

    uvicorn_config = {
        "app": "worklog.api.server:create_app",
        "factory": True,
        "host": host,
        "port": port,
        "reload": reload,
        "workers": workers if not reload else 1,  # reload only works with 1 worker
        "log_level": config.get("api.advanced.log_level", "info"),
        "access_log": config.get("api.advanced.access_log", True),
    }

    if ssl_certfile and ssl_keyfile:
        uvicorn_config.update(
            {
                "ssl_certfile": str(ssl_certfile),
                "ssl_keyfile": str(ssl_keyfile),
            }
        )

    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run(**uvicorn_config)
