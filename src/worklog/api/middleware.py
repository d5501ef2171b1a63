"""Middleware and error handlers for the FastAPI application."""

import logging

from fastapi import FastAPI, Request, status  # type: ignore[import-untyped]
from fastapi.middleware.cors import CORSMiddleware  # type: ignore[import-untyped]
from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

from worklog.core.config import ConfigManager
from worklog.core.errors import (
    AlreadyClosedError,
    ConflictError,
    MalformedBundleError,
    NotFoundError,
    ValidationError,
    WorklogError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFoundError: 404,
    ConflictError: 409,
    AlreadyClosedError: 409,
    ValidationError: 422,
    MalformedBundleError: 422,
}


def status_for(error: WorklogError) -> int:
    """HTTP status for a domain error (400 for unmapped kinds)."""
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def worklog_error_handler(request: Request, exc: WorklogError) -> JSONResponse:
    """Render a domain error as ``{"detail", "error_code"}``."""
    code = status_for(exc)
    logger.debug(f"{request.method} {request.url.path} -> {code} ({exc.code})")
    return JSONResponse(status_code=code, content={"detail": exc.message, "error_code": exc.code})


def setup_cors(app: FastAPI, config: ConfigManager) -> None:
    """Configure CORS middleware from the api.cors section.

    By default, only localhost origins are allowed.
    """
    if not config.get("api.cors.enabled", True):
        return

    origins = config.get("api.cors.origins", ["http://localhost:3000"])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def setup_middleware(app: FastAPI, config: ConfigManager) -> None:
    """Set up CORS and the domain error handlers."""
    setup_cors(app, config)
    app.add_exception_handler(WorklogError, worklog_error_handler)
