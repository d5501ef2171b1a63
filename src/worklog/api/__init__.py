"""REST API for Worklog.

This module provides a FastAPI-based REST API exposing the same commands as
the CLI. The API is disabled by default and must be explicitly enabled in
the configuration.

Usage:
    # Enable API
    worklog config set api.enabled true

    # Generate token
    worklog api token

    # Start server
    worklog api serve

    # Access API docs
    http://localhost:8000/docs
"""

__all__ = ["create_app", "run_server"]

from worklog.api.server import create_app, run_server  # noqa: F401
