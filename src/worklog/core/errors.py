"""Typed failures raised by the worklog domain engine."""

from typing import Optional


class WorklogError(Exception):
    """Base class for all domain errors.

    Attributes:
        code: Machine-readable error code used by the API and CLI
    """

    code = "worklog_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(WorklogError):
    """An identifier does not resolve to an existing record."""

    code = "not_found"


class ConflictError(WorklogError):
    """The operation would leave more than one running entry."""

    code = "conflict"


class AlreadyClosedError(WorklogError):
    """Stop was requested for an entry that has already ended."""

    code = "already_closed"


class MalformedBundleError(WorklogError):
    """An import payload does not have the required shape."""

    code = "malformed_bundle"


class ValidationError(WorklogError):
    """Input failed a domain validation rule (e.g. empty task name)."""

    code = "validation_error"
