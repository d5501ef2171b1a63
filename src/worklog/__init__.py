"""Worklog - time entry ledger with monthly reports and dataset export/import."""

__version__ = "0.1.0"

__all__ = ["__version__"]
