"""Command-line interface for Worklog."""
