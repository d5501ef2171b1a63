"""Parquet export, one file per table."""

import json
from pathlib import Path
from typing import Any

from worklog.export_import.base import Exporter

TABLES = ("tasks", "artifacts", "time_entries", "entry_artifacts")

_TIMESTAMP_COLUMNS = {
    "tasks": ("created_at", "updated_at"),
    "artifacts": ("created_at",),
    "time_entries": ("started_at", "ended_at", "created_at", "updated_at"),
    "entry_artifacts": (),
}

_COLUMNS = {
    "tasks": (
        "id",
        "folder_id",
        "name",
        "description",
        "color",
        "archived",
        "created_at",
        "updated_at",
    ),
    "artifacts": ("id", "name", "artifact_type", "reference", "metadata", "created_at"),
    "time_entries": (
        "id",
        "task_id",
        "started_at",
        "ended_at",
        "duration_seconds",
        "memo",
        "created_at",
        "updated_at",
    ),
    "entry_artifacts": ("entry_id", "artifact_id"),
}


class ParquetExporter(Exporter):
    """Write the tables of an exchange bundle as Parquet files.

    ``output_path`` is a directory; it receives ``tasks.parquet``,
    ``artifacts.parquet``, ``time_entries.parquet`` and
    ``entry_artifacts.parquet``.
    """

    def get_file_extension(self) -> str:
        """Get Parquet file extension.

        Returns:
            '.parquet'
        """
        return ".parquet"

    def ensure_output_path(self) -> None:
        """Ensure the output directory exists."""
        self.output_path.mkdir(parents=True, exist_ok=True)

    def export(self, data: Any, **kwargs: Any) -> list[Path]:
        """Write each bundle table to its own file.

        Timestamps are stored as UTC. Artifact metadata is stored as JSON
        text.

        Args:
            data: Bundle dictionary
            **kwargs: Additional options
                - compression (str): Parquet codec (default: 'snappy')

        Returns:
            Paths of the written files, in table order

        Raises:
            ImportError: If pandas or pyarrow is not installed
        """
        try:
            import pandas as pd
        except ImportError:
            raise ImportError(
                "pandas is required for Parquet export. Install with: pip install pandas pyarrow"
            )

        self.ensure_output_path()
        compression = kwargs.get("compression", "snappy")

        written = []
        for table in TABLES:
            frame = pd.DataFrame(
                [self._row(table, record) for record in data.get(table) or []],
                columns=list(_COLUMNS[table]),
            )
            for column in _TIMESTAMP_COLUMNS[table]:
                frame[column] = pd.to_datetime(frame[column], utc=True)

            path = self.output_path / f"{table}{self.get_file_extension()}"
            frame.to_parquet(path, engine="pyarrow", compression=compression, index=False)
            written.append(path)

        return written

    @staticmethod
    def _row(table: str, record: dict[str, Any]) -> dict[str, Any]:
        row = {column: record.get(column) for column in _COLUMNS[table]}
        if table == "artifacts" and row["metadata"] is not None:
            row["metadata"] = json.dumps(row["metadata"], ensure_ascii=False)
        return row
