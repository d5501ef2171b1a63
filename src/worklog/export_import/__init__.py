"""Dataset export and import for Worklog."""

from worklog.export_import.base import Exporter, Importer
from worklog.export_import.json_format import JSONExporter, JSONImporter
from worklog.export_import.markdown_format import MarkdownExporter
from worklog.export_import.parquet_format import ParquetExporter
from worklog.export_import.transfer import BUNDLE_VERSION, DatasetTransfer, ImportResult

__all__ = [
    "BUNDLE_VERSION",
    "DatasetTransfer",
    "Exporter",
    "ImportResult",
    "Importer",
    "JSONExporter",
    "JSONImporter",
    "MarkdownExporter",
    "ParquetExporter",
]
