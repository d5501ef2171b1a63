"""JSON bundle files."""

import json
from typing import Any

from worklog.core.errors import MalformedBundleError
from worklog.export_import.base import Exporter, Importer


class JSONExporter(Exporter):
    """Write an exchange bundle to a JSON file."""

    def get_file_extension(self) -> str:
        """Get JSON file extension.

        Returns:
            '.json'
        """
        return ".json"

    def export(self, data: Any, **kwargs: Any) -> None:
        """Write a bundle to the output file.

        Args:
            data: Bundle dictionary
            **kwargs: Additional options
                - indent (int): JSON indentation level (default: 2)
        """
        self.ensure_output_path()

        indent = kwargs.get("indent", 2)
        with open(self.output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
            f.write("\n")


class JSONImporter(Importer):
    """Read an exchange bundle from a JSON file."""

    def get_file_extension(self) -> str:
        """Get JSON file extension.

        Returns:
            '.json'
        """
        return ".json"

    def read(self, **kwargs: Any) -> dict[str, Any]:
        """Read and parse the bundle file.

        Only the JSON syntax and top-level type are checked here; the
        bundle shape is validated by the import itself.

        Returns:
            Bundle dictionary

        Raises:
            FileNotFoundError: If input file doesn't exist
            ValueError: If the file has the wrong extension
            MalformedBundleError: If the file is not a JSON object
        """
        self.validate_input_path()

        try:
            with open(self.input_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedBundleError(f"Invalid JSON file: {e}")

        if not isinstance(data, dict):
            raise MalformedBundleError("Bundle must be a JSON object")
        return data
