"""Base classes for export and import functionality."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class Exporter(ABC):
    """Base class for all exporters."""

    def __init__(self, output_path: Path):
        """Initialize exporter.

        Args:
            output_path: Path where exported data will be written
        """
        self.output_path = Path(output_path)

    @abstractmethod
    def export(self, data: Any, **kwargs: Any) -> Any:
        """Write ``data`` to the output path.

        Args:
            data: Object to export (a bundle, a report)
            **kwargs: Format-specific options

        Returns:
            Format-specific result; None for single-file formats
        """
        pass

    @abstractmethod
    def get_file_extension(self) -> str:
        """Get the file extension for this format (e.g., '.json', '.md').

        Returns:
            File extension including the dot
        """
        pass

    def ensure_output_path(self) -> None:
        """Ensure the output path's parent directory exists."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)


class Importer(ABC):
    """Base class for all importers."""

    def __init__(self, input_path: Path):
        """Initialize importer.

        Args:
            input_path: Path to file to import
        """
        self.input_path = Path(input_path)

    @abstractmethod
    def read(self, **kwargs: Any) -> Any:
        """Read the input file.

        Args:
            **kwargs: Format-specific options

        Returns:
            Parsed payload

        Raises:
            FileNotFoundError: If input file doesn't exist
            MalformedBundleError: If input file is malformed
        """
        pass

    @abstractmethod
    def get_file_extension(self) -> str:
        """Get the expected file extension (e.g., '.json').

        Returns:
            File extension including the dot
        """
        pass

    def validate_input_path(self) -> None:
        """Validate that input file exists and has correct extension.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file has wrong extension
        """
        if not self.input_path.exists():
            raise FileNotFoundError(f"Input file not found: {self.input_path}")

        expected_ext = self.get_file_extension()
        if self.input_path.suffix.lower() != expected_ext.lower():
            raise ValueError(f"Expected {expected_ext} file, got {self.input_path.suffix}")
