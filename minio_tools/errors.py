"""
Exception types raised by the MinIO ops tools.
"""


class ToolError(Exception):
    """Base class for errors reported to the user by the CLI."""


class MetricsSourceError(ToolError):
    """Metrics input could not be opened or read."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"error reading metrics file {path}: {cause}")


class DiagnosticsError(ToolError):
    """Diagnostics JSON could not be read or decoded."""


class StorageError(ToolError):
    """Snapshot database operation failed."""


class ExportError(ToolError):
    """JSON export could not be written."""


class GeneratorError(ToolError):
    """S3 data generator could not connect or prepare its buckets."""
