"""Import and export of table data as SQL, JSON or CSV."""

from .engine import DataExporter, DataImporter
from .types import (
    CsvImportConfig,
    DataFormat,
    ExportConfig,
    ExportProgressEvent,
    ExportResult,
    ImportConfig,
    ImportProgressEvent,
    ImportResult,
)

__all__ = [
    "CsvImportConfig",
    "DataExporter",
    "DataFormat",
    "DataImporter",
    "ExportConfig",
    "ExportProgressEvent",
    "ExportResult",
    "ImportConfig",
    "ImportProgressEvent",
    "ImportResult",
]
