"""Configuration, results and progress events for data import and export."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

from ..channels import ProgressSender

if TYPE_CHECKING:
    from ..connections.base import DbConnection
    from ..plugins.base import DatabasePlugin


class DataFormat(str, Enum):
    SQL = "sql"
    JSON = "json"
    CSV = "csv"

    @classmethod
    def from_extension(cls, extension: str) -> "DataFormat | None":
        """Map a file extension (with or without the dot) to a format."""

        key = extension.strip().lower().lstrip(".")
        for member in cls:
            if member.value == key:
                return member
        return None

    @property
    def extension(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class CsvImportConfig:
    """Field layout of CSV input; ``text_qualifier=None`` disables quoting."""

    field_delimiter: str = ","
    text_qualifier: str | None = '"'
    has_header: bool = True
    record_terminator: str = "\n"
    null_token: str | None = "null"
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if len(self.field_delimiter) != 1:
            raise ValueError("field_delimiter must be a single character")
        if self.text_qualifier is not None and len(self.text_qualifier) != 1:
            raise ValueError("text_qualifier must be a single character")
        if not self.record_terminator:
            raise ValueError("record_terminator must not be empty")


@dataclass(frozen=True, slots=True)
class ImportConfig:
    format: DataFormat = DataFormat.SQL
    database: str = ""
    table: str | None = None
    stop_on_error: bool = True
    use_transaction: bool = True
    truncate_before_import: bool = False
    csv_config: CsvImportConfig | None = None
    file_name: str = ""


@dataclass(frozen=True, slots=True)
class ExportConfig:
    format: DataFormat = DataFormat.SQL
    database: str = ""
    tables: tuple[str, ...] = ()
    include_schema: bool = True
    include_data: bool = True
    where_clause: str | None = None
    limit: int | None = None
    csv_config: CsvImportConfig | None = None


@dataclass(frozen=True, slots=True)
class ImportResult:
    success: bool
    rows_imported: int
    errors: tuple[str, ...] = ()
    elapsed_ms: int = 0


@dataclass(frozen=True, slots=True)
class ExportResult:
    success: bool
    output: str
    rows_exported: int
    elapsed_ms: int = 0
    error: str | None = None


# Export progress


@dataclass(frozen=True, slots=True)
class TableStart:
    table: str
    table_index: int
    total_tables: int


@dataclass(frozen=True, slots=True)
class GettingStructure:
    table: str


@dataclass(frozen=True, slots=True)
class StructureExported:
    table: str


@dataclass(frozen=True, slots=True)
class FetchingData:
    table: str


@dataclass(frozen=True, slots=True)
class DataExported:
    table: str
    rows: int


@dataclass(frozen=True, slots=True)
class TableFinished:
    table: str


@dataclass(frozen=True, slots=True)
class ExportFailed:
    table: str
    message: str


@dataclass(frozen=True, slots=True)
class ExportFinished:
    total_rows: int
    elapsed_ms: int


ExportProgressEvent = Union[
    TableStart,
    GettingStructure,
    StructureExported,
    FetchingData,
    DataExported,
    TableFinished,
    ExportFailed,
    ExportFinished,
]


# Import progress


@dataclass(frozen=True, slots=True)
class ParsingFile:
    file: str


@dataclass(frozen=True, slots=True)
class ExecutingStatement:
    file: str
    statement_index: int
    total_statements: int


@dataclass(frozen=True, slots=True)
class StatementExecuted:
    file: str
    rows_affected: int


@dataclass(frozen=True, slots=True)
class ImportFailed:
    file: str
    message: str


@dataclass(frozen=True, slots=True)
class FileFinished:
    file: str
    rows_imported: int


@dataclass(frozen=True, slots=True)
class ImportFinished:
    total_rows: int
    elapsed_ms: int


ImportProgressEvent = Union[
    ParsingFile,
    ExecutingStatement,
    StatementExecuted,
    ImportFailed,
    FileFinished,
    ImportFinished,
]

ImportEvents = ProgressSender[ImportProgressEvent]
ExportEvents = ProgressSender[ExportProgressEvent]


def emit(events: ProgressSender | None, event: object) -> None:
    """Forward ``event`` when a sender is attached; a closed receiver is ignored."""

    if events is not None:
        events.send(event)


class FormatHandler(ABC):
    """Import and export for one interchange format."""

    format: DataFormat

    @abstractmethod
    async def import_data(
        self,
        plugin: "DatabasePlugin",
        connection: "DbConnection",
        config: ImportConfig,
        data: str,
        events: ImportEvents | None = None,
    ) -> ImportResult: ...

    @abstractmethod
    async def export_data(
        self,
        plugin: "DatabasePlugin",
        connection: "DbConnection",
        config: ExportConfig,
        events: ExportEvents | None = None,
    ) -> ExportResult: ...


__all__ = [
    "CsvImportConfig",
    "DataExported",
    "DataFormat",
    "ExecutingStatement",
    "ExportConfig",
    "ExportEvents",
    "ExportFailed",
    "ExportFinished",
    "ExportProgressEvent",
    "ExportResult",
    "FetchingData",
    "FileFinished",
    "FormatHandler",
    "GettingStructure",
    "ImportConfig",
    "ImportEvents",
    "ImportFailed",
    "ImportFinished",
    "ImportProgressEvent",
    "ImportResult",
    "ParsingFile",
    "StatementExecuted",
    "StructureExported",
    "TableFinished",
    "TableStart",
    "emit",
]
