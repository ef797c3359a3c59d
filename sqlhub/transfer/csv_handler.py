"""Delimited text import and export."""

from __future__ import annotations

import csv
import io
import time
from typing import TYPE_CHECKING, Any, Sequence

from ..errors import DbCustomError
from ..models import ErrorResult, ExecOptions, ExecResult
from ..plugins.base import fetch_rows
from .sql_handler import build_insert_sql, build_select_sql, finish_import, truncate_before_import
from .types import (
    CsvImportConfig,
    DataExported,
    DataFormat,
    ExecutingStatement,
    ExportConfig,
    ExportEvents,
    ExportFinished,
    ExportResult,
    FetchingData,
    FileFinished,
    FormatHandler,
    ImportConfig,
    ImportEvents,
    ImportFailed,
    ImportResult,
    ParsingFile,
    StatementExecuted,
    TableFinished,
    TableStart,
    emit,
)

if TYPE_CHECKING:
    from ..connections.base import DbConnection
    from ..plugins.base import DatabasePlugin

DEFAULT_CSV = CsvImportConfig()
INSERT_OPTIONS = ExecOptions(max_rows=None)


def _format_params(config: CsvImportConfig) -> dict[str, Any]:
    if config.text_qualifier is None:
        return {"delimiter": config.field_delimiter, "quoting": csv.QUOTE_NONE, "escapechar": None}
    return {
        "delimiter": config.field_delimiter,
        "quotechar": config.text_qualifier,
        "doublequote": True,
        "quoting": csv.QUOTE_MINIMAL,
    }


def parse_line(line: str, config: CsvImportConfig = DEFAULT_CSV) -> list[str]:
    """Split one record; a doubled qualifier inside a quoted field is a literal qualifier."""

    return next(csv.reader([line], **_format_params(config)), [])


def escape_line(fields: Sequence[str | None], config: CsvImportConfig = DEFAULT_CSV) -> str:
    """Render one record; fields holding the delimiter, qualifier or a newline are quoted.

    Without a text qualifier fields are written as they are. NULL cells are empty fields.
    """

    values = ["" if field is None else field for field in fields]
    if config.text_qualifier is None or values == [""]:
        return config.field_delimiter.join(values)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", **_format_params(config))
    writer.writerow(values)
    return buffer.getvalue()[:-1]


def split_records(data: str, config: CsvImportConfig = DEFAULT_CSV) -> list[str]:
    """Split ``data`` on the record terminator; ``\\r\\n`` counts as ``\\n``."""

    if config.record_terminator != "\n":
        return data.split(config.record_terminator)
    records = [record[:-1] if record.endswith("\r") else record for record in data.split("\n")]
    if records and records[-1] == "":
        records.pop()
    return records


def csv_literal(plugin: "DatabasePlugin", value: str, config: CsvImportConfig = DEFAULT_CSV) -> str:
    if value == "":
        return "NULL"
    if config.null_token is not None and value.lower() == config.null_token.lower():
        return "NULL"
    return plugin.quote_string(value)


class CsvFormatHandler(FormatHandler):
    format = DataFormat.CSV

    async def import_data(
        self,
        plugin: "DatabasePlugin",
        connection: "DbConnection",
        config: ImportConfig,
        data: str,
        events: ImportEvents | None = None,
    ) -> ImportResult:
        started = time.perf_counter()
        errors: list[str] = []
        if not config.table:
            raise DbCustomError("Table name required for CSV import")
        csv_config = config.csv_config or DEFAULT_CSV
        emit(events, ParsingFile(file=config.file_name))
        lines = split_records(data, csv_config)
        if not lines:
            return finish_import(True, 0, errors, started, events)

        first = parse_line(lines[0], csv_config)
        if csv_config.has_header:
            columns = [column.strip() for column in first]
            start_line = 1
        else:
            columns = [f"col{index + 1}" for index in range(len(first))]
            start_line = 0
        if not any(columns):
            raise DbCustomError("CSV header is empty")

        if not await truncate_before_import(plugin, connection, config, errors, events):
            return finish_import(False, 0, errors, started, events)

        total_rows = 0
        total_lines = len(lines) - start_line
        for offset, line in enumerate(lines[start_line:]):
            line_number = offset + start_line + 1
            if not line.strip():
                continue
            values = parse_line(line, csv_config)
            if len(values) != len(columns):
                errors.append(f"Line {line_number}: column count mismatch")
                emit(events, ImportFailed(file=config.file_name, message=errors[-1]))
                if config.stop_on_error:
                    break
                continue
            literals = [csv_literal(plugin, value, csv_config) for value in values]
            sql = build_insert_sql(plugin, config.table, columns, literals)
            emit(events, ExecutingStatement(file=config.file_name, statement_index=offset, total_statements=total_lines))
            result = await connection.query(sql, None, INSERT_OPTIONS)
            if isinstance(result, ErrorResult):
                errors.append(f"Line {line_number}: {result.message}")
                emit(events, ImportFailed(file=config.file_name, message=errors[-1]))
                if config.stop_on_error:
                    break
            elif isinstance(result, ExecResult):
                total_rows += result.rows_affected
                emit(events, StatementExecuted(file=config.file_name, rows_affected=result.rows_affected))
        emit(events, FileFinished(file=config.file_name, rows_imported=total_rows))
        return finish_import(not errors, total_rows, errors, started, events)

    async def export_data(
        self,
        plugin: "DatabasePlugin",
        connection: "DbConnection",
        config: ExportConfig,
        events: ExportEvents | None = None,
    ) -> ExportResult:
        started = time.perf_counter()
        csv_config = config.csv_config or DEFAULT_CSV
        blocks: list[str] = []
        total_rows = 0
        for index, table in enumerate(config.tables):
            emit(events, TableStart(table=table, table_index=index, total_tables=len(config.tables)))
            emit(events, FetchingData(table=table))
            result = await fetch_rows(connection, build_select_sql(plugin, config, table))
            lines = [escape_line(result.columns, csv_config)]
            lines.extend(escape_line(row, csv_config) for row in result.rows)
            blocks.append("\n".join(lines) + "\n")
            total_rows += len(result.rows)
            emit(events, DataExported(table=table, rows=len(result.rows)))
            emit(events, TableFinished(table=table))
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        emit(events, ExportFinished(total_rows=total_rows, elapsed_ms=elapsed_ms))
        return ExportResult(success=True, output="\n".join(blocks), rows_exported=total_rows, elapsed_ms=elapsed_ms)


__all__ = ["CsvFormatHandler", "csv_literal", "escape_line", "parse_line", "split_records"]
