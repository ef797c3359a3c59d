"""JSON import (array of objects) and pretty-printed JSON export."""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

from ..errors import DbCustomError
from ..models import ErrorResult, ExecOptions, ExecResult
from ..plugins.base import fetch_rows
from .sql_handler import build_insert_sql, build_select_sql, finish_import, truncate_before_import
from .types import (
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

INSERT_OPTIONS = ExecOptions(max_rows=None)


class JsonFormatHandler(FormatHandler):
    format = DataFormat.JSON

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
            raise DbCustomError("Table name required for JSON import")
        emit(events, ParsingFile(file=config.file_name))
        rows = parse_json_rows(data)
        if not rows:
            return finish_import(True, 0, errors, started, events)
        if not isinstance(rows[0], dict):
            raise DbCustomError("JSON array must contain objects")
        columns = list(rows[0])

        if not await truncate_before_import(plugin, connection, config, errors, events):
            return finish_import(False, 0, errors, started, events)

        total_rows = 0
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                errors.append("Row is not an object")
                emit(events, ImportFailed(file=config.file_name, message=errors[-1]))
                if config.stop_on_error:
                    break
                continue
            literals = [json_literal(plugin, row.get(column)) for column in columns]
            sql = build_insert_sql(plugin, config.table, columns, literals)
            emit(events, ExecutingStatement(file=config.file_name, statement_index=index, total_statements=len(rows)))
            result = await connection.query(sql, None, INSERT_OPTIONS)
            if isinstance(result, ErrorResult):
                errors.append(f"Insert failed: {result.message}")
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
        records: list[dict[str, str | None]] = []
        for index, table in enumerate(config.tables):
            emit(events, TableStart(table=table, table_index=index, total_tables=len(config.tables)))
            emit(events, FetchingData(table=table))
            result = await fetch_rows(connection, build_select_sql(plugin, config, table))
            for row in result.rows:
                records.append(dict(zip(result.columns, row)))
            emit(events, DataExported(table=table, rows=len(result.rows)))
            emit(events, TableFinished(table=table))
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        emit(events, ExportFinished(total_rows=len(records), elapsed_ms=elapsed_ms))
        output = json.dumps(records, indent=2, ensure_ascii=False)
        return ExportResult(success=True, output=output, rows_exported=len(records), elapsed_ms=elapsed_ms)


def parse_json_rows(data: str) -> list[Any]:
    """Decode the payload; a single object becomes a one-element list."""

    try:
        payload = json.loads(data)
    except json.JSONDecodeError as exc:
        raise DbCustomError(f"Invalid JSON: {exc}") from exc
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return [payload]
    raise DbCustomError("JSON must be array or object")


def json_literal(plugin: "DatabasePlugin", value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    if isinstance(value, str):
        return plugin.quote_string(value)
    return plugin.quote_string(json.dumps(value, ensure_ascii=False))


__all__ = ["JsonFormatHandler", "json_literal", "parse_json_rows"]
