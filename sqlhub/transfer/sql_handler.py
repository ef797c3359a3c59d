"""SQL dumps: replay a script on import, CREATE + INSERT statements on export."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Sequence

from ..models import ErrorResult, ExecOptions, ExecResult, StreamingProgress
from .types import (
    DataExported,
    DataFormat,
    ExecutingStatement,
    ExportConfig,
    ExportEvents,
    ExportFailed,
    ExportFinished,
    ExportResult,
    FetchingData,
    FileFinished,
    FormatHandler,
    GettingStructure,
    ImportConfig,
    ImportEvents,
    ImportFailed,
    ImportFinished,
    ImportResult,
    ParsingFile,
    StatementExecuted,
    StructureExported,
    TableFinished,
    TableStart,
    emit,
)

if TYPE_CHECKING:
    from ..connections.base import DbConnection
    from ..plugins.base import DatabasePlugin

LOG = logging.getLogger(__name__)


class SqlFormatHandler(FormatHandler):
    format = DataFormat.SQL

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
        emit(events, ParsingFile(file=config.file_name))

        if not await truncate_before_import(plugin, connection, config, errors, events):
            return finish_import(False, 0, errors, started, events)

        progress = _ScriptProgress(config.file_name, events)
        options = ExecOptions(
            stop_on_error=config.stop_on_error,
            transactional=config.use_transaction,
            max_rows=None,
        )
        await connection.execute_streaming(data, options, progress)
        errors.extend(progress.errors)
        emit(events, FileFinished(file=config.file_name, rows_imported=progress.rows))
        return finish_import(not errors, progress.rows, errors, started, events)

    async def export_data(
        self,
        plugin: "DatabasePlugin",
        connection: "DbConnection",
        config: ExportConfig,
        events: ExportEvents | None = None,
    ) -> ExportResult:
        started = time.perf_counter()
        chunks: list[str] = []
        total_rows = 0
        for index, table in enumerate(config.tables):
            emit(events, TableStart(table=table, table_index=index, total_tables=len(config.tables)))
            if config.include_schema:
                emit(events, GettingStructure(table=table))
                try:
                    schema_sql = await plugin.export_table_create_sql(connection, config.database, table)
                except Exception as exc:
                    LOG.warning("Structure export failed", extra={"table": table}, exc_info=True)
                    chunks.append(f"-- Failed to export structure for {table}: {exc}\n\n")
                    emit(events, ExportFailed(table=table, message=f"Failed to export structure: {exc}"))
                else:
                    if schema_sql:
                        chunks.append(f"-- Table structure for {table}\n{schema_sql};\n\n")
                    emit(events, StructureExported(table=table))
            if config.include_data:
                emit(events, FetchingData(table=table))
                try:
                    data_sql = await plugin.export_table_data_sql(
                        connection, config.database, table, config.where_clause, config.limit
                    )
                except Exception as exc:
                    LOG.warning("Data export failed", extra={"table": table}, exc_info=True)
                    chunks.append(f"-- Failed to export data for {table}: {exc}\n\n")
                    emit(events, ExportFailed(table=table, message=f"Failed to export data: {exc}"))
                else:
                    rows = 0
                    if data_sql:
                        chunks.append(f"-- Data for table {table}\n{data_sql}\n")
                        rows = sum(1 for line in data_sql.splitlines() if line.startswith("INSERT"))
                    total_rows += rows
                    emit(events, DataExported(table=table, rows=rows))
            emit(events, TableFinished(table=table))
        elapsed_ms = _elapsed(started)
        emit(events, ExportFinished(total_rows=total_rows, elapsed_ms=elapsed_ms))
        return ExportResult(success=True, output="".join(chunks), rows_exported=total_rows, elapsed_ms=elapsed_ms)


class _ScriptProgress:
    """Turns per-statement streaming progress into import events."""

    def __init__(self, file_name: str, events: ImportEvents | None) -> None:
        self._file = file_name
        self._events = events
        self.rows = 0
        self.errors: list[str] = []

    def send(self, progress: StreamingProgress) -> bool:
        emit(
            self._events,
            ExecutingStatement(file=self._file, statement_index=progress.current - 1, total_statements=progress.total),
        )
        result = progress.result
        if isinstance(result, ExecResult):
            self.rows += result.rows_affected
            emit(self._events, StatementExecuted(file=self._file, rows_affected=result.rows_affected))
        elif isinstance(result, ErrorResult):
            self.errors.append(result.message)
            emit(self._events, ImportFailed(file=self._file, message=result.message))
        return True


async def truncate_before_import(
    plugin: "DatabasePlugin",
    connection: "DbConnection",
    config: ImportConfig,
    errors: list[str],
    events: ImportEvents | None,
) -> bool:
    """Empty the target table when requested; ``False`` means the import must stop."""

    if not config.truncate_before_import or not config.table:
        return True
    sql = plugin.build_truncate_table_sql(config.database or None, config.table)
    emit(events, ExecutingStatement(file=config.file_name, statement_index=0, total_statements=1))
    result = await connection.query(sql, None, ExecOptions(max_rows=None))
    if not isinstance(result, ErrorResult):
        return True
    message = f"Truncate failed: {result.message}"
    errors.append(message)
    emit(events, ImportFailed(file=config.file_name, message=message))
    return not config.stop_on_error


def build_insert_sql(plugin: "DatabasePlugin", table: str, columns: Sequence[str], literals: Sequence[str]) -> str:
    """Assemble one INSERT from already rendered SQL literals."""

    column_list = ", ".join(plugin.quote_identifier(column) for column in columns)
    return f"INSERT INTO {plugin.quote_identifier(table)} ({column_list}) VALUES ({', '.join(literals)})"


def build_select_sql(plugin: "DatabasePlugin", config: ExportConfig, table: str) -> str:
    """SELECT used by the row-oriented exporters, honouring WHERE and the row cap."""

    sql = f"SELECT * FROM {plugin.format_table_reference(config.database, None, table)}"
    if config.where_clause and config.where_clause.strip():
        sql += f" WHERE {config.where_clause.strip()}"
    if config.limit is not None:
        sql += " " + plugin.format_pagination(config.limit, 0, "")
    return sql


def finish_import(
    success: bool,
    rows: int,
    errors: Sequence[str],
    started: float,
    events: ImportEvents | None,
) -> ImportResult:
    elapsed_ms = _elapsed(started)
    emit(events, ImportFinished(total_rows=rows, elapsed_ms=elapsed_ms))
    return ImportResult(success=success, rows_imported=rows, errors=tuple(errors), elapsed_ms=elapsed_ms)


def _elapsed(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


__all__ = ["SqlFormatHandler", "build_insert_sql", "build_select_sql", "finish_import", "truncate_before_import"]
