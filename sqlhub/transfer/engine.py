"""Format dispatch for imports and exports."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Iterable

from .csv_handler import CsvFormatHandler
from .json_handler import JsonFormatHandler
from .sql_handler import SqlFormatHandler
from .types import (
    DataFormat,
    ExportConfig,
    ExportEvents,
    ExportResult,
    FormatHandler,
    ImportConfig,
    ImportEvents,
    ImportResult,
)

if TYPE_CHECKING:
    from ..connections.base import DbConnection
    from ..plugins.base import DatabasePlugin

LOG = logging.getLogger(__name__)


def default_handlers() -> dict[DataFormat, FormatHandler]:
    handlers: Iterable[FormatHandler] = (SqlFormatHandler(), JsonFormatHandler(), CsvFormatHandler())
    return {handler.format: handler for handler in handlers}


class DataImporter:
    """Runs the handler for ``config.format``; handler exceptions become a failed result."""

    def __init__(self, handlers: dict[DataFormat, FormatHandler] | None = None) -> None:
        self._handlers = handlers or default_handlers()

    async def run(
        self,
        plugin: "DatabasePlugin",
        connection: "DbConnection",
        config: ImportConfig,
        data: str,
        events: ImportEvents | None = None,
    ) -> ImportResult:
        started = time.perf_counter()
        handler = self._handlers[DataFormat(config.format)]
        try:
            return await handler.import_data(plugin, connection, config, data, events)
        except Exception as exc:
            LOG.warning(
                "Import failed",
                exc_info=True,
                extra={"format": config.format, "table": config.table, "file": config.file_name},
            )
            return ImportResult(
                success=False,
                rows_imported=0,
                errors=(str(exc),),
                elapsed_ms=int((time.perf_counter() - started) * 1000),
            )


class DataExporter:
    """Runs the handler for ``config.format``; handler exceptions become a failed result."""

    def __init__(self, handlers: dict[DataFormat, FormatHandler] | None = None) -> None:
        self._handlers = handlers or default_handlers()

    async def run(
        self,
        plugin: "DatabasePlugin",
        connection: "DbConnection",
        config: ExportConfig,
        events: ExportEvents | None = None,
    ) -> ExportResult:
        started = time.perf_counter()
        handler = self._handlers[DataFormat(config.format)]
        try:
            return await handler.export_data(plugin, connection, config, events)
        except Exception as exc:
            LOG.warning("Export failed", exc_info=True, extra={"format": config.format, "tables": config.tables})
            return ExportResult(
                success=False,
                output="",
                rows_exported=0,
                elapsed_ms=int((time.perf_counter() - started) * 1000),
                error=str(exc),
            )


__all__ = ["DataExporter", "DataImporter", "default_handlers"]
