"""Asynchronous connection contract shared by every dialect backend."""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Sequence

from ..channels import ProgressSender
from ..errors import DbConnectionError, DbError, DbQueryError
from ..models import (
    ConnectionConfig,
    ErrorResult,
    ExecOptions,
    ExecResult,
    QueryResult,
    Row,
    SqlResult,
    StatementType,
    StreamingProgress,
)
from ..script import leading_keywords, strip_comments

if TYPE_CHECKING:
    from ..plugins.base import DatabasePlugin

LOG = logging.getLogger(__name__)

DEFAULT_OPTIONS = ExecOptions()

_USE_TARGET = re.compile(r"^\s*USE\s+(.+?)\s*;?\s*$", re.IGNORECASE | re.DOTALL)

ResultSink = Callable[[SqlResult], bool]


class DbConnection(ABC):
    """One live session against a database server.

    Subclasses provide the driver primitives (``_open``, ``_close``, ``_fetch`` and
    ``_execute_raw``); script execution, streaming and result normalization live here.
    """

    supports_database_switch = True
    supports_parameters = True
    supports_transactions = True
    ping_sql = "SELECT 1"

    def __init__(self, config: ConnectionConfig, plugin: "DatabasePlugin") -> None:
        self._config = config
        self._plugin = plugin

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def plugin(self) -> "DatabasePlugin":
        return self._plugin

    def set_config_database(self, database: str | None) -> None:
        self._config = self._config.with_database(database)

    @property
    @abstractmethod
    def connected(self) -> bool: ...

    async def connect(self) -> None:
        """Open the driver session and probe it with ``ping_sql``."""

        await self._open()
        try:
            await self.ping()
        except DbError as exc:
            await self.disconnect()
            raise self._connection_error(exc) from exc
        LOG.info(
            "Connected",
            extra={
                "connection_id": self._config.id,
                "database_type": self._config.database_type,
                "database": self._config.database,
            },
        )

    async def disconnect(self) -> None:
        """Close the session; failures are logged, never raised."""

        if not self.connected:
            return
        try:
            await self._close()
        except Exception:
            LOG.warning("Disconnect failed", exc_info=True, extra={"connection_id": self._config.id})
        else:
            LOG.info("Disconnected", extra={"connection_id": self._config.id})

    async def ping(self) -> None:
        result = await self.query(self.ping_sql, None, ExecOptions(max_rows=None))
        if isinstance(result, ErrorResult):
            raise DbQueryError(result.message)

    async def current_database(self) -> str | None:
        return self._config.database

    async def switch_database(self, database: str) -> None:
        if not self.supports_database_switch:
            raise DbQueryError(f"{self._plugin.database_type.display_name} does not support switching databases")
        sql = self._plugin.build_switch_database_sql(database)
        try:
            await self._execute_raw(sql, None)
        except DbError:
            raise
        except Exception as exc:
            raise DbQueryError(f"Failed to switch database: {_driver_message(exc)}") from exc
        self.set_config_database(database)

    async def execute(self, script: str, options: ExecOptions = DEFAULT_OPTIONS) -> list[SqlResult]:
        """Run every statement of ``script`` and return the accumulated results."""

        results: list[SqlResult] = []

        def _collect(result: SqlResult) -> bool:
            results.append(result)
            return True

        await self._run_script(self._plugin.split_statements(script), options, _collect)
        return results

    async def execute_streaming(
        self,
        script: str,
        options: ExecOptions,
        sender: ProgressSender[StreamingProgress],
    ) -> None:
        """Run ``script`` pushing one ``StreamingProgress`` per statement.

        A ``sender`` that refuses an item (closed channel) stops the run after the statement in flight.
        """

        statements = self._plugin.split_statements(script)
        total = len(statements)
        position = 0

        def _send(result: SqlResult) -> bool:
            nonlocal position
            position += 1
            return sender.send(StreamingProgress(current=position, total=total, result=result))

        await self._run_script(statements, options, _send)

    async def query(
        self,
        sql: str,
        params: Sequence[Any] | None = None,
        options: ExecOptions = DEFAULT_OPTIONS,
    ) -> SqlResult:
        """Run a single statement, optionally with positional parameters."""

        if params and not self.supports_parameters:
            raise DbQueryError(f"Parameterized queries are not supported for {self._plugin.database_type.display_name}")
        return await self.run_statement(sql.strip(), params, options)

    async def run_statement(
        self,
        sql: str,
        params: Sequence[Any] | None,
        options: ExecOptions,
    ) -> SqlResult:
        """Execute one statement and normalize the outcome; driver errors become ``ErrorResult``."""

        category = self._plugin.classify_statement(sql)
        submitted = self._plugin.apply_row_limit(sql, options.max_rows) if category is StatementType.QUERY else sql
        started = time.perf_counter()
        try:
            if category is StatementType.QUERY:
                columns, rows = await self._fetch(submitted, params)
                elapsed_ms = _elapsed(started)
                table_name = self._plugin.analyze_select_editability(sql)
                return QueryResult(
                    sql=sql,
                    columns=columns,
                    rows=rows,
                    elapsed_ms=elapsed_ms,
                    table_name=table_name,
                    editable=table_name is not None,
                )
            rows_affected = await self._execute_raw(submitted, params)
        except DbError as exc:
            return ErrorResult(sql=sql, message=exc.message)
        except Exception as exc:
            LOG.debug("Statement failed", exc_info=True, extra={"connection_id": self._config.id})
            return ErrorResult(sql=sql, message=_driver_message(exc))
        elapsed_ms = _elapsed(started)
        if category is StatementType.COMMAND:
            self._record_use(sql)
        return ExecResult(
            sql=sql,
            rows_affected=max(rows_affected, 0),
            elapsed_ms=elapsed_ms,
            message=self._plugin.format_message(sql, max(rows_affected, 0)),
        )

    async def _run_script(self, statements: Sequence[str], options: ExecOptions, sink: ResultSink) -> None:
        transactional = options.transactional and self.supports_transactions
        if transactional:
            try:
                await self._begin()
            except DbError:
                raise
            except Exception as exc:
                raise DbQueryError(f"Failed to start transaction: {_driver_message(exc)}") from exc
        failed = False
        try:
            for statement in statements:
                result = await self.run_statement(statement, None, options)
                failed = failed or result.is_error
                if not sink(result):
                    failed = True
                    break
                if result.is_error and (transactional or options.stop_on_error):
                    break
        except BaseException:
            if transactional:
                await self._rollback_quietly()
            raise
        if transactional:
            if failed:
                await self._rollback_quietly()
            else:
                await self._commit()

    async def _rollback_quietly(self) -> None:
        try:
            await self._rollback()
        except Exception:
            LOG.warning("Rollback failed", exc_info=True, extra={"connection_id": self._config.id})

    def _record_use(self, sql: str) -> None:
        name = use_target(sql, self._plugin)
        if name:
            self.set_config_database(name)

    def _connection_error(self, exc: Exception) -> DbError:
        return DbConnectionError(f"Failed to connect to '{self._config.name}': {_driver_message(exc)}")

    async def _begin(self) -> None:
        await self._execute_raw("BEGIN", None)

    async def _commit(self) -> None:
        await self._execute_raw("COMMIT", None)

    async def _rollback(self) -> None:
        await self._execute_raw("ROLLBACK", None)

    @abstractmethod
    async def _open(self) -> None:
        """Open the driver session; raise ``DbConnectionError`` on failure."""

    @abstractmethod
    async def _close(self) -> None: ...

    @abstractmethod
    async def _fetch(self, sql: str, params: Sequence[Any] | None) -> tuple[tuple[str, ...], tuple[Row, ...]]:
        """Return column names and normalized rows."""

    @abstractmethod
    async def _execute_raw(self, sql: str, params: Sequence[Any] | None) -> int:
        """Run a statement that returns no rows; return the affected row count (0 if unknown)."""


def _elapsed(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _driver_message(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or exc.__class__.__name__


def use_target(sql: str, plugin: "DatabasePlugin") -> str | None:
    """Return the database named by a `USE` statement, unquoted."""

    if leading_keywords(sql, 1, plugin.splitter_options) != ("USE",):
        return None
    match = _USE_TARGET.match(strip_comments(sql, plugin.splitter_options))
    if match is None:
        return None
    name = match.group(1).strip().strip("`\"[]")
    return name or None


def require_open(handle: Any, config: ConnectionConfig) -> Any:
    """Return the driver handle or raise when the session is closed."""

    if handle is None:
        raise DbConnectionError(f"Not connected to '{config.name}'")
    return handle


__all__ = ["DbConnection", "require_open", "use_target"]
