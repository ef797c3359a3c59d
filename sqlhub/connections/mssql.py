"""SQL Server backend; pymssql is blocking so every call runs in a worker thread."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Sequence

import pymssql

from ..errors import DbConnectionError
from ..models import ConnectionConfig, Row
from .base import DbConnection, require_open
from .values import to_row

if TYPE_CHECKING:
    from ..plugins.base import DatabasePlugin

LOG = logging.getLogger(__name__)


class MsSqlConnection(DbConnection):
    def __init__(self, config: ConnectionConfig, plugin: "DatabasePlugin", *, login_timeout: int = 5) -> None:
        super().__init__(config, plugin)
        self._login_timeout = login_timeout
        self._conn: Any = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    async def current_database(self) -> str | None:
        if self._conn is None:
            return self._config.database
        try:
            _, rows = await self._fetch("SELECT DB_NAME()", None)
        except Exception:
            LOG.debug("SELECT DB_NAME() failed", exc_info=True)
            return self._config.database
        return rows[0][0] if rows and rows[0][0] else self._config.database

    async def _open(self) -> None:
        config = self._config
        kwargs: dict[str, Any] = {
            "server": config.host or "localhost",
            "port": str(config.port or self._plugin.default_port),
            "user": config.username,
            "password": config.password,
            "login_timeout": self._login_timeout,
            "autocommit": True,
        }
        if config.database:
            kwargs["database"] = config.database
        try:
            self._conn = await asyncio.to_thread(pymssql.connect, **kwargs)
        except Exception as exc:
            raise DbConnectionError(f"Failed to connect to '{config.name}': {exc}") from exc

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        await asyncio.to_thread(conn.close)

    async def _fetch(self, sql: str, params: Sequence[Any] | None) -> tuple[tuple[str, ...], tuple[Row, ...]]:
        conn = require_open(self._conn, self._config)
        return await asyncio.to_thread(_fetch_blocking, conn, sql, params)

    async def _execute_raw(self, sql: str, params: Sequence[Any] | None) -> int:
        conn = require_open(self._conn, self._config)
        return await asyncio.to_thread(_execute_blocking, conn, sql, params)

    async def _begin(self) -> None:
        await self._execute_raw("BEGIN TRANSACTION", None)

    async def _commit(self) -> None:
        await self._execute_raw("COMMIT TRANSACTION", None)

    async def _rollback(self) -> None:
        await self._execute_raw("ROLLBACK TRANSACTION", None)


def _run(cursor: Any, sql: str, params: Sequence[Any] | None) -> None:
    if params:
        cursor.execute(sql, tuple(params))
    else:
        cursor.execute(sql)


def _fetch_blocking(conn: Any, sql: str, params: Sequence[Any] | None) -> tuple[tuple[str, ...], tuple[Row, ...]]:
    cursor = conn.cursor()
    try:
        _run(cursor, sql, params)
        columns = tuple(str(column[0]) for column in cursor.description or ())
        records = cursor.fetchall() if cursor.description else []
    finally:
        cursor.close()
    return columns, tuple(to_row(record) for record in records)


def _execute_blocking(conn: Any, sql: str, params: Sequence[Any] | None) -> int:
    cursor = conn.cursor()
    try:
        _run(cursor, sql, params)
        return cursor.rowcount
    finally:
        cursor.close()


__all__ = ["MsSqlConnection"]
