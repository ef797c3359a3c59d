"""Oracle backend powered by python-oracledb in thin async mode."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

import oracledb

from ..errors import DbConnectionError
from ..models import ConnectionConfig, Row
from .base import DbConnection, require_open
from .values import to_row

if TYPE_CHECKING:
    from ..plugins.base import DatabasePlugin

LOG = logging.getLogger(__name__)


class OracleConnection(DbConnection):
    """Oracle session; ``database`` is the service name and switching changes the current schema."""

    ping_sql = "SELECT 1 FROM DUAL"

    def __init__(self, config: ConnectionConfig, plugin: "DatabasePlugin") -> None:
        super().__init__(config, plugin)
        self._conn: Any = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def dsn(self) -> str:
        config = self._config
        host = config.host or "localhost"
        port = config.port or self._plugin.default_port
        service = config.database or ""
        return f"{host}:{port}/{service}" if service else f"{host}:{port}"

    async def current_database(self) -> str | None:
        if self._conn is None:
            return self._config.database
        try:
            _, rows = await self._fetch("SELECT SYS_CONTEXT('USERENV', 'CURRENT_SCHEMA') FROM DUAL", None)
        except Exception:
            LOG.debug("Reading CURRENT_SCHEMA failed", exc_info=True)
            return self._config.database
        return rows[0][0] if rows and rows[0][0] else self._config.database

    async def _open(self) -> None:
        config = self._config
        try:
            self._conn = await oracledb.connect_async(user=config.username, password=config.password, dsn=self.dsn)
        except Exception as exc:
            raise DbConnectionError(f"Failed to connect to '{config.name}': {exc}") from exc
        self._conn.autocommit = True

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        await conn.close()

    async def _fetch(self, sql: str, params: Sequence[Any] | None) -> tuple[tuple[str, ...], tuple[Row, ...]]:
        conn = require_open(self._conn, self._config)
        with conn.cursor() as cursor:
            await cursor.execute(sql, list(params or ()))
            columns = tuple(str(column[0]) for column in cursor.description or ())
            records = await cursor.fetchall() if cursor.description else []
        rows = []
        for record in records:
            rows.append(to_row([await _read_lob(value) for value in record]))
        return columns, tuple(rows)

    async def _execute_raw(self, sql: str, params: Sequence[Any] | None) -> int:
        conn = require_open(self._conn, self._config)
        with conn.cursor() as cursor:
            await cursor.execute(sql, list(params or ()))
            return cursor.rowcount or 0

    async def _begin(self) -> None:
        require_open(self._conn, self._config).autocommit = False

    async def _commit(self) -> None:
        conn = require_open(self._conn, self._config)
        try:
            await conn.commit()
        finally:
            conn.autocommit = True

    async def _rollback(self) -> None:
        conn = require_open(self._conn, self._config)
        try:
            await conn.rollback()
        finally:
            conn.autocommit = True


async def _read_lob(value: Any) -> Any:
    if isinstance(value, oracledb.AsyncLOB):
        return await value.read()
    return value


__all__ = ["OracleConnection"]
