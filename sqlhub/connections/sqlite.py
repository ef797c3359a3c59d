"""SQLite backend powered by aiosqlite."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

import aiosqlite

from ..errors import DbConnectionError, DbQueryError
from ..models import ConnectionConfig, Row
from .base import DbConnection, require_open
from .values import to_row

if TYPE_CHECKING:
    from ..plugins.base import DatabasePlugin

LOG = logging.getLogger(__name__)


class SqliteConnection(DbConnection):
    """File-backed session; the database path comes from ``database`` or ``host``."""

    def __init__(self, config: ConnectionConfig, plugin: "DatabasePlugin") -> None:
        super().__init__(config, plugin)
        self._conn: Any = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def path(self) -> str:
        path = self._config.database or self._config.host
        if not path:
            raise DbConnectionError(f"No database file configured for '{self._config.name}'")
        return path

    async def switch_database(self, database: str) -> None:
        """Open ``database`` as the new main file, then release the previous one."""

        try:
            replacement = await aiosqlite.connect(database, isolation_level=None)
        except Exception as exc:
            raise DbQueryError(f"Failed to switch database: {exc}") from exc
        old, self._conn = self._conn, replacement
        self.set_config_database(database)
        if old is not None:
            try:
                await old.close()
            except Exception:  # pragma: no cover - best effort cleanup
                LOG.warning("Closing the previous database file failed", exc_info=True)

    async def _open(self) -> None:
        path = self.path
        try:
            self._conn = await aiosqlite.connect(path, isolation_level=None)
        except Exception as exc:
            raise DbConnectionError(f"Failed to connect to '{self._config.name}': {exc}") from exc

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        await conn.close()

    async def _fetch(self, sql: str, params: Sequence[Any] | None) -> tuple[tuple[str, ...], tuple[Row, ...]]:
        conn = require_open(self._conn, self._config)
        async with conn.execute(sql, tuple(params or ())) as cursor:
            columns = tuple(str(column[0]) for column in cursor.description or ())
            records = await cursor.fetchall()
        return columns, tuple(to_row(record) for record in records)

    async def _execute_raw(self, sql: str, params: Sequence[Any] | None) -> int:
        conn = require_open(self._conn, self._config)
        async with conn.execute(sql, tuple(params or ())) as cursor:
            return cursor.rowcount


__all__ = ["SqliteConnection"]
