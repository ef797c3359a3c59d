"""MySQL backend powered by aiomysql."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

import aiomysql

from ..errors import DbConnectionError
from ..models import ConnectionConfig, Row
from .base import DbConnection, require_open
from .values import to_row

if TYPE_CHECKING:
    from ..plugins.base import DatabasePlugin

LOG = logging.getLogger(__name__)


class MySqlConnection(DbConnection):
    """Single aiomysql session running in autocommit mode."""

    def __init__(self, config: ConnectionConfig, plugin: "DatabasePlugin", *, connect_timeout: float = 5.0) -> None:
        super().__init__(config, plugin)
        self._connect_timeout = connect_timeout
        self._conn: Any = None

    @property
    def connected(self) -> bool:
        return self._conn is not None and not self._conn.closed

    async def current_database(self) -> str | None:
        if self._conn is None:
            return self._config.database
        try:
            _, rows = await self._fetch("SELECT DATABASE()", None)
        except Exception:
            LOG.debug("SELECT DATABASE() failed", exc_info=True)
            return self._config.database
        return rows[0][0] if rows and rows[0][0] else self._config.database

    async def _open(self) -> None:
        config = self._config
        try:
            self._conn = await aiomysql.connect(
                host=config.host or "localhost",
                port=config.port or self._plugin.default_port,
                user=config.username or None,
                password=config.password,
                db=config.database,
                autocommit=True,
                connect_timeout=self._connect_timeout,
            )
        except Exception as exc:
            raise DbConnectionError(f"Failed to connect to '{config.name}': {exc}") from exc

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        await conn.ensure_closed()

    async def _fetch(self, sql: str, params: Sequence[Any] | None) -> tuple[tuple[str, ...], tuple[Row, ...]]:
        conn = require_open(self._conn, self._config)
        async with conn.cursor() as cursor:
            await cursor.execute(sql, tuple(params) if params else None)
            columns = tuple(str(column[0]) for column in cursor.description or ())
            records = await cursor.fetchall() if cursor.description else ()
        return columns, tuple(to_row(record) for record in records)

    async def _execute_raw(self, sql: str, params: Sequence[Any] | None) -> int:
        conn = require_open(self._conn, self._config)
        async with conn.cursor() as cursor:
            await cursor.execute(sql, tuple(params) if params else None)
            return cursor.rowcount

    async def _begin(self) -> None:
        await require_open(self._conn, self._config).begin()

    async def _commit(self) -> None:
        await require_open(self._conn, self._config).commit()

    async def _rollback(self) -> None:
        await require_open(self._conn, self._config).rollback()


__all__ = ["MySqlConnection"]
