"""PostgreSQL backend powered by asyncpg."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

import asyncpg

from ..errors import DbConnectionError, DbQueryError
from ..models import ConnectionConfig, Row
from .base import DbConnection, require_open
from .values import to_row

if TYPE_CHECKING:
    from ..plugins.base import DatabasePlugin

LOG = logging.getLogger(__name__)


class PostgresConnection(DbConnection):
    """Runs SQL statements against PostgreSQL via asyncpg."""

    def __init__(self, config: ConnectionConfig, plugin: "DatabasePlugin", *, connect_timeout: float = 5.0) -> None:
        super().__init__(config, plugin)
        self._connect_timeout = connect_timeout
        self._conn: Any = None

    @property
    def connected(self) -> bool:
        return self._conn is not None and not self._conn.is_closed()

    async def current_database(self) -> str | None:
        if self._conn is None:
            return self._config.database
        try:
            return await self._conn.fetchval("SELECT current_database()")
        except Exception:
            LOG.debug("current_database() failed", exc_info=True)
            return self._config.database

    async def switch_database(self, database: str) -> None:
        """Reconnect to ``database``; the old session survives a failed switch."""

        previous = self._config
        self.set_config_database(database)
        try:
            replacement = await asyncpg.connect(**self._connect_kwargs())
        except Exception as exc:
            self._config = previous
            raise DbQueryError(f"Failed to switch database: {exc}") from exc
        old, self._conn = self._conn, replacement
        if old is not None:
            try:
                await old.close()
            except Exception:  # pragma: no cover - best effort cleanup
                LOG.warning("Closing the previous session failed", exc_info=True)

    async def _open(self) -> None:
        try:
            self._conn = await asyncpg.connect(**self._connect_kwargs())
        except Exception as exc:
            raise DbConnectionError(f"Failed to connect to '{self._config.name}': {exc}") from exc

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        await conn.close()

    async def _fetch(self, sql: str, params: Sequence[Any] | None) -> tuple[tuple[str, ...], tuple[Row, ...]]:
        conn = require_open(self._conn, self._config)
        statement = await conn.prepare(sql)
        columns = tuple(str(attribute.name) for attribute in statement.get_attributes())
        records = await statement.fetch(*(params or ()))
        return columns, tuple(to_row(record) for record in records)

    async def _execute_raw(self, sql: str, params: Sequence[Any] | None) -> int:
        conn = require_open(self._conn, self._config)
        status = await conn.execute(sql, *(params or ()))
        return _rows_from_status(status)

    def _connect_kwargs(self) -> dict[str, object]:
        config = self._config
        kwargs: dict[str, object] = {"host": config.host or "localhost"}
        kwargs["port"] = config.port or self._plugin.default_port
        if config.username:
            kwargs["user"] = config.username
        if config.password:
            kwargs["password"] = config.password
        if config.database:
            kwargs["database"] = config.database
        kwargs["timeout"] = self._connect_timeout
        return kwargs


def _rows_from_status(status: str | None) -> int:
    """Parse the trailing row count from a command tag such as ``INSERT 0 3``."""

    if not status:
        return 0
    tail = status.rsplit(" ", 1)[-1]
    return int(tail) if tail.isdigit() else 0


__all__ = ["PostgresConnection"]
