"""ClickHouse backend; clickhouse-connect is a blocking HTTP client run in worker threads."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Sequence

import clickhouse_connect

from ..errors import DbConnectionError, DbQueryError
from ..models import ConnectionConfig, Row
from .base import DbConnection, require_open, use_target
from .values import to_row

if TYPE_CHECKING:
    from ..plugins.base import DatabasePlugin

LOG = logging.getLogger(__name__)


class ClickHouseConnection(DbConnection):
    """HTTP session; ``USE`` only changes the database the client sends with each request."""

    supports_parameters = False
    supports_transactions = False

    def __init__(self, config: ConnectionConfig, plugin: "DatabasePlugin", *, connect_timeout: int = 10) -> None:
        super().__init__(config, plugin)
        self._connect_timeout = connect_timeout
        self._client: Any = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def switch_database(self, database: str) -> None:
        await self._select_database(database)
        self.set_config_database(database)

    async def _open(self) -> None:
        config = self._config
        kwargs: dict[str, Any] = {
            "host": config.host or "localhost",
            "port": config.port or self._plugin.default_port,
            "username": config.username or "default",
            "password": config.password,
            "connect_timeout": self._connect_timeout,
        }
        if config.database:
            kwargs["database"] = config.database
        try:
            self._client = await asyncio.to_thread(clickhouse_connect.get_client, **kwargs)
        except Exception as exc:
            raise DbConnectionError(f"Failed to connect to '{config.name}': {exc}") from exc

    async def _close(self) -> None:
        client, self._client = self._client, None
        await asyncio.to_thread(client.close)

    async def _fetch(self, sql: str, params: Sequence[Any] | None) -> tuple[tuple[str, ...], tuple[Row, ...]]:
        client = require_open(self._client, self._config)
        result = await asyncio.to_thread(client.query, sql)
        columns = tuple(str(name) for name in result.column_names)
        return columns, tuple(to_row(record) for record in result.result_rows)

    async def _execute_raw(self, sql: str, params: Sequence[Any] | None) -> int:
        client = require_open(self._client, self._config)
        target = use_target(sql, self._plugin)
        if target is not None:
            await self._select_database(target)
            return 0
        summary = await asyncio.to_thread(client.command, sql)
        written = getattr(summary, "written_rows", 0)
        return written if isinstance(written, int) else 0

    async def _select_database(self, database: str) -> None:
        client = require_open(self._client, self._config)
        literal = self._plugin.quote_string(database)
        try:
            result = await asyncio.to_thread(client.query, f"SELECT name FROM system.databases WHERE name = {literal}")
        except Exception as exc:
            raise DbQueryError(f"Failed to switch database: {exc}") from exc
        if not result.result_rows:
            raise DbQueryError(f"Failed to switch database: unknown database '{database}'")
        client.database = database


__all__ = ["ClickHouseConnection"]
