"""Tests for the aiomysql-backed MySQL connection."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest

from sqlhub.models import ConnectionConfig, DatabaseType, ExecOptions, ExecResult, QueryResult
from sqlhub.plugins.mysql import MySqlPlugin

CONFIG = ConnectionConfig(
    id="my",
    name="Shop",
    database_type=DatabaseType.MYSQL,
    host="mysql.local",
    username="root",
    password="pw",
    database="shop",
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _FakeCursor:
    def __init__(self, conn: _FakeConnection) -> None:
        self._conn = conn
        self.description: tuple[tuple[str], ...] | None = None
        self.rowcount = -1
        self._rows: list[tuple[Any, ...]] = []

    async def __aenter__(self) -> _FakeCursor:
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    async def execute(self, sql: str, args: Any = None) -> None:
        self._conn.log.append((sql, args))
        if sql.startswith("SELECT DATABASE()"):
            self.description = (("DATABASE()",),)
            self._rows = [(self._conn.database,)]
        elif sql.startswith("SELECT"):
            self.description = (("id",), ("created",))
            self._rows = [(7, datetime(2024, 1, 2, 3, 4, 5))]
        else:
            self.rowcount = 4

    async def fetchall(self) -> list[tuple[Any, ...]]:
        return self._rows


class _FakeConnection:
    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.database = kwargs.get("db")
        self.closed = False
        self.log: list[tuple[str, Any]] = []
        self.calls: list[str] = []

    def cursor(self) -> _FakeCursor:
        return _FakeCursor(self)

    async def begin(self) -> None:
        self.calls.append("begin")

    async def commit(self) -> None:
        self.calls.append("commit")

    async def rollback(self) -> None:
        self.calls.append("rollback")

    async def ensure_closed(self) -> None:
        self.closed = True


@pytest.fixture
def session(monkeypatch: pytest.MonkeyPatch) -> dict[str, _FakeConnection]:
    holder: dict[str, _FakeConnection] = {}

    async def _connect(**kwargs: Any) -> _FakeConnection:
        holder["conn"] = _FakeConnection(**kwargs)
        return holder["conn"]

    monkeypatch.setattr("sqlhub.connections.mysql.aiomysql.connect", _connect)
    return holder


@pytest.mark.anyio
async def test_connect_uses_autocommit_and_default_port(session: dict[str, _FakeConnection]) -> None:
    conn = MySqlPlugin().create_connection(CONFIG)

    await conn.connect()

    kwargs = session["conn"].kwargs
    assert kwargs["port"] == 3306
    assert kwargs["autocommit"] is True
    assert kwargs["db"] == "shop"
    assert session["conn"].log[0] == ("SELECT 1", None)


@pytest.mark.anyio
async def test_query_normalizes_datetimes(session: dict[str, _FakeConnection]) -> None:
    conn = MySqlPlugin().create_connection(CONFIG)
    await conn.connect()

    result = await conn.query("SELECT id, created FROM `orders`")

    assert isinstance(result, QueryResult)
    assert result.rows == (("7", "2024-01-02 03:04:05"),)
    assert result.table_name == "orders"
    assert session["conn"].log[-1] == ("SELECT id, created FROM `orders` LIMIT 1000", None)


@pytest.mark.anyio
async def test_parameters_are_forwarded_as_tuple(session: dict[str, _FakeConnection]) -> None:
    conn = MySqlPlugin().create_connection(CONFIG)
    await conn.connect()

    result = await conn.query("DELETE FROM orders WHERE id = %s", [7])

    assert isinstance(result, ExecResult)
    assert result.rows_affected == 4
    assert session["conn"].log[-1] == ("DELETE FROM orders WHERE id = %s", (7,))


@pytest.mark.anyio
async def test_transactions_use_driver_calls(session: dict[str, _FakeConnection]) -> None:
    conn = MySqlPlugin().create_connection(CONFIG)
    await conn.connect()

    await conn.execute("UPDATE orders SET paid = 1", ExecOptions(transactional=True))

    assert session["conn"].calls == ["begin", "commit"]


@pytest.mark.anyio
async def test_use_statement_tracks_database(session: dict[str, _FakeConnection]) -> None:
    conn = MySqlPlugin().create_connection(CONFIG)
    await conn.connect()

    results = await conn.execute("USE `archive`")

    assert results[0].message == "Database changed successfully"
    assert conn.config.database == "archive"


@pytest.mark.anyio
async def test_current_database_and_disconnect(session: dict[str, _FakeConnection]) -> None:
    conn = MySqlPlugin().create_connection(CONFIG)
    await conn.connect()

    assert await conn.current_database() == "shop"

    await conn.disconnect()

    assert session["conn"].closed
    assert not conn.connected
