"""Tests for the pymssql-backed SQL Server connection."""

from __future__ import annotations

from typing import Any

import pytest

from sqlhub.errors import DbConnectionError
from sqlhub.models import ConnectionConfig, DatabaseType, ExecOptions, ExecResult, QueryResult
from sqlhub.plugins.mssql import MsSqlPlugin

CONFIG = ConnectionConfig(
    id="ms",
    name="Warehouse",
    database_type=DatabaseType.MSSQL,
    host="sql.local",
    username="sa",
    password="pw",
    database="wh",
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _FakeCursor:
    def __init__(self, conn: _FakeConnection) -> None:
        self._conn = conn
        self.description = None
        self.rowcount = -1
        self.closed = False

    def execute(self, sql: str, params: Any = None) -> None:
        self._conn.log.append((sql, params))
        if sql.startswith("SELECT"):
            self.description = (("name",),)
        else:
            self.rowcount = 2

    def fetchall(self) -> list[tuple[Any, ...]]:
        return [(b"\xff\x00",), ("dbo",)]

    def close(self) -> None:
        self.closed = True


class _FakeConnection:
    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.log: list[tuple[str, Any]] = []
        self.closed = False

    def cursor(self) -> _FakeCursor:
        return _FakeCursor(self)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def session(monkeypatch: pytest.MonkeyPatch) -> dict[str, _FakeConnection]:
    holder: dict[str, _FakeConnection] = {}

    def _connect(**kwargs: Any) -> _FakeConnection:
        holder["conn"] = _FakeConnection(**kwargs)
        return holder["conn"]

    monkeypatch.setattr("sqlhub.connections.mssql.pymssql.connect", _connect)
    return holder


@pytest.mark.anyio
async def test_connect_arguments(session: dict[str, _FakeConnection]) -> None:
    conn = MsSqlPlugin().create_connection(CONFIG)

    await conn.connect()

    assert session["conn"].kwargs == {
        "server": "sql.local",
        "port": "1433",
        "user": "sa",
        "password": "pw",
        "login_timeout": 5,
        "autocommit": True,
        "database": "wh",
    }


@pytest.mark.anyio
async def test_select_is_capped_with_top(session: dict[str, _FakeConnection]) -> None:
    conn = MsSqlPlugin().create_connection(CONFIG)
    await conn.connect()

    result = await conn.query("SELECT name FROM sys.schemas", None, ExecOptions(max_rows=10))

    assert isinstance(result, QueryResult)
    assert session["conn"].log[-1] == ("SELECT TOP 10 name FROM sys.schemas", None)
    assert result.rows == (("0xff00",), ("dbo",))


@pytest.mark.anyio
async def test_transaction_statements(session: dict[str, _FakeConnection]) -> None:
    conn = MsSqlPlugin().create_connection(CONFIG)
    await conn.connect()

    results = await conn.execute("UPDATE t SET a = 1", ExecOptions(transactional=True))

    assert isinstance(results[0], ExecResult)
    assert results[0].rows_affected == 2
    assert [sql for sql, _ in session["conn"].log[1:]] == [
        "BEGIN TRANSACTION",
        "UPDATE t SET a = 1",
        "COMMIT TRANSACTION",
    ]


@pytest.mark.anyio
async def test_parameters_are_passed_as_tuple(session: dict[str, _FakeConnection]) -> None:
    conn = MsSqlPlugin().create_connection(CONFIG)
    await conn.connect()

    await conn.query("DELETE FROM t WHERE id = %s", [5])

    assert session["conn"].log[-1] == ("DELETE FROM t WHERE id = %s", (5,))


@pytest.mark.anyio
async def test_login_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(**kwargs: Any) -> None:
        raise OSError("Login failed for user 'sa'")

    monkeypatch.setattr("sqlhub.connections.mssql.pymssql.connect", _refuse)
    conn = MsSqlPlugin().create_connection(CONFIG)

    with pytest.raises(DbConnectionError) as excinfo:
        await conn.connect()

    assert "Login failed for user 'sa'" in str(excinfo.value)
    assert not conn.connected
