"""Tests for the clickhouse-connect ClickHouse connection."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from sqlhub.errors import DbQueryError
from sqlhub.models import ConnectionConfig, DatabaseType, ErrorResult, ExecOptions, ExecResult, QueryResult
from sqlhub.plugins.clickhouse import ClickHousePlugin

CONFIG = ConnectionConfig(
    id="ch",
    name="Events",
    database_type=DatabaseType.CLICKHOUSE,
    host="ch.local",
    database="events",
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _FakeClient:
    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.database = kwargs.get("database")
        self.queries: list[str] = []
        self.commands: list[str] = []
        self.closed = False

    def query(self, sql: str) -> SimpleNamespace:
        self.queries.append(sql)
        if "system.databases" in sql:
            rows = [("logs",)] if "'logs'" in sql else []
            return SimpleNamespace(column_names=("name",), result_rows=rows)
        return SimpleNamespace(column_names=("id", "tags"), result_rows=[(1, ["a", "b"])])

    def command(self, sql: str) -> Any:
        self.commands.append(sql)
        if sql.startswith("INSERT"):
            return SimpleNamespace(written_rows=5)
        return "OK"

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def session(monkeypatch: pytest.MonkeyPatch) -> dict[str, _FakeClient]:
    holder: dict[str, _FakeClient] = {}

    def _get_client(**kwargs: Any) -> _FakeClient:
        holder["client"] = _FakeClient(**kwargs)
        return holder["client"]

    monkeypatch.setattr("sqlhub.connections.clickhouse.clickhouse_connect.get_client", _get_client)
    return holder


@pytest.mark.anyio
async def test_connect_defaults(session: dict[str, _FakeClient]) -> None:
    conn = ClickHousePlugin().create_connection(CONFIG)

    await conn.connect()

    assert session["client"].kwargs == {
        "host": "ch.local",
        "port": 8123,
        "username": "default",
        "password": "",
        "connect_timeout": 10,
        "database": "events",
    }


@pytest.mark.anyio
async def test_parameters_are_rejected(session: dict[str, _FakeClient]) -> None:
    conn = ClickHousePlugin().create_connection(CONFIG)
    await conn.connect()

    with pytest.raises(DbQueryError) as excinfo:
        await conn.query("SELECT * FROM hits WHERE id = ?", [1])

    assert str(excinfo.value) == "Query error: Parameterized queries are not supported for ClickHouse"


@pytest.mark.anyio
async def test_query_renders_arrays_as_json(session: dict[str, _FakeClient]) -> None:
    conn = ClickHousePlugin().create_connection(CONFIG)
    await conn.connect()

    result = await conn.query("SELECT id, tags FROM hits")

    assert isinstance(result, QueryResult)
    assert result.rows == (("1", '["a", "b"]'),)


@pytest.mark.anyio
async def test_written_rows_reported_when_known(session: dict[str, _FakeClient]) -> None:
    conn = ClickHousePlugin().create_connection(CONFIG)
    await conn.connect()

    insert, create = await conn.execute("INSERT INTO hits VALUES (1); CREATE TABLE x (a UInt8) ENGINE = Memory")

    assert isinstance(insert, ExecResult) and insert.rows_affected == 5
    assert isinstance(create, ExecResult) and create.rows_affected == 0


@pytest.mark.anyio
async def test_transactions_are_not_issued(session: dict[str, _FakeClient]) -> None:
    conn = ClickHousePlugin().create_connection(CONFIG)
    await conn.connect()

    await conn.execute("INSERT INTO hits VALUES (1)", ExecOptions(transactional=True))

    assert session["client"].commands == ["INSERT INTO hits VALUES (1)"]


@pytest.mark.anyio
async def test_use_switches_client_database(session: dict[str, _FakeClient]) -> None:
    conn = ClickHousePlugin().create_connection(CONFIG)
    await conn.connect()

    results = await conn.execute("USE logs")

    assert results[0].message == "Database changed successfully"
    assert session["client"].database == "logs"
    assert conn.config.database == "logs"


@pytest.mark.anyio
async def test_use_unknown_database_fails(session: dict[str, _FakeClient]) -> None:
    conn = ClickHousePlugin().create_connection(CONFIG)
    await conn.connect()

    results = await conn.execute("USE nowhere")

    assert isinstance(results[0], ErrorResult)
    assert results[0].message == "Failed to switch database: unknown database 'nowhere'"
    assert session["client"].database == "events"

    with pytest.raises(DbQueryError):
        await conn.switch_database("nowhere")
