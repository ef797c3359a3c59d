"""End-to-end tests for the shared execution engine on a real SQLite file."""

from __future__ import annotations

from pathlib import Path

import pytest

from sqlhub.channels import ProgressChannel
from sqlhub.errors import DbConnectionError
from sqlhub.models import ConnectionConfig, DatabaseType, ErrorResult, ExecOptions, ExecResult, QueryResult
from sqlhub.plugins import TableDataRequest
from sqlhub.plugins.sqlite import SqlitePlugin

SCHEMA = "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT); INSERT INTO users VALUES (1, 'a'), (2, 'b')"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def connection(tmp_path: Path):
    config = ConnectionConfig(
        id="local",
        name="Local",
        database_type=DatabaseType.SQLITE,
        database=str(tmp_path / "app.db"),
    )
    conn = SqlitePlugin().create_connection(config)
    await conn.connect()
    await conn.execute(SCHEMA)
    yield conn
    await conn.disconnect()


async def _count(conn) -> str | None:
    result = await conn.query("SELECT COUNT(*) FROM users")
    assert isinstance(result, QueryResult)
    return result.rows[0][0]


@pytest.mark.anyio
async def test_script_results_are_normalized(connection) -> None:
    results = await connection.execute(
        "INSERT INTO users VALUES (3, NULL); SELECT id, name FROM users ORDER BY id"
    )

    insert, select = results
    assert isinstance(insert, ExecResult)
    assert insert.rows_affected == 1
    assert insert.message == "Inserted 1 row(s)"
    assert isinstance(select, QueryResult)
    assert select.columns == ("id", "name")
    assert select.rows == (("1", "a"), ("2", "b"), ("3", None))
    assert select.editable is True
    assert select.table_name == "users"


@pytest.mark.anyio
async def test_ddl_message(connection) -> None:
    results = await connection.execute("CREATE TABLE extra (a INT)")

    assert isinstance(results[0], ExecResult)
    assert results[0].rows_affected == 0
    assert results[0].message == "Object created successfully"


@pytest.mark.anyio
async def test_max_rows_caps_queries_but_keeps_original_sql(connection) -> None:
    result = await connection.query("SELECT * FROM users", None, ExecOptions(max_rows=1))

    assert isinstance(result, QueryResult)
    assert len(result.rows) == 1
    assert result.sql == "SELECT * FROM users"


@pytest.mark.anyio
async def test_trailing_comment_does_not_lift_the_row_cap(connection) -> None:
    result = await connection.query("SELECT * FROM users -- every row", None, ExecOptions(max_rows=1))

    assert isinstance(result, QueryResult)
    assert len(result.rows) == 1
    assert result.sql == "SELECT * FROM users -- every row"


@pytest.mark.anyio
async def test_aggregate_results_are_not_editable(connection) -> None:
    result = await connection.query("SELECT COUNT(*) FROM users")

    assert isinstance(result, QueryResult)
    assert result.editable is False
    assert result.table_name is None


@pytest.mark.anyio
async def test_parameters_are_bound(connection) -> None:
    result = await connection.query("SELECT name FROM users WHERE id = ?", [2])

    assert isinstance(result, QueryResult)
    assert result.rows == (("b",),)


@pytest.mark.anyio
async def test_stop_on_error_halts_the_script(connection) -> None:
    results = await connection.execute("INSERT INTO missing VALUES (1); SELECT 1")

    assert len(results) == 1
    assert isinstance(results[0], ErrorResult)
    assert "missing" in results[0].message


@pytest.mark.anyio
async def test_continue_on_error_runs_everything(connection) -> None:
    results = await connection.execute(
        "INSERT INTO missing VALUES (1); SELECT 1",
        ExecOptions(stop_on_error=False),
    )

    assert [result.is_error for result in results] == [True, False]


@pytest.mark.anyio
async def test_transactional_script_rolls_back_on_error(connection) -> None:
    results = await connection.execute(
        "INSERT INTO users VALUES (3, 'c'); INSERT INTO missing VALUES (1); INSERT INTO users VALUES (4, 'd')",
        ExecOptions(transactional=True, stop_on_error=False),
    )

    assert len(results) == 2
    assert results[-1].is_error
    assert await _count(connection) == "2"


@pytest.mark.anyio
async def test_transactional_script_commits_on_success(connection) -> None:
    await connection.execute(
        "INSERT INTO users VALUES (3, 'c'); INSERT INTO users VALUES (4, 'd')",
        ExecOptions(transactional=True),
    )

    assert await _count(connection) == "4"


@pytest.mark.anyio
async def test_streaming_reports_each_statement(connection) -> None:
    channel: ProgressChannel = ProgressChannel()

    await connection.execute_streaming(
        "SELECT 1; UPDATE users SET name = 'z'; SELECT 2",
        ExecOptions(),
        channel,
    )
    progress = channel.drain()

    assert [(item.current, item.total) for item in progress] == [(1, 3), (2, 3), (3, 3)]
    assert progress[1].result.message == "Updated 2 row(s)"


@pytest.mark.anyio
async def test_closed_channel_stops_the_run(connection) -> None:
    channel: ProgressChannel = ProgressChannel()
    channel.close()

    await connection.execute_streaming(
        "INSERT INTO users VALUES (3, 'c'); INSERT INTO users VALUES (4, 'd')",
        ExecOptions(),
        channel,
    )

    assert await _count(connection) == "3"


@pytest.mark.anyio
async def test_switch_database_opens_another_file(connection, tmp_path: Path) -> None:
    other = str(tmp_path / "other.db")

    await connection.switch_database(other)

    assert await connection.current_database() == other
    assert await SqlitePlugin().list_tables(connection, other) == []


@pytest.mark.anyio
async def test_missing_path_fails_to_connect() -> None:
    config = ConnectionConfig(id="x", name="Nowhere", database_type=DatabaseType.SQLITE)
    conn = SqlitePlugin().create_connection(config)

    with pytest.raises(DbConnectionError) as excinfo:
        await conn.connect()

    assert str(excinfo.value) == "Connection error: No database file configured for 'Nowhere'"


@pytest.mark.anyio
async def test_catalog_helpers(connection) -> None:
    plugin = SqlitePlugin()

    assert await plugin.list_tables(connection, "") == ["users"]
    assert await plugin.list_databases(connection) == ["main"]
    create_sql = await plugin.export_table_create_sql(connection, "", "users")
    assert create_sql.startswith("CREATE TABLE users")


@pytest.mark.anyio
async def test_table_paging(connection) -> None:
    await connection.execute("INSERT INTO users VALUES (3, 'c'), (4, 'd'), (5, 'e')")

    page = await SqlitePlugin().query_table_data(
        connection,
        TableDataRequest(database="", table="users", page=2, page_size=2, order_by="id"),
    )

    assert page.total_count == 5
    assert page.rows == (("3", "c"), ("4", "d"))
    assert page.columns == ("id", "name")


@pytest.mark.anyio
async def test_disconnect_is_idempotent(connection) -> None:
    await connection.disconnect()
    await connection.disconnect()

    assert connection.connected is False
