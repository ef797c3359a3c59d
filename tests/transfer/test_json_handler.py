"""Tests for JSON import and export."""

from __future__ import annotations

import json

import pytest

from sqlhub.errors import DbCustomError
from sqlhub.plugins.mysql import MySqlPlugin
from sqlhub.transfer import DataExporter, DataFormat, DataImporter, ExportConfig, ImportConfig
from sqlhub.transfer.json_handler import json_literal, parse_json_rows


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def test_parse_accepts_array_or_single_object() -> None:
    assert parse_json_rows('[{"a": 1}, {"a": 2}]') == [{"a": 1}, {"a": 2}]
    assert parse_json_rows('{"a": 1}') == [{"a": 1}]


def test_parse_rejects_other_payloads() -> None:
    with pytest.raises(DbCustomError) as excinfo:
        parse_json_rows("3")
    assert str(excinfo.value) == "JSON must be array or object"

    with pytest.raises(DbCustomError) as excinfo:
        parse_json_rows("{broken")
    assert str(excinfo.value).startswith("Invalid JSON:")


def test_literals() -> None:
    plugin = MySqlPlugin()

    assert json_literal(plugin, None) == "NULL"
    assert json_literal(plugin, True) == "1"
    assert json_literal(plugin, False) == "0"
    assert json_literal(plugin, 7) == "7"
    assert json_literal(plugin, 2.5) == "2.5"
    assert json_literal(plugin, "it's") == "'it''s'"
    assert json_literal(plugin, {"k": [1]}) == "'{\"k\": [1]}'"


@pytest.mark.anyio
async def test_import_rows_with_missing_keys(plugin, connection) -> None:
    config = ImportConfig(format=DataFormat.JSON, table="users")

    result = await DataImporter().run(plugin, connection, config, '[{"id": 3, "name": "c"}, {"id": 4}]')

    assert result.success
    assert result.rows_imported == 2
    rows = await connection.query("SELECT id, name FROM users WHERE id > 2 ORDER BY id")
    assert rows.rows == (("3", "c"), ("4", None))


@pytest.mark.anyio
async def test_non_object_rows_are_reported(plugin, connection) -> None:
    config = ImportConfig(format=DataFormat.JSON, table="users", stop_on_error=False)

    result = await DataImporter().run(plugin, connection, config, '[{"id": 3}, 5, {"id": 4}]')

    assert not result.success
    assert result.errors == ("Row is not an object",)
    assert result.rows_imported == 2


@pytest.mark.anyio
async def test_first_row_must_be_an_object(plugin, connection) -> None:
    config = ImportConfig(format=DataFormat.JSON, table="users")

    result = await DataImporter().run(plugin, connection, config, "[1, 2]")

    assert result.errors == ("JSON array must contain objects",)


@pytest.mark.anyio
async def test_insert_failure_message(plugin, connection) -> None:
    config = ImportConfig(format=DataFormat.JSON, table="users")

    result = await DataImporter().run(plugin, connection, config, '[{"id": 1, "name": "dup"}]')

    assert not result.success
    assert result.errors[0].startswith("Insert failed: UNIQUE constraint failed")


@pytest.mark.anyio
async def test_export_is_an_array_of_string_cells(plugin, connection) -> None:
    result = await DataExporter().run(plugin, connection, ExportConfig(format=DataFormat.JSON, tables=("users",)))

    assert result.rows_exported == 2
    assert json.loads(result.output) == [{"id": "1", "name": "a"}, {"id": "2", "name": None}]
    assert result.output.startswith("[\n  {")


@pytest.mark.anyio
async def test_export_honours_where_and_limit(plugin, connection) -> None:
    config = ExportConfig(format=DataFormat.JSON, tables=("users",), where_clause="id >= 1", limit=1)

    result = await DataExporter().run(plugin, connection, config)

    assert json.loads(result.output) == [{"id": "1", "name": "a"}]


@pytest.mark.anyio
async def test_export_then_import_restores_the_rows(plugin, connection) -> None:
    await connection.execute(
        "INSERT INTO users VALUES (3, 'it''s'), (4, ''); CREATE TABLE users_copy (id INTEGER PRIMARY KEY, name TEXT)"
    )
    exported = await DataExporter().run(
        plugin, connection, ExportConfig(format=DataFormat.JSON, tables=("users",))
    )

    imported = await DataImporter().run(
        plugin, connection, ImportConfig(format=DataFormat.JSON, table="users_copy"), exported.output
    )

    assert exported.rows_exported == 4
    assert imported.success
    assert imported.rows_imported == 4
    original = await connection.query("SELECT id, name FROM users ORDER BY id")
    restored = await connection.query("SELECT id, name FROM users_copy ORDER BY id")
    assert restored.rows == original.rows
    assert restored.rows == (("1", "a"), ("2", None), ("3", "it's"), ("4", ""))
