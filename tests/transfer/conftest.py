"""Shared SQLite fixture for the import/export tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from sqlhub.models import ConnectionConfig, DatabaseType
from sqlhub.plugins.sqlite import SqlitePlugin

SEED = (
    "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT);"
    "INSERT INTO users VALUES (1, 'a'), (2, NULL)"
)


@pytest.fixture
def plugin() -> SqlitePlugin:
    return SqlitePlugin()


@pytest.fixture
async def connection(plugin: SqlitePlugin, tmp_path: Path):
    config = ConnectionConfig(
        id="local",
        name="Local",
        database_type=DatabaseType.SQLITE,
        database=str(tmp_path / "transfer.db"),
    )
    conn = plugin.create_connection(config)
    await conn.connect()
    await conn.execute(SEED)
    yield conn
    await conn.disconnect()
