"""SQLite dialect plugin; a database is a file path."""

from __future__ import annotations

from ..connections.base import DbConnection
from ..connections.sqlite import SqliteConnection
from ..errors import DbQueryError
from ..models import ConnectionConfig, DatabaseType
from .base import DatabasePlugin, fetch_column, fetch_rows
from .types import DatabaseOperationRequest, PluginCapabilities


class SqlitePlugin(DatabasePlugin):
    database_type = DatabaseType.SQLITE
    capabilities = PluginCapabilities(
        auto_increment=True,
        procedures=False,
        functions=False,
    )

    def create_connection(self, config: ConnectionConfig) -> SqliteConnection:
        return SqliteConnection(config, self)

    def format_table_reference(self, database: str | None, schema: str | None, table: str) -> str:
        if schema:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    def build_create_database_sql(self, request: DatabaseOperationRequest) -> str:
        path = request.value("file") or f"{request.database_name}.db"
        return f"ATTACH DATABASE {self.quote_string(path)} AS {self.quote_identifier(request.database_name)}"

    def build_modify_database_sql(self, request: DatabaseOperationRequest) -> str:
        return f"-- SQLite database {self.quote_identifier(request.database_name)} cannot be altered"

    def build_drop_database_sql(self, database: str) -> str:
        return f"DETACH DATABASE {self.quote_identifier(database)}"

    def build_truncate_table_sql(self, database: str | None, table: str) -> str:
        return f"DELETE FROM {self.format_table_reference(database, None, table)}"

    async def list_databases(self, connection: DbConnection) -> list[str]:
        return await fetch_column(connection, "PRAGMA database_list", index=1)

    async def list_tables(self, connection: DbConnection, database: str, schema: str | None = None) -> list[str]:
        return await fetch_column(
            connection,
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name",
        )

    async def export_table_create_sql(self, connection: DbConnection, database: str, table: str) -> str:
        result = await fetch_rows(
            connection,
            f"SELECT sql FROM sqlite_master WHERE type = 'table' AND name = {self.quote_string(table)}",
        )
        if not result.rows or result.rows[0][0] is None:
            raise DbQueryError(f"Table {table} does not exist")
        return result.rows[0][0]
