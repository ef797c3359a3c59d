"""ClickHouse dialect plugin."""

from __future__ import annotations

from ..connections.base import DbConnection
from ..connections.clickhouse import ClickHouseConnection
from ..errors import DbQueryError
from ..models import ConnectionConfig, DatabaseType
from ..script import SplitterOptions
from .base import DatabasePlugin, fetch_column, fetch_rows
from .types import DatabaseOperationRequest, PluginCapabilities


class ClickHousePlugin(DatabasePlugin):
    database_type = DatabaseType.CLICKHOUSE
    default_port = 8123
    quote_open = "`"
    quote_close = "`"
    splitter_options = SplitterOptions(bracket_identifiers=False)
    capabilities = PluginCapabilities(
        engines=True,
        triggers=False,
        procedures=False,
    )

    def create_connection(self, config: ConnectionConfig) -> ClickHouseConnection:
        return ClickHouseConnection(config, self)

    def quote_string(self, value: str) -> str:
        return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"

    def format_table_reference(self, database: str | None, schema: str | None, table: str) -> str:
        if database:
            return f"{self.quote_identifier(database)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    def build_create_database_sql(self, request: DatabaseOperationRequest) -> str:
        sql = f"CREATE DATABASE IF NOT EXISTS {self.quote_identifier(request.database_name)}"
        engine = request.value("engine")
        comment = request.value("comment")
        if engine:
            sql += f" ENGINE = {engine}"
        if comment:
            sql += f" COMMENT {self.quote_string(comment)}"
        return sql

    def build_modify_database_sql(self, request: DatabaseOperationRequest) -> str:
        return "-- ClickHouse does not support ALTER DATABASE"

    def build_rename_table_sql(self, database: str | None, old_name: str, new_name: str) -> str:
        source = self.format_table_reference(database, None, old_name)
        target = self.format_table_reference(database, None, new_name)
        return f"RENAME TABLE {source} TO {target}"

    async def list_databases(self, connection: DbConnection) -> list[str]:
        return await fetch_column(connection, "SHOW DATABASES")

    async def list_tables(self, connection: DbConnection, database: str, schema: str | None = None) -> list[str]:
        return await fetch_column(
            connection,
            f"SELECT name FROM system.tables WHERE database = {self.quote_string(database)} ORDER BY name",
        )

    async def export_table_create_sql(self, connection: DbConnection, database: str, table: str) -> str:
        result = await fetch_rows(connection, f"SHOW CREATE TABLE {self.format_table_reference(database, None, table)}")
        if not result.rows or result.rows[0][0] is None:
            raise DbQueryError(f"No CREATE statement returned for {table}")
        return result.rows[0][0]
