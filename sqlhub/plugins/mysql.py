"""MySQL / MariaDB dialect plugin."""

from __future__ import annotations

from ..connections.base import DbConnection
from ..connections.mysql import MySqlConnection
from ..errors import DbQueryError
from ..models import ConnectionConfig, DatabaseType
from ..script import SplitterOptions
from .base import DatabasePlugin, fetch_column, fetch_rows
from .types import DatabaseOperationRequest, PluginCapabilities


class MySqlPlugin(DatabasePlugin):
    database_type = DatabaseType.MYSQL
    default_port = 3306
    quote_open = "`"
    quote_close = "`"
    splitter_options = SplitterOptions(hash_comments=True, bracket_identifiers=False)
    capabilities = PluginCapabilities(
        engines=True,
        charsets=True,
        collations=True,
        auto_increment=True,
        sequences=False,
    )

    def create_connection(self, config: ConnectionConfig) -> MySqlConnection:
        return MySqlConnection(config, self)

    def quote_string(self, value: str) -> str:
        return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"

    def format_table_reference(self, database: str | None, schema: str | None, table: str) -> str:
        if database:
            return f"{self.quote_identifier(database)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    def build_create_database_sql(self, request: DatabaseOperationRequest) -> str:
        sql = f"CREATE DATABASE {self.quote_identifier(request.database_name)}"
        return sql + self._charset_clause(request)

    def build_modify_database_sql(self, request: DatabaseOperationRequest) -> str:
        sql = f"ALTER DATABASE {self.quote_identifier(request.database_name)}"
        return sql + self._charset_clause(request)

    def build_rename_table_sql(self, database: str | None, old_name: str, new_name: str) -> str:
        source = self.format_table_reference(database, None, old_name)
        target = self.format_table_reference(database, None, new_name)
        return f"RENAME TABLE {source} TO {target}"

    async def list_databases(self, connection: DbConnection) -> list[str]:
        return await fetch_column(connection, "SHOW DATABASES")

    async def list_tables(self, connection: DbConnection, database: str, schema: str | None = None) -> list[str]:
        return await fetch_column(
            connection,
            "SELECT TABLE_NAME FROM information_schema.TABLES "
            f"WHERE TABLE_SCHEMA = {self.quote_string(database)} AND TABLE_TYPE = 'BASE TABLE' "
            "ORDER BY TABLE_NAME",
        )

    async def export_table_create_sql(self, connection: DbConnection, database: str, table: str) -> str:
        result = await fetch_rows(connection, f"SHOW CREATE TABLE {self.format_table_reference(database, None, table)}")
        if not result.rows or len(result.rows[0]) < 2 or result.rows[0][1] is None:
            raise DbQueryError(f"No CREATE statement returned for {table}")
        return result.rows[0][1]

    @staticmethod
    def _charset_clause(request: DatabaseOperationRequest) -> str:
        clause = ""
        charset = request.value("charset")
        collation = request.value("collation")
        if charset:
            clause += f" CHARACTER SET {charset}"
        if collation:
            clause += f" COLLATE {collation}"
        return clause
