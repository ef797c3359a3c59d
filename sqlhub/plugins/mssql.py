"""Microsoft SQL Server dialect plugin."""

from __future__ import annotations

import re

from ..connections.base import DbConnection
from ..connections.mssql import MsSqlConnection
from ..models import ConnectionConfig, DatabaseType
from ..script import has_top_level_keyword
from ..script.editability import limitable_statement
from .base import DatabasePlugin, fetch_column, information_schema_create_sql
from .types import DatabaseOperationRequest, PluginCapabilities

DEFAULT_SCHEMA = "dbo"

_SELECT_HEAD = re.compile(r"^\s*SELECT(?:\s+(?:DISTINCT|ALL)\b)?", re.IGNORECASE)


class MsSqlPlugin(DatabasePlugin):
    database_type = DatabaseType.MSSQL
    default_port = 1433
    quote_open = "["
    quote_close = "]"
    capabilities = PluginCapabilities(
        collations=True,
        auto_increment=True,
        schemas=True,
        sequences=True,
    )

    def create_connection(self, config: ConnectionConfig) -> MsSqlConnection:
        return MsSqlConnection(config, self)

    def format_table_reference(self, database: str | None, schema: str | None, table: str) -> str:
        parts = [database, schema or DEFAULT_SCHEMA, table] if database else [schema or DEFAULT_SCHEMA, table]
        return ".".join(self.quote_identifier(part) for part in parts)

    def format_pagination(self, limit: int, offset: int, order: str) -> str:
        order_clause = order.strip() if order and order.strip() else "ORDER BY (SELECT NULL)"
        return f"{order_clause} OFFSET {offset} ROWS FETCH NEXT {limit} ROWS ONLY"

    def apply_row_limit(self, sql: str, max_rows: int | None) -> str:
        statement = limitable_statement(sql, max_rows, self.sqlglot_dialect, self.splitter_options)
        if statement is None:
            return sql
        match = _SELECT_HEAD.match(statement)
        if match is None:
            return sql
        for keyword in ("TOP", "OFFSET", "FETCH"):
            if has_top_level_keyword(statement, keyword, self.splitter_options):
                return sql
        return f"{match.group(0)} TOP {max_rows}{statement[match.end():]}"

    def build_create_database_sql(self, request: DatabaseOperationRequest) -> str:
        sql = f"CREATE DATABASE {self.quote_identifier(request.database_name)}"
        collation = request.value("collation")
        if collation:
            sql += f" COLLATE {collation}"
        return sql

    def build_modify_database_sql(self, request: DatabaseOperationRequest) -> str:
        database = self.quote_identifier(request.database_name)
        collation = request.value("collation")
        if not collation:
            return f"-- No changes for database {database}"
        return f"ALTER DATABASE {database} COLLATE {collation}"

    def build_comment_schema_sql(self, schema: str, comment: str) -> str | None:
        return (
            "EXEC sp_addextendedproperty @name = N'MS_Description', "
            f"@value = N{self.quote_string(comment)}, "
            f"@level0type = N'SCHEMA', @level0name = N{self.quote_string(schema)}"
        )

    def build_rename_table_sql(self, database: str | None, old_name: str, new_name: str) -> str:
        schema, _, table = old_name.rpartition(".")
        source = self.format_table_reference(database, schema or None, table)
        return f"EXEC sp_rename {self.quote_string(source)}, {self.quote_string(new_name)}"

    async def list_databases(self, connection: DbConnection) -> list[str]:
        return await fetch_column(connection, "SELECT name FROM sys.databases ORDER BY name")

    async def list_tables(self, connection: DbConnection, database: str, schema: str | None = None) -> list[str]:
        return await fetch_column(
            connection,
            f"SELECT TABLE_NAME FROM {self.quote_identifier(database)}.INFORMATION_SCHEMA.TABLES "
            f"WHERE TABLE_TYPE = 'BASE TABLE' AND TABLE_SCHEMA = {self.quote_string(schema or DEFAULT_SCHEMA)} "
            "ORDER BY TABLE_NAME",
        )

    async def export_table_create_sql(self, connection: DbConnection, database: str, table: str) -> str:
        schema, _, name = table.rpartition(".")
        schema = schema or DEFAULT_SCHEMA
        reference = self.format_table_reference(None, schema, name)
        prefix = f"{self.quote_identifier(database)}.INFORMATION_SCHEMA"
        return await information_schema_create_sql(self, connection, reference, schema, name, prefix)
