"""PostgreSQL dialect plugin."""

from __future__ import annotations

from ..connections.base import DbConnection
from ..connections.postgres import PostgresConnection
from ..models import ConnectionConfig, DatabaseType
from ..script import SplitterOptions
from .base import DatabasePlugin, fetch_column, information_schema_create_sql
from .types import DatabaseOperationRequest, PluginCapabilities

DEFAULT_SCHEMA = "public"


class PostgresPlugin(DatabasePlugin):
    database_type = DatabaseType.POSTGRES
    default_port = 5432
    splitter_options = SplitterOptions(dollar_quotes=True, bracket_identifiers=False, backtick_identifiers=False)
    capabilities = PluginCapabilities(
        collations=True,
        tablespaces=True,
        schemas=True,
        sequences=True,
    )

    def create_connection(self, config: ConnectionConfig) -> PostgresConnection:
        return PostgresConnection(config, self)

    def build_create_database_sql(self, request: DatabaseOperationRequest) -> str:
        sql = f"CREATE DATABASE {self.quote_identifier(request.database_name)}"
        owner = request.value("owner")
        encoding = request.value("encoding")
        template = request.value("template")
        if owner:
            sql += f" OWNER {self.quote_identifier(owner)}"
        if encoding:
            sql += f" ENCODING {self.quote_string(encoding)}"
        if template:
            sql += f" TEMPLATE {self.quote_identifier(template)}"
        return sql

    def build_modify_database_sql(self, request: DatabaseOperationRequest) -> str:
        database = self.quote_identifier(request.database_name)
        statements = []
        owner = request.value("owner")
        comment = request.value("comment")
        if owner:
            statements.append(f"ALTER DATABASE {database} OWNER TO {self.quote_identifier(owner)}")
        if comment is not None:
            statements.append(f"COMMENT ON DATABASE {database} IS {self.quote_string(comment)}")
        if not statements:
            return f"-- No changes for database {database}"
        return ";\n".join(statements)

    def build_comment_schema_sql(self, schema: str, comment: str) -> str | None:
        return f"COMMENT ON SCHEMA {self.quote_identifier(schema)} IS {self.quote_string(comment)}"

    async def list_databases(self, connection: DbConnection) -> list[str]:
        return await fetch_column(
            connection,
            "SELECT datname FROM pg_database WHERE datistemplate = false ORDER BY datname",
        )

    async def list_tables(self, connection: DbConnection, database: str, schema: str | None = None) -> list[str]:
        return await fetch_column(
            connection,
            "SELECT table_name FROM information_schema.tables "
            f"WHERE table_schema = {self.quote_string(schema or DEFAULT_SCHEMA)} AND table_type = 'BASE TABLE' "
            "ORDER BY table_name",
        )

    async def export_table_create_sql(self, connection: DbConnection, database: str, table: str) -> str:
        schema, _, name = table.rpartition(".")
        schema = schema or DEFAULT_SCHEMA
        reference = self.format_table_reference(database, schema, name)
        return await information_schema_create_sql(self, connection, reference, schema, name)
