"""Oracle dialect plugin; databases map to users/schemas."""

from __future__ import annotations

from ..connections.base import DbConnection
from ..connections.oracle import OracleConnection
from ..errors import DbQueryError
from ..models import ConnectionConfig, DatabaseType
from ..script import SplitterOptions, has_top_level_keyword
from ..script.editability import limitable_statement
from .base import DatabasePlugin, fetch_column, fetch_rows
from .types import DatabaseOperationRequest, PluginCapabilities


class OraclePlugin(DatabasePlugin):
    database_type = DatabaseType.ORACLE
    default_port = 1521
    splitter_options = SplitterOptions(bracket_identifiers=False, backtick_identifiers=False)
    capabilities = PluginCapabilities(
        tablespaces=True,
        sequences=True,
    )

    def create_connection(self, config: ConnectionConfig) -> OracleConnection:
        return OracleConnection(config, self)

    def format_table_reference(self, database: str | None, schema: str | None, table: str) -> str:
        owner = schema or database
        if owner:
            return f"{self.quote_identifier(owner)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    def format_pagination(self, limit: int, offset: int, order: str) -> str:
        parts = [order.strip()] if order and order.strip() else []
        parts.append(f"OFFSET {offset} ROWS FETCH NEXT {limit} ROWS ONLY")
        return " ".join(parts)

    def apply_row_limit(self, sql: str, max_rows: int | None) -> str:
        statement = limitable_statement(sql, max_rows, self.sqlglot_dialect, self.splitter_options)
        if statement is None:
            return sql
        if has_top_level_keyword(statement, "FETCH", self.splitter_options) or "ROWNUM" in statement.upper():
            return sql
        return f"{statement} FETCH FIRST {max_rows} ROWS ONLY"

    def build_create_database_sql(self, request: DatabaseOperationRequest) -> str:
        user = self.quote_identifier(request.database_name)
        password = request.value("password")
        if password:
            return f"CREATE USER {user} IDENTIFIED BY {self.quote_identifier(password)}"
        return f"CREATE USER {user} NO AUTHENTICATION"

    def build_modify_database_sql(self, request: DatabaseOperationRequest) -> str:
        user = self.quote_identifier(request.database_name)
        password = request.value("password")
        if not password:
            return f"-- No changes for user {user}"
        return f"ALTER USER {user} IDENTIFIED BY {self.quote_identifier(password)}"

    def build_drop_database_sql(self, database: str) -> str:
        return f"DROP USER {self.quote_identifier(database)} CASCADE"

    def build_switch_database_sql(self, database: str) -> str:
        return f"ALTER SESSION SET CURRENT_SCHEMA = {self.quote_identifier(database)}"

    async def list_databases(self, connection: DbConnection) -> list[str]:
        return await fetch_column(connection, "SELECT username FROM all_users ORDER BY username")

    async def list_tables(self, connection: DbConnection, database: str, schema: str | None = None) -> list[str]:
        owner = schema or database
        return await fetch_column(
            connection,
            f"SELECT table_name FROM all_tables WHERE owner = {self.quote_string(owner)} ORDER BY table_name",
        )

    async def export_table_create_sql(self, connection: DbConnection, database: str, table: str) -> str:
        result = await fetch_rows(
            connection,
            f"SELECT DBMS_METADATA.GET_DDL('TABLE', {self.quote_string(table)}, {self.quote_string(database)}) FROM DUAL",
        )
        if not result.rows or result.rows[0][0] is None:
            raise DbQueryError(f"No DDL returned for {database}.{table}")
        return result.rows[0][0].strip().rstrip(";")
