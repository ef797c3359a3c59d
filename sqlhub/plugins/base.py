"""Dialect plugin contract and the behaviour shared by every dialect."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

from ..errors import DbQueryError
from ..models import ConnectionConfig, DatabaseType, ExecOptions, QueryResult, SqlResult, StatementType
from ..script import (
    DEFAULT_OPTIONS,
    SplitterOptions,
    analyze_select_editability,
    apply_row_limit,
    classify,
    format_message,
    split_statements,
)
from .types import DatabaseOperationRequest, PluginCapabilities, TableDataPage, TableDataRequest

if TYPE_CHECKING:
    from ..connections.base import DbConnection

UNLIMITED = ExecOptions(max_rows=None)


class DatabasePlugin(ABC):
    """Stateless SQL generation and introspection for one dialect."""

    database_type: DatabaseType
    default_port: int | None = None
    quote_open = '"'
    quote_close = '"'
    splitter_options: SplitterOptions = DEFAULT_OPTIONS
    capabilities = PluginCapabilities()

    @abstractmethod
    def create_connection(self, config: ConnectionConfig) -> "DbConnection":
        """Build an unconnected backend connection for ``config``."""

    @property
    def sqlglot_dialect(self) -> str:
        return self.database_type.sqlglot_dialect

    # Identifiers and literals

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace(self.quote_close, self.quote_close * 2)
        return f"{self.quote_open}{escaped}{self.quote_close}"

    def quote_string(self, value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    def sql_literal(self, value: str | None) -> str:
        """Render a normalized cell as a SQL literal."""

        if value is None:
            return "NULL"
        return self.quote_string(value)

    def format_table_reference(self, database: str | None, schema: str | None, table: str) -> str:
        parts = [part for part in (schema, table) if part]
        return ".".join(self.quote_identifier(part) for part in parts)

    def format_pagination(self, limit: int, offset: int, order: str) -> str:
        parts = [order.strip()] if order and order.strip() else []
        parts.append(f"LIMIT {limit}")
        if offset:
            parts.append(f"OFFSET {offset}")
        return " ".join(parts)

    # Script processing

    def split_statements(self, script: str) -> list[str]:
        return split_statements(script, self.splitter_options)

    def classify_statement(self, sql: str) -> StatementType:
        return classify(sql, self.sqlglot_dialect, self.splitter_options)

    def is_query_statement(self, sql: str) -> bool:
        return self.classify_statement(sql) is StatementType.QUERY

    def analyze_select_editability(self, sql: str) -> str | None:
        return analyze_select_editability(sql, self.sqlglot_dialect, self.splitter_options)

    def apply_row_limit(self, sql: str, max_rows: int | None) -> str:
        return apply_row_limit(sql, max_rows, self.sqlglot_dialect, self.splitter_options)

    def format_message(self, sql: str, rows_affected: int) -> str:
        return format_message(sql, rows_affected, self.splitter_options)

    # DDL builders

    @abstractmethod
    def build_create_database_sql(self, request: DatabaseOperationRequest) -> str: ...

    @abstractmethod
    def build_modify_database_sql(self, request: DatabaseOperationRequest) -> str: ...

    def build_drop_database_sql(self, database: str) -> str:
        return f"DROP DATABASE IF EXISTS {self.quote_identifier(database)}"

    def build_create_schema_sql(self, schema: str) -> str:
        return f"CREATE SCHEMA {self.quote_identifier(schema)}"

    def build_drop_schema_sql(self, schema: str) -> str:
        return f"DROP SCHEMA {self.quote_identifier(schema)}"

    def build_comment_schema_sql(self, schema: str, comment: str) -> str | None:
        """Return the statement that sets a schema comment, or ``None`` when unsupported."""

        return None

    def build_switch_database_sql(self, database: str) -> str:
        return f"USE {self.quote_identifier(database)}"

    def build_drop_table_sql(self, database: str | None, table: str) -> str:
        return f"DROP TABLE {self.format_table_reference(database, None, table)}"

    def build_truncate_table_sql(self, database: str | None, table: str) -> str:
        return f"TRUNCATE TABLE {self.format_table_reference(database, None, table)}"

    def build_rename_table_sql(self, database: str | None, old_name: str, new_name: str) -> str:
        source = self.format_table_reference(database, None, old_name)
        return f"ALTER TABLE {source} RENAME TO {self.quote_identifier(new_name)}"

    def build_drop_view_sql(self, database: str | None, view: str) -> str:
        return f"DROP VIEW {self.format_table_reference(database, None, view)}"

    # Introspection

    @abstractmethod
    async def list_databases(self, connection: "DbConnection") -> list[str]: ...

    @abstractmethod
    async def list_tables(self, connection: "DbConnection", database: str, schema: str | None = None) -> list[str]: ...

    @abstractmethod
    async def export_table_create_sql(self, connection: "DbConnection", database: str, table: str) -> str:
        """Return the CREATE statement for ``table`` without a trailing semicolon."""

    async def export_table_data_sql(
        self,
        connection: "DbConnection",
        database: str,
        table: str,
        where_clause: str | None = None,
        limit: int | None = None,
    ) -> str:
        """Return one INSERT statement per row, newline separated."""

        select_sql = f"SELECT * FROM {self.format_table_reference(database, None, table)}"
        if where_clause and where_clause.strip():
            select_sql += f" WHERE {where_clause.strip()}"
        if limit is not None:
            select_sql += " " + self.format_pagination(limit, 0, "")
        result = await fetch_rows(connection, select_sql)
        if not result.columns:
            return ""
        target = self.quote_identifier(table)
        column_list = ", ".join(self.quote_identifier(column) for column in result.columns)
        lines = [
            f"INSERT INTO {target} ({column_list}) VALUES ({', '.join(self.sql_literal(cell) for cell in row)});"
            for row in result.rows
        ]
        return "\n".join(lines)

    async def query_table_data(self, connection: "DbConnection", request: TableDataRequest) -> TableDataPage:
        """Fetch one page of ``request.table`` together with the total row count."""

        started = time.perf_counter()
        reference = self.format_table_reference(request.database, request.schema, request.table)
        where = f" WHERE {request.where_clause.strip()}" if request.where_clause and request.where_clause.strip() else ""
        order = f"ORDER BY {request.order_by.strip()}" if request.order_by and request.order_by.strip() else ""
        count = await fetch_rows(connection, f"SELECT COUNT(*) FROM {reference}{where}")
        total = int(count.rows[0][0] or 0) if count.rows else 0
        pagination = self.format_pagination(request.page_size, request.offset, order)
        page = await fetch_rows(connection, f"SELECT * FROM {reference}{where} {pagination}")
        return TableDataPage(
            columns=page.columns,
            rows=page.rows,
            total_count=total,
            page=request.page,
            page_size=request.page_size,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )

    def build_create_table_sql(
        self,
        reference: str,
        columns: Sequence[tuple[str, str, bool, str | None]],
        primary_key: Sequence[str] = (),
    ) -> str:
        """Assemble a CREATE TABLE from ``(name, type, nullable, default)`` tuples."""

        lines = []
        for name, data_type, nullable, default in columns:
            line = f"  {self.quote_identifier(name)} {data_type}"
            if not nullable:
                line += " NOT NULL"
            if default is not None:
                line += f" DEFAULT {default}"
            lines.append(line)
        if primary_key:
            keys = ", ".join(self.quote_identifier(name) for name in primary_key)
            lines.append(f"  PRIMARY KEY ({keys})")
        body = ",\n".join(lines)
        return f"CREATE TABLE {reference} (\n{body}\n)"


async def fetch_rows(connection: "DbConnection", sql: str) -> QueryResult:
    """Run a metadata query without row limits; surface failures as ``DbQueryError``."""

    result: SqlResult = await connection.query(sql, None, UNLIMITED)
    if isinstance(result, QueryResult):
        return result
    if result.is_error:
        raise DbQueryError(result.message)
    return QueryResult(sql=sql, columns=(), rows=(), elapsed_ms=result.elapsed_ms)


async def fetch_column(connection: "DbConnection", sql: str, index: int = 0) -> list[str]:
    """Return the non-null values of one column."""

    result = await fetch_rows(connection, sql)
    return [row[index] for row in result.rows if len(row) > index and row[index] is not None]


async def information_schema_create_sql(
    plugin: DatabasePlugin,
    connection: "DbConnection",
    reference: str,
    schema: str,
    table: str,
    prefix: str = "information_schema",
) -> str:
    """Rebuild a CREATE TABLE from the standard information_schema views."""

    schema_literal = plugin.quote_string(schema)
    table_literal = plugin.quote_string(table)
    columns = await fetch_rows(
        connection,
        "SELECT column_name, data_type, character_maximum_length, is_nullable, column_default "
        f"FROM {prefix}.columns "
        f"WHERE table_schema = {schema_literal} AND table_name = {table_literal} "
        "ORDER BY ordinal_position",
    )
    if not columns.rows:
        raise DbQueryError(f"Table {schema}.{table} has no visible columns")
    keys = await fetch_column(
        connection,
        "SELECT kcu.column_name "
        f"FROM {prefix}.table_constraints tc "
        f"JOIN {prefix}.key_column_usage kcu "
        "ON tc.constraint_name = kcu.constraint_name AND tc.table_schema = kcu.table_schema "
        f"WHERE tc.constraint_type = 'PRIMARY KEY' AND tc.table_schema = {schema_literal} "
        f"AND tc.table_name = {table_literal} "
        "ORDER BY kcu.ordinal_position",
    )
    definitions = []
    for name, data_type, max_length, nullable, default in columns.rows:
        rendered = data_type or "text"
        if max_length and max_length not in ("-1", "0"):
            rendered = f"{rendered}({max_length})"
        definitions.append((name or "", rendered, (nullable or "YES").upper() == "YES", default))
    return plugin.build_create_table_sql(reference, definitions, keys)


__all__ = ["DatabasePlugin", "UNLIMITED", "fetch_column", "fetch_rows", "information_schema_create_sql"]
