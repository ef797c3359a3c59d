"""Shared dataclasses used across the connection, pool and transfer modules."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from .errors import DbCustomError

Row = tuple[str | None, ...]


class DatabaseType(str, Enum):
    """Dialect tags understood by the plugin registry."""

    MYSQL = "mysql"
    POSTGRES = "postgresql"
    MSSQL = "mssql"
    ORACLE = "oracle"
    SQLITE = "sqlite"
    CLICKHOUSE = "clickhouse"

    @classmethod
    def parse(cls, value: "DatabaseType | str") -> "DatabaseType":
        """Resolve a stored tag (case-insensitive, common aliases accepted)."""

        if isinstance(value, DatabaseType):
            return value
        key = str(value).strip().lower()
        resolved = _ALIASES.get(key)
        if resolved is None:
            raise DbCustomError(f"unsupported database type: {value!r}")
        return resolved

    @property
    def sqlglot_dialect(self) -> str:
        return _SQLGLOT_DIALECTS[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_ALIASES: dict[str, DatabaseType] = {
    "mysql": DatabaseType.MYSQL,
    "mariadb": DatabaseType.MYSQL,
    "postgresql": DatabaseType.POSTGRES,
    "postgres": DatabaseType.POSTGRES,
    "pg": DatabaseType.POSTGRES,
    "mssql": DatabaseType.MSSQL,
    "sqlserver": DatabaseType.MSSQL,
    "oracle": DatabaseType.ORACLE,
    "sqlite": DatabaseType.SQLITE,
    "clickhouse": DatabaseType.CLICKHOUSE,
}

_DISPLAY_NAMES: dict[DatabaseType, str] = {
    DatabaseType.MYSQL: "MySQL",
    DatabaseType.POSTGRES: "PostgreSQL",
    DatabaseType.MSSQL: "SQL Server",
    DatabaseType.ORACLE: "Oracle",
    DatabaseType.SQLITE: "SQLite",
    DatabaseType.CLICKHOUSE: "ClickHouse",
}

_SQLGLOT_DIALECTS: dict[DatabaseType, str] = {
    DatabaseType.MYSQL: "mysql",
    DatabaseType.POSTGRES: "postgres",
    DatabaseType.MSSQL: "tsql",
    DatabaseType.ORACLE: "oracle",
    DatabaseType.SQLITE: "sqlite",
    DatabaseType.CLICKHOUSE: "clickhouse",
}


class StatementType(str, Enum):
    """Coarse statement category used for execution and messages."""

    QUERY = "query"
    DML = "dml"
    DDL = "ddl"
    TRANSACTION = "transaction"
    COMMAND = "command"
    EXEC = "exec"


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Runtime representation of a stored connection record."""

    id: str
    name: str
    database_type: DatabaseType
    host: str = ""
    port: int | None = None
    username: str = ""
    password: str = ""
    database: str | None = None
    connection_type: str = "database"

    def with_database(self, database: str | None) -> ConnectionConfig:
        """Return a copy pointing at another default database."""

        return replace(self, database=database)


@dataclass(frozen=True, slots=True)
class ExecOptions:
    """Knobs applied to every statement of a script run."""

    stop_on_error: bool = True
    transactional: bool = False
    max_rows: int | None = 1000


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Rows returned by a query; cells are normalized to optional strings."""

    sql: str
    columns: tuple[str, ...]
    rows: tuple[Row, ...]
    elapsed_ms: int
    table_name: str | None = None
    editable: bool = False

    def __post_init__(self) -> None:
        width = len(self.columns)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(f"Row {index} has {len(row)} cells, expected {width}")
        if self.editable and not self.table_name:
            raise ValueError("Editable results need a table name")

    @property
    def is_error(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Outcome of a statement that does not return rows.

    ``rows_affected`` is 0 when the driver cannot report a count.
    """

    sql: str
    rows_affected: int
    elapsed_ms: int
    message: str | None = None

    @property
    def is_error(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class ErrorResult:
    """Per-statement failure captured instead of aborting the script."""

    sql: str
    message: str

    @property
    def is_error(self) -> bool:
        return True


SqlResult = QueryResult | ExecResult | ErrorResult


@dataclass(frozen=True, slots=True)
class StreamingProgress:
    """One per-statement outcome pushed to a streaming consumer."""

    current: int
    total: int
    result: SqlResult

    def __post_init__(self) -> None:
        if not 1 <= self.current <= self.total:
            raise ValueError(f"Progress {self.current}/{self.total} is out of range")


__all__ = [
    "ConnectionConfig",
    "DatabaseType",
    "ErrorResult",
    "ExecOptions",
    "ExecResult",
    "QueryResult",
    "Row",
    "SqlResult",
    "StatementType",
    "StreamingProgress",
]
