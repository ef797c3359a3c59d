"""Post-execution messages and SQL pretty-printing helpers."""

from __future__ import annotations

import re

import sqlglot
from sqlglot.errors import SqlglotError

from .classifier import leading_keywords
from .splitter import DEFAULT_OPTIONS, SegmentKind, SplitterOptions, iter_segments

_ROW_MESSAGES = {
    "INSERT": "Inserted {n} row(s)",
    "UPDATE": "Updated {n} row(s)",
    "DELETE": "Deleted {n} row(s)",
    "REPLACE": "Replaced {n} row(s)",
    "MERGE": "Merged {n} row(s)",
}

_FIXED_MESSAGES = {
    "CREATE": "Object created successfully",
    "ALTER": "Object altered successfully",
    "DROP": "Object dropped successfully",
    "TRUNCATE": "Table truncated successfully",
    "RENAME": "Object renamed successfully",
    "USE": "Database changed successfully",
    "SET": "Variable set successfully",
    "BEGIN": "Transaction started",
    "COMMIT": "Transaction committed",
    "ROLLBACK": "Transaction rolled back",
    "SAVEPOINT": "Savepoint created",
}

_WHITESPACE = re.compile(r"\s+")


def format_message(sql: str, rows_affected: int, options: SplitterOptions = DEFAULT_OPTIONS) -> str:
    """Human readable summary for a non-query statement."""

    words = leading_keywords(sql, 2, options)
    head = words[0] if words else ""
    if words == ("START", "TRANSACTION"):
        return _FIXED_MESSAGES["BEGIN"]
    if head in _ROW_MESSAGES:
        return _ROW_MESSAGES[head].format(n=rows_affected)
    if head in _FIXED_MESSAGES:
        return _FIXED_MESSAGES[head]
    return f"Query executed successfully, {rows_affected} row(s) affected"


def format_sql(sql: str, dialect: str | None = None) -> str:
    """Pretty-print ``sql``; unparseable input is returned untouched."""

    if not sql.strip():
        return sql
    try:
        statements = sqlglot.transpile(sql, read=dialect, write=dialect, pretty=True)
    except SqlglotError:
        return sql
    formatted = ";\n\n".join(statement for statement in statements if statement.strip())
    if sql.rstrip().endswith(";"):
        formatted += ";"
    return formatted


def compress_sql(sql: str, options: SplitterOptions = DEFAULT_OPTIONS) -> str:
    """Collapse whitespace outside quoted text and drop comments (hints stay)."""

    parts: list[str] = []
    pending: list[str] = []
    for kind, chunk in iter_segments(sql, options):
        if kind is SegmentKind.COMMENT:
            pending.append(" ")
        elif kind is SegmentKind.CODE:
            pending.append(chunk)
        else:
            parts.append(_WHITESPACE.sub(" ", "".join(pending)))
            pending = []
            parts.append(chunk)
    parts.append(_WHITESPACE.sub(" ", "".join(pending)))
    return "".join(parts).strip()


__all__ = ["compress_sql", "format_message", "format_sql"]
