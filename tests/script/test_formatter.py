"""Tests for execution messages and SQL formatting helpers."""

from __future__ import annotations

import pytest

from sqlhub.script import compress_sql, format_message, format_sql


@pytest.mark.parametrize(
    ("sql", "rows", "expected"),
    [
        ("INSERT INTO t VALUES (1), (2), (3)", 3, "Inserted 3 row(s)"),
        ("update t set a = 1", 2, "Updated 2 row(s)"),
        ("DELETE FROM t", 0, "Deleted 0 row(s)"),
        ("CREATE TABLE t (a INT)", 0, "Object created successfully"),
        ("  /* drop it */ drop table t", 0, "Object dropped successfully"),
        ("ALTER TABLE t ADD b INT", 0, "Object altered successfully"),
        ("TRUNCATE TABLE t", 0, "Table truncated successfully"),
        ("USE shop", 0, "Database changed successfully"),
        ("SET @x = 1", 0, "Variable set successfully"),
        ("BEGIN", 0, "Transaction started"),
        ("START TRANSACTION", 0, "Transaction started"),
        ("COMMIT", 0, "Transaction committed"),
        ("ROLLBACK", 0, "Transaction rolled back"),
        ("GRANT SELECT ON t TO bob", 0, "Query executed successfully, 0 row(s) affected"),
        ("EXEC sp_refresh", 4, "Query executed successfully, 4 row(s) affected"),
    ],
)
def test_format_message(sql: str, rows: int, expected: str) -> None:
    assert format_message(sql, rows) == expected


def test_compress_sql_collapses_whitespace_outside_literals() -> None:
    sql = "SELECT  a,\n   b -- trailing\nFROM t\tWHERE x = 'a   b'"

    assert compress_sql(sql) == "SELECT a, b FROM t WHERE x = 'a   b'"


def test_compress_sql_keeps_hints() -> None:
    assert compress_sql("SELECT /*+ FULL(t) */  *\nFROM t") == "SELECT /*+ FULL(t) */ * FROM t"


def test_format_sql_pretty_prints() -> None:
    formatted = format_sql("select a, b from t where a = 1")

    assert formatted.startswith("SELECT")
    assert "\nFROM t" in formatted
    assert "\nWHERE" in formatted


def test_format_sql_keeps_trailing_semicolon() -> None:
    assert format_sql("select 1;").endswith(";")


def test_format_sql_blank_input() -> None:
    assert format_sql("   ") == "   "
