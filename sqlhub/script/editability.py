"""Editability analysis and row-limit injection for query statements."""

from __future__ import annotations

import re

from sqlglot import exp

from .classifier import is_query_statement, leading_keywords, parse_statement
from .splitter import (
    DEFAULT_OPTIONS,
    SplitterOptions,
    has_top_level_keyword,
    mask_literals,
    split_statements,
    strip_comments,
)

AGGREGATE_NAMES = ("COUNT", "SUM", "AVG", "MAX", "MIN", "GROUP_CONCAT", "STRING_AGG")

_COMPLEX_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bJOIN\b",
        r"\bUNION\b",
        r"\bINTERSECT\b",
        r"\bEXCEPT\b",
        r"\bGROUP\s+BY\b",
        r"\bHAVING\b",
        r"\bDISTINCT\b",
        r"\bOVER\s*\(",
        rf"\b(?:{'|'.join(AGGREGATE_NAMES)})\s*\(",
    )
)
_FROM_TARGET = re.compile(r"\bFROM\s+(\S+)", re.IGNORECASE)
_QUOTE_CHARS = "`\"[]"


def analyze_select_editability(
    sql: str,
    dialect: str | None = None,
    options: SplitterOptions = DEFAULT_OPTIONS,
) -> str | None:
    """Return the table behind a trivially single-table SELECT, else ``None``."""

    if not is_query_statement(sql, dialect, options):
        return None
    if _has_complex_construct(sql, options):
        return None
    expression = parse_statement(sql, dialect)
    if expression is not None and not isinstance(expression, exp.Command):
        return _table_from_expression(expression)
    return _table_from_text(sql, options)


def _has_complex_construct(sql: str, options: SplitterOptions) -> bool:
    masked = mask_literals(sql, options)
    return any(pattern.search(masked) for pattern in _COMPLEX_PATTERNS)


def _table_from_expression(expression: exp.Expression) -> str | None:
    if not isinstance(expression, exp.Select):
        return None
    for key in ("distinct", "group", "having", "joins", "with", "laterals"):
        if expression.args.get(key):
            return None
    source = _from_clause(expression)
    if source is None or source.expressions:
        return None
    table = source.this
    if not isinstance(table, exp.Table) or not isinstance(table.this, exp.Identifier):
        return None
    for projection in expression.expressions:
        if projection.find(exp.AggFunc, exp.Window):
            return None
        for call in projection.find_all(exp.Anonymous):
            if str(call.name).upper() in AGGREGATE_NAMES:
                return None
    parts = [part for part in (table.db, table.name) if part]
    return ".".join(parts) or None


def _from_clause(expression: exp.Select) -> exp.From | None:
    for value in expression.args.values():
        if isinstance(value, exp.From):
            return value
    return None


def _table_from_text(sql: str, options: SplitterOptions) -> str | None:
    if leading_keywords(sql, 1, options) != ("SELECT",):
        return None
    body = strip_comments(sql, options)
    match = _FROM_TARGET.search(body)
    if match is None:
        return None
    name = match.group(1).rstrip(";")
    for char in _QUOTE_CHARS:
        name = name.replace(char, "")
    name = name.replace("'", "")
    if not name or "(" in name or "," in name:
        return None
    return name


def apply_row_limit(
    sql: str,
    max_rows: int | None,
    dialect: str | None = None,
    options: SplitterOptions = DEFAULT_OPTIONS,
) -> str:
    """Append ``LIMIT n`` to a row-returning SELECT/WITH lacking a top-level limit."""

    statement = limitable_statement(sql, max_rows, dialect, options)
    if statement is None:
        return sql
    for keyword in ("LIMIT", "FETCH", "OFFSET", r"FOR\s+UPDATE", r"FOR\s+SHARE"):
        if has_top_level_keyword(statement, keyword, options):
            return sql
    return f"{statement} LIMIT {max_rows}"


def limitable_statement(
    sql: str,
    max_rows: int | None,
    dialect: str | None = None,
    options: SplitterOptions = DEFAULT_OPTIONS,
) -> str | None:
    """Return the statement, comments and trailing ``;`` removed, when a limit may be injected.

    Optimizer hints are kept.
    """

    if max_rows is None:
        return None
    if leading_keywords(sql, 1, options) not in (("SELECT",), ("WITH",)):
        return None
    if not is_query_statement(sql, dialect, options):
        return None
    statements = split_statements(sql, options)
    if len(statements) != 1:
        return None
    return statements[0]


__all__ = [
    "AGGREGATE_NAMES",
    "analyze_select_editability",
    "apply_row_limit",
    "limitable_statement",
]
