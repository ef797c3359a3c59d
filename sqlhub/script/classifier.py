"""Statement classification: sqlglot first, keyword prefixes as the fallback."""

from __future__ import annotations

import re

from sqlglot import exp, parse_one
from sqlglot.errors import SqlglotError

from ..models import StatementType
from .splitter import DEFAULT_OPTIONS, SplitterOptions, strip_comments

QUERY_KEYWORDS = frozenset({"SELECT", "SHOW", "DESC", "DESCRIBE", "EXPLAIN", "WITH", "TABLE", "PRAGMA", "VALUES"})
DML_KEYWORDS = frozenset({"INSERT", "UPDATE", "DELETE", "REPLACE", "MERGE"})
DDL_KEYWORDS = frozenset({"CREATE", "ALTER", "DROP", "TRUNCATE", "RENAME"})
TRANSACTION_KEYWORDS = frozenset({"BEGIN", "COMMIT", "ROLLBACK", "SAVEPOINT", "RELEASE"})
COMMAND_KEYWORDS = frozenset({"USE", "SET"})

_QUERY_NODES = (
    exp.Select,
    exp.Union,
    exp.Intersect,
    exp.Except,
    exp.Subquery,
    exp.Values,
    exp.Describe,
    exp.Show,
    exp.Pragma,
)
_DML_NODES = (exp.Insert, exp.Update, exp.Delete, exp.Merge)
_DDL_NODES = (exp.Create, exp.Drop, exp.Alter, exp.TruncateTable)
_TRANSACTION_NODES = (exp.Transaction, exp.Commit, exp.Rollback)
_COMMAND_NODES = (exp.Use, exp.Set)

_WORD = re.compile(r"[A-Za-z_]+")


def leading_keywords(sql: str, count: int = 2, options: SplitterOptions = DEFAULT_OPTIONS) -> tuple[str, ...]:
    """Return the first ``count`` upper-cased words, ignoring comments and opening parens."""

    body = strip_comments(sql, options).lstrip("( \t\r\n")
    words: list[str] = []
    for match in _WORD.finditer(body):
        words.append(match.group(0).upper())
        if len(words) == count:
            break
    return tuple(words)


def classify_fallback(sql: str, options: SplitterOptions = DEFAULT_OPTIONS) -> StatementType:
    """Classify by the leading keyword alone."""

    words = leading_keywords(sql, 2, options)
    if not words:
        return StatementType.EXEC
    head = words[0]
    if head in QUERY_KEYWORDS:
        return StatementType.QUERY
    if head in DML_KEYWORDS:
        return StatementType.DML
    if head in DDL_KEYWORDS:
        return StatementType.DDL
    if head in TRANSACTION_KEYWORDS or words[:2] == ("START", "TRANSACTION"):
        return StatementType.TRANSACTION
    if head in COMMAND_KEYWORDS:
        return StatementType.COMMAND
    return StatementType.EXEC


def classify_expression(expression: exp.Expression) -> StatementType | None:
    """Map a parsed sqlglot tree to a category; ``None`` when the parser gave up."""

    if isinstance(expression, exp.Command):
        return None
    if isinstance(expression, _QUERY_NODES):
        return StatementType.QUERY
    if isinstance(expression, _DML_NODES):
        return StatementType.DML
    if isinstance(expression, _DDL_NODES):
        return StatementType.DDL
    if isinstance(expression, _TRANSACTION_NODES):
        return StatementType.TRANSACTION
    if isinstance(expression, _COMMAND_NODES):
        return StatementType.COMMAND
    return None


def parse_statement(sql: str, dialect: str | None = None) -> exp.Expression | None:
    """Parse a single statement; ``None`` on any sqlglot failure."""

    stripped = sql.strip().rstrip(";")
    if not stripped:
        return None
    try:
        return parse_one(stripped, read=dialect)
    except (SqlglotError, RecursionError, ValueError):
        return None


def classify(sql: str, dialect: str | None = None, options: SplitterOptions = DEFAULT_OPTIONS) -> StatementType:
    """Classify ``sql``; never raises, ``EXEC`` is the conservative answer."""

    expression = parse_statement(sql, dialect)
    if expression is not None:
        category = classify_expression(expression)
        if category is not None:
            return category
    return classify_fallback(sql, options)


def is_query_statement(sql: str, dialect: str | None = None, options: SplitterOptions = DEFAULT_OPTIONS) -> bool:
    """True when the statement returns rows."""

    return classify(sql, dialect, options) is StatementType.QUERY


__all__ = [
    "classify",
    "classify_expression",
    "classify_fallback",
    "is_query_statement",
    "leading_keywords",
    "parse_statement",
]
