"""Tests for the statement splitter and comment stripping."""

from __future__ import annotations

import pytest

from sqlhub.script import SplitterOptions, has_top_level_keyword, split_statements, strip_comments

MYSQL = SplitterOptions(hash_comments=True, bracket_identifiers=False)
POSTGRES = SplitterOptions(dollar_quotes=True, bracket_identifiers=False, backtick_identifiers=False)


def test_splits_mixed_script_and_drops_comments() -> None:
    script = "SELECT 1; -- comment\nINSERT INTO t VALUES ('a;b'); /* block */ UPDATE t SET x=1"

    assert split_statements(script) == [
        "SELECT 1",
        "INSERT INTO t VALUES ('a;b')",
        "UPDATE t SET x=1",
    ]


def test_empty_and_blank_statements_are_skipped() -> None:
    assert split_statements("") == []
    assert split_statements("  ;; \n ; -- only a comment\n") == []


def test_semicolons_inside_parentheses_do_not_split() -> None:
    assert split_statements("SELECT f(a;b); SELECT 2") == ["SELECT f(a;b)", "SELECT 2"]


def test_escaped_quotes_stay_inside_the_literal() -> None:
    assert split_statements("SELECT 'it''s; fine'; SELECT 2") == ["SELECT 'it''s; fine'", "SELECT 2"]


def test_quoted_identifiers_protect_semicolons() -> None:
    assert split_statements('SELECT "a;b" FROM t; SELECT 2') == ['SELECT "a;b" FROM t', "SELECT 2"]
    assert split_statements("SELECT [a;b] FROM t; SELECT 2") == ["SELECT [a;b] FROM t", "SELECT 2"]
    assert split_statements("SELECT `a;b` FROM t; SELECT 2", MYSQL) == ["SELECT `a;b` FROM t", "SELECT 2"]


def test_unterminated_quote_runs_to_end_of_input() -> None:
    assert split_statements("SELECT 'abc; SELECT 2") == ["SELECT 'abc; SELECT 2"]


def test_hash_comments_only_for_dialects_that_use_them() -> None:
    assert split_statements("SELECT 1; # note; still note\nSELECT 2", MYSQL) == ["SELECT 1", "SELECT 2"]
    assert split_statements("SELECT 1 # a; SELECT 2") == ["SELECT 1 # a", "SELECT 2"]


def test_dollar_quoted_bodies_are_kept_whole() -> None:
    script = "CREATE FUNCTION f() RETURNS int AS $body$ SELECT 1; $body$ LANGUAGE sql; SELECT 2"

    statements = split_statements(script, POSTGRES)

    assert statements == [
        "CREATE FUNCTION f() RETURNS int AS $body$ SELECT 1; $body$ LANGUAGE sql",
        "SELECT 2",
    ]


def test_optimizer_hints_are_preserved() -> None:
    statements = split_statements("SELECT /*+ INDEX(t idx) */ * FROM t; SELECT /*! STRAIGHT_JOIN */ 1", MYSQL)

    assert statements[0] == "SELECT /*+ INDEX(t idx) */ * FROM t"
    assert "/*! STRAIGHT_JOIN */" in statements[1]


def test_block_comment_becomes_whitespace() -> None:
    assert split_statements("SELECT/* c */1") == ["SELECT 1"]


@pytest.mark.parametrize(
    "script",
    [
        "SELECT 1; INSERT INTO t VALUES ('x;y'); UPDATE t SET a = 2",
        "CREATE TABLE t (a INT, b TEXT); DROP TABLE t",
        "SELECT \"weird;name\" FROM t WHERE x IN (1, 2); DELETE FROM t",
    ],
)
def test_rejoined_statements_split_back_identically(script: str) -> None:
    statements = split_statements(script)

    assert split_statements(";\n".join(statements)) == statements


def test_strip_comments_removes_hints_too() -> None:
    assert strip_comments("  -- lead\n SELECT /*+ X */ 1 -- tail") == "SELECT   1"


def test_top_level_keyword_ignores_nested_and_quoted_text() -> None:
    assert has_top_level_keyword("SELECT 1 LIMIT 1", "LIMIT")
    assert not has_top_level_keyword("SELECT * FROM (SELECT 1 LIMIT 1) x", "LIMIT")
    assert not has_top_level_keyword("SELECT 'LIMIT' FROM t", "LIMIT")
    assert not has_top_level_keyword("SELECT 1 -- LIMIT 5", "LIMIT")
