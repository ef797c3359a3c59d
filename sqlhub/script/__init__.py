"""SQL script processing: splitting, classification, editability and messages."""

from .classifier import classify, classify_fallback, is_query_statement, leading_keywords
from .editability import analyze_select_editability, apply_row_limit
from .formatter import compress_sql, format_message, format_sql
from .splitter import DEFAULT_OPTIONS, SplitterOptions, has_top_level_keyword, split_statements, strip_comments

__all__ = [
    "DEFAULT_OPTIONS",
    "SplitterOptions",
    "analyze_select_editability",
    "apply_row_limit",
    "classify",
    "classify_fallback",
    "compress_sql",
    "format_message",
    "format_sql",
    "has_top_level_keyword",
    "is_query_statement",
    "leading_keywords",
    "split_statements",
    "strip_comments",
]
