"""Comment- and quote-aware SQL script scanning."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator


@dataclass(frozen=True, slots=True)
class SplitterOptions:
    """Lexical features that differ between dialects."""

    hash_comments: bool = False
    dollar_quotes: bool = False
    bracket_identifiers: bool = True
    backtick_identifiers: bool = True


DEFAULT_OPTIONS = SplitterOptions()


class SegmentKind(Enum):
    CODE = "code"
    QUOTED = "quoted"
    COMMENT = "comment"
    HINT = "hint"


_DOLLAR_TAG = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)?\$")


def iter_segments(text: str, options: SplitterOptions = DEFAULT_OPTIONS) -> Iterator[tuple[SegmentKind, str]]:
    """Yield consecutive code, quoted, comment and hint chunks covering ``text``.

    Unterminated quotes and comments run to the end of the input.
    """

    length = len(text)
    start = 0
    index = 0
    while index < length:
        char = text[index]
        pair = text[index : index + 2]
        kind: SegmentKind | None = None
        end = index
        if pair == "--" or (char == "#" and options.hash_comments):
            newline = text.find("\n", index)
            end = length if newline == -1 else newline
            kind = SegmentKind.COMMENT
        elif pair == "/*":
            close = text.find("*/", index + 2)
            end = length if close == -1 else close + 2
            kind = SegmentKind.HINT if text[index + 2 : index + 3] in ("+", "!") else SegmentKind.COMMENT
        elif char in ("'", '"') or (char == "`" and options.backtick_identifiers):
            end = _closing(text, index, char)
            kind = SegmentKind.QUOTED
        elif char == "[" and options.bracket_identifiers:
            end = _closing(text, index, "]")
            kind = SegmentKind.QUOTED
        elif char == "$" and options.dollar_quotes and not _is_word_char(text, index - 1):
            match = _DOLLAR_TAG.match(text, index)
            if match:
                tag = match.group(0)
                close = text.find(tag, match.end())
                end = length if close == -1 else close + len(tag)
                kind = SegmentKind.QUOTED
        if kind is None:
            index += 1
            continue
        if start < index:
            yield SegmentKind.CODE, text[start:index]
        yield kind, text[index:end]
        start = index = end
    if start < length:
        yield SegmentKind.CODE, text[start:]


def split_statements(script: str, options: SplitterOptions = DEFAULT_OPTIONS) -> list[str]:
    """Split ``script`` at top-level semicolons.

    Comments are dropped from the output (optimizer hints are kept), statements are
    trimmed and empty ones are skipped.
    """

    statements: list[str] = []
    current: list[str] = []
    depth = 0
    for kind, chunk in iter_segments(script, options):
        if kind is SegmentKind.COMMENT:
            if chunk.startswith("/*"):
                current.append(" ")
            continue
        if kind is not SegmentKind.CODE:
            current.append(chunk)
            continue
        begin = 0
        for offset, char in enumerate(chunk):
            if char == "(":
                depth += 1
            elif char == ")":
                depth = max(depth - 1, 0)
            elif char == ";" and depth == 0:
                current.append(chunk[begin:offset])
                _flush(current, statements)
                current = []
                begin = offset + 1
        current.append(chunk[begin:])
    _flush(current, statements)
    return statements


def strip_comments(sql: str, options: SplitterOptions = DEFAULT_OPTIONS) -> str:
    """Return ``sql`` without comments (hints included), trimmed."""

    parts: list[str] = []
    for kind, chunk in iter_segments(sql, options):
        if kind in (SegmentKind.COMMENT, SegmentKind.HINT):
            parts.append(" " if chunk.startswith("/*") else "")
        else:
            parts.append(chunk)
    return "".join(parts).strip()


def mask_literals(sql: str, options: SplitterOptions = DEFAULT_OPTIONS, *, nested: bool = False) -> str:
    """Blank out quoted text and comments, and parenthesized text when ``nested``.

    The result has the same length as ``sql`` so keyword positions line up.
    """

    parts: list[str] = []
    depth = 0
    for kind, chunk in iter_segments(sql, options):
        if kind is not SegmentKind.CODE:
            parts.append(" " * len(chunk))
            continue
        if not nested:
            parts.append(chunk)
            continue
        for char in chunk:
            if char == "(":
                depth += 1
                parts.append(" ")
            elif char == ")":
                depth = max(depth - 1, 0)
                parts.append(" ")
            else:
                parts.append(" " if depth else char)
    return "".join(parts)


def has_top_level_keyword(sql: str, keyword: str, options: SplitterOptions = DEFAULT_OPTIONS) -> bool:
    """True when ``keyword`` (a regex fragment) appears outside quotes, comments and parentheses."""

    masked = mask_literals(sql, options, nested=True)
    return re.search(rf"\b{keyword}\b", masked, re.IGNORECASE) is not None


def _closing(text: str, index: int, close: str) -> int:
    position = index + 1
    length = len(text)
    while position < length:
        if text[position] == close:
            if text[position + 1 : position + 2] == close:
                position += 2
                continue
            return position + 1
        position += 1
    return length


def _is_word_char(text: str, index: int) -> bool:
    return index >= 0 and (text[index].isalnum() or text[index] == "_")


def _flush(parts: list[str], statements: list[str]) -> None:
    statement = "".join(parts).strip()
    if statement:
        statements.append(statement)


__all__ = [
    "DEFAULT_OPTIONS",
    "SegmentKind",
    "SplitterOptions",
    "has_top_level_keyword",
    "iter_segments",
    "mask_literals",
    "split_statements",
    "strip_comments",
]
