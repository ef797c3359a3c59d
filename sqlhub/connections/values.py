"""Conversion of driver values to the uniform optional-string cell."""

from __future__ import annotations

import json
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Iterable, Sequence

from ..models import Row


def to_cell(value: Any) -> str | None:
    """Render one driver value; ``None`` stays absent."""

    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _binary_cell(bytes(value))
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, default=to_cell, ensure_ascii=False)
    return str(value)


def to_row(values: Iterable[Any]) -> Row:
    return tuple(to_cell(value) for value in values)


def to_rows(records: Iterable[Sequence[Any]]) -> tuple[Row, ...]:
    return tuple(to_row(record) for record in records)


def _binary_cell(payload: bytes) -> str:
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        return "0x" + payload.hex()


__all__ = ["to_cell", "to_row", "to_rows"]
