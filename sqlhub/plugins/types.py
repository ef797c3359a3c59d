"""Value types shared between dialect plugins and their callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from ..models import Row


@dataclass(frozen=True, slots=True)
class PluginCapabilities:
    """Designer features and navigation-menu operations a dialect supports."""

    engines: bool = False
    charsets: bool = False
    collations: bool = False
    auto_increment: bool = False
    tablespaces: bool = False
    truncate: bool = True
    rename: bool = True
    dump: bool = True
    schemas: bool = False
    sequences: bool = False
    triggers: bool = True
    procedures: bool = True
    functions: bool = True
    views: bool = True


@dataclass(frozen=True, slots=True)
class DatabaseOperationRequest:
    """Form input for creating or modifying a database."""

    database_name: str
    field_values: Mapping[str, str] = field(default_factory=dict)

    def value(self, key: str) -> str | None:
        """Return a trimmed, non-empty field value."""

        raw = self.field_values.get(key)
        if raw is None:
            return None
        text = str(raw).strip()
        return text or None


@dataclass(frozen=True, slots=True)
class TableDataRequest:
    """Paged read of a single table."""

    database: str
    table: str
    schema: str | None = None
    page: int = 1
    page_size: int = 100
    where_clause: str | None = None
    order_by: str | None = None

    @property
    def offset(self) -> int:
        return max(self.page - 1, 0) * self.page_size


@dataclass(frozen=True, slots=True)
class TableDataPage:
    """One page of table rows plus the unpaged row count."""

    columns: tuple[str, ...]
    rows: tuple[Row, ...]
    total_count: int
    page: int
    page_size: int
    elapsed_ms: int


__all__ = [
    "DatabaseOperationRequest",
    "PluginCapabilities",
    "TableDataPage",
    "TableDataRequest",
]
