"""Per-dialect database sessions sharing the ``DbConnection`` contract."""

from .base import DbConnection

__all__ = ["DbConnection"]
