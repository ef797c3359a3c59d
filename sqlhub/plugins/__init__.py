"""Dialect plugins: SQL generation, capability flags and catalog introspection."""

from .base import DatabasePlugin
from .registry import PluginRegistry
from .types import DatabaseOperationRequest, PluginCapabilities, TableDataPage, TableDataRequest

__all__ = [
    "DatabaseOperationRequest",
    "DatabasePlugin",
    "PluginCapabilities",
    "PluginRegistry",
    "TableDataPage",
    "TableDataRequest",
]
