"""Registry mapping dialect tags to plugin instances."""

from __future__ import annotations

from typing import Iterable

from ..errors import DbCustomError
from ..models import DatabaseType
from .base import DatabasePlugin


class PluginRegistry:
    """Collects the dialect plugins known to the manager."""

    def __init__(self, plugins: Iterable[DatabasePlugin] = ()) -> None:
        self._plugins: dict[DatabaseType, DatabasePlugin] = {}
        self.register_many(plugins)

    @classmethod
    def default(cls) -> PluginRegistry:
        """Registry holding the six built-in dialects."""

        from .clickhouse import ClickHousePlugin
        from .mssql import MsSqlPlugin
        from .mysql import MySqlPlugin
        from .oracle import OraclePlugin
        from .postgres import PostgresPlugin
        from .sqlite import SqlitePlugin

        return cls(
            [
                MySqlPlugin(),
                PostgresPlugin(),
                MsSqlPlugin(),
                OraclePlugin(),
                SqlitePlugin(),
                ClickHousePlugin(),
            ]
        )

    def register(self, plugin: DatabasePlugin) -> None:
        """Register a plugin, replacing any previous one for the same dialect."""

        if not isinstance(plugin, DatabasePlugin):
            raise ValueError(f"{plugin!r} is not a DatabasePlugin")
        self._plugins[plugin.database_type] = plugin

    def register_many(self, plugins: Iterable[DatabasePlugin]) -> None:
        for plugin in plugins:
            self.register(plugin)

    def get(self, database_type: DatabaseType | str) -> DatabasePlugin:
        """Return the plugin for ``database_type`` or raise ``DbCustomError``."""

        key = DatabaseType.parse(database_type)
        plugin = self._plugins.get(key)
        if plugin is None:
            raise DbCustomError(f"unsupported database type: {key.value!r}")
        return plugin

    def list_plugins(self) -> list[DatabasePlugin]:
        """Return the registered plugins."""

        return list(self._plugins.values())

    def __contains__(self, database_type: object) -> bool:
        try:
            return DatabaseType.parse(database_type) in self._plugins  # type: ignore[arg-type]
        except DbCustomError:
            return False

    def __len__(self) -> int:
        return len(self._plugins)


__all__ = ["PluginRegistry"]
