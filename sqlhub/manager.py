"""Process-wide entry point tying configs, plugins, the pool and the runtime host together."""

from __future__ import annotations

import functools
import logging
import threading
from typing import Any, Callable, Coroutine, ParamSpec, TypeVar

from .channels import ProgressSender
from .config import AppConfig
from .errors import DbConnectionError, DbQueryError
from .models import ConnectionConfig, DatabaseType, ErrorResult, ExecOptions, ExecResult, SqlResult, StreamingProgress
from .plugins.base import DatabasePlugin
from .plugins.registry import PluginRegistry
from .plugins.types import DatabaseOperationRequest, TableDataPage, TableDataRequest
from .pool import ConnectionHandle, ConnectionPool, PoolStats
from .runtime import RuntimeHost, get_runtime
from .transfer.engine import DataExporter, DataImporter
from .transfer.types import ExportConfig, ExportEvents, ExportResult, ImportConfig, ImportEvents, ImportResult

LOG = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

_MANAGER: DbManager | None = None
_MANAGER_LOCK = threading.Lock()


def on_runtime(method: Callable[P, Coroutine[Any, Any, R]]) -> Callable[P, Coroutine[Any, Any, R]]:
    """Run a coroutine method on the manager's runtime loop, whichever loop awaits it."""

    @functools.wraps(method)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        manager = args[0]
        assert isinstance(manager, DbManager)
        return await manager.runtime.run_async(method(*args, **kwargs))

    return wrapper


class DbManager:
    """Holds the config registry, the plugin registry and the connection pool."""

    def __init__(
        self,
        registry: PluginRegistry | None = None,
        pool: ConnectionPool | None = None,
        runtime: RuntimeHost | None = None,
        *,
        default_options: ExecOptions | None = None,
    ) -> None:
        self._registry = registry or PluginRegistry.default()
        self._pool = pool or ConnectionPool(self._registry)
        self._runtime = runtime or get_runtime()
        self._default_options = default_options or ExecOptions()
        self._configs: dict[str, ConnectionConfig] = {}
        self._configs_lock = threading.Lock()
        self._importer = DataImporter()
        self._exporter = DataExporter()

    @classmethod
    def from_config(cls, config: AppConfig, runtime: RuntimeHost | None = None) -> DbManager:
        """Build a manager from an ``AppConfig`` and register its stored connections."""

        registry = PluginRegistry.default()
        pool = ConnectionPool(
            registry,
            idle_timeout=config.pool.idle_timeout,
            eviction_interval=config.pool.eviction_interval,
        )
        manager = cls(
            registry,
            pool,
            runtime or get_runtime(config.runtime.thread_name),
            default_options=config.exec.to_options(),
        )
        for record in config.connections:
            manager.register_connection(record.to_connection_config())
        return manager

    @property
    def runtime(self) -> RuntimeHost:
        return self._runtime

    @property
    def registry(self) -> PluginRegistry:
        return self._registry

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    # Config registry

    def register_connection(self, config: ConnectionConfig) -> None:
        with self._configs_lock:
            self._configs[config.id] = config
        LOG.info(
            "Registered connection",
            extra={"connection_id": config.id, "database_type": config.database_type},
        )

    @on_runtime
    async def unregister_connection(self, connection_id: str) -> ConnectionConfig | None:
        """Forget a config and close every pooled session created from it."""

        with self._configs_lock:
            config = self._configs.pop(connection_id, None)
        for handle in self._pool.remove_config(connection_id):
            await handle.close()
        if config is not None:
            LOG.info("Unregistered connection", extra={"connection_id": connection_id})
        return config

    def list_connections(self) -> list[ConnectionConfig]:
        with self._configs_lock:
            return list(self._configs.values())

    def get_config(self, connection_id: str) -> ConnectionConfig:
        with self._configs_lock:
            config = self._configs.get(connection_id)
        if config is None:
            raise DbConnectionError("connection not found")
        return config

    def get_plugin(self, database_type: DatabaseType | str) -> DatabasePlugin:
        return self._registry.get(database_type)

    # Pooled access

    @on_runtime
    async def get_connection(
        self, connection_id: str, database: str | None = None
    ) -> tuple[DatabasePlugin, ConnectionHandle]:
        config = self.get_config(connection_id)
        if database:
            config = config.with_database(database)
        plugin = self._registry.get(config.database_type)
        handle = await self._pool.get(config)
        return plugin, handle

    @on_runtime
    async def execute_single(
        self,
        connection_id: str,
        sql: str,
        database: str | None = None,
        options: ExecOptions | None = None,
        params: list[Any] | None = None,
    ) -> SqlResult:
        _, handle = await self.get_connection(connection_id, database)
        async with handle.use() as connection:
            return await connection.query(sql, params, options or self._default_options)

    @on_runtime
    async def execute_script(
        self,
        connection_id: str,
        script: str,
        database: str | None = None,
        options: ExecOptions | None = None,
    ) -> list[SqlResult]:
        _, handle = await self.get_connection(connection_id, database)
        async with handle.use() as connection:
            return await connection.execute(script, options or self._default_options)

    @on_runtime
    async def execute_script_streaming(
        self,
        connection_id: str,
        script: str,
        channel: ProgressSender[StreamingProgress],
        database: str | None = None,
        options: ExecOptions | None = None,
    ) -> None:
        """Stream one progress item per statement into ``channel`` and close it when done."""

        try:
            _, handle = await self.get_connection(connection_id, database)
            async with handle.use() as connection:
                await connection.execute_streaming(script, options or self._default_options, channel)
        finally:
            close = getattr(channel, "close", None)
            if close is not None:
                close()

    @on_runtime
    async def switch_database(self, connection_id: str, database: str) -> str | None:
        """Point the default pooled session of ``connection_id`` at ``database``.

        The registered config follows the switch, so later calls without an explicit
        database land on the switched session while calls naming the old database get
        a session of their own.
        """

        _, handle = await self.get_connection(connection_id)
        async with handle.use() as connection:
            await connection.switch_database(database)
            current = await connection.current_database()
            switched = connection.config.database
        await self._pool.reconcile(connection_id)
        with self._configs_lock:
            config = self._configs.get(connection_id)
            if config is not None:
                self._configs[connection_id] = config.with_database(switched)
        return current

    @on_runtime
    async def current_database(self, connection_id: str) -> str | None:
        _, handle = await self.get_connection(connection_id)
        async with handle.use() as connection:
            return await connection.current_database()

    @on_runtime
    async def disconnect(self, connection_id: str, database: str | None = None) -> bool:
        config = self.get_config(connection_id)
        removed = self._pool.remove(connection_id, database or config.database)
        if removed is None:
            return False
        await removed[0].close()
        return True

    @on_runtime
    async def disconnect_all(self) -> None:
        for config_id in self._pool.stats().by_config:
            for handle in self._pool.remove_config(config_id):
                await handle.close()

    def stats(self) -> PoolStats:
        return self._pool.stats()

    # Catalog

    @on_runtime
    async def list_databases(self, connection_id: str) -> list[str]:
        plugin, handle = await self.get_connection(connection_id)
        async with handle.use() as connection:
            return await plugin.list_databases(connection)

    @on_runtime
    async def list_tables(self, connection_id: str, database: str, schema: str | None = None) -> list[str]:
        plugin, handle = await self.get_connection(connection_id)
        async with handle.use() as connection:
            return await plugin.list_tables(connection, database, schema)

    @on_runtime
    async def query_table_data(self, connection_id: str, request: TableDataRequest) -> TableDataPage:
        plugin, handle = await self.get_connection(connection_id)
        async with handle.use() as connection:
            return await plugin.query_table_data(connection, request)

    # DDL

    async def create_database(self, connection_id: str, request: DatabaseOperationRequest) -> ExecResult:
        plugin = self.get_plugin(self.get_config(connection_id).database_type)
        return await self._run_ddl(connection_id, plugin.build_create_database_sql(request))

    async def modify_database(self, connection_id: str, request: DatabaseOperationRequest) -> ExecResult:
        plugin = self.get_plugin(self.get_config(connection_id).database_type)
        return await self._run_ddl(connection_id, plugin.build_modify_database_sql(request))

    async def drop_database(self, connection_id: str, database: str) -> ExecResult:
        plugin = self.get_plugin(self.get_config(connection_id).database_type)
        return await self._run_ddl(connection_id, plugin.build_drop_database_sql(database))

    async def drop_table(self, connection_id: str, database: str | None, table: str) -> ExecResult:
        plugin = self.get_plugin(self.get_config(connection_id).database_type)
        return await self._run_ddl(connection_id, plugin.build_drop_table_sql(database, table))

    async def truncate_table(self, connection_id: str, database: str | None, table: str) -> ExecResult:
        plugin = self.get_plugin(self.get_config(connection_id).database_type)
        return await self._run_ddl(connection_id, plugin.build_truncate_table_sql(database, table))

    async def rename_table(self, connection_id: str, database: str | None, old_name: str, new_name: str) -> ExecResult:
        plugin = self.get_plugin(self.get_config(connection_id).database_type)
        return await self._run_ddl(connection_id, plugin.build_rename_table_sql(database, old_name, new_name))

    async def drop_view(self, connection_id: str, database: str | None, view: str) -> ExecResult:
        plugin = self.get_plugin(self.get_config(connection_id).database_type)
        return await self._run_ddl(connection_id, plugin.build_drop_view_sql(database, view))

    async def _run_ddl(self, connection_id: str, sql: str) -> ExecResult:
        results = await self.execute_script(connection_id, sql, options=ExecOptions(max_rows=None))
        for result in results:
            if isinstance(result, ErrorResult):
                raise DbQueryError(result.message)
        executed = [result for result in results if isinstance(result, ExecResult)]
        return ExecResult(
            sql=sql,
            rows_affected=sum(result.rows_affected for result in executed),
            elapsed_ms=sum(result.elapsed_ms for result in executed),
            message=executed[-1].message if executed else None,
        )

    # Transfer

    @on_runtime
    async def export_data(
        self, connection_id: str, config: ExportConfig, events: ExportEvents | None = None
    ) -> ExportResult:
        plugin, handle = await self.get_connection(connection_id)
        async with handle.use() as connection:
            return await self._exporter.run(plugin, connection, config, events)

    @on_runtime
    async def import_data(
        self, connection_id: str, config: ImportConfig, data: str, events: ImportEvents | None = None
    ) -> ImportResult:
        plugin, handle = await self.get_connection(connection_id)
        async with handle.use() as connection:
            return await self._importer.run(plugin, connection, config, data, events)

    # Lifecycle

    @on_runtime
    async def start(self) -> None:
        """Start idle eviction on the runtime loop."""

        await self._pool.start()

    @on_runtime
    async def close(self) -> None:
        await self._pool.close()

    def run(self, awaitable: Coroutine[Any, Any, R], timeout: float | None = None) -> R:
        """Block until ``awaitable`` (usually one of this manager's coroutines) completes."""

        return self._runtime.run(awaitable, timeout)


def get_manager() -> DbManager:
    """Return the process-wide manager, creating a default one on first use."""

    global _MANAGER
    with _MANAGER_LOCK:
        if _MANAGER is None:
            _MANAGER = DbManager()
        return _MANAGER


def set_manager(manager: DbManager | None) -> DbManager | None:
    """Install ``manager`` as the process-wide instance; returns the previous one."""

    global _MANAGER
    with _MANAGER_LOCK:
        previous, _MANAGER = _MANAGER, manager
    return previous


__all__ = ["DbManager", "get_manager", "on_runtime", "set_manager"]
