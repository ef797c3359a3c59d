"""Process-local cache of live connections keyed by ``(config_id, database)``."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable

from .connections.base import DbConnection
from .models import ConnectionConfig
from .plugins.registry import PluginRegistry

LOG = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT = 300.0
DEFAULT_EVICTION_INTERVAL = 60.0


class ConnectionHandle:
    """Shared reference to one pooled connection.

    ``use()`` serializes driver access. A handle retired while busy closes its
    connection when the last holder leaves ``use()``.
    """

    def __init__(self, connection: DbConnection) -> None:
        self._connection = connection
        self._lock = asyncio.Lock()
        self._holders = 0
        self._retired = False

    @property
    def connection(self) -> DbConnection:
        return self._connection

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def retired(self) -> bool:
        return self._retired

    @asynccontextmanager
    async def use(self) -> AsyncIterator[DbConnection]:
        self._holders += 1
        try:
            async with self._lock:
                yield self._connection
        finally:
            self._holders -= 1
            if self._retired and self._holders == 0:
                await self._connection.disconnect()

    async def close(self) -> None:
        """Retire the handle; disconnect now unless a holder is still active."""

        self._retired = True
        if self._holders == 0:
            await self._connection.disconnect()

    def try_close_nowait(self) -> bool:
        """Retire the handle, returning ``False`` if the connection is busy right now."""

        self._retired = True
        return self._holders == 0 and not self._lock.locked()


@dataclass(slots=True)
class PooledEntry:
    handle: ConnectionHandle
    config: ConnectionConfig
    last_active: float


@dataclass(frozen=True, slots=True)
class PoolStats:
    total: int
    by_config: dict[str, int] = field(default_factory=dict)


class ConnectionPool:
    """Hands out one shared ``ConnectionHandle`` per key and evicts idle entries."""

    def __init__(
        self,
        registry: PluginRegistry | None = None,
        *,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        eviction_interval: float = DEFAULT_EVICTION_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry or PluginRegistry.default()
        self._idle_timeout = idle_timeout
        self._eviction_interval = eviction_interval
        self._clock = clock
        self._entries: dict[str, PooledEntry] = {}
        self._creating: dict[str, asyncio.Lock] = {}
        self._eviction_task: asyncio.Task[None] | None = None

    @property
    def idle_timeout(self) -> float:
        return self._idle_timeout

    @staticmethod
    def key(config_id: str, database: str | None = None) -> str:
        return f"{config_id}:{database}" if database else config_id

    async def get(self, config: ConnectionConfig) -> ConnectionHandle:
        """Return the shared handle for ``config``, connecting on first use.

        An entry whose session has moved to another database (``switch_database`` or a
        ``USE`` statement) is re-keyed under its live database and never served for the
        old one.
        """

        key = self.key(config.id, config.database)
        handle = await self._lookup(key)
        if handle is not None:
            return handle
        lock = self._creating.setdefault(key, asyncio.Lock())
        async with lock:
            handle = await self._lookup(key)
            if handle is not None:
                return handle
            plugin = self._registry.get(config.database_type)
            connection = plugin.create_connection(config)
            await connection.connect()
            handle = ConnectionHandle(connection)
            self._entries[key] = PooledEntry(handle=handle, config=config, last_active=self._clock())
        if self._creating.get(key) is lock and not lock.locked():
            del self._creating[key]
        LOG.debug("Pooled connection", extra={"pool_key": key, "connection_id": config.id})
        return handle

    async def _lookup(self, key: str) -> ConnectionHandle | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        live = entry.handle.connection.config.database
        if live == entry.config.database:
            entry.last_active = self._clock()
            return entry.handle
        del self._entries[key]
        moved = self.key(entry.config.id, live)
        if moved in self._entries:
            LOG.debug("Dropping session that moved onto a pooled database", extra={"pool_key": key})
            await entry.handle.close()
        else:
            entry.config = entry.config.with_database(live)
            self._entries[moved] = entry
            LOG.debug("Re-keyed moved session", extra={"pool_key": key, "new_key": moved})
        return None

    async def reconcile(self, config_id: str) -> None:
        """Re-key every entry of ``config_id`` whose session changed database."""

        prefix = f"{config_id}:"
        for key in [key for key in self._entries if key == config_id or key.startswith(prefix)]:
            await self._lookup(key)

    def peek(self, config_id: str, database: str | None = None) -> ConnectionHandle | None:
        entry = self._entries.get(self.key(config_id, database))
        return entry.handle if entry else None

    def remove(self, config_id: str, database: str | None = None) -> tuple[ConnectionHandle, ConnectionConfig] | None:
        """Detach an entry; the caller decides whether to disconnect it."""

        entry = self._entries.pop(self.key(config_id, database), None)
        if entry is None:
            return None
        return entry.handle, entry.config

    def remove_config(self, config_id: str) -> list[ConnectionHandle]:
        """Detach every entry created for ``config_id``."""

        prefix = f"{config_id}:"
        keys = [key for key in self._entries if key == config_id or key.startswith(prefix)]
        return [self._entries.pop(key).handle for key in keys]

    def update_last_active(self, config_id: str, database: str | None = None) -> None:
        entry = self._entries.get(self.key(config_id, database))
        if entry is not None:
            entry.last_active = self._clock()

    async def evict_idle(self) -> list[str]:
        """Remove entries idle for longer than ``idle_timeout``; return their keys."""

        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now - entry.last_active > self._idle_timeout]
        for key in expired:
            entry = self._entries.pop(key)
            if not entry.handle.try_close_nowait():
                LOG.debug("Evicted busy connection; it closes after its last use", extra={"pool_key": key})
                continue
            try:
                await entry.handle.connection.disconnect()
            except Exception:
                LOG.exception("Disconnect during eviction failed", extra={"pool_key": key})
        if expired:
            LOG.info("Evicted idle connections", extra={"pool_keys": expired})
        return expired

    async def start(self) -> None:
        """Start the periodic eviction task on the running loop."""

        if self._eviction_task is None or self._eviction_task.done():
            self._eviction_task = asyncio.get_running_loop().create_task(self._eviction_loop())

    async def close(self) -> None:
        """Stop eviction and disconnect every pooled connection."""

        task, self._eviction_task = self._eviction_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        entries = list(self._entries.values())
        self._entries.clear()
        for entry in entries:
            await entry.handle.close()

    def stats(self) -> PoolStats:
        counts = Counter(entry.config.id for entry in self._entries.values())
        return PoolStats(total=len(self._entries), by_config=dict(counts))

    def __len__(self) -> int:
        return len(self._entries)

    async def _eviction_loop(self) -> None:
        while True:
            await asyncio.sleep(self._eviction_interval)
            try:
                await self.evict_idle()
            except Exception:
                LOG.exception("Eviction pass failed")


__all__ = [
    "ConnectionHandle",
    "ConnectionPool",
    "DEFAULT_EVICTION_INTERVAL",
    "DEFAULT_IDLE_TIMEOUT",
    "PoolStats",
    "PooledEntry",
]
