"""Single background event loop driving every connection and transfer."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Coroutine, TypeVar

from .errors import DbCustomError, DbError

LOG = logging.getLogger(__name__)

DEFAULT_THREAD_NAME = "sqlhub-runtime"

T = TypeVar("T")

_RUNTIME: RuntimeHost | None = None
_RUNTIME_LOCK = threading.Lock()


class RuntimeHost:
    """Owns an event loop running forever on a daemon thread.

    Pools, connection locks and progress waiters are bound to this loop, so callers
    on other threads or loops hand their coroutines over with ``run`` or ``run_async``.
    """

    def __init__(self, thread_name: str = DEFAULT_THREAD_NAME) -> None:
        self._thread_name = thread_name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def thread_name(self) -> str:
        return self._thread_name

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        self._ensure_started()
        assert self._loop is not None
        return self._loop

    @property
    def running(self) -> bool:
        return self._loop is not None and self._loop.is_running()

    def submit(self, coro: Coroutine[Any, Any, T]) -> concurrent.futures.Future[T]:
        """Schedule ``coro`` on the host loop from any thread."""

        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Block the calling thread until ``coro`` finishes on the host loop."""

        if self._on_host_thread():
            coro.close()
            raise DbCustomError("RuntimeHost.run() cannot block the runtime thread")
        return self.submit(coro).result(timeout)

    async def run_async(self, coro: Coroutine[Any, Any, T]) -> T:
        """Await ``coro`` on the host loop from any event loop."""

        if self._on_host_thread():
            return await coro
        return await asyncio.wrap_future(self.submit(coro))

    def shutdown(self, timeout: float = 1.0) -> None:
        """Stop the loop thread (testing helper)."""

        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if loop is None or thread is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=timeout)
        if not thread.is_alive():
            loop.close()

    def _ensure_started(self) -> None:
        with self._lock:
            if self._loop is not None:
                return
            loop = asyncio.new_event_loop()
            thread = threading.Thread(target=loop.run_forever, name=self._thread_name, daemon=True)
            thread.start()
            self._loop, self._thread = loop, thread
        LOG.debug("Runtime host started", extra={"thread_name": self._thread_name})

    def _on_host_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread


def get_runtime(thread_name: str = DEFAULT_THREAD_NAME) -> RuntimeHost:
    """Return the process-wide runtime host, creating it on first use."""

    global _RUNTIME
    with _RUNTIME_LOCK:
        if _RUNTIME is None:
            _RUNTIME = RuntimeHost(thread_name)
        return _RUNTIME


async def spawn_result(coro: Coroutine[Any, Any, T], runtime: RuntimeHost | None = None) -> T:
    """Run ``coro`` on the runtime host; unexpected failures surface as ``DbCustomError``."""

    host = runtime or get_runtime()
    try:
        return await host.run_async(coro)
    except DbError:
        raise
    except Exception as exc:
        raise DbCustomError(f"Task failed: {exc}") from exc


__all__ = ["DEFAULT_THREAD_NAME", "RuntimeHost", "get_runtime", "spawn_result"]
