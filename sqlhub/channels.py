"""Unbounded, thread-safe progress channel shared by producers and a consumer."""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from typing import Generic, Protocol, TypeVar

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


class ProgressSender(Protocol[T_contra]):
    """Anything that accepts progress items and reports whether the receiver is still listening."""

    def send(self, item: T_contra) -> bool: ...


class ProgressChannel(Generic[T]):
    """Sender/receiver pair for progress events.

    ``send`` never blocks and returns ``False`` once the channel is closed, which
    producers treat as cancellation. The receiver may live on a different event loop
    or thread than the producer.
    """

    def __init__(self) -> None:
        self._items: deque[T] = deque()
        self._lock = threading.Lock()
        self._closed = False
        self._waiter: tuple[asyncio.AbstractEventLoop, asyncio.Future[None]] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, item: T) -> bool:
        """Queue ``item``; ``False`` when the channel has been closed."""

        with self._lock:
            if self._closed:
                return False
            self._items.append(item)
            waiter, self._waiter = self._waiter, None
        _wake(waiter)
        return True

    def close(self) -> None:
        """Stop accepting items; queued items can still be received."""

        with self._lock:
            self._closed = True
            waiter, self._waiter = self._waiter, None
        _wake(waiter)

    async def recv(self) -> T | None:
        """Return the next item, or ``None`` once closed and drained."""

        while True:
            with self._lock:
                if self._items:
                    return self._items.popleft()
                if self._closed:
                    return None
                loop = asyncio.get_running_loop()
                future: asyncio.Future[None] = loop.create_future()
                self._waiter = (loop, future)
            await future

    def drain(self) -> list[T]:
        """Pop everything currently queued without waiting."""

        with self._lock:
            items = list(self._items)
            self._items.clear()
        return items

    def __aiter__(self) -> ProgressChannel[T]:
        return self

    async def __anext__(self) -> T:
        item = await self.recv()
        if item is None:
            raise StopAsyncIteration
        return item


def _wake(waiter: tuple[asyncio.AbstractEventLoop, asyncio.Future[None]] | None) -> None:
    if waiter is None:
        return
    loop, future = waiter
    if loop.is_closed():
        return
    loop.call_soon_threadsafe(_resolve, future)


def _resolve(future: asyncio.Future[None]) -> None:
    if not future.done():
        future.set_result(None)


__all__ = ["ProgressChannel", "ProgressSender"]
