"""Bounded caches with in-flight de-duplication for async loaders.

``InFlightCache`` wraps a cachetools cache so that a value missing from the
cache is produced at most once per key even when many coroutines ask for it
at the same time: the first caller starts a task, later callers await the
same task, and the entry is removed from the pending table whether the task
succeeds or fails. Failures are never cached, so the next call retries.

Example:
    De-duplicate concurrent tile opens:
        >>> cache = InFlightCache(ClosingLRUCache(maxsize=64), on_discard=close_item)
        >>> record = await cache.get_or_create("srtm_60_06", open_tile)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, Generic, TypeVar

import cachetools

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def close_item(key: Any, value: Any) -> None:
    """Call ``value.close()`` if it has one, logging I/O errors."""
    close = getattr(value, "close", None)
    if not callable(close):
        return
    try:
        close()
    except OSError as exc:
        logger.warning("Error closing cache item %s: %s", key, exc)
    else:
        logger.debug("Closed cache item %s", key)


class ClosingLRUCache(cachetools.LRUCache):
    """An LRU cache that calls ``close()`` on evicted items.

    Needed for caches holding open raster handles, which would otherwise leak
    file descriptors when evicted.
    """

    def popitem(self) -> tuple[Any, Any]:
        """Evict the least recently used item, closing it if possible."""
        key, value = super().popitem()
        close_item(key, value)
        return key, value

    def clear(self) -> None:
        """Evict every item, closing each one."""
        while self:
            self.popitem()


class InFlightCache(Generic[K, V]):
    """Cache whose misses are computed once per key under concurrency.

    Attributes:
        cache: Underlying cachetools mapping holding completed values.
    """

    def __init__(
        self,
        cache: cachetools.Cache,
        *,
        on_discard: Callable[[K, V], None] | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            cache: Mapping that stores completed values.
            on_discard: Called with a value computed after ``clear``, which
                is handed to its waiters but never stored.
        """
        self.cache = cache
        self._on_discard = on_discard
        self._in_flight: dict[K, asyncio.Task[V]] = {}
        self._generation = 0

    def get(self, key: K) -> V | None:
        """Return the cached value for ``key`` without computing it."""
        return self.cache.get(key)

    def pending(self, key: K) -> bool:
        """Return True while a computation for ``key`` is running."""
        return key in self._in_flight

    async def get_or_create(
        self,
        key: K,
        factory: Callable[[], Awaitable[V]],
        *,
        timeout: float | None = None,
    ) -> V:
        """Return the cached value, computing it once if missing.

        Args:
            key: Cache key.
            factory: Coroutine factory producing the value on a miss.
            timeout: Seconds this caller waits; the shared computation keeps
                running for other waiters when it expires.

        Returns:
            The cached or freshly computed value.

        Raises:
            TimeoutError: If ``timeout`` expires first.
            Exception: Whatever ``factory`` raised, delivered to every waiter.
        """
        if key in self.cache:
            return self.cache[key]

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._compute(key, factory, self._generation))
            self._in_flight[key] = task

        # shield keeps one cancelled or timed-out waiter from cancelling the rest
        return await asyncio.wait_for(asyncio.shield(task), timeout)

    async def _compute(
        self,
        key: K,
        factory: Callable[[], Awaitable[V]],
        generation: int,
    ) -> V:
        try:
            value = await factory()
            if generation == self._generation:
                self.cache[key] = value
            elif self._on_discard is not None:
                self._on_discard(key, value)
            return value
        finally:
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

    def clear(self) -> None:
        """Drop completed values and forget pending computations.

        Computations still running finish for their current waiters but do
        not repopulate the cache; their values go to ``on_discard``.
        """
        self.cache.clear()
        self._in_flight.clear()
        self._generation += 1
