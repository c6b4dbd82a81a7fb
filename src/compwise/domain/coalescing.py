"""Per-key result cache that coalesces concurrent loads.

All bookkeeping happens on the event loop thread without awaiting in between,
so inserting the in-flight marker, storing a result and clearing the marker are
atomic with respect to other ``get_or_load`` calls.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from logging import getLogger
from typing import Generic, TypeVar

log = getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(slots=True)
class CacheEntry(Generic[V]):
    value: V | None = None
    loaded: bool = False
    loaded_at: float | None = None
    in_flight: asyncio.Task[V] | None = None
    discard: bool = False


def _consume_outcome(task: asyncio.Task[object]) -> None:
    # Waiters may all have gone away; retrieve the exception so asyncio does not
    # report it as never retrieved.
    if not task.cancelled():
        task.exception()


class CoalescingCache(Generic[K, V]):
    """Generic cache guaranteeing at most one in-flight load per key.

    Successful results are stored with a timestamp from ``clock``; failures are
    propagated to every waiter and never stored. Loads run as their own tasks, so
    a waiter that is cancelled does not cancel the shared load. Invalidating a key
    whose load is in flight marks that load as discarded: its waiters still get
    its result, and later callers wait for it to settle before starting afresh.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[K, CacheEntry[V]] = {}
        self.loads_started = 0

    async def get_or_load(self, key: K, loader: Callable[[], Awaitable[V]]) -> V:
        while True:
            entry = self._entries.get(key)
            if entry is not None and entry.loaded:
                return entry.value  # type: ignore[return-value]
            if entry is None or entry.in_flight is None:
                return await self._start(key, loader)
            if not entry.discard:
                log.debug("Joining in-flight load for %r", key)
                return await asyncio.shield(entry.in_flight)
            log.debug("Waiting for discarded load of %r to settle", key)
            await asyncio.wait((entry.in_flight,))

    async def _start(self, key: K, loader: Callable[[], Awaitable[V]]) -> V:
        entry: CacheEntry[V] = CacheEntry()
        self._entries[key] = entry
        task = asyncio.ensure_future(self._load(key, entry, loader))
        task.add_done_callback(_consume_outcome)
        entry.in_flight = task
        self.loads_started += 1
        return await asyncio.shield(task)

    async def _load(
        self,
        key: K,
        entry: CacheEntry[V],
        loader: Callable[[], Awaitable[V]],
    ) -> V:
        try:
            value = await loader()
        except BaseException:
            self._drop(key, entry)
            raise
        entry.in_flight = None
        if entry.discard:
            log.debug("Discarding result for %r invalidated during load", key)
            self._drop(key, entry)
        else:
            entry.value = value
            entry.loaded = True
            entry.loaded_at = self._clock()
        return value

    def _drop(self, key: K, entry: CacheEntry[V]) -> None:
        if self._entries.get(key) is entry:
            del self._entries[key]

    def peek(self, key: K) -> V | None:
        entry = self._entries.get(key)
        if entry is None or not entry.loaded:
            return None
        return entry.value

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and entry.loaded

    def is_in_flight(self, key: K) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.in_flight is not None

    def age(self, key: K) -> float | None:
        """Seconds since the cached value for ``key`` was stored."""

        entry = self._entries.get(key)
        if entry is None or entry.loaded_at is None:
            return None
        return self._clock() - entry.loaded_at

    def is_stale(self, key: K, ttl_seconds: float) -> bool:
        age = self.age(key)
        return age is not None and age >= ttl_seconds

    def invalidate(self, key: K) -> bool:
        """Drop ``key``; an in-flight load still completes but is not stored."""

        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.in_flight is not None:
            if entry.discard:
                return False
            entry.discard = True
            return True
        del self._entries[key]
        return True

    def invalidate_all(self) -> None:
        for key in list(self._entries):
            self.invalidate(key)

    def cached_keys(self) -> list[K]:
        return [key for key, entry in self._entries.items() if entry.loaded]

    def in_flight_keys(self) -> list[K]:
        return [key for key, entry in self._entries.items() if entry.in_flight is not None]
