# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Client-side query cache with explicit invalidation events.

The cache is never authoritative. It remembers the last result of each query
under a tuple key, marks entries stale when a confirmed write may have changed
them, and tells subscribers so presentation code can re-render.

Concurrency model: one event loop, no locks. A fetch runs inside
:meth:`QueryCache.fetching`, which yields the key's current generation; the
fetch passes it back to :meth:`QueryCache.set`. ``invalidate`` and ``remove``
bump the generation, so a value fetched across an invalidation is still
written (last write wins) but stays flagged stale. A refetch racing a write can
never make the cache look fresh with pre-write data.

Generation counters exist only while a fetch for the key is in flight.
Outside a fetch no token can be outstanding, so the counter is dropped and the
cache holds no per-key state beyond entries and subscribers.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Iterator, Literal

logger = logging.getLogger("blog_ledger.cache")

CacheKey = tuple[Hashable, ...]

EventKind = Literal["updated", "invalidated", "removed"]


@dataclass
class CacheEntry:
    """
    A cached query result.

    Attributes:
        value: The last fetched result.
        stale: True when a write may have changed the underlying data.
        version: Increments on every write to this key.
    """

    value: Any
    stale: bool = False
    version: int = 0


@dataclass(frozen=True)
class CacheEvent:
    key: CacheKey
    kind: EventKind
    entry: CacheEntry | None = None


Subscriber = Callable[[CacheEvent], None]


class QueryCache:
    """Keyed result cache with staleness flags and per-key subscribers."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._generations: dict[CacheKey, int] = {}
        self._in_flight: dict[CacheKey, int] = {}
        self._subscribers: dict[CacheKey, list[Subscriber]] = {}

    # ─── Reads ────────────────────────────────────────────────────────────────

    def get(self, key: CacheKey) -> CacheEntry | None:
        return self._entries.get(key)

    def fresh_value(self, key: CacheKey) -> tuple[bool, Any]:
        """Return ``(True, value)`` for a present, non-stale entry, else ``(False, None)``."""
        entry = self._entries.get(key)
        if entry is None or entry.stale:
            return False, None
        return True, entry.value

    def keys(self) -> list[CacheKey]:
        return list(self._entries)

    def generation(self, key: CacheKey) -> int:
        return self._generations.get(key, 0)

    def in_flight(self, key: CacheKey) -> int:
        return self._in_flight.get(key, 0)

    @contextmanager
    def fetching(self, key: CacheKey) -> Iterator[int]:
        """
        Track a fetch for ``key`` and yield the generation it starts under.

        Pass the yielded value to :meth:`set`. The generation counter is
        released once the last in-flight fetch for ``key`` finishes, whether
        it stored a value or raised.
        """
        self._in_flight[key] = self.in_flight(key) + 1
        try:
            yield self.generation(key)
        finally:
            remaining = self._in_flight[key] - 1
            if remaining:
                self._in_flight[key] = remaining
            else:
                del self._in_flight[key]
                self._generations.pop(key, None)

    # ─── Writes ───────────────────────────────────────────────────────────────

    def set(self, key: CacheKey, value: Any, generation: int | None = None) -> CacheEntry:
        """
        Store ``value`` under ``key`` and publish an ``updated`` event.

        When ``generation`` is given and the key was invalidated since, the
        entry is stored as stale.
        """
        stale = generation is not None and generation != self.generation(key)
        previous = self._entries.get(key)
        entry = CacheEntry(
            value=value,
            stale=stale,
            version=(previous.version + 1) if previous else 1,
        )
        self._entries[key] = entry
        self._publish(CacheEvent(key=key, kind="updated", entry=entry))
        return entry

    def invalidate(self, *keys: CacheKey) -> None:
        """
        Mark ``keys`` stale and publish an ``invalidated`` event for each.

        Idempotent: invalidating an already stale key leaves it stale.
        Subscribers are notified even when nothing is cached yet, so views
        waiting on a first load also learn about the write.
        """
        for key in keys:
            self._bump(key)
            entry = self._entries.get(key)
            if entry is not None:
                entry.stale = True
            logger.debug("cache invalidated", extra={"cache_key": repr(key)})
            self._publish(CacheEvent(key=key, kind="invalidated", entry=entry))

    def remove(self, key: CacheKey) -> None:
        self._bump(key)
        if self._entries.pop(key, None) is not None:
            self._publish(CacheEvent(key=key, kind="removed"))

    def clear(self) -> None:
        for key in list(self._entries):
            self.remove(key)

    def _bump(self, key: CacheKey) -> None:
        if key in self._in_flight:
            self._generations[key] = self.generation(key) + 1

    # ─── Subscriptions ────────────────────────────────────────────────────────

    def subscribe(self, key: CacheKey, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for events on ``key``; returns an unsubscribe function."""
        self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._subscribers[key]

        return unsubscribe

    def subscriber_count(self, key: CacheKey) -> int:
        return len(self._subscribers.get(key, ()))

    def _publish(self, event: CacheEvent) -> None:
        for callback in list(self._subscribers.get(event.key, ())):
            try:
                callback(event)
            except Exception:
                # A broken view must not undo a confirmed write or block other views.
                logger.exception("cache subscriber failed", extra={"cache_key": repr(event.key)})
