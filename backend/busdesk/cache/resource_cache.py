"""
Per-entity memoized store with explicit invalidation.

This module provides the session cache used for per-route schedule lists:
entries live until explicitly invalidated (no TTL), ``get`` never fetches,
and ``get_or_fetch`` is single-flight so that concurrent requests for the
same key share one outstanding fetch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)


@dataclass
class ResourceCacheStats:
    """Resource cache operation statistics."""

    hit_count: int = 0
    miss_count: int = 0
    fetch_count: int = 0
    shared_fetch_count: int = 0
    set_count: int = 0
    invalidation_count: int = 0
    discarded_results: int = 0

    start_time: datetime = field(default_factory=datetime.now)

    @property
    def hit_ratio(self) -> float:
        """Calculate cache hit ratio."""
        total_reads = self.hit_count + self.miss_count
        return self.hit_count / total_reads if total_reads > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "fetch_count": self.fetch_count,
            "shared_fetch_count": self.shared_fetch_count,
            "set_count": self.set_count,
            "invalidation_count": self.invalidation_count,
            "discarded_results": self.discarded_results,
            "hit_ratio": self.hit_ratio,
        }


class ResourceCache:
    """
    Session-scoped cache keyed by entity id.

    Features:
    - ``get``/``set``/``invalidate`` with no implicit expiry
    - Single-flight ``get_or_fetch``: one shared task per in-flight key
    - Invalidation during a fetch discards that fetch's result
    - Hit/miss/fetch statistics
    """

    def __init__(self, name: str = "resource"):
        """
        Initialize an empty cache.

        Args:
            name: Label used in log messages (e.g. "schedules")
        """
        self.name = name
        self.stats = ResourceCacheStats()
        self._entries: Dict[Hashable, Any] = {}
        self._inflight: Dict[Hashable, "asyncio.Task[Any]"] = {}
        # Bumped on every invalidation; a fetch only stores its result if
        # the generation it started under is still current.
        self._generations: Dict[Hashable, int] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        """
        Return previously stored data for ``key``, or None when absent.

        Never triggers a fetch.
        """
        if key in self._entries:
            self.stats.hit_count += 1
            return self._entries[key]
        self.stats.miss_count += 1
        return None

    def peek(self, key: Hashable, default: Any = None) -> Any:
        """Read stored data without recording a hit or miss."""
        return self._entries.get(key, default)

    def contains(self, key: Hashable) -> bool:
        """Check whether ``key`` has stored data, without touching stats."""
        return key in self._entries

    def set(self, key: Hashable, data: Any) -> None:
        """Store or overwrite the data for ``key``."""
        self._entries[key] = data
        self.stats.set_count += 1

    def invalidate(self, key: Hashable) -> bool:
        """
        Remove the entry for ``key``.

        A fetch already in flight for ``key`` still completes for its callers,
        but its result is not stored and later callers start a fresh fetch.

        Returns:
            bool: True if an entry or in-flight fetch was affected
        """
        self._generations[key] = self._generations.get(key, 0) + 1
        had_entry = key in self._entries
        self._entries.pop(key, None)
        had_fetch = self._inflight.pop(key, None) is not None
        existed = had_entry or had_fetch
        if existed:
            self.stats.invalidation_count += 1
            logger.info(f"Invalidated {self.name} cache entry {key}")
        return existed

    def clear(self) -> None:
        """Invalidate every entry."""
        for key in list(self._entries) + list(self._inflight):
            self.invalidate(key)

    def keys(self):
        """Keys that currently have stored data."""
        return list(self._entries)

    def is_inflight(self, key: Hashable) -> bool:
        """Check whether a fetch for ``key`` is outstanding."""
        return key in self._inflight

    async def get_or_fetch(self, key: Hashable, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return cached data for ``key``, fetching it at most once concurrently.

        Args:
            key: Cache key
            fetcher: Zero-argument coroutine factory producing the data

        Returns:
            The cached or freshly fetched data

        Raises:
            Whatever ``fetcher`` raises; nothing is stored in that case
        """
        if key in self._entries:
            self.stats.hit_count += 1
            logger.debug(f"{self.name} cache hit for {key}")
            return self._entries[key]

        task = self._inflight.get(key)
        if task is not None:
            self.stats.shared_fetch_count += 1
            logger.debug(f"Joining in-flight {self.name} fetch for {key}")
            return await asyncio.shield(task)

        self.stats.miss_count += 1
        self.stats.fetch_count += 1
        generation = self._generations.get(key, 0)
        task = asyncio.ensure_future(fetcher())
        self._inflight[key] = task

        try:
            data = await asyncio.shield(task)
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

        if self._generations.get(key, 0) == generation:
            self.set(key, data)
        else:
            self.stats.discarded_results += 1
            logger.info(f"Discarded stale {self.name} fetch for {key} (invalidated while in flight)")
        return data
