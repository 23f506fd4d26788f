"""TTL cache for resolved trees, version lists and vulnerability reports."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

from constants import CacheRegions, Constants

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with TTL."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self) -> bool:
        """Check if this entry has expired."""
        return time.time() > self.expires_at


class TTLCache:
    """In-memory TTL cache partitioned into regions.

    Each region carries its own default TTL (see ``CacheRegions``). A key
    maps to at most one entry per region; setting it again replaces the
    entry. Instances are created and passed explicitly by the caller, there
    is no shared module-level cache.
    """

    def __init__(self, max_entries: Optional[int] = None):
        """Initialize the cache.

        Args:
            max_entries: Upper bound on live entries before the oldest are
                evicted. Defaults to ``Constants.CACHE_MAX_ENTRIES``.
        """
        self._cache: Dict[Tuple[str, str], CacheEntry[Any]] = {}
        self._max_entries = max_entries or Constants.CACHE_MAX_ENTRIES
        self._lock = threading.Lock()
        self._last_cleanup = time.time()
        self._cleanup_interval = 60  # Run cleanup every minute

    def get(self, region: CacheRegions, key: str) -> Optional[Any]:
        """Get a cached value.

        Args:
            region: Cache region.
            key: Key within the region.

        Returns:
            Cached value or None if not found/expired.
        """
        with self._lock:
            self._maybe_cleanup()
            slot = (region.name, key)
            entry = self._cache.get(slot)
            if entry is None:
                return None
            if entry.is_expired():
                del self._cache[slot]
                return None
            return entry.value

    def set(
        self,
        region: CacheRegions,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
    ) -> None:
        """Cache a value.

        Args:
            region: Cache region.
            key: Key within the region.
            value: Value to cache; None is never stored.
            ttl: Optional TTL override in seconds.
        """
        if value is None:
            return
        effective_ttl = ttl if ttl is not None else region.value
        with self._lock:
            self._maybe_cleanup()
            self._cache[(region.name, key)] = CacheEntry(
                value=value, expires_at=time.time() + effective_ttl
            )
            if len(self._cache) > self._max_entries:
                self._evict_oldest(max(1, self._max_entries // 10))

    def invalidate(self, region: CacheRegions, key: Optional[str] = None) -> None:
        """Invalidate one key, or the whole region when ``key`` is None."""
        with self._lock:
            if key is not None:
                self._cache.pop((region.name, key), None)
                return
            for slot in [s for s in self._cache if s[0] == region.name]:
                del self._cache[slot]

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            expired_count = sum(1 for e in self._cache.values() if e.is_expired())
            return {
                "total_entries": len(self._cache),
                "expired_entries": expired_count,
                "active_entries": len(self._cache) - expired_count,
                "max_entries": self._max_entries,
            }

    def _maybe_cleanup(self) -> None:
        now = time.time()
        if now - self._last_cleanup > self._cleanup_interval:
            for slot in [s for s, e in self._cache.items() if e.is_expired()]:
                del self._cache[slot]
            self._last_cleanup = now

    def _evict_oldest(self, count: int) -> None:
        oldest = sorted(self._cache, key=lambda s: self._cache[s].created_at)
        for slot in oldest[:count]:
            del self._cache[slot]
