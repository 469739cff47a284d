"""
In-memory query cache with TTL, LRU eviction and a background sweep.

Keys are SHA-256 digests of the exact query text. Textually different
queries never share an entry, whitespace included.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


def cache_key(query: str) -> str:
    """Hex SHA-256 of the UTF-8 query bytes."""
    return hashlib.sha256(query.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    key: str
    value: Any
    inserted_at: float
    last_accessed: float


class QueryCache:
    """
    Capacity- and time-bounded cache of parsed Overpass responses.

    Expired entries are never returned: ``get`` checks age on every lookup
    and the periodic sweep only reclaims memory early.

    Usage:
        cache = QueryCache(max_size=100, ttl=900, cleanup_interval=300)
        cache.start()          # inside a running event loop
        cache.set(query, data)
        cache.get(query)
        await cache.stop()
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl: float = 15 * 60,
        cleanup_interval: float = 5 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be greater than 0")
        if ttl <= 0:
            raise ValueError("ttl must be greater than 0")
        if cleanup_interval <= 0:
            raise ValueError("cleanup_interval must be greater than 0")
        self._max_size = max_size
        self._ttl = ttl
        self._cleanup_interval = cleanup_interval
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweep_task: Optional[asyncio.Task] = None

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def is_running(self) -> bool:
        """True while the background sweep task is alive."""
        return self._sweep_task is not None and not self._sweep_task.done()

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.inserted_at > self._ttl

    def get(self, query: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        key = cache_key(query)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            now = self._clock()
            if self._expired(entry, now):
                del self._entries[key]
                return None
            entry.last_accessed = now
            return entry.value

    def set(self, query: str, value: Any) -> None:
        """Store ``value``; evicts the least recently accessed entry when full."""
        key = cache_key(query)
        with self._lock:
            now = self._clock()
            existing = self._entries.get(key)
            if existing is not None:
                existing.value = value
                existing.inserted_at = now
                existing.last_accessed = now
                return
            if len(self._entries) >= self._max_size:
                self._evict_lru()
            self._entries[key] = CacheEntry(key=key, value=value, inserted_at=now, last_accessed=now)

    def _evict_lru(self) -> None:
        """Caller holds the lock."""
        if not self._entries:
            return
        oldest = min(self._entries.values(), key=lambda e: e.last_accessed)
        del self._entries[oldest.key]
        logger.debug(f"Cache evicted {oldest.key[:8]}...")

    def cleanup(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if self._expired(e, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Cache cleanup: removed {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        """Size, limits and a per-entry summary with truncated keys."""
        with self._lock:
            now = self._clock()
            entries = [
                {
                    "key": e.key[:8] + "...",
                    "inserted_at": e.inserted_at,
                    "last_accessed": e.last_accessed,
                    "age": now - e.inserted_at,
                }
                for e in self._entries.values()
            ]
        return {
            "size": len(entries),
            "max_size": self._max_size,
            "ttl": self._ttl,
            "entries": entries,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, query: str) -> bool:
        """Membership test; does not refresh the access time."""
        with self._lock:
            entry = self._entries.get(cache_key(query))
            return entry is not None and not self._expired(entry, self._clock())

    # === Lifecycle ===

    def start(self) -> None:
        """Start the periodic sweep. Requires a running event loop; idempotent."""
        if self.is_running:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.debug(f"Started cache sweep (interval: {self._cleanup_interval}s)")

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        task = self._sweep_task
        self._sweep_task = None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def destroy(self) -> None:
        """Stop the sweep and drop every entry."""
        await self.stop()
        self.clear()

    async def __aenter__(self) -> "QueryCache":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.destroy()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._cleanup_interval)
            try:
                self.cleanup()
            except Exception as e:
                logger.error(f"Cache sweep error: {e}")
