"""
In-memory TTL cache for the read paths of the API.

The hottest reader is the admin review screen: every edit of a commission
field triggers a preview, and every preview needs the historical partial
rollup of the deal. That rollup only changes when a distribution is
approved, so it is cached per deal and dropped by the approval.

Keys are colon-joined namespaces built with :func:`cache_key`::

    deals:<deal_id>                  deals:list:<skip>:<limit>
    investors:list:<skip>:<limit>    investments:<deal_id>:<skip>:<limit>
    history:<deal_id>:partials       history:<deal_id>:events
    distribution-requests:...

Writers call :meth:`TTLCache.invalidate` with a namespace prefix.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from sahem_invest.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def cache_key(*parts: Any) -> str:
    """Join key parts with ``:`` (``cache_key("history", deal_id, "events")``)."""
    return ":".join(str(part) for part in parts)


class CacheEntry:
    """A cached value stamped with the monotonic time it was stored."""

    __slots__ = ("value", "created_at")

    def __init__(self, value: Any):
        self.value = value
        self.created_at = time.monotonic()

    def is_expired(self, ttl: float) -> bool:
        return time.monotonic() - self.created_at > ttl


class TTLCache:
    """
    Insertion-ordered store with per-entry expiry.

    Parameters
    ----------
    ttl : float
        Seconds before an entry goes stale.
    max_size : int
        Once reached, storing a new key drops the earliest stored one.
    enabled : bool
        ``CACHE_ENABLED=false`` turns every call into a miss or no-op.
    """

    def __init__(self, ttl: float = 30.0, max_size: int = 1000, enabled: bool = True):
        self._store: Dict[str, CacheEntry] = {}
        self._ttl = ttl
        self._max_size = max_size
        self._enabled = enabled
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[Any]:
        """Fresh value for ``key``, or ``None``. Stale entries are removed on read."""
        if not self._enabled:
            return None

        entry = self._store.get(key)
        if entry is not None and entry.is_expired(self._ttl):
            del self._store[key]
            logger.debug("Cache entry %s went stale", key)
            entry = None

        if entry is None:
            self._misses += 1
            return None

        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        if not self._enabled:
            return

        if key not in self._store and len(self._store) >= self._max_size:
            evicted = next(iter(self._store))
            del self._store[evicted]
            self._evictions += 1
            logger.debug("Cache full, dropped %s", evicted)

        self._store[key] = CacheEntry(value)

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """
        Cache-aside read: serve ``key`` if fresh, otherwise await ``loader``
        and store its result. ``None`` results are returned but not stored,
        so a missing row is looked up again next time.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        value = await loader()
        if value is not None:
            self.set(key, value)
        return value

    def invalidate(self, *prefixes: str) -> int:
        """Remove every key under one of ``prefixes``; returns the count removed."""
        if not self._enabled:
            return 0

        doomed = [key for key in self._store if key.startswith(prefixes)]
        for key in doomed:
            del self._store[key]

        if doomed:
            logger.debug("Cache dropped %d entries under %s", len(doomed), ", ".join(prefixes))
        return len(doomed)

    def clear(self) -> None:
        self._store.clear()

    def get_stats(self) -> dict:
        """Snapshot reported by ``/health``."""
        lookups = self._hits + self._misses
        return {
            "enabled": self._enabled,
            "size": len(self._store),
            "max_size": self._max_size,
            "ttl_seconds": self._ttl,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hit_rate": f"{self._hits / lookups * 100:.1f}%" if lookups else "N/A",
        }


cache = TTLCache(
    ttl=settings.CACHE_TTL,
    max_size=settings.CACHE_MAX_SIZE,
    enabled=settings.CACHE_ENABLED,
)
