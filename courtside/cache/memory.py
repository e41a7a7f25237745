"""
Bounded in-memory TTL cache with request coalescing.
"""
import threading
import time
import logging
from typing import Any, Callable, Dict, List, Optional

from .core import CacheEntry, Clock, TTLSpec
from .coalescer import RequestCoalescer

logger = logging.getLogger("cache.memory")

DEFAULT_MAX_ENTRIES = 400
DEFAULT_TTL_SECONDS = 300.0


class MemoryCache:
    """
    Process-wide key/value cache with per-entry TTL and a hard size cap.

    - ``None`` is the absent marker; producers must not return it
    - Expired entries are purged lazily on read and by ``cleanup()``
    - Inserting a *new* key at capacity evicts exactly one entry, the
      oldest by insertion order; overwriting a key never evicts
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Optional[Clock] = None,
        coalesce_timeout: float = 30.0,
    ):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._max_entries = max_entries
        self._default_ttl = default_ttl
        self._clock = clock or time.time
        self._coalescer = RequestCoalescer(timeout=coalesce_timeout)
        self._stats = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
            "expirations": 0,
        }

    @property
    def coalescer(self) -> RequestCoalescer:
        return self._coalescer

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats["expirations"] += 1
                self._stats["misses"] += 1
                return None
            self._stats["hits"] += 1
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds (default TTL if omitted)."""
        if value is None:
            raise ValueError("None cannot be cached; it marks an absent entry")
        ttl = self._default_ttl if ttl is None else ttl
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self._stats["evictions"] += 1
                logger.debug(f"Evicted {oldest} (capacity {self._max_entries})")
            self._entries[key] = CacheEntry(value=value, written_at=self._clock(), ttl=ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        """
        Delete every entry whose key starts with ``prefix``.

        Returns:
            Number of entries removed
        """
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.info(f"Invalidated {len(doomed)} entries matching '{prefix}'")
        return len(doomed)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} cache entries")
        return count

    def cleanup(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._stats["expirations"] += len(expired)
        if expired:
            logger.debug(f"Cleanup removed {len(expired)} expired entries")
        return len(expired)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_or_fetch(
        self,
        key: str,
        producer: Callable[[], Any],
        ttl: Optional[TTLSpec] = None,
    ) -> Any:
        """
        Return the cached value or run ``producer`` exactly once across
        concurrent callers and cache its result.

        Args:
            key: Cache key
            producer: Zero-arg function performing the upstream call
            ttl: Seconds, or a function of the produced value returning seconds

        Raises:
            Whatever ``producer`` raised; failures are never cached.
        """
        def store(value: Any) -> None:
            self.set(key, value, _resolve_ttl(ttl, value))

        return self._coalescer.get_or_fetch(
            key,
            producer,
            lookup=lambda: self.get(key),
            on_success=store,
        )

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._stats["hits"] + self._stats["misses"]
            hit_rate = (self._stats["hits"] / total * 100) if total > 0 else 0
            return {
                "entries": len(self._entries),
                "max_entries": self._max_entries,
                "hit_rate_percent": round(hit_rate, 1),
                **self._stats,
                "coalescer": self._coalescer.get_stats(),
            }


def _resolve_ttl(ttl: Optional[TTLSpec], value: Any) -> Optional[float]:
    if callable(ttl):
        return ttl(value)
    return ttl
