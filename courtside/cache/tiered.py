"""
Tiered read path with stale-while-revalidate.
"""
import threading
import time
import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Optional, Set, Tuple, Union

from courtside.utils.helpers import content_hash
from .core import CachePolicy, CacheSource, Clock
from .memory import MemoryCache
from .persistent import PersistentStore
from .remote import RemoteSharedCache
from .sequence import RequestSequence

logger = logging.getLogger("cache.tiered")

PolicySpec = Union[CachePolicy, Callable[[Any], CachePolicy]]


class TieredCache:
    """
    Composes the cache tiers into one read path:

    1. Memory: fresh hit returns immediately
    2. Persistent: a record within its window is returned immediately and,
       for SWR policies, a background revalidation is scheduled
    3. Remote: a shared hit is promoted into the local tiers
    4. Network: one coalesced upstream call per key, written through to
       every tier the policy enables

    Background revalidation is rate limited per key by a cooldown, runs on
    a small thread pool, and never raises to the caller. ``close()`` cancels
    anything still queued and makes running tasks drop their results.
    """

    def __init__(
        self,
        memory: MemoryCache,
        persistent: Optional[PersistentStore] = None,
        remote: Optional[RemoteSharedCache] = None,
        revalidate_cooldown: float = 60.0,
        max_revalidation_workers: int = 4,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            memory: In-process cache, always present
            persistent: Local durable tier, optional
            remote: Shared tier, optional
            revalidate_cooldown: Minimum seconds between revalidations of a key
            max_revalidation_workers: Thread pool size for background revalidation
            clock: Time source, injectable for tests
        """
        self.memory = memory
        self.persistent = persistent
        self.remote = remote
        self._cooldown = revalidate_cooldown
        self._clock = clock or time.time
        self._sequence = RequestSequence(max_keys=memory.max_entries)
        self._max_tracked = memory.max_entries

        self._revalidation_pool = ThreadPoolExecutor(
            max_workers=max_revalidation_workers,
            thread_name_prefix="cache-revalidate",
        )
        self._closed = threading.Event()
        self._revalidating: Set[str] = set()
        self._last_revalidated: Dict[str, float] = {}
        self._pending: Set[Future] = set()
        self._revalidating_lock = threading.Lock()

        self._stats_lock = threading.Lock()
        self._stats = {
            "hits_memory": 0,
            "hits_persistent": 0,
            "hits_remote": 0,
            "misses": 0,
            "forced": 0,
            "revalidations": 0,
            "revalidations_unchanged": 0,
            "revalidations_discarded": 0,
            "revalidations_failed": 0,
        }

    @property
    def sequence(self) -> RequestSequence:
        return self._sequence

    def _count(self, stat: str) -> None:
        with self._stats_lock:
            self._stats[stat] += 1

    def get(
        self,
        key: str,
        fetch_fn: Callable[[], Any],
        policy: PolicySpec,
        force_refresh: bool = False,
    ) -> Any:
        value, _ = self.get_with_source(key, fetch_fn, policy, force_refresh=force_refresh)
        return value

    def get_with_source(
        self,
        key: str,
        fetch_fn: Callable[[], Any],
        policy: PolicySpec,
        force_refresh: bool = False,
    ) -> Tuple[Any, CacheSource]:
        """
        Get data from the nearest tier or fetch it from upstream.

        Args:
            key: Cache key
            fetch_fn: Upstream call returning a JSON-serializable value
            policy: CachePolicy, or a function choosing one from the fetched value
            force_refresh: Skip every tier and fetch

        Returns:
            (value, tier that answered)

        Raises:
            Whatever ``fetch_fn`` raised when no tier had the value.
        """
        if force_refresh:
            logger.info(f"FORCE REFRESH: {key}")
            # Outdates any revalidation already running for this key
            self._sequence.next(key)
            self.memory.delete(key)
            self._count("forced")
            value = self.memory.coalescer.get_or_fetch(
                key,
                fetch_fn,
                on_success=lambda v: self._write_through(key, v, policy),
            )
            return value, CacheSource.UPSTREAM

        value = self.memory.get(key)
        if value is not None:
            logger.debug(f"CACHE HIT (memory): {key}")
            self._count("hits_memory")
            return value, CacheSource.MEMORY

        if self.persistent is not None and _may_persist(policy):
            record = self.persistent.get_record(key)
            if record is not None and not record.is_expired(self._clock()):
                resolved = _resolve(policy, record.value)
                logger.info(f"CACHE HIT (persistent): {key} [age={record.age(self._clock()):.1f}s]")
                self._count("hits_persistent")
                self.memory.set(key, record.value, resolved.ttl)
                if resolved.allow_swr:
                    self.schedule_revalidation(key, fetch_fn, policy, known_hash=record.content_hash)
                return record.value, CacheSource.PERSISTENT

        if self.remote is not None and _may_share(policy):
            value = self.remote.get(key)
            if value is not None:
                resolved = _resolve(policy, value)
                logger.info(f"CACHE HIT (remote): {key}")
                self._count("hits_remote")
                self.memory.set(key, value, resolved.ttl)
                if self.persistent is not None and resolved.use_persistent:
                    self.persistent.set(key, value, resolved.persist_ttl)
                return value, CacheSource.REMOTE

        logger.info(f"CACHE MISS: {key}")
        self._count("misses")
        value = self.memory.coalescer.get_or_fetch(
            key,
            fetch_fn,
            lookup=lambda: self.memory.get(key),
            on_success=lambda v: self._write_through(key, v, policy),
        )
        return value, CacheSource.UPSTREAM

    def _write_through(self, key: str, value: Any, policy: PolicySpec, digest: Optional[str] = None) -> None:
        """Store a fresh upstream value in every tier its policy enables."""
        resolved = _resolve(policy, value)
        self.memory.set(key, value, resolved.ttl)
        if self.persistent is not None and resolved.use_persistent:
            self.persistent.set(key, value, resolved.persist_ttl, digest=digest)
        if self.remote is not None and resolved.use_remote:
            self.remote.set(key, value, resolved.remote_ttl)

    def schedule_revalidation(
        self,
        key: str,
        fetch_fn: Callable[[], Any],
        policy: PolicySpec,
        known_hash: Optional[str] = None,
    ) -> bool:
        """
        Refresh ``key`` in the background without blocking.

        Returns:
            True if a task was submitted; False when closed, already running
            or inside the cooldown window
        """
        if self._closed.is_set():
            return False

        now = self._clock()
        with self._revalidating_lock:
            if key in self._revalidating:
                logger.debug(f"Already revalidating: {key}")
                return False
            last = self._last_revalidated.get(key)
            if last is not None and now - last < self._cooldown:
                logger.debug(f"Revalidation cooldown active: {key}")
                return False
            self._revalidating.add(key)
            self._last_revalidated.pop(key, None)
            self._last_revalidated[key] = now
            if len(self._last_revalidated) > self._max_tracked:
                self._prune_cooldowns(now)

        token = self._sequence.next(key)

        def do_revalidate():
            try:
                if self._closed.is_set():
                    return
                logger.debug(f"Background revalidation started: {key}")
                value = fetch_fn()
                if self._closed.is_set():
                    logger.debug(f"Revalidation dropped after close: {key}")
                    return
                if not self._sequence.is_current(key, token):
                    logger.info(f"Revalidation superseded: {key}")
                    self._count("revalidations_discarded")
                    return

                digest = content_hash(value)
                self._count("revalidations")
                if known_hash is not None and digest == known_hash:
                    logger.debug(f"Revalidation unchanged: {key}")
                    self._count("revalidations_unchanged")
                    resolved = _resolve(policy, value)
                    self.memory.set(key, value, resolved.ttl)
                    if self.persistent is not None:
                        self.persistent.touch(key)
                    return

                self._write_through(key, value, policy, digest=digest)
                logger.info(f"Background revalidation updated: {key}")
            except Exception as e:
                self._count("revalidations_failed")
                logger.warning(f"Background revalidation failed: {key} - {e}")
            finally:
                with self._revalidating_lock:
                    self._revalidating.discard(key)

        try:
            future = self._revalidation_pool.submit(do_revalidate)
        except RuntimeError:
            # Pool already shut down
            with self._revalidating_lock:
                self._revalidating.discard(key)
            return False

        with self._revalidating_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return True

    def _prune_cooldowns(self, now: float) -> int:
        """Drop cooldowns that have lapsed, then the oldest beyond capacity. Caller holds the lock."""
        lapsed = [k for k, last in self._last_revalidated.items() if now - last >= self._cooldown]
        for k in lapsed:
            del self._last_revalidated[k]
        removed = len(lapsed)
        while len(self._last_revalidated) > self._max_tracked:
            del self._last_revalidated[next(iter(self._last_revalidated))]
            removed += 1
        return removed

    def _forget(self, future: Future) -> None:
        with self._revalidating_lock:
            self._pending.discard(future)

    def drain(self, timeout: Optional[float] = None) -> None:
        """Block until queued revalidations have finished."""
        with self._revalidating_lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        """Cancel queued revalidations and drop results of running ones."""
        self._closed.set()
        self._revalidation_pool.shutdown(wait=False, cancel_futures=True)
        logger.info("Tiered cache closed")

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def invalidate(self, key: str) -> None:
        """Remove ``key`` from every tier."""
        self._sequence.forget(key)
        self.memory.delete(key)
        if self.persistent is not None:
            self.persistent.delete(key)
        if self.remote is not None:
            self.remote.delete(key)

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix`` from every tier."""
        removed = self.memory.delete_prefix(prefix)
        if self.persistent is not None:
            removed += self.persistent.delete_prefix(prefix)
        if self.remote is not None:
            self.remote.delete_prefix(prefix)
        return removed

    def cleanup(self) -> Dict[str, int]:
        """Purge expired entries from every tier and lapsed revalidation cooldowns."""
        with self._revalidating_lock:
            pruned = self._prune_cooldowns(self._clock())
        if pruned:
            logger.debug(f"Pruned {pruned} revalidation cooldowns")
        result = {"memory": self.memory.cleanup()}
        if self.persistent is not None:
            result["persistent"] = self.persistent.cleanup()
        if self.remote is not None:
            result["remote"] = self.remote.cleanup()
        return result

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            stats = dict(self._stats)
        with self._revalidating_lock:
            stats["revalidating_count"] = len(self._revalidating)
            stats["cooldown_count"] = len(self._last_revalidated)
        stats["sequence_keys"] = len(self._sequence)
        stats["memory"] = self.memory.get_stats()
        if self.persistent is not None:
            stats["persistent"] = self.persistent.get_stats()
        if self.remote is not None:
            stats["remote"] = self.remote.get_stats()
        return stats


def _resolve(policy: PolicySpec, value: Any) -> CachePolicy:
    if isinstance(policy, CachePolicy):
        return policy
    return policy(value)


def _may_persist(policy: PolicySpec) -> bool:
    # Value-dependent policies might persist; only a fixed policy can rule it out
    return not isinstance(policy, CachePolicy) or policy.use_persistent


def _may_share(policy: PolicySpec) -> bool:
    return not isinstance(policy, CachePolicy) or policy.use_remote
