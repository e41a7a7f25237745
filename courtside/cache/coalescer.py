"""
Per-key request coalescing.

Concurrent callers asking for the same key share one upstream call: the
first becomes the leader and runs the fetch, the rest follow and block
until the leader publishes a value or an error.
"""
import threading
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger("cache.coalescer")


@dataclass
class Flight:
    """One upstream fetch shared by a leader and its followers."""
    key: str
    done: threading.Event = field(default_factory=threading.Event)
    value: Optional[Any] = None
    error: Optional[BaseException] = None
    started_at: float = field(default_factory=time.time)
    followers: int = 0

    def outcome(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


class RequestCoalescer:
    """
    Collapses concurrent fetches of one key into a single upstream call.

    - ``lookup`` is checked under the lock first; a hit skips the flight
    - The leader calls ``on_success`` before it lands the flight, so anyone
      arriving after the flight is gone finds the value through ``lookup``
    - Failures are shared with every follower and never cached
    - Followers give up after ``timeout`` seconds with ``TimeoutError``

    Usage:
        coalescer = RequestCoalescer()
        board = coalescer.get_or_fetch(
            "espn:scoreboard:today",
            fetch_fn=lambda: client.get_scoreboard(),
            lookup=lambda: memory.get("espn:scoreboard:today"),
            on_success=lambda value: memory.set("espn:scoreboard:today", value, 30),
        )
    """

    def __init__(self, timeout: float = 30.0):
        self._flights: Dict[str, Flight] = {}
        self._lock = threading.Lock()
        self._timeout = timeout
        self._stats = {"initiated": 0, "coalesced": 0, "failed": 0}

    def get_or_fetch(
        self,
        cache_key: str,
        fetch_fn: Callable[[], Any],
        lookup: Optional[Callable[[], Any]] = None,
        on_success: Optional[Callable[[Any], None]] = None,
    ) -> Any:
        """
        Return the cached value, join the flight for ``cache_key`` or lead one.

        Raises:
            TimeoutError: a follower waited longer than the timeout
            Exception: whatever ``fetch_fn`` raised, for leader and followers alike
        """
        cached, flight, leading = self._board(cache_key, lookup)
        if flight is None:
            return cached
        if leading:
            self._lead(flight, fetch_fn, on_success)
        else:
            self._follow(flight)
        return flight.outcome()

    def _board(
        self,
        cache_key: str,
        lookup: Optional[Callable[[], Any]],
    ) -> Tuple[Any, Optional[Flight], bool]:
        with self._lock:
            if lookup is not None:
                cached = lookup()
                if cached is not None:
                    return cached, None, False

            flight = self._flights.get(cache_key)
            if flight is not None:
                flight.followers += 1
                self._stats["coalesced"] += 1
                logger.debug(f"Joining fetch for {cache_key} ({flight.followers} waiting)")
                return None, flight, False

            flight = Flight(key=cache_key)
            self._flights[cache_key] = flight
            self._stats["initiated"] += 1
            logger.debug(f"Leading fetch for {cache_key}")
            return None, flight, True

    def _lead(
        self,
        flight: Flight,
        fetch_fn: Callable[[], Any],
        on_success: Optional[Callable[[Any], None]],
    ) -> None:
        try:
            flight.value = fetch_fn()
        except Exception as e:
            flight.error = e
            logger.warning(f"Fetch failed for {flight.key}: {e}")
        else:
            if on_success is not None:
                try:
                    on_success(flight.value)
                except Exception as e:
                    logger.warning(f"Cache write failed for {flight.key}: {e}")
        finally:
            self._land(flight)

    def _land(self, flight: Flight) -> None:
        with self._lock:
            if flight.error is not None:
                self._stats["failed"] += 1
            if self._flights.get(flight.key) is flight:
                del self._flights[flight.key]
        flight.done.set()

    def _follow(self, flight: Flight) -> None:
        if not flight.done.wait(timeout=self._timeout):
            logger.error(f"Timed out waiting on shared fetch: {flight.key}")
            raise TimeoutError(f"Request for {flight.key} timed out after {self._timeout}s")

    def is_pending(self, cache_key: str) -> bool:
        with self._lock:
            return cache_key in self._flights

    @property
    def active_requests(self) -> int:
        """Number of flights currently in the air."""
        with self._lock:
            return len(self._flights)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "active_requests": len(self._flights),
                "active_keys": list(self._flights),
                **self._stats,
            }
