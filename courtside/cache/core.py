"""
Core cache data structures.
"""
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union


Clock = Callable[[], float]

# Either a fixed number of seconds or a function of the produced value
TTLSpec = Union[float, Callable[[Any], float]]


class DataCategory(Enum):
    """Categories of data with different caching behaviors."""
    SCOREBOARD = "scoreboard"             # 30 seconds, SWR from disk
    BOXSCORE_LIVE = "boxscore_live"       # 15 seconds while in progress
    BOXSCORE_PRE = "boxscore_pre"         # 60 seconds before tip-off
    BOXSCORE_FINAL = "boxscore_final"     # hours, result no longer changes
    STANDINGS = "standings"               # 5 minutes, SWR
    THREAD_INDEX = "thread_index"         # 10 minutes, SWR, shared remotely
    THREAD_SEARCH = "thread_search"       # 60 seconds
    COMMENTS_NEW = "comments_new"         # 30 seconds
    COMMENTS_TOP = "comments_top"         # 2 minutes
    FEED = "feed"                         # 60 seconds


class CacheSource(Enum):
    """Tier that answered a read."""
    MEMORY = "memory"
    PERSISTENT = "persistent"
    REMOTE = "remote"
    UPSTREAM = "upstream"


@dataclass
class CacheEntry:
    """
    A value plus the moment it was written and how long it stays readable.

    The entry is readable while ``now - written_at <= ttl``.
    """
    value: Any
    written_at: float
    ttl: float

    def age(self, now: Optional[float] = None) -> float:
        if now is None:
            now = time.time()
        return now - self.written_at

    def is_expired(self, now: Optional[float] = None) -> bool:
        return self.age(now) > self.ttl


@dataclass(frozen=True)
class CachePolicy:
    """
    How one category of data moves through the tiers.

    ttl: in-memory lifetime.
    persist_ttl: how long the persistent copy is served (and revalidated)
        before it counts as a miss.
    remote_ttl: lifetime of the shared remote copy.
    """
    category: DataCategory
    ttl: float
    persist_ttl: float = 0
    remote_ttl: float = 0
    allow_swr: bool = False

    @property
    def use_persistent(self) -> bool:
        return self.persist_ttl > 0

    @property
    def use_remote(self) -> bool:
        return self.remote_ttl > 0
