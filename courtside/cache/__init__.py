"""
Multi-tier caching: bounded memory cache, request coalescing, persistent and
remote tiers, and a stale-while-revalidate read path composing them.
"""
from .core import CacheEntry, CachePolicy, CacheSource, DataCategory
from .ttl_policies import (
    TTL_CONFIG,
    get_policy,
    get_ttl_for_category,
    get_category_for_game_status,
    get_comments_category,
)
from .coalescer import RequestCoalescer
from .backend import CacheBackend
from .memory import MemoryCache
from .persistent import PersistentStore, StoredRecord
from .remote import RemoteSharedCache
from .sequence import RequestSequence
from .tiered import TieredCache

__all__ = [
    # Core types
    "CacheEntry",
    "CachePolicy",
    "CacheSource",
    "DataCategory",
    # TTL policies
    "TTL_CONFIG",
    "get_policy",
    "get_ttl_for_category",
    "get_category_for_game_status",
    "get_comments_category",
    # Coalescing
    "RequestCoalescer",
    "RequestSequence",
    # Tiers
    "CacheBackend",
    "MemoryCache",
    "PersistentStore",
    "StoredRecord",
    "RemoteSharedCache",
    "TieredCache",
]
