"""
TTL configuration and status-to-category mapping.
"""
from typing import Any, Dict, Optional

from .core import CachePolicy, DataCategory
from courtside.utils.helpers import safe_lower


# TTL Configuration by category (in seconds)
TTL_CONFIG: Dict[DataCategory, Dict[str, Any]] = {
    DataCategory.SCOREBOARD: {
        "ttl": 30,                # 30 seconds in memory
        "persist_ttl": 21600,     # disk copy served for 6 hours while revalidating
        "allow_swr": True,
    },
    DataCategory.BOXSCORE_LIVE: {
        "ttl": 15,
        "persist_ttl": 0,         # never serve an old live box score from disk
        "allow_swr": False,
    },
    DataCategory.BOXSCORE_PRE: {
        "ttl": 60,
        "persist_ttl": 0,
        "allow_swr": False,
    },
    DataCategory.BOXSCORE_FINAL: {
        "ttl": 3600,
        "persist_ttl": 86400,
        "allow_swr": True,
    },
    DataCategory.STANDINGS: {
        "ttl": 300,
        "persist_ttl": 43200,
        "allow_swr": True,
    },
    DataCategory.THREAD_INDEX: {
        "ttl": 600,               # 10 minutes
        "persist_ttl": 21600,
        "remote_ttl": 600,
        "allow_swr": True,
    },
    DataCategory.THREAD_SEARCH: {
        "ttl": 60,
        "persist_ttl": 0,
        "allow_swr": False,
    },
    DataCategory.COMMENTS_NEW: {
        "ttl": 30,
        "remote_ttl": 30,
        "allow_swr": False,
    },
    DataCategory.COMMENTS_TOP: {
        "ttl": 120,
        "remote_ttl": 120,
        "allow_swr": False,
    },
    DataCategory.FEED: {
        "ttl": 60,
        "allow_swr": False,
    },
}

LIVE_STATUSES = ("STATUS_IN_PROGRESS", "STATUS_HALFTIME", "STATUS_END_PERIOD", "STATUS_OVERTIME")
FINAL_STATUSES = ("STATUS_FINAL", "STATUS_FINAL_OT", "STATUS_FULL_TIME")


def get_policy(category: DataCategory) -> CachePolicy:
    """
    Get the cache policy for a data category.

    Unknown categories fall back to the thread search policy (short TTL,
    memory only).
    """
    config = TTL_CONFIG.get(category, TTL_CONFIG[DataCategory.THREAD_SEARCH])
    return CachePolicy(
        category=category,
        ttl=config["ttl"],
        persist_ttl=config.get("persist_ttl", 0),
        remote_ttl=config.get("remote_ttl", 0),
        allow_swr=config.get("allow_swr", False),
    )


def get_ttl_for_category(category: DataCategory) -> float:
    """In-memory TTL in seconds for a category."""
    return get_policy(category).ttl


def get_category_for_game_status(status_name: Optional[str], state: Optional[str] = None) -> DataCategory:
    """
    Pick the box score category from an ESPN status.

    Args:
        status_name: ESPN ``status.type.name`` (e.g. "STATUS_IN_PROGRESS")
        state: ESPN ``status.type.state`` ("pre", "in", "post") if known
    """
    name = (status_name or "").upper()
    state = safe_lower(state)

    if state == "post" or name in FINAL_STATUSES:
        return DataCategory.BOXSCORE_FINAL
    if state == "in" or name in LIVE_STATUSES:
        return DataCategory.BOXSCORE_LIVE
    if state == "pre" or name == "STATUS_SCHEDULED":
        return DataCategory.BOXSCORE_PRE
    # Unknown: treat as live, the shortest lifetime
    return DataCategory.BOXSCORE_LIVE


def get_comments_category(sort: Optional[str]) -> DataCategory:
    """Top comments settle slowly; new comments churn."""
    if safe_lower(sort) == "top":
        return DataCategory.COMMENTS_TOP
    return DataCategory.COMMENTS_NEW
