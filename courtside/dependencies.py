"""
Service wiring: builds the cache tiers, upstream clients and façades from
settings, once per process.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from config.settings import Settings, settings as default_settings
from courtside.cache import MemoryCache, PersistentStore, RemoteSharedCache, TieredCache
from courtside.espn_client import ESPNClient
from courtside.reddit_client import RedditClient
from courtside.scores import ScoresService
from courtside.threads import ThreadService
from courtside.utils.retry import UpstreamRetry

logger = logging.getLogger("dependencies")


@dataclass
class Services:
    settings: Settings
    cache: TieredCache
    scores: ScoresService
    threads: ThreadService
    reddit: RedditClient

    def close(self) -> None:
        self.cache.close()


def build_services(
    config: Optional[Settings] = None,
    espn_http: Any = None,
    reddit_http: Any = None,
    clock=None,
) -> Services:
    """
    Assemble every service from ``config``.

    The persistent tier is skipped when disabled and the remote tier when
    Supabase is not configured; the memory tier is always present.
    """
    config = config or default_settings

    memory = MemoryCache(
        max_entries=config.cache_max_entries,
        default_ttl=config.cache_default_ttl_seconds,
        clock=clock,
        coalesce_timeout=config.coalesce_timeout_seconds,
    )

    persistent = None
    if config.persistent_cache_enabled:
        try:
            persistent = PersistentStore.from_url(config.cache_db_url, clock=clock)
        except Exception as e:
            logger.warning(f"Persistent cache disabled, could not open {config.cache_db_url}: {e}")

    remote = None
    if config.remote_cache_enabled:
        remote = RemoteSharedCache(
            config.supabase_url,
            config.supabase_key,
            table=config.remote_cache_table,
            clock=clock,
        )

    cache = TieredCache(
        memory,
        persistent=persistent,
        remote=remote,
        revalidate_cooldown=config.revalidate_cooldown_seconds,
        max_revalidation_workers=config.revalidation_workers,
        clock=clock,
    )
    retry = UpstreamRetry(
        attempts=config.upstream_retry_attempts,
        wait_seconds=config.upstream_retry_wait_seconds,
    )

    reddit = RedditClient(config, http=reddit_http)
    logger.info(
        f"Services ready (persistent={'on' if persistent else 'off'}, "
        f"remote={'on' if remote else 'off'}, reddit_proxy={'on' if reddit.uses_proxy else 'off'})"
    )
    return Services(
        settings=config,
        cache=cache,
        scores=ScoresService(cache, ESPNClient(config, http=espn_http), retry=retry),
        threads=ThreadService(cache, reddit, subreddit=config.subreddit, retry=retry, clock=clock),
        reddit=reddit,
    )


_services: Optional[Services] = None
_services_lock = threading.Lock()


def get_services() -> Services:
    """Process-wide services, built on first use."""
    global _services
    with _services_lock:
        if _services is None:
            _services = build_services()
        return _services


def close_services() -> None:
    global _services
    with _services_lock:
        if _services is not None:
            _services.close()
            _services = None
