"""Configuration management using pydantic-settings."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ESPN public site API
    espn_site_url: str = "https://site.api.espn.com/apis/site/v2/sports/basketball/nba"
    espn_web_url: str = "https://site.web.api.espn.com/apis/site/v2/sports/basketball/nba"
    espn_standings_url: str = "https://site.api.espn.com/apis/v2/sports/basketball/nba/standings"

    # Reddit
    reddit_base_url: str = "https://www.reddit.com"
    subreddit: str = "nba"
    reddit_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36 (courtside app)"
    )
    # When set, Reddit calls go through "<proxy>?url=<encoded target>"
    reddit_proxy_url: Optional[str] = None

    # Upstream HTTP behavior
    http_timeout_seconds: float = 10.0
    upstream_retry_attempts: int = 3
    upstream_retry_wait_seconds: float = 0.5

    # In-memory cache
    cache_max_entries: int = 400
    cache_default_ttl_seconds: float = 300.0
    coalesce_timeout_seconds: float = 30.0

    # Persistent local store (SQLite)
    persistent_cache_enabled: bool = True
    cache_db_url: str = "sqlite:///" + str(Path("./data/courtside_cache.db"))

    # Remote shared cache (Supabase / PostgREST)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    remote_cache_table: str = "reddit_cache"

    # Stale-while-revalidate
    revalidate_cooldown_seconds: float = 60.0
    revalidation_workers: int = 4

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def remote_cache_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


settings = Settings()
