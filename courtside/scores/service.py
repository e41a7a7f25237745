"""
Scores façade: scoreboard, box scores and standings behind the tiered cache.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, Optional

from courtside.cache import (
    CachePolicy,
    DataCategory,
    TieredCache,
    get_category_for_game_status,
    get_policy,
)
from courtside.espn_client import ScoresProvider
from courtside.utils.retry import UpstreamRetry
from .models import ScoreboardResponse
from .transformer import transform_boxscore, transform_scoreboard, transform_standings

logger = logging.getLogger("scores.service")


def scoreboard_key(date: Optional[str] = None) -> str:
    return f"espn:scoreboard:{date or 'today'}"


def boxscore_key(event_id: str) -> str:
    return f"espn:boxscore:{event_id}"


STANDINGS_KEY = "espn:standings"


def boxscore_policy(value: Dict[str, Any]) -> CachePolicy:
    """Live games refresh every 15s; finished games are kept for hours."""
    status = (value or {}).get("status") or {}
    return get_policy(get_category_for_game_status(status.get("name"), status.get("state")))


class ScoresService:
    """
    Public scores operations.

    Usage:
        service = ScoresService(cache, ESPNClient(settings))
        board = service.get_scoreboard("20240115")
        box = service.get_boxscore("401585601")
    """

    def __init__(
        self,
        cache: TieredCache,
        provider: ScoresProvider,
        retry: Optional[UpstreamRetry] = None,
    ):
        self._cache = cache
        self._provider = provider
        self._retry = retry or UpstreamRetry()

    def get_scoreboard(self, date: Optional[str] = None, force_refresh: bool = False) -> Dict[str, Any]:
        """
        Scoreboard for ``date`` (YYYYMMDD) or today.

        Returns:
            ScoreboardResponse as a dict
        """
        def fetch():
            raw = self._retry(self._provider.get_scoreboard, date)
            return transform_scoreboard(raw).to_dict()

        return self._cache.get(
            scoreboard_key(date),
            fetch,
            get_policy(DataCategory.SCOREBOARD),
            force_refresh=force_refresh,
        )

    def get_boxscore(self, event_id: str, force_refresh: bool = False) -> Dict[str, Any]:
        """
        Box score for one game.

        The summary and today's scoreboard are fetched in parallel and joined
        by event id. A scoreboard failure only degrades the result to a
        summary-only (``partial``) box score; a summary failure is raised.
        """
        event_id = str(event_id)

        def fetch():
            with ThreadPoolExecutor(max_workers=2) as executor:
                summary_future = executor.submit(self._retry, self._provider.get_summary, event_id)
                scoreboard_future = executor.submit(self.get_scoreboard)
                summary = summary_future.result()
                try:
                    scoreboard = scoreboard_future.result()
                except Exception as e:
                    logger.warning(f"Scoreboard unavailable for box score {event_id}: {e}")
                    scoreboard = None

            event = ScoreboardResponse.from_dict(scoreboard).find_event(event_id) if scoreboard else None
            if event is None:
                logger.info(f"Event {event_id} not on scoreboard, building box score from summary only")
            return transform_boxscore(summary, event, event_id=event_id).to_dict()

        return self._cache.get(
            boxscore_key(event_id),
            fetch,
            boxscore_policy,
            force_refresh=force_refresh,
        )

    def get_standings(self, force_refresh: bool = False) -> Dict[str, Any]:
        def fetch():
            raw = self._retry(self._provider.get_standings)
            return transform_standings(raw).to_dict()

        return self._cache.get(
            STANDINGS_KEY,
            fetch,
            get_policy(DataCategory.STANDINGS),
            force_refresh=force_refresh,
        )

    def prewarm_boxscores(self, event_ids: Iterable[str], max_workers: int = 4) -> int:
        """
        Load box scores into the cache ahead of time.

        Failures are logged and skipped. Returns the number warmed.
        """
        event_ids = [str(e) for e in event_ids]
        if not event_ids:
            return 0

        def warm(event_id: str) -> bool:
            try:
                self.get_boxscore(event_id)
                return True
            except Exception as e:
                logger.warning(f"Failed to prewarm box score {event_id}: {e}")
                return False

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(warm, event_ids))
        return sum(results)

    def cleanup_cache(self) -> Dict[str, int]:
        return self._cache.cleanup()
