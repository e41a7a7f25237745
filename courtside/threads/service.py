"""
Thread façade: daily index, thread search with fallbacks, comments and feeds.

Thread lookup is a small state machine, each step entered only when the
previous one came up empty:

    index lookup -> direct search -> feed fallback (when search is blocked) -> none

"None" is a normal outcome, not an error. Nothing here raises for an
upstream failure except ``get_comments``/``get_feed``/``search_raw``, whose
callers (the HTTP layer) turn errors into ``{"error": ...}``.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from courtside.cache import (
    DataCategory,
    TieredCache,
    get_comments_category,
    get_policy,
)
from courtside.errors import RateLimitedError, UpstreamError
from courtside.reddit_client import ThreadProvider
from courtside.utils.helpers import safe_lower
from courtside.utils.retry import UpstreamRetry
from .matching import build_search_query, create_pair_key
from .models import MatchThreads, RedditPost, SearchRequest, ThreadType
from .transformer import (
    describe,
    find_index_post,
    index_from_dict,
    index_to_dict,
    merge_feeds,
    parse_event_time,
    select_thread,
    transform_comments,
    transform_feed,
    transform_index,
)

logger = logging.getLogger("threads.service")

INDEX_KEY = "reddit:index"
INDEX_QUERY = "Daily Game Thread Index"

# The index only lists today's games; older games go straight to search
INDEX_MAX_GAME_AGE_SECONDS = 36 * 3600


class IndexNotFound(Exception):
    """No index post is up yet; not cached so the next call looks again."""


def comments_key(post_id: str, sort: str) -> str:
    return f"reddit:comments:{post_id}:{sort}"


def time_range_for(event_date: Optional[str], now: Optional[float] = None) -> str:
    """Reddit search window wide enough to reach the game."""
    event_time = parse_event_time(event_date)
    if event_time is None:
        return "week"
    age_days = ((time.time() if now is None else now) - event_time) / 86400
    if age_days <= 6:
        return "week"
    if age_days <= 28:
        return "month"
    return "year"


def _result(post: Optional[RedditPost], source: Optional[str]) -> Dict[str, Any]:
    return {"post": post.to_dict() if post else None, "source": source}


class ThreadService:
    """
    Public discussion-thread operations.

    Usage:
        service = ThreadService(cache, RedditClient(settings))
        found = service.search_thread(SearchRequest(ThreadType.LIVE, ["Lakers"], ["Celtics"]))
        comments = service.get_comments(found["post"]["id"], sort="new")
    """

    def __init__(
        self,
        cache: TieredCache,
        provider: ThreadProvider,
        subreddit: str = "nba",
        retry: Optional[UpstreamRetry] = None,
        clock=None,
    ):
        self._cache = cache
        self._provider = provider
        self._subreddit = subreddit
        self._retry = retry or UpstreamRetry()
        self._clock = clock or time.time

    # ===== INDEX =====

    def get_index(self, force_refresh: bool = False) -> Dict[str, Dict[str, Any]]:
        """
        Today's ``pair_key -> {gdt, pgt}`` mapping.

        Served from memory, then disk (revalidated in the background), then
        the shared remote cache. Returns {} when the index is missing or
        Reddit is unreachable.
        """
        try:
            return self._cache.get(
                INDEX_KEY,
                self._fetch_index,
                get_policy(DataCategory.THREAD_INDEX),
                force_refresh=force_refresh,
            )
        except IndexNotFound:
            logger.info("No daily game thread index found")
            return {}
        except (UpstreamError, TimeoutError) as e:
            logger.warning(f"Thread index unavailable: {e}")
            return {}

    def _fetch_index(self) -> Dict[str, Dict[str, Any]]:
        searched_hot = False
        try:
            posts = transform_feed(self._retry(self._provider.search_raw, INDEX_QUERY))
        except RateLimitedError:
            logger.warning("Index search blocked, falling back to hot feed")
            posts = self._feed_posts("hot")
            searched_hot = True

        index_post = find_index_post(posts)
        if index_post is None and posts and not searched_hot:
            index_post = find_index_post(self._feed_posts("hot"))
        if index_post is None or not index_post.permalink:
            raise IndexNotFound()

        logger.info(f"Loading index thread {describe(index_post)}")
        thread = self._retry(self._provider.get_thread_content, index_post.permalink)
        return index_to_dict(transform_index(thread))

    def _feed_posts(self, sort: str) -> List[RedditPost]:
        return transform_feed(self._retry(self._provider.get_subreddit_feed, self._subreddit, sort))

    # ===== SEARCH =====

    def search_thread(self, request: SearchRequest) -> Dict[str, Any]:
        """
        Find the live or post-game thread for a matchup.

        Returns:
            {"post": RedditPost dict or None, "source": "index"|"search"|"feed"|None}
        """
        post = self._lookup_index(request)
        if post is not None:
            return _result(post, "index")

        try:
            return self._cache.get(
                request.cache_key(),
                lambda: self._search_direct(request),
                get_policy(DataCategory.THREAD_SEARCH),
            )
        except (UpstreamError, TimeoutError) as e:
            logger.warning(f"Thread search failed for {request.cache_key()}: {e}")
            return _result(None, None)

    def _lookup_index(self, request: SearchRequest) -> Optional[RedditPost]:
        if not request.away_candidates or not request.home_candidates:
            return None
        event_time = parse_event_time(request.event_date)
        if event_time is not None and self._clock() - event_time > INDEX_MAX_GAME_AGE_SECONDS:
            return None

        pair_key = create_pair_key(request.away_candidates[0], request.home_candidates[0])
        entry = index_from_dict(self.get_index()).get(pair_key)
        if entry is None:
            return None
        return entry.pgt if request.type == ThreadType.POST else entry.gdt

    def _search_direct(self, request: SearchRequest) -> Dict[str, Any]:
        query = build_search_query(request)
        time_range = time_range_for(request.event_date, self._clock())
        try:
            raw = self._retry(self._provider.search_raw, query, time_range, "new")
        except RateLimitedError:
            logger.warning("Thread search blocked, falling back to feed-based search")
            return self._search_feed(request)

        post = select_thread(
            transform_feed(raw),
            request.type,
            request.away_candidates,
            request.home_candidates,
            request.event_date,
            now=self._clock(),
        )
        return _result(post, "search" if post else None)

    def _search_feed(self, request: SearchRequest) -> Dict[str, Any]:
        try:
            with ThreadPoolExecutor(max_workers=2) as executor:
                new_future = executor.submit(self._feed_posts, "new")
                hot_future = executor.submit(self._feed_posts, "hot")
                posts = merge_feeds(new_future.result(), hot_future.result())
        except UpstreamError as e:
            logger.warning(f"Feed fallback failed: {e}")
            return _result(None, None)

        post = select_thread(
            posts,
            request.type,
            request.away_candidates,
            request.home_candidates,
            request.event_date,
            now=self._clock(),
        )
        return _result(post, "feed" if post else None)

    def search_raw(self, query: str, time_range: str = "week", sort: str = "new") -> Dict[str, Any]:
        """Raw search listing for an arbitrary query, cached briefly."""
        return self._cache.get(
            f"reddit:raw:{sort}:{time_range}:{query}",
            lambda: self._retry(self._provider.search_raw, query, time_range, sort),
            get_policy(DataCategory.THREAD_SEARCH),
        )

    # ===== COMMENTS & FEEDS =====

    def get_comments(
        self,
        post_id: str,
        sort: str = "new",
        permalink: Optional[str] = None,
        bypass_cache: bool = False,
    ) -> Dict[str, Any]:
        """
        Comment tree for a thread, replies nested to depth 2 at most.

        Returns:
            {"comments": [CommentNode dict, ...]}
        """
        sort = "top" if safe_lower(sort) == "top" else "new"

        def fetch():
            raw = self._retry(self._provider.get_comments_raw, post_id, sort, permalink)
            return {"comments": [c.to_dict() for c in transform_comments(raw)]}

        return self._cache.get(
            comments_key(post_id, sort),
            fetch,
            get_policy(get_comments_category(sort)),
            force_refresh=bypass_cache,
        )

    def get_feed(self, subreddit: Optional[str] = None, sort: str = "new") -> Dict[str, Any]:
        subreddit = subreddit or self._subreddit
        sort = "hot" if safe_lower(sort) == "hot" else "new"

        def fetch():
            raw = self._retry(self._provider.get_subreddit_feed, subreddit, sort)
            return {"posts": [p.to_dict() for p in transform_feed(raw)]}

        return self._cache.get(
            f"reddit:feed:{subreddit}:{sort}",
            fetch,
            get_policy(DataCategory.FEED),
        )

    # ===== PER-MATCH HELPERS =====

    def resolve_threads_for_match(
        self,
        away_name: str,
        home_name: str,
        event_date: Optional[str] = None,
    ) -> MatchThreads:
        """
        Both threads for a game: index first, then one search per missing type.

        Search failures leave that thread absent.
        """
        if not away_name or not home_name:
            return MatchThreads()

        threads = MatchThreads()
        event_time = parse_event_time(event_date)
        if event_time is None or self._clock() - event_time <= INDEX_MAX_GAME_AGE_SECONDS:
            entry = index_from_dict(self.get_index()).get(create_pair_key(away_name, home_name))
            if entry is not None:
                threads.live_thread = entry.gdt
                threads.post_thread = entry.pgt

        missing = []
        if threads.live_thread is None:
            missing.append(ThreadType.LIVE)
        if threads.post_thread is None:
            missing.append(ThreadType.POST)
        if not missing:
            return threads

        def search(thread_type: ThreadType) -> Optional[RedditPost]:
            request = SearchRequest(
                type=thread_type,
                away_candidates=[away_name],
                home_candidates=[home_name],
                event_date=event_date,
            )
            try:
                return RedditPost.from_dict(self.search_thread(request).get("post"))
            except Exception as e:
                logger.warning(f"{thread_type.value} thread search failed for {away_name} at {home_name}: {e}")
                return None

        with ThreadPoolExecutor(max_workers=len(missing)) as executor:
            found = dict(zip(missing, executor.map(search, missing)))

        if ThreadType.LIVE in found:
            threads.live_thread = found[ThreadType.LIVE]
        if ThreadType.POST in found:
            threads.post_thread = found[ThreadType.POST]
        return threads

    def prewarm_for_match(self, away_name: str, home_name: str, event_date: Optional[str] = None) -> MatchThreads:
        """Resolve a game's threads and load their comments into the cache."""
        threads = self.resolve_threads_for_match(away_name, home_name, event_date)
        for post, sort in ((threads.live_thread, "new"), (threads.post_thread, "top")):
            if post is None:
                continue
            try:
                self.get_comments(post.id, sort, post.permalink)
            except Exception as e:
                logger.warning(f"Failed to prewarm comments for {post.id}: {e}")
        return threads

    def refresh_live_for_match(self, away_name: str, home_name: str) -> Optional[Dict[str, Any]]:
        """Re-fetch the live thread's newest comments, bypassing the cache."""
        threads = self.resolve_threads_for_match(away_name, home_name)
        if threads.live_thread is None:
            return None
        return self.get_comments(
            threads.live_thread.id,
            "new",
            threads.live_thread.permalink,
            bypass_cache=True,
        )

    def clear_cache(self) -> int:
        """Drop every Reddit entry from every tier."""
        removed = self._cache.invalidate_prefix("reddit:")
        logger.info(f"Cleared {removed} Reddit cache entries")
        return removed
