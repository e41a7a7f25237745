"""
Reddit payload -> domain model transformers.
"""
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from courtside.utils.helpers import safe_str
from .matching import (
    classify_title,
    create_pair_key,
    is_index_title,
    is_post_game_title,
    matches_type,
    title_matches_teams,
)
from .models import CommentNode, RedditPost, ThreadPair, ThreadType
from .schemas import RawComment, RawListing, RawPost

logger = logging.getLogger("threads.transformer")

REDDIT_URL = "https://www.reddit.com"

# Replies deeper than this are dropped
MAX_COMMENT_DEPTH = 2

# How old a thread may be relative to now (or the game) to still count
MAX_THREAD_AGE_SECONDS = {
    ThreadType.LIVE: 24 * 3600,
    ThreadType.POST: 36 * 3600,
}

_INDEX_LINK = re.compile(r"\[([^\]]+)\]\((https?://[^)]+)\)")
_POST_ID = re.compile(r"comments/([a-z0-9]+)/")
_MATCHUP_SEPARATORS = (" at ", " @ ")


def parse_event_time(value: Optional[str]) -> Optional[float]:
    """
    Epoch seconds for an ESPN-style date.

    Accepts "2024-01-16T00:30Z", full ISO timestamps, "2024-01-15" and "20240115".
    """
    value = (value or "").strip()
    if not value:
        return None
    if re.fullmatch(r"\d{8}", value):
        value = f"{value[:4]}-{value[4:6]}-{value[6:]}"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable event date: {value}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def _children(payload: Any) -> List[Dict[str, Any]]:
    """``data`` dicts of a listing's children; [] for anything malformed."""
    if not isinstance(payload, dict):
        return []
    try:
        listing = RawListing.model_validate(payload)
    except ValidationError:
        return []
    return [child.data for child in listing.data.children]


def _to_post(data: Dict[str, Any]) -> Optional[RedditPost]:
    try:
        raw = RawPost.model_validate(data)
    except ValidationError:
        return None
    if not raw.id:
        return None
    permalink = raw.permalink
    return RedditPost(
        id=raw.id,
        title=safe_str(raw.title),
        permalink=permalink,
        url=f"{REDDIT_URL}{permalink}" if permalink else raw.url,
        created_utc=raw.created_utc,
        score=raw.score,
    )


def transform_feed(payload: Any) -> List[RedditPost]:
    """Posts of a listing (search result or subreddit feed), in listing order."""
    posts = []
    for data in _children(payload):
        post = _to_post(data)
        if post is not None:
            posts.append(post)
    return posts


def merge_feeds(*feeds: Iterable[RedditPost]) -> List[RedditPost]:
    """Concatenate feeds keeping the first occurrence of each post id."""
    seen = set()
    merged = []
    for feed in feeds:
        for post in feed:
            if post.id in seen:
                continue
            seen.add(post.id)
            merged.append(post)
    return merged


def transform_search(
    payload: Any,
    thread_type: ThreadType,
    away_candidates: Iterable[str] = (),
    home_candidates: Iterable[str] = (),
    event_date: Optional[str] = None,
    now: Optional[float] = None,
) -> Optional[RedditPost]:
    """Best matching thread in a search listing; see ``select_thread``."""
    posts = payload if isinstance(payload, list) else transform_feed(payload)
    return select_thread(posts, thread_type, away_candidates, home_candidates, event_date, now)


def select_thread(
    posts: Iterable[RedditPost],
    thread_type: ThreadType,
    away_candidates: Iterable[str] = (),
    home_candidates: Iterable[str] = (),
    event_date: Optional[str] = None,
    now: Optional[float] = None,
) -> Optional[RedditPost]:
    """
    Pick the thread for a game.

    Filters by title type and team aliases. Without an event date only
    threads younger than the type's age limit qualify and the newest wins;
    with one, threads within that limit of the game qualify and the one
    created closest to tip-off wins. Posts without a timestamp count as
    brand new.
    """
    now = time.time() if now is None else now
    max_age = MAX_THREAD_AGE_SECONDS[thread_type]
    away_candidates = list(away_candidates)
    home_candidates = list(home_candidates)
    event_time = parse_event_time(event_date)

    candidates = []
    for post in posts:
        if not matches_type(post.title, thread_type):
            continue
        if not title_matches_teams(post.title, away_candidates, home_candidates):
            continue
        created = post.created_utc if post.created_utc is not None else now
        if event_time is None:
            if now - created > max_age:
                continue
            rank = -created
        else:
            distance = abs(created - event_time)
            if distance > max_age:
                continue
            rank = distance
        candidates.append((rank, post))

    if not candidates:
        return None
    candidates.sort(key=lambda pair: pair[0])
    return candidates[0][1]


def build_comment_tree(listing: Any, depth: int = 0) -> List[CommentNode]:
    """
    Comment listing -> nested CommentNode list.

    Only t1 (comment) things are kept; "load more" stubs and anything else
    are dropped. Top-level comments are depth 0 and replies stop at depth
    ``MAX_COMMENT_DEPTH`` (2).
    """
    if not isinstance(listing, dict) or not isinstance(listing.get("data"), dict) \
            or not isinstance(listing["data"].get("children"), list):
        if depth == 0:
            logger.warning(f"Comment listing has no children: {str(listing)[:200]}")
        return []

    nodes = []
    for child in listing["data"]["children"]:
        if not isinstance(child, dict) or child.get("kind") != "t1":
            continue
        try:
            raw = RawComment.model_validate(child.get("data") or {})
        except ValidationError:
            continue
        replies = None
        if depth < MAX_COMMENT_DEPTH and isinstance(raw.replies, dict):
            replies = build_comment_tree(raw.replies, depth + 1)
        nodes.append(CommentNode(
            id=safe_str(raw.id),
            author=safe_str(raw.author),
            score=raw.score if raw.score is not None else 0,
            body=raw.body if raw.body is not None else "",
            created_utc=raw.created_utc if raw.created_utc is not None else 0,
            replies=replies,
        ))
    return nodes


def transform_comments(payload: Any) -> List[CommentNode]:
    """
    Thread payload ``[post_listing, comment_listing]`` -> comment tree.

    Anything that is not a list yields an empty tree.
    """
    if not isinstance(payload, list):
        logger.error(f"Invalid comments payload: {str(payload)[:200]}")
        return []
    if len(payload) < 2 or not payload[1]:
        logger.warning("No comment listing in thread payload")
        return []
    return build_comment_tree(payload[1])


def _split_matchup(title: str) -> Optional[tuple]:
    parts = title.split(":")
    matchup = parts[1].strip() if len(parts) > 1 else title
    for separator in _MATCHUP_SEPARATORS:
        if separator in matchup:
            away, home = matchup.split(separator)[:2]
            away, home = away.strip(), home.strip()
            if away and home:
                return away, home
    return None


def transform_index(payload: Any) -> Dict[str, ThreadPair]:
    """
    Parse the daily index post body into ``pair_key -> ThreadPair``.

    Each usable line is a markdown link whose title reads
    "GAME THREAD: Away at Home" (or "@"); other lines are skipped.
    """
    selftext = ""
    if isinstance(payload, list) and payload:
        children = _children(payload[0])
        if children:
            selftext = safe_str(children[0].get("selftext"))

    found: Dict[str, Dict[str, RedditPost]] = {}
    for line in selftext.split("\n"):
        match = _INDEX_LINK.search(line)
        if not match:
            continue
        title, url = match.group(1), match.group(2)
        teams = _split_matchup(title)
        if teams is None:
            continue

        id_match = _POST_ID.search(url)
        post = RedditPost(
            id=id_match.group(1) if id_match else "",
            title=title,
            permalink=urlparse(url).path or None,
            url=url,
        )
        key = create_pair_key(*teams)
        slot = "pgt" if is_post_game_title(title) else "gdt"
        found.setdefault(key, {})[slot] = post
    return {key: ThreadPair(**posts) for key, posts in found.items()}


def index_to_dict(mapping: Dict[str, ThreadPair]) -> Dict[str, Dict[str, Any]]:
    return {key: pair.to_dict() for key, pair in mapping.items()}


def index_from_dict(data: Optional[Dict[str, Any]]) -> Dict[str, ThreadPair]:
    return {key: ThreadPair.from_dict(value) for key, value in (data or {}).items()}


def find_index_post(posts: Iterable[RedditPost]) -> Optional[RedditPost]:
    """Newest post titled like the daily game thread index."""
    ordered = sorted(posts, key=lambda p: p.created_utc or 0, reverse=True)
    for post in ordered:
        if is_index_title(post.title):
            return post
    return None


def describe(post: RedditPost) -> str:
    kind = classify_title(post.title)
    return f"{post.id} ({kind.value if kind else 'other'}): {post.title}"
