"""
Threads module: r/nba game thread discovery, comments and feeds.
"""
from .matching import (
    TEAM_NAME_VARIATIONS,
    build_expanded_query,
    build_search_query,
    classify_title,
    create_pair_key,
    expand_team_names,
    normalize_team_name,
    title_matches_teams,
)
from .models import (
    CommentNode,
    MatchThreads,
    RedditPost,
    SearchRequest,
    ThreadPair,
    ThreadType,
)
from .service import ThreadService
from .transformer import (
    build_comment_tree,
    select_thread,
    transform_comments,
    transform_feed,
    transform_index,
    transform_search,
)

__all__ = [
    # Matching
    "TEAM_NAME_VARIATIONS",
    "build_expanded_query",
    "build_search_query",
    "classify_title",
    "create_pair_key",
    "expand_team_names",
    "normalize_team_name",
    "title_matches_teams",
    # Models
    "CommentNode",
    "MatchThreads",
    "RedditPost",
    "SearchRequest",
    "ThreadPair",
    "ThreadType",
    # Transformers
    "build_comment_tree",
    "select_thread",
    "transform_comments",
    "transform_feed",
    "transform_index",
    "transform_search",
    # Service
    "ThreadService",
]
