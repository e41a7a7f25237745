"""
Service-level tests: scores and thread façades over the real cache stack
with fake upstream providers.
"""
import pytest

from courtside.cache import RemoteSharedCache, TieredCache
from courtside.errors import UpstreamHTTPError, UpstreamUnavailableError
from courtside.scores import ScoresService
from courtside.threads import SearchRequest, ThreadService, ThreadType
from courtside.threads.service import INDEX_QUERY, time_range_for

from conftest import (
    FakeResponse,
    FakeScoresProvider,
    FakeSession,
    FakeThreadProvider,
    listing,
    post,
    rate_limited,
)

EVENT_ID = "401585601"


# =============================================================================
# Scores
# =============================================================================

@pytest.fixture
def scores_provider(scoreboard_payload, summary_payload):
    return FakeScoresProvider(scoreboard=scoreboard_payload, summaries={EVENT_ID: summary_payload})


@pytest.fixture
def scores(tiered, scores_provider, no_retry):
    return ScoresService(tiered, scores_provider, retry=no_retry)


def test_scoreboard_is_cached(scores, scores_provider):
    first = scores.get_scoreboard()
    second = scores.get_scoreboard()

    assert first == second
    assert first["events"][0]["id"] == EVENT_ID
    assert scores_provider.calls["scoreboard"] == 1


def test_scoreboard_force_refresh_refetches(scores, scores_provider):
    scores.get_scoreboard()
    scores.get_scoreboard(force_refresh=True)
    assert scores_provider.calls["scoreboard"] == 2


def test_boxscore_joins_summary_and_scoreboard(scores):
    box = scores.get_boxscore(EVENT_ID)

    assert box["partial"] is False
    assert box["players"]["home"][0]["name"] == "Jayson Tatum"
    assert box["linescores"]["home"]["total"] == 88


def test_boxscore_degrades_to_partial_when_scoreboard_fails(scores, scores_provider):
    scores_provider.scoreboard_error = UpstreamUnavailableError("espn down", provider="espn")

    box = scores.get_boxscore(EVENT_ID)

    assert box["partial"] is True
    assert box["players"]["away"][0]["name"] == "LeBron James"


def test_boxscore_summary_failure_raises(scores):
    with pytest.raises(UpstreamHTTPError):
        scores.get_boxscore("does-not-exist")


def test_finished_boxscore_is_persisted_live_is_not(tiered, persistent, scoreboard_payload,
                                                     summary_payload, no_retry):
    live = ScoresService(tiered, FakeScoresProvider(scoreboard_payload, {EVENT_ID: summary_payload}), no_retry)
    live.get_boxscore(EVENT_ID)
    assert persistent.get_record(f"espn:boxscore:{EVENT_ID}") is None

    status = scoreboard_payload["events"][0]["competitions"][0]["status"]["type"]
    status.update({"name": "STATUS_FINAL", "state": "post"})
    tiered.invalidate("espn:scoreboard:today")
    final = ScoresService(tiered, FakeScoresProvider(scoreboard_payload, {EVENT_ID: summary_payload}), no_retry)
    final.get_boxscore(EVENT_ID, force_refresh=True)

    assert persistent.get(f"espn:boxscore:{EVENT_ID}")["status"]["name"] == "STATUS_FINAL"


def test_prewarm_counts_successes(scores):
    assert scores.prewarm_boxscores([EVENT_ID, "missing"]) == 1
    assert scores.prewarm_boxscores([]) == 0


# =============================================================================
# Threads
# =============================================================================

INDEX_PERMALINK = "/r/nba/comments/idx/thread/"
INDEX_BODY = "\n".join([
    "[GAME THREAD: Los Angeles Lakers at Boston Celtics](https://www.reddit.com/r/nba/comments/g1abc/game_thread/)",
    "[GAME THREAD: Miami Heat at New York Knicks](https://www.reddit.com/r/nba/comments/g2def/game_thread/)",
])


@pytest.fixture
def reddit():
    return FakeThreadProvider()


@pytest.fixture
def threads(tiered, reddit, no_retry, clock):
    return ThreadService(tiered, reddit, retry=no_retry, clock=clock)


def publish_index(reddit, clock):
    reddit.search_results[INDEX_QUERY] = listing([
        post("idx", "Daily Game Thread Index - November 14, 2023", clock.now - 3600),
    ])
    reddit.threads[INDEX_PERMALINK] = [listing([post("idx", "Daily Game Thread Index", selftext=INDEX_BODY)])]


def live_request(**kwargs):
    return SearchRequest(ThreadType.LIVE, ["Lakers"], ["Celtics"], **kwargs)


def test_index_hit_skips_search(threads, reddit, clock):
    publish_index(reddit, clock)

    result = threads.search_thread(live_request())

    assert result["source"] == "index"
    assert result["post"]["id"] == "g1abc"
    assert [c for c in reddit.calls if c[0] == "search"] == [("search", INDEX_QUERY, "week", "new")]


def test_index_is_cached(threads, reddit, clock):
    publish_index(reddit, clock)

    threads.get_index()
    index = threads.get_index()

    assert set(index) == {"Celtics|Lakers", "Heat|Knicks"}
    assert reddit.count("thread") == 1


def test_missing_index_is_empty_and_not_cached(threads, reddit):
    assert threads.get_index() == {}
    assert threads.get_index() == {}
    # Nothing was cached, so the second call searches again
    assert reddit.count("search") == 2


def test_garbled_shared_cache_does_not_break_index(memory, reddit, no_retry, clock):
    shared = RemoteSharedCache(
        "https://project.supabase.co",
        "service-key",
        http=FakeSession(lambda method, url, kwargs: FakeResponse(200, {"message": "unexpected"})),
        clock=clock,
    )
    cache = TieredCache(memory, remote=shared, clock=clock)
    threads = ThreadService(cache, reddit, retry=no_retry, clock=clock)
    publish_index(reddit, clock)
    try:
        assert set(threads.get_index()) == {"Celtics|Lakers", "Heat|Knicks"}
    finally:
        cache.close()


def test_direct_search_when_index_has_no_entry(threads, reddit, clock):
    reddit.default_search = listing([post("gdt1", "GAME THREAD: Lakers @ Celtics", clock.now - 600)])

    result = threads.search_thread(live_request())

    assert result["source"] == "search"
    assert result["post"]["id"] == "gdt1"


def test_direct_search_result_is_cached(threads, reddit, clock):
    reddit.default_search = listing([post("gdt1", "GAME THREAD: Lakers @ Celtics", clock.now - 600)])

    threads.search_thread(live_request())
    threads.search_thread(live_request())

    direct = [c for c in reddit.calls if c[0] == "search" and c[1] != INDEX_QUERY]
    assert len(direct) == 1


def test_blocked_search_falls_back_to_feeds(threads, reddit, clock):
    reddit.default_search = rate_limited()
    reddit.feeds["new"] = listing([post("gdt1", "GAME THREAD: Lakers @ Celtics", clock.now - 600)])

    result = threads.search_thread(live_request())

    assert result["source"] == "feed"
    assert result["post"]["id"] == "gdt1"


def test_blocked_search_without_feed_match_is_absent(threads, reddit):
    reddit.default_search = rate_limited()

    assert threads.search_thread(live_request()) == {"post": None, "source": None}


def test_unreachable_reddit_yields_absent_thread(threads, reddit):
    reddit.default_search = UpstreamUnavailableError("connection reset", provider="reddit")

    assert threads.search_thread(live_request()) == {"post": None, "source": None}


def test_historic_game_skips_index_and_widens_time_range(threads, reddit, clock):
    publish_index(reddit, clock)

    threads.search_thread(live_request(event_date="2023-11-01"))

    searches = [c for c in reddit.calls if c[0] == "search"]
    assert [c[1] for c in searches if c[1] == INDEX_QUERY] == []
    assert searches[0][2] == "month"


@pytest.mark.parametrize("event_date,expected", [
    (None, "week"),
    ("2023-11-12", "week"),
    ("2023-10-25", "month"),
    ("2023-06-01", "year"),
])
def test_time_range_for(event_date, expected, clock):
    assert time_range_for(event_date, clock.now) == expected


def test_resolve_threads_combines_index_and_search(threads, reddit, clock):
    publish_index(reddit, clock)
    reddit.default_search = listing([
        post("pgt1", "POST GAME THREAD: Celtics defeat Lakers, 120-105", clock.now - 600),
    ])

    match = threads.resolve_threads_for_match("Lakers", "Celtics").to_dict()

    assert match["live_thread"]["id"] == "g1abc"
    assert match["post_thread"]["id"] == "pgt1"


def test_resolve_threads_with_missing_names(threads):
    assert threads.resolve_threads_for_match("", "Celtics").to_dict() == {
        "live_thread": None,
        "post_thread": None,
    }


def comment_payload(*ids):
    comments = [{"id": i, "author": "fan", "body": "let's go", "score": 3, "created_utc": 1.0, "replies": ""}
                for i in ids]
    return [listing([post("g1abc", "GAME THREAD")]), listing(comments, kind="t1")]


def test_comments_are_cached_until_bypassed(threads, reddit):
    reddit.comments = comment_payload("a", "b")

    first = threads.get_comments("g1abc", "new")
    threads.get_comments("g1abc", "new")
    reddit.comments = comment_payload("c")
    bypassed = threads.get_comments("g1abc", "new", bypass_cache=True)

    assert [c["id"] for c in first["comments"]] == ["a", "b"]
    assert [c["id"] for c in bypassed["comments"]] == ["c"]
    assert reddit.count("comments") == 2


def test_comment_sorts_are_cached_separately(threads, reddit):
    reddit.comments = comment_payload("a")
    threads.get_comments("g1abc", "new")
    threads.get_comments("g1abc", "top")
    assert [c[2] for c in reddit.calls if c[0] == "comments"] == ["new", "top"]


def test_refresh_live_for_match_bypasses_comment_cache(threads, reddit, clock):
    publish_index(reddit, clock)
    reddit.comments = comment_payload("a")
    threads.prewarm_for_match("Lakers", "Celtics")
    reddit.comments = comment_payload("z")

    refreshed = threads.refresh_live_for_match("Lakers", "Celtics")

    assert [c["id"] for c in refreshed["comments"]] == ["z"]


def test_feed_and_clear_cache(threads, reddit, tiered):
    reddit.feeds["hot"] = listing([post("p1", "Wemby highlights")])

    feed = threads.get_feed("nba", "hot")
    assert [p["id"] for p in feed["posts"]] == ["p1"]

    assert threads.clear_cache() >= 1
    assert not [k for k in tiered.memory.keys() if k.startswith("reddit:")]
