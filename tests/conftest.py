"""
Shared fixtures: a controllable clock, fake HTTP sessions and fake upstream
providers, so no test touches the network or sleeps.
"""
import json
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

from courtside.cache import MemoryCache, PersistentStore, TieredCache
from courtside.errors import RateLimitedError, UpstreamHTTPError
from courtside.utils.retry import UpstreamRetry


# =============================================================================
# Test Doubles
# =============================================================================

class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    """Just enough of ``requests.Response`` for the adapters."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)
        self.content = self.text.encode("utf-8")
        self.headers = headers or {"Content-Type": "application/json"}

    def json(self) -> Any:
        if self._payload is None:
            return json.loads(self.text)
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    """
    Records every call; answers from a queue or a responder function.

    ``responder(method, url, kwargs)`` may return a FakeResponse or raise.
    """

    def __init__(self, responder: Optional[Callable[..., FakeResponse]] = None):
        self.calls: List[Dict[str, Any]] = []
        self.responses: List[FakeResponse] = []
        self.responder = responder

    def _answer(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.responder is not None:
            return self.responder(method, url, kwargs)
        if self.responses:
            return self.responses.pop(0)
        return FakeResponse(200, [])

    def get(self, url, **kwargs):
        return self._answer("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._answer("POST", url, **kwargs)

    def delete(self, url, **kwargs):
        return self._answer("DELETE", url, **kwargs)


class FakeScoresProvider:
    """ScoresProvider returning canned payloads and counting calls."""

    def __init__(self, scoreboard: Any = None, summaries: Optional[Dict[str, Any]] = None,
                 standings: Any = None):
        self.scoreboard = scoreboard if scoreboard is not None else {"events": []}
        self.summaries = summaries or {}
        self.standings = standings if standings is not None else {"children": []}
        self.scoreboard_error: Optional[Exception] = None
        self.calls: Dict[str, int] = {"scoreboard": 0, "summary": 0, "standings": 0}

    def get_scoreboard(self, date=None):
        self.calls["scoreboard"] += 1
        if self.scoreboard_error is not None:
            raise self.scoreboard_error
        return self.scoreboard

    def get_summary(self, event_id):
        self.calls["summary"] += 1
        if event_id not in self.summaries:
            raise UpstreamHTTPError(404, provider="espn")
        return self.summaries[event_id]

    def get_standings(self):
        self.calls["standings"] += 1
        return self.standings


class FakeThreadProvider:
    """ThreadProvider with per-method canned results; exceptions are raised."""

    def __init__(self):
        self.search_results: Dict[str, Any] = {}
        self.default_search: Any = listing([])
        self.feeds: Dict[str, Any] = {"new": listing([]), "hot": listing([])}
        self.threads: Dict[str, Any] = {}
        self.comments: Any = [listing([]), listing([])]
        self.calls: List[tuple] = []

    @staticmethod
    def _resolve(result: Any) -> Any:
        if isinstance(result, Exception):
            raise result
        return result

    def search_raw(self, query, time_range="week", sort="new"):
        self.calls.append(("search", query, time_range, sort))
        return self._resolve(self.search_results.get(query, self.default_search))

    def get_thread_content(self, permalink):
        self.calls.append(("thread", permalink))
        return self._resolve(self.threads.get(permalink, [listing([])]))

    def get_comments_raw(self, post_id, sort="new", permalink=None):
        self.calls.append(("comments", post_id, sort, permalink))
        return self._resolve(self.comments)

    def get_subreddit_feed(self, subreddit, sort="new"):
        self.calls.append(("feed", subreddit, sort))
        return self._resolve(self.feeds.get(sort, listing([])))

    def count(self, kind: str) -> int:
        return sum(1 for c in self.calls if c[0] == kind)


# =============================================================================
# Payload Builders
# =============================================================================

def listing(children: List[Dict[str, Any]], kind: str = "t3") -> Dict[str, Any]:
    return {
        "kind": "Listing",
        "data": {"children": [{"kind": kind, "data": child} for child in children]},
    }


def post(post_id: str, title: str, created_utc: Optional[float] = None, **extra) -> Dict[str, Any]:
    data = {
        "id": post_id,
        "title": title,
        "permalink": f"/r/nba/comments/{post_id}/thread/",
        "url": f"https://www.reddit.com/r/nba/comments/{post_id}/thread/",
    }
    if created_utc is not None:
        data["created_utc"] = created_utc
    data.update(extra)
    return data


def rate_limited() -> RateLimitedError:
    return RateLimitedError(429, provider="reddit")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory(clock):
    return MemoryCache(max_entries=50, default_ttl=300, clock=clock, coalesce_timeout=5)


@pytest.fixture
def persistent(tmp_path, clock):
    return PersistentStore.from_url(f"sqlite:///{tmp_path / 'cache.db'}", clock=clock)


@pytest.fixture
def tiered(memory, persistent, clock):
    cache = TieredCache(memory, persistent=persistent, revalidate_cooldown=60, clock=clock)
    yield cache
    cache.close()


@pytest.fixture
def no_retry():
    return UpstreamRetry(attempts=1, wait_seconds=0)


# =============================================================================
# ESPN Payloads
# =============================================================================

def competitor(team_id, abbreviation, short_name, home_away, score, linescores):
    return {
        "id": team_id,
        "homeAway": home_away,
        "score": score,
        "winner": None,
        "linescores": [{"value": v} for v in linescores],
        "team": {
            "id": team_id,
            "abbreviation": abbreviation,
            "displayName": f"Team {short_name}",
            "shortDisplayName": short_name,
            "name": short_name,
        },
    }


@pytest.fixture
def scoreboard_payload():
    return {
        "leagues": [{"name": "NBA"}],
        "events": [
            {
                "id": "401585601",
                "name": "Los Angeles Lakers at Boston Celtics",
                "shortName": "LAL @ BOS",
                "date": "2024-01-16T00:30Z",
                "competitions": [{
                    "id": "401585601",
                    "date": "2024-01-16T00:30Z",
                    "competitors": [
                        competitor("2", "BOS", "Celtics", "home", "88", [30, 28, 30]),
                        competitor("13", "LAL", "Lakers", "away", "80", [25, 30, 25]),
                    ],
                    "status": {
                        "displayClock": "4:12",
                        "period": 3,
                        "type": {
                            "name": "STATUS_IN_PROGRESS",
                            "state": "in",
                            "shortDetail": "4:12 - 3rd",
                            "description": "In Progress",
                        },
                    },
                }],
            },
            {"id": "broken", "competitions": "not a list"},
            {"id": "no-competition", "competitions": []},
        ],
    }


def athlete_line(athlete_id, name, stats, did_not_play=False):
    return {
        "athlete": {
            "id": athlete_id,
            "displayName": name,
            "jersey": "23",
            "position": {"abbreviation": "F"},
        },
        "stats": stats,
        "didNotPlay": did_not_play,
    }


@pytest.fixture
def summary_payload():
    names = ["MIN", "PTS", "FG", "3PT", "FT", "REB", "AST"]
    return {
        "boxscore": {
            # Lakers listed first, no homeAway flags on the player blocks
            "players": [
                {
                    "team": {"id": "13", "abbreviation": "LAL"},
                    "statistics": [{
                        "names": names,
                        "athletes": [
                            athlete_line("9", "Bench Guy", [], did_not_play=True),
                            athlete_line("1966", "LeBron James", ["34", "28", "11-20", "2-6", "4-4", "8", "9"]),
                        ],
                    }],
                },
                {
                    "team": {"id": "2", "abbreviation": "BOS"},
                    "statistics": [{
                        "names": names,
                        "athletes": [
                            athlete_line("4065648", "Jayson Tatum", ["36", "31", "7-12", "3-7", "0-0", "9", "4"]),
                        ],
                    }],
                },
            ],
            "teams": [
                {"team": {"id": "13"}, "homeAway": "away"},
                {"team": {"id": "2"}, "homeAway": "home"},
            ],
        },
        "header": {
            "id": "401585601",
            "competitions": [{
                "id": "401585601",
                "date": "2024-01-16T00:30Z",
                "competitors": [
                    competitor("2", "BOS", "Celtics", "home", "88", [30, 28, 30]),
                    competitor("13", "LAL", "Lakers", "away", "80", [25, 30, 25]),
                ],
                "status": {"type": {"name": "STATUS_IN_PROGRESS", "state": "in"}},
            }],
        },
    }


