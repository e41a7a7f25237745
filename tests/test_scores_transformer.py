"""
Tests for ESPN payload transformers using trimmed-down real payload shapes.
"""
import pytest

from courtside.scores import (
    ScoreboardResponse,
    minutes_to_seconds,
    parse_makes_attempts,
    transform_boxscore,
    transform_scoreboard,
    transform_standings,
)
from courtside.cache import DataCategory, get_category_for_game_status


# =============================================================================
# Small parsers
# =============================================================================

@pytest.mark.parametrize("text,expected", [
    ("7-12", (7, 12, 58)),
    ("0-0", (0, 0, 0)),
    ("1-2", (1, 2, 50)),
    ("1-8", (1, 8, 13)),   # 12.5 rounds up
    ("5", (5, 0, 0)),
    ("", (0, 0, 0)),
    (None, (0, 0, 0)),
])
def test_parse_makes_attempts(text, expected):
    assert tuple(parse_makes_attempts(text)) == expected


@pytest.mark.parametrize("value,expected", [
    ("34:12", 2052),
    ("DNP", 0),
    ("31", 31),
    ("--", 0),
    (None, 0),
])
def test_minutes_to_seconds(value, expected):
    assert minutes_to_seconds(value) == expected


@pytest.mark.parametrize("name,state,expected", [
    ("STATUS_FINAL", "post", DataCategory.BOXSCORE_FINAL),
    ("STATUS_IN_PROGRESS", "in", DataCategory.BOXSCORE_LIVE),
    ("STATUS_HALFTIME", None, DataCategory.BOXSCORE_LIVE),
    ("STATUS_SCHEDULED", "pre", DataCategory.BOXSCORE_PRE),
    ("STATUS_SOMETHING_NEW", None, DataCategory.BOXSCORE_LIVE),
])
def test_box_score_category_follows_game_status(name, state, expected):
    assert get_category_for_game_status(name, state) == expected


# =============================================================================
# Scoreboard
# =============================================================================

def test_scoreboard_keeps_valid_events_only(scoreboard_payload):
    board = transform_scoreboard(scoreboard_payload)

    assert [e.id for e in board.events] == ["401585601"]
    event = board.events[0]
    assert event.team_names() == ("Lakers", "Celtics")
    assert event.competition.home.score == 88
    assert event.competition.away.linescores == [25, 30, 25]
    assert event.competition.status.is_live
    assert event.competition.status.clock == "4:12"
    assert event.competition.status.period == 3


def test_scoreboard_of_garbage_is_empty():
    assert transform_scoreboard(None).events == []
    assert transform_scoreboard({"events": None}).events == []


def test_scoreboard_dict_round_trip(scoreboard_payload):
    board = transform_scoreboard(scoreboard_payload)
    restored = ScoreboardResponse.from_dict(board.to_dict())
    assert restored.to_dict() == board.to_dict()
    assert restored.find_event("401585601") is not None


# =============================================================================
# Box score
# =============================================================================

def test_boxscore_sides_follow_scoreboard_team_ids(scoreboard_payload, summary_payload):
    event = transform_scoreboard(scoreboard_payload).events[0]

    box = transform_boxscore(summary_payload, event, event_id="401585601")

    assert not box.partial
    assert [p.name for p in box.players["home"]] == ["Jayson Tatum"]
    assert [p.name for p in box.players["away"]] == ["LeBron James", "Bench Guy"]
    assert box.status.name == "STATUS_IN_PROGRESS"
    assert box.event_date == "2024-01-16T00:30Z"


def test_boxscore_splits_shooting_stats(scoreboard_payload, summary_payload):
    event = transform_scoreboard(scoreboard_payload).events[0]
    tatum = transform_boxscore(summary_payload, event).players["home"][0]

    assert tatum.stats["FGM"] == 7
    assert tatum.stats["FGA"] == 12
    assert tatum.stats["FG%"] == 58
    assert tatum.stats["3PM"] == 3
    assert tatum.stats["3P%"] == 43
    assert tatum.stats["FT%"] == 0
    assert tatum.stats["PTS"] == 31
    assert tatum.stats["MIN"] == "36"
    assert tatum.headshot.endswith("/4065648.png")
    assert tatum.position == "F"


def test_did_not_play_sorts_last(scoreboard_payload, summary_payload):
    event = transform_scoreboard(scoreboard_payload).events[0]
    away = transform_boxscore(summary_payload, event).players["away"]

    assert away[-1].dnp is True
    assert away[0].dnp is False


def test_sides_fall_back_to_listing_order_without_event(summary_payload):
    box = transform_boxscore(summary_payload, None, event_id="401585601")

    assert box.partial
    assert box.players["away"][0].name == "LeBron James"
    assert box.players["home"][0].name == "Jayson Tatum"
    assert box.status.state == "in"


def test_same_side_twice_is_flipped(summary_payload):
    for team in summary_payload["boxscore"]["players"]:
        team["team"]["homeAway"] = "home"

    box = transform_boxscore(summary_payload, None)

    assert box.players["home"][0].name == "LeBron James"
    assert box.players["away"][0].name == "Jayson Tatum"


def test_linescores_fall_back_to_scoreboard(scoreboard_payload, summary_payload):
    event = transform_scoreboard(scoreboard_payload).events[0]
    lines = transform_boxscore(summary_payload, event).linescores

    assert lines["home"].periods == [30, 28, 30]
    assert lines["home"].total == 88
    assert lines["away"].periods == [25, 30, 25]
    assert lines["away"].team.abbreviation == "LAL"


def test_linescores_fall_back_to_header_without_event(summary_payload):
    lines = transform_boxscore(summary_payload, None).linescores

    assert lines["home"].total == 88
    assert lines["away"].total == 80


def test_linescores_prefer_summary_totals(summary_payload):
    summary_payload["boxscore"]["teams"] = [
        {"team": {"id": "13"}, "homeAway": "away", "linescores": [{"displayValue": "20"}], "score": "20"},
        {"team": {"id": "2"}, "homeAway": "home", "linescores": [{"displayValue": "22"}]},
    ]

    lines = transform_boxscore(summary_payload, None).linescores

    assert lines["away"].periods == [20]
    assert lines["away"].total == 20
    assert lines["home"].total == 22


def test_boxscore_of_empty_summary_is_partial_and_empty():
    box = transform_boxscore({}, None, event_id="1")
    data = box.to_dict()

    assert data["id"] == "1"
    assert data["partial"] is True
    assert data["players"] == {"home": [], "away": []}
    assert data["linescores"]["home"]["periods"] == []


# =============================================================================
# Standings
# =============================================================================

def standing(team_id, name, wins, losses, pct, seed):
    return {
        "team": {"id": team_id, "shortDisplayName": name, "abbreviation": name[:3].upper()},
        "stats": [
            {"name": "wins", "value": wins},
            {"name": "losses", "value": losses},
            {"name": "winPercent", "value": pct},
            {"name": "playoffSeed", "value": seed},
            {"name": "gamesBehind", "value": 0, "displayValue": "-"},
            {"name": "streak", "value": 3, "displayValue": "W3"},
        ],
    }


def test_standings_sorted_by_seed():
    payload = {"children": [{
        "name": "Eastern Conference",
        "abbreviation": "East",
        "standings": {"entries": [
            standing("20", "76ers", 25, 14, 0.641, 3.0),
            standing("2", "Celtics", 31, 9, 0.775, 1.0),
            standing("15", "Bucks", 28, 13, 0.683, 2.0),
        ]},
    }]}

    standings = transform_standings(payload)

    east = standings.conferences[0]
    assert east.abbreviation == "East"
    assert [r.team.short_display_name for r in east.rows] == ["Celtics", "Bucks", "76ers"]
    assert east.rows[0].wins == 31
    assert east.rows[0].seed == 1
    assert east.rows[0].streak == "W3"


def test_standings_of_garbage_is_empty():
    assert transform_standings("oops").conferences == []
