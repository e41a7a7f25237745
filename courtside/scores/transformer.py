"""
ESPN payload -> domain model transformers.

Every function here is pure and tolerant: missing or malformed fields fall
back to defaults, and a payload that cannot be validated at all produces an
empty result plus a logged warning instead of an exception.
"""
import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

from pydantic import ValidationError

from courtside.utils.helpers import round_half_up, safe_float, safe_int, safe_str
from .models import (
    BoxscoreResponse,
    Competition,
    Competitor,
    ConferenceStandings,
    Event,
    GameStatus,
    LineScore,
    PlayerRow,
    ScoreboardResponse,
    StandingRow,
    StandingsResponse,
    TeamRef,
)
from .schemas import (
    RawCompetition,
    RawCompetitor,
    RawEvent,
    RawStandings,
    RawStatus,
    RawSummary,
    RawTeam,
)

logger = logging.getLogger("scores.transformer")

# Column order of a box score table
STAT_NAME_ORDER = [
    "MIN", "PTS", "FG", "3PT", "FT", "REB", "AST", "TO",
    "STL", "BLK", "OREB", "DREB", "PF", "+/-",
]

# Stats reported as "makes-attempts"; 3PT is displayed as 3P
SHOOTING_STATS = {"FG": "FG", "3PT": "3P", "FT": "FT"}

HEADSHOT_URL = "https://a.espncdn.com/i/headshots/nba/players/full/{athlete_id}.png"

_CLOCK_PATTERN = re.compile(r"^(\d+):(\d+)$")

Number = Union[int, float]


class MakesAttempts(NamedTuple):
    makes: Number
    attempts: Number
    pct: int


def to_number(value: Any) -> Number:
    """Loose numeric coercion: ints stay ints, garbage becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str) and not value.strip():
        return 0
    number = safe_float(value, 0.0)
    if number in (float("inf"), float("-inf")):
        return 0
    if number.is_integer():
        return int(number)
    return number


def parse_makes_attempts(text: Optional[str]) -> MakesAttempts:
    """
    Parse "7-12" into (makes=7, attempts=12, pct=58).

    pct is rounded half-up; it is 0 when there were no attempts.
    """
    parts = (text or "").split("-")
    makes = to_number(parts[0]) if parts else 0
    attempts = to_number(parts[1]) if len(parts) > 1 else 0
    pct = round_half_up(makes / attempts * 100) if attempts > 0 else 0
    return MakesAttempts(makes=makes, attempts=attempts, pct=pct)


def minutes_to_seconds(value: Any) -> Number:
    """
    Minutes played as a sortable number.

    "34:12" -> 2052, "DNP" -> 0, "31" -> 31, garbage -> 0.
    """
    if isinstance(value, str):
        if value.upper() == "DNP":
            return 0
        match = _CLOCK_PATTERN.match(value)
        if match:
            return int(match.group(1)) * 60 + int(match.group(2))
    return to_number(value)


def resolve_headshot(raw: Any) -> Optional[str]:
    if not raw:
        return None
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        for key in ("href", "url"):
            if isinstance(raw.get(key), str):
                return raw[key]
    return None


def _side(value: Optional[str]) -> str:
    return "home" if value == "home" else "away"


def _other(side: str) -> str:
    return "away" if side == "home" else "home"


def _team_ref(raw: Optional[RawTeam]) -> TeamRef:
    if raw is None:
        return TeamRef()
    return TeamRef(
        id=safe_str(raw.id),
        abbreviation=safe_str(raw.abbreviation),
        display_name=safe_str(raw.display_name),
        short_display_name=safe_str(raw.short_display_name),
        name=safe_str(raw.name),
        logo=safe_str(raw.logo),
    )


def _period_value(raw: Any) -> Number:
    if isinstance(raw, dict):
        for key in ("value", "displayValue", "score"):
            if raw.get(key) is not None:
                return to_number(raw[key])
        return 0
    return to_number(raw)


def _periods(raw_linescores: List[Any]) -> List[Number]:
    return [_period_value(item) for item in raw_linescores or []]


def _total(score: Any, periods: List[Number]) -> Number:
    return to_number(score) or sum(periods)


# ===== SCOREBOARD =====

def transform_status(raw: Optional[RawStatus]) -> GameStatus:
    if raw is None:
        return GameStatus()
    return GameStatus(
        name=safe_str(raw.type.name),
        state=safe_str(raw.type.state),
        short_detail=safe_str(raw.type.short_detail),
        description=safe_str(raw.type.description),
        clock=safe_str(raw.display_clock),
        period=safe_int(raw.period),
    )


def transform_competitor(raw: RawCompetitor) -> Competitor:
    periods = _periods(raw.linescores)
    return Competitor(
        home_away=_side(raw.home_away),
        team=_team_ref(raw.team),
        score=to_number(raw.score) if raw.score is not None else None,
        linescores=periods,
        winner=raw.winner,
    )


def transform_competition(raw: RawCompetition, fallback_id: str = "") -> Competition:
    return Competition(
        id=safe_str(raw.id) or fallback_id,
        date=safe_str(raw.date),
        competitors=[transform_competitor(c) for c in raw.competitors],
        status=transform_status(raw.status),
    )


def transform_event(raw: RawEvent) -> Optional[Event]:
    """One ESPN event; None when it has no competition to show."""
    if not raw.id or not raw.competitions:
        return None
    competition = transform_competition(raw.competitions[0], fallback_id=raw.id)
    return Event(
        id=raw.id,
        name=safe_str(raw.name),
        short_name=safe_str(raw.short_name),
        date=safe_str(raw.date) or competition.date,
        competition=competition,
    )


def transform_scoreboard(payload: Any) -> ScoreboardResponse:
    """
    Raw scoreboard -> ScoreboardResponse.

    Events are validated one at a time so a single odd event never hides
    the rest of the slate.
    """
    if not isinstance(payload, dict):
        logger.warning(f"Scoreboard payload is not an object: {type(payload).__name__}")
        return ScoreboardResponse()

    events: List[Event] = []
    for raw in payload.get("events") or []:
        try:
            event = transform_event(RawEvent.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping malformed scoreboard event: {e.error_count()} errors")
            continue
        if event is not None:
            events.append(event)
    return ScoreboardResponse(events=events)


# ===== BOX SCORE =====

def normalize_players(
    summary: RawSummary,
    event: Optional[Event] = None,
) -> Tuple[Dict[str, List[PlayerRow]], List[str]]:
    """
    Build per-side player rows from the summary's box score.

    Side resolution, in order: the team id's side on the scoreboard event,
    the team's own homeAway flag, then position (first team listed is
    away). If the resolved side is already filled the team takes the other
    one. Players who did not play (or logged zero minutes) sort last.

    Returns:
        ({"home": rows, "away": rows}, column order)
    """
    id_to_side: Dict[str, str] = {}
    if event is not None:
        for competitor in event.competition.competitors:
            if competitor.team.id:
                id_to_side[competitor.team.id] = _side(competitor.home_away)

    players: Dict[str, List[PlayerRow]] = {"home": [], "away": []}

    for index, team in enumerate(summary.boxscore.players):
        team_id = safe_str(team.team.id)
        if team_id in id_to_side:
            side = id_to_side[team_id]
        elif team.team.home_away:
            side = _side(team.team.home_away)
        else:
            side = "away" if index == 0 else "home"

        if players[side]:
            side = _other(side)

        block = team.statistics[0] if team.statistics else None
        stat_names = [safe_str(n) for n in block.names] if block else []
        rows = [_player_row(line, stat_names) for line in (block.athletes if block else [])]

        rows.sort(key=lambda row: 1 if row.dnp or minutes_to_seconds(row.stats.get("MIN")) <= 0 else 0)
        players[side] = rows

    return players, list(STAT_NAME_ORDER)


def _player_row(line, stat_names: List[str]) -> PlayerRow:
    athlete = line.athlete
    stats: Dict[str, Any] = {}
    for i, key in enumerate(stat_names):
        value = line.stats[i] if i < len(line.stats) else None
        if key in SHOOTING_STATS:
            text = value if isinstance(value, str) else safe_str(value, "0-0")
            parsed = parse_makes_attempts(text)
            label = SHOOTING_STATS[key]
            stats[f"{label}A"] = parsed.attempts
            stats[f"{label}M"] = parsed.makes
            stats[f"{label}%"] = parsed.pct
        elif key == "MIN":
            stats["MIN"] = value if isinstance(value, str) else safe_str(value)
        elif key:
            stats[key] = to_number(value if value is not None else 0)

    minutes = stats.get("MIN")
    dnp = line.did_not_play is True or (isinstance(minutes, str) and minutes.upper() == "DNP")
    athlete_id = safe_str(athlete.id) or None
    position = None
    if athlete.position is not None:
        position = athlete.position.abbreviation or athlete.position.name

    headshot = resolve_headshot(athlete.headshot)
    if headshot is None and athlete_id:
        headshot = HEADSHOT_URL.format(athlete_id=athlete_id)

    return PlayerRow(
        name=athlete.display_name or athlete.short_name or "Unknown",
        stats=stats,
        dnp=dnp,
        id=athlete_id,
        jersey=athlete.jersey or None,
        position=position or None,
        headshot=headshot,
    )


def parse_linescores(summary: RawSummary, event: Optional[Event] = None) -> Dict[str, LineScore]:
    """
    Per-period scores for both sides.

    Uses the summary's team totals first. When either side has no periods,
    both sides are rebuilt from the scoreboard event, or failing that from
    the summary header's competition.
    """
    lines = {"home": LineScore(), "away": LineScore()}
    taken = set()

    for team in summary.boxscore.teams:
        side = _side(team.home_away or team.team.home_away)
        if side in taken:
            side = _other(side)
        periods = _periods(team.linescores)
        score = team.score if team.score is not None else team.points
        lines[side] = LineScore(team=_team_ref(team.team), periods=periods, total=_total(score, periods))
        taken.add(side)

    if lines["home"].periods and lines["away"].periods:
        return lines

    competition = _fallback_competition(summary, event)
    if competition is None:
        return lines
    for side in ("away", "home"):
        competitor = competition.side(side)
        if competitor is not None:
            lines[side] = LineScore(
                team=competitor.team,
                periods=list(competitor.linescores),
                total=_total(competitor.score, competitor.linescores),
            )
    return lines


def _fallback_competition(summary: RawSummary, event: Optional[Event]) -> Optional[Competition]:
    if event is not None:
        return event.competition
    if summary.header.competitions:
        return transform_competition(summary.header.competitions[0])
    return None


def transform_boxscore(payload: Any, event: Optional[Event] = None, event_id: str = "") -> BoxscoreResponse:
    """
    Join a raw summary with its scoreboard event.

    Without an event the result is rebuilt from the summary alone (header
    competition for status and line scores) and flagged ``partial``.
    """
    try:
        summary = RawSummary.model_validate(payload if isinstance(payload, dict) else {})
    except ValidationError as e:
        logger.warning(f"Malformed summary for event {event_id}: {e.error_count()} errors")
        summary = RawSummary()

    players, names = normalize_players(summary, event)
    linescores = parse_linescores(summary, event)

    header_competition = summary.header.competitions[0] if summary.header.competitions else None
    if event is not None:
        status = event.competition.status
    elif header_competition is not None:
        status = transform_status(header_competition.status)
    else:
        status = GameStatus()

    event_date = ""
    if event is not None:
        event_date = event.date
    if not event_date and header_competition is not None:
        event_date = safe_str(header_competition.date)

    return BoxscoreResponse(
        id=summary.id or summary.header.id or (event.id if event else "") or event_id,
        event_date=event_date,
        players=players,
        linescores=linescores,
        names=names,
        status=status,
        partial=event is None,
    )


# ===== STANDINGS =====

def _stat_map(stats) -> Dict[str, Any]:
    result = {}
    for stat in stats:
        if stat.name:
            result[stat.name] = stat
    return result


def transform_standings(payload: Any) -> StandingsResponse:
    """Raw standings -> conferences sorted by seed (then win percentage)."""
    try:
        raw = RawStandings.model_validate(payload if isinstance(payload, dict) else {})
    except ValidationError as e:
        logger.warning(f"Malformed standings payload: {e.error_count()} errors")
        return StandingsResponse()

    conferences = []
    for child in raw.children:
        rows = []
        for entry in child.standings.entries:
            stats = _stat_map(entry.stats)

            def value(name: str, default: Any = 0) -> Any:
                stat = stats.get(name)
                return stat.value if stat is not None and stat.value is not None else default

            def display(name: str, default: str = "") -> str:
                stat = stats.get(name)
                return stat.display_value if stat is not None and stat.display_value else default

            seed = value("playoffSeed", None)
            rows.append(
                StandingRow(
                    team=_team_ref(entry.team),
                    wins=safe_int(value("wins")),
                    losses=safe_int(value("losses")),
                    win_percent=safe_float(value("winPercent")),
                    games_behind=display("gamesBehind", "-"),
                    streak=display("streak"),
                    seed=safe_int(seed) if seed is not None else None,
                )
            )
        rows.sort(key=lambda r: (r.seed if r.seed is not None else 99, -r.win_percent))
        conferences.append(
            ConferenceStandings(
                name=safe_str(child.name),
                abbreviation=safe_str(child.abbreviation),
                rows=rows,
            )
        )
    return StandingsResponse(conferences=conferences)
