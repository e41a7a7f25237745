"""
Data models for scores, box scores and standings.

These dataclasses are the canonical shapes handed to callers and stored in
the caches (via ``to_dict``). They are replaced wholesale on every fetch,
never patched.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from courtside.utils.helpers import safe_lower

SIDES = ("home", "away")


@dataclass
class TeamRef:
    """Team identity as ESPN reports it."""
    id: str = ""
    abbreviation: str = ""
    display_name: str = ""
    short_display_name: str = ""
    name: str = ""
    logo: str = ""

    @property
    def label(self) -> str:
        """Short name used for thread matching ("Lakers", "Trail Blazers")."""
        return self.short_display_name or self.name or self.display_name or self.abbreviation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "abbreviation": self.abbreviation,
            "display_name": self.display_name,
            "short_display_name": self.short_display_name,
            "name": self.name,
            "logo": self.logo,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TeamRef":
        data = data or {}
        return cls(
            id=data.get("id", ""),
            abbreviation=data.get("abbreviation", ""),
            display_name=data.get("display_name", ""),
            short_display_name=data.get("short_display_name", ""),
            name=data.get("name", ""),
            logo=data.get("logo", ""),
        )


@dataclass
class Competitor:
    """One side of a game."""
    home_away: str
    team: TeamRef
    score: Optional[float] = None
    linescores: List[float] = field(default_factory=list)
    winner: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "home_away": self.home_away,
            "team": self.team.to_dict(),
            "score": self.score,
            "linescores": list(self.linescores),
            "winner": self.winner,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Competitor":
        return cls(
            home_away=data.get("home_away", "away"),
            team=TeamRef.from_dict(data.get("team")),
            score=data.get("score"),
            linescores=list(data.get("linescores") or []),
            winner=data.get("winner"),
        )


@dataclass
class GameStatus:
    """Game clock and state."""
    name: str = ""           # "STATUS_IN_PROGRESS", "STATUS_FINAL", ...
    state: str = ""          # "pre", "in", "post"
    short_detail: str = ""   # "Q3 4:12", "Final/OT"
    description: str = ""
    clock: str = ""
    period: int = 0

    @property
    def is_live(self) -> bool:
        return safe_lower(self.state) == "in"

    @property
    def is_final(self) -> bool:
        return safe_lower(self.state) == "post" or self.name.upper().startswith("STATUS_FINAL")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state,
            "short_detail": self.short_detail,
            "description": self.description,
            "clock": self.clock,
            "period": self.period,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GameStatus":
        data = data or {}
        return cls(
            name=data.get("name", ""),
            state=data.get("state", ""),
            short_detail=data.get("short_detail", ""),
            description=data.get("description", ""),
            clock=data.get("clock", ""),
            period=data.get("period", 0),
        )


@dataclass
class Competition:
    """The single active competition of an event: two competitors plus status."""
    id: str
    date: str
    competitors: List[Competitor]
    status: GameStatus

    def side(self, home_away: str) -> Optional[Competitor]:
        for competitor in self.competitors:
            if competitor.home_away == home_away:
                return competitor
        return None

    @property
    def home(self) -> Optional[Competitor]:
        return self.side("home")

    @property
    def away(self) -> Optional[Competitor]:
        return self.side("away")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "competitors": [c.to_dict() for c in self.competitors],
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Competition":
        return cls(
            id=data.get("id", ""),
            date=data.get("date", ""),
            competitors=[Competitor.from_dict(c) for c in data.get("competitors") or []],
            status=GameStatus.from_dict(data.get("status")),
        )


@dataclass
class Event:
    """A scheduled, live or finished game."""
    id: str
    name: str
    short_name: str
    date: str
    competition: Competition

    def team_names(self) -> Tuple[str, str]:
        """(away, home) short names."""
        away = self.competition.away
        home = self.competition.home
        return (
            away.team.label if away else "",
            home.team.label if home else "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "short_name": self.short_name,
            "date": self.date,
            "competition": self.competition.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            short_name=data.get("short_name", ""),
            date=data.get("date", ""),
            competition=Competition.from_dict(data.get("competition") or {}),
        )


@dataclass
class ScoreboardResponse:
    events: List[Event] = field(default_factory=list)

    def find_event(self, event_id: str) -> Optional[Event]:
        for event in self.events:
            if str(event.id) == str(event_id):
                return event
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"events": [e.to_dict() for e in self.events]}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ScoreboardResponse":
        data = data or {}
        return cls(events=[Event.from_dict(e) for e in data.get("events") or []])


@dataclass
class PlayerRow:
    """One player's line in a box score."""
    name: str
    stats: Dict[str, Any]
    dnp: bool = False
    id: Optional[str] = None
    jersey: Optional[str] = None
    position: Optional[str] = None
    headshot: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "dnp": self.dnp,
            "stats": dict(self.stats),
            "id": self.id,
            "jersey": self.jersey,
            "position": self.position,
            "headshot": self.headshot,
        }


@dataclass
class LineScore:
    """Per-period points and the total for one side."""
    team: TeamRef = field(default_factory=TeamRef)
    periods: List[float] = field(default_factory=list)
    total: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team": self.team.to_dict(),
            "periods": list(self.periods),
            "total": self.total,
        }


@dataclass
class BoxscoreResponse:
    """
    Player lines and line scores for one game.

    ``partial`` is set when the game could not be found on the scoreboard
    and everything was rebuilt from the summary alone.
    """
    id: str
    event_date: str
    players: Dict[str, List[PlayerRow]]
    linescores: Dict[str, LineScore]
    names: List[str]
    status: GameStatus
    partial: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "event_date": self.event_date,
            "players": {side: [p.to_dict() for p in self.players.get(side, [])] for side in SIDES},
            "linescores": {side: self.linescores[side].to_dict() for side in SIDES},
            "names": list(self.names),
            "status": self.status.to_dict(),
            "partial": self.partial,
        }


@dataclass
class StandingRow:
    team: TeamRef
    wins: int = 0
    losses: int = 0
    win_percent: float = 0.0
    games_behind: str = "-"
    streak: str = ""
    seed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team": self.team.to_dict(),
            "wins": self.wins,
            "losses": self.losses,
            "win_percent": self.win_percent,
            "games_behind": self.games_behind,
            "streak": self.streak,
            "seed": self.seed,
        }


@dataclass
class ConferenceStandings:
    name: str
    abbreviation: str
    rows: List[StandingRow] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "abbreviation": self.abbreviation,
            "rows": [r.to_dict() for r in self.rows],
        }


@dataclass
class StandingsResponse:
    conferences: List[ConferenceStandings] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"conferences": [c.to_dict() for c in self.conferences]}
