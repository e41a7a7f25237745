"""
Pydantic schemas for raw ESPN payloads.

Only the fields the transformers read are declared; everything else is
ignored. ESPN mixes ints and strings for ids and numbers, so ids are
coerced to strings and numeric fields stay loosely typed.
"""
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return None
    return str(value)


LooseStr = Annotated[Optional[str], BeforeValidator(_to_str)]


class RawModel(BaseModel):
    """Base for raw payloads: camelCase aliases, unknown keys ignored."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ===== SCOREBOARD =====

class RawTeam(RawModel):
    id: LooseStr = None
    abbreviation: LooseStr = None
    display_name: LooseStr = None
    short_display_name: LooseStr = None
    name: LooseStr = None
    location: LooseStr = None
    logo: LooseStr = None
    home_away: LooseStr = None


class RawCompetitor(RawModel):
    id: LooseStr = None
    home_away: LooseStr = None
    team: RawTeam = Field(default_factory=RawTeam)
    score: Any = None
    linescores: List[Any] = Field(default_factory=list)
    winner: Optional[bool] = None
    records: List[Any] = Field(default_factory=list)


class RawStatusType(RawModel):
    name: LooseStr = None
    state: LooseStr = None
    description: LooseStr = None
    detail: LooseStr = None
    short_detail: LooseStr = None
    completed: Optional[bool] = None


class RawStatus(RawModel):
    display_clock: LooseStr = None
    clock: Any = None
    period: Any = None
    type: RawStatusType = Field(default_factory=RawStatusType)


class RawCompetition(RawModel):
    id: LooseStr = None
    date: LooseStr = None
    competitors: List[RawCompetitor] = Field(default_factory=list)
    status: RawStatus = Field(default_factory=RawStatus)


class RawEvent(RawModel):
    id: LooseStr = None
    name: LooseStr = None
    short_name: LooseStr = None
    date: LooseStr = None
    competitions: List[RawCompetition] = Field(default_factory=list)
    status: Optional[RawStatus] = None


# ===== SUMMARY (box score) =====

class RawPosition(RawModel):
    abbreviation: LooseStr = None
    name: LooseStr = None


class RawAthlete(RawModel):
    id: LooseStr = None
    display_name: LooseStr = None
    short_name: LooseStr = None
    jersey: LooseStr = None
    position: Optional[RawPosition] = None
    # Either a URL string or {"href": ...}
    headshot: Any = None


class RawAthleteLine(RawModel):
    athlete: RawAthlete = Field(default_factory=RawAthlete)
    stats: List[Any] = Field(default_factory=list)
    did_not_play: Optional[bool] = None


class RawStatBlock(RawModel):
    names: List[Any] = Field(default_factory=list)
    athletes: List[RawAthleteLine] = Field(default_factory=list)


class RawTeamPlayers(RawModel):
    team: RawTeam = Field(default_factory=RawTeam)
    statistics: List[RawStatBlock] = Field(default_factory=list)


class RawTeamTotals(RawModel):
    team: RawTeam = Field(default_factory=RawTeam)
    home_away: LooseStr = None
    linescores: List[Any] = Field(default_factory=list)
    score: Any = None
    points: Any = None


class RawBoxscore(RawModel):
    players: List[RawTeamPlayers] = Field(default_factory=list)
    teams: List[RawTeamTotals] = Field(default_factory=list)


class RawHeader(RawModel):
    id: LooseStr = None
    competitions: List[RawCompetition] = Field(default_factory=list)


class RawSummary(RawModel):
    id: LooseStr = None
    boxscore: RawBoxscore = Field(default_factory=RawBoxscore)
    header: RawHeader = Field(default_factory=RawHeader)


# ===== STANDINGS =====

class RawStat(RawModel):
    name: LooseStr = None
    abbreviation: LooseStr = None
    value: Any = None
    display_value: LooseStr = None


class RawStandingEntry(RawModel):
    team: RawTeam = Field(default_factory=RawTeam)
    stats: List[RawStat] = Field(default_factory=list)


class RawStandingsTable(RawModel):
    entries: List[RawStandingEntry] = Field(default_factory=list)


class RawConference(RawModel):
    name: LooseStr = None
    abbreviation: LooseStr = None
    standings: RawStandingsTable = Field(default_factory=RawStandingsTable)


class RawStandings(RawModel):
    name: LooseStr = None
    children: List[RawConference] = Field(default_factory=list)
