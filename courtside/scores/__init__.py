"""
Scores module: ESPN scoreboard, box scores and standings.
"""
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
from .service import ScoresService
from .transformer import (
    MakesAttempts,
    minutes_to_seconds,
    normalize_players,
    parse_linescores,
    parse_makes_attempts,
    transform_boxscore,
    transform_scoreboard,
    transform_standings,
)

__all__ = [
    # Models
    "BoxscoreResponse",
    "Competition",
    "Competitor",
    "ConferenceStandings",
    "Event",
    "GameStatus",
    "LineScore",
    "PlayerRow",
    "ScoreboardResponse",
    "StandingRow",
    "StandingsResponse",
    "TeamRef",
    # Transformers
    "MakesAttempts",
    "minutes_to_seconds",
    "normalize_players",
    "parse_linescores",
    "parse_makes_attempts",
    "transform_boxscore",
    "transform_scoreboard",
    "transform_standings",
    # Service
    "ScoresService",
]
