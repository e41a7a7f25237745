"""
Team-name aliasing and thread title rules.

Reddit titles are free text ("GAME THREAD: Golden State Warriors (20-18) @
Los Angeles Lakers"), so every comparison goes through the alias table
below, matched on word boundaries, longest alias first.
"""
import re
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from courtside.utils.helpers import safe_lower
from .models import SearchRequest, ThreadType

# Canonical mascot name -> every spelling seen in titles
TEAM_NAME_VARIATIONS: Dict[str, List[str]] = {
    "Lakers": ["Lakers", "Los Angeles Lakers", "LA Lakers", "LAL"],
    "Celtics": ["Celtics", "Boston Celtics", "BOS"],
    "Warriors": ["Warriors", "Golden State Warriors", "GSW", "Dubs"],
    "Nets": ["Nets", "Brooklyn Nets", "BKN"],
    "Knicks": ["Knicks", "New York Knicks", "NYK", "NY Knicks"],
    "76ers": ["76ers", "Sixers", "Philadelphia 76ers", "PHI", "PHL 76ers"],
    "Raptors": ["Raptors", "Toronto Raptors", "TOR"],
    "Bulls": ["Bulls", "Chicago Bulls", "CHI"],
    "Cavaliers": ["Cavaliers", "Cavs", "Cleveland Cavaliers", "CLE"],
    "Pistons": ["Pistons", "Detroit Pistons", "DET"],
    "Pacers": ["Pacers", "Indiana Pacers", "IND"],
    "Bucks": ["Bucks", "Milwaukee Bucks", "MIL"],
    "Heat": ["Heat", "Miami Heat", "MIA"],
    "Magic": ["Magic", "Orlando Magic", "ORL"],
    "Hawks": ["Hawks", "Atlanta Hawks", "ATL"],
    "Hornets": ["Hornets", "Charlotte Hornets", "CHA"],
    "Wizards": ["Wizards", "Washington Wizards", "WAS"],
    "Mavericks": ["Mavericks", "Mavs", "Dallas Mavericks", "DAL"],
    "Rockets": ["Rockets", "Houston Rockets", "HOU"],
    "Grizzlies": ["Grizzlies", "Memphis Grizzlies", "MEM"],
    "Pelicans": ["Pelicans", "New Orleans Pelicans", "NOP"],
    "Spurs": ["Spurs", "San Antonio Spurs", "SAS"],
    "Nuggets": ["Nuggets", "Denver Nuggets", "DEN"],
    "Timberwolves": ["Timberwolves", "Wolves", "Minnesota Timberwolves", "MIN"],
    "Trail Blazers": ["Trail Blazers", "Blazers", "Portland Trail Blazers", "POR"],
    "Thunder": ["Thunder", "Oklahoma City Thunder", "OKC"],
    "Jazz": ["Jazz", "Utah Jazz", "UTA"],
    "Clippers": ["Clippers", "Los Angeles Clippers", "LA Clippers", "LAC"],
    "Suns": ["Suns", "Phoenix Suns", "PHX"],
    "Kings": ["Kings", "Sacramento Kings", "SAC"],
}

POST_GAME_MARKERS = ("post game thread", "post-game thread", "postgame thread")
GAME_THREAD_MARKER = "game thread"
INDEX_TITLE_MARKER = "daily game thread index"

# Shortest name the reverse (name inside alias) lookup will accept
_MIN_PARTIAL_LENGTH = 4


def _is_abbreviation(alias: str) -> bool:
    return len(alias) <= 3 and alias.isupper()


def _alias_pattern(alias: str) -> Pattern:
    # Abbreviations are matched case-sensitively so "min" in "10 min left" is not Minnesota
    flags = 0 if _is_abbreviation(alias) else re.IGNORECASE
    return re.compile(r"(?<![A-Za-z0-9])" + re.escape(alias) + r"(?![A-Za-z0-9])", flags)


def _build_alias_index() -> List[Tuple[str, str, Pattern]]:
    entries = [
        (canonical, alias, _alias_pattern(alias))
        for canonical, aliases in TEAM_NAME_VARIATIONS.items()
        for alias in aliases
    ]
    # Longest first so "LA Clippers" wins over anything shorter
    entries.sort(key=lambda e: len(e[1]), reverse=True)
    return entries


_ALIAS_INDEX = _build_alias_index()


def find_team(text: str) -> Optional[str]:
    """Canonical name of the first (longest) team alias appearing in ``text``."""
    if not text:
        return None
    for canonical, _alias, pattern in _ALIAS_INDEX:
        if pattern.search(text):
            return canonical
    return None


def normalize_team_name(team_name: str) -> str:
    """
    Map any known spelling to its canonical mascot name.

    "Golden State Warriors" -> "Warriors", "Blazers" -> "Trail Blazers".
    Unknown names come back trimmed but otherwise unchanged.
    """
    name = (team_name or "").strip()
    if not name:
        return name

    lowered = name.lower()
    for canonical, aliases in TEAM_NAME_VARIATIONS.items():
        if any(lowered == alias.lower() for alias in aliases):
            return canonical

    found = find_team(name)
    if found:
        return found

    if len(name) >= _MIN_PARTIAL_LENGTH:
        for canonical, aliases in TEAM_NAME_VARIATIONS.items():
            if any(lowered in alias.lower() for alias in aliases):
                return canonical

    return name


def expand_team_names(team_names: Iterable[str]) -> List[str]:
    """Each name plus every alias of the team it refers to, deduplicated in order."""
    expanded: List[str] = []
    for name in team_names:
        if not name:
            continue
        expanded.append(name)
        canonical = normalize_team_name(name)
        expanded.extend(TEAM_NAME_VARIATIONS.get(canonical, []))

    seen = set()
    result = []
    for name in expanded:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


def create_pair_key(away_name: str, home_name: str) -> str:
    """
    Order-independent key for a matchup.

    create_pair_key("LA Lakers", "Boston Celtics") == "Celtics|Lakers"
    """
    return "|".join(sorted([normalize_team_name(away_name), normalize_team_name(home_name)]))


def is_post_game_title(title: str) -> bool:
    lowered = safe_lower(title)
    return any(marker in lowered for marker in POST_GAME_MARKERS)


def is_game_thread_title(title: str) -> bool:
    """Live game thread: mentions "game thread" and is not a post-game thread."""
    return GAME_THREAD_MARKER in safe_lower(title) and not is_post_game_title(title)


def classify_title(title: str) -> Optional[ThreadType]:
    if is_post_game_title(title):
        return ThreadType.POST
    if is_game_thread_title(title):
        return ThreadType.LIVE
    return None


def matches_type(title: str, thread_type: ThreadType) -> bool:
    return classify_title(title) == thread_type


def is_index_title(title: str) -> bool:
    return INDEX_TITLE_MARKER in safe_lower(title)


def title_mentions_team(title: str, candidates: Iterable[str]) -> bool:
    """True if any alias of any candidate appears in ``title`` as a whole word."""
    if not title:
        return False
    for alias in expand_team_names(candidates):
        if _alias_pattern(alias).search(title):
            return True
    return False


def title_matches_teams(title: str, away_candidates: Iterable[str], home_candidates: Iterable[str]) -> bool:
    """Both sides must be mentioned; a side with no candidates is not checked."""
    away_candidates = [c for c in away_candidates if c]
    home_candidates = [c for c in home_candidates if c]
    if away_candidates and not title_mentions_team(title, away_candidates):
        return False
    if home_candidates and not title_mentions_team(title, home_candidates):
        return False
    return True


def build_search_query(request: SearchRequest) -> str:
    """
    '"GAME THREAD" "Lakers" "Celtics" -"POST GAME THREAD"' for live threads,
    '"POST GAME THREAD" "Lakers" "Celtics"' for post-game threads.
    """
    base = '"POST GAME THREAD"' if request.type == ThreadType.POST else '"GAME THREAD"'
    terms = " ".join(f'"{t}"' for t in [*request.away_candidates, *request.home_candidates])
    extra = ' -"POST GAME THREAD"' if request.type == ThreadType.LIVE else ""
    return f"{base} {terms}{extra}"


def build_expanded_query(thread_type: ThreadType, away: str, home: str) -> Dict[str, object]:
    """
    Broad OR-query over every alias of both teams, with its inputs.

    Used to debug why a matchup does not resolve.
    """
    expanded_away = expand_team_names([away])
    expanded_home = expand_team_names([home])
    base = '"POST GAME THREAD"' if thread_type == ThreadType.POST else '"GAME THREAD"'
    extra = ' -"POST GAME THREAD"' if thread_type == ThreadType.LIVE else ' -"GAME THREAD"'
    terms = " OR ".join(f'"{t}"' for t in [*expanded_away, *expanded_home])
    return {
        "away_team": away,
        "home_team": home,
        "type": thread_type.value,
        "expanded_away": expanded_away,
        "expanded_home": expanded_home,
        "pair_key": create_pair_key(away, home),
        "query": f"{base} ({terms}){extra}",
    }
