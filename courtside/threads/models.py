"""
Data models for discussion threads.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from courtside.utils.helpers import safe_lower


class ThreadType(Enum):
    """Kinds of game discussion thread; a title is never both."""
    LIVE = "live"   # "GAME THREAD: ..."
    POST = "post"   # "POST GAME THREAD: ..."

    @classmethod
    def parse(cls, value: Any) -> "ThreadType":
        if isinstance(value, ThreadType):
            return value
        if safe_lower(value) == "post":
            return cls.POST
        if safe_lower(value) == "live":
            return cls.LIVE
        raise ValueError(f"Unknown thread type: {value!r}")


@dataclass(frozen=True)
class RedditPost:
    id: str
    title: str
    permalink: Optional[str] = None
    url: Optional[str] = None
    created_utc: Optional[float] = None
    score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"id": self.id, "title": self.title}
        for key in ("permalink", "url", "created_utc", "score"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["RedditPost"]:
        if not data:
            return None
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            permalink=data.get("permalink"),
            url=data.get("url"),
            created_utc=data.get("created_utc"),
            score=data.get("score"),
        )


@dataclass(frozen=True)
class ThreadPair:
    """Game thread (gdt) and post-game thread (pgt) for one matchup."""
    gdt: Optional[RedditPost] = None
    pgt: Optional[RedditPost] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        if self.gdt is not None:
            result["gdt"] = self.gdt.to_dict()
        if self.pgt is not None:
            result["pgt"] = self.pgt.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ThreadPair":
        data = data or {}
        return cls(gdt=RedditPost.from_dict(data.get("gdt")), pgt=RedditPost.from_dict(data.get("pgt")))


@dataclass(frozen=True)
class CommentNode:
    id: str
    author: str
    score: float = 0
    body: str = ""
    created_utc: float = 0
    replies: Optional[List["CommentNode"]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "author": self.author,
            "score": self.score,
            "body": self.body,
            "created_utc": self.created_utc,
        }
        if self.replies is not None:
            result["replies"] = [r.to_dict() for r in self.replies]
        return result

    def depth(self) -> int:
        """Levels below this node (0 for a leaf)."""
        if not self.replies:
            return 0
        return 1 + max(r.depth() for r in self.replies)


@dataclass
class SearchRequest:
    """
    What thread to look for.

    Candidates are team names as the caller knows them ("Lakers",
    "Los Angeles Lakers"); aliases are expanded during matching.
    """
    type: ThreadType
    away_candidates: List[str] = field(default_factory=list)
    home_candidates: List[str] = field(default_factory=list)
    event_date: Optional[str] = None
    event_id: Optional[str] = None

    def cache_key(self) -> str:
        away = ",".join(self.away_candidates)
        home = ",".join(self.home_candidates)
        return f"reddit:search:{self.type.value}:{away}:{home}:{self.event_date or ''}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "away_candidates": list(self.away_candidates),
            "home_candidates": list(self.home_candidates),
            "event_date": self.event_date,
            "event_id": self.event_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchRequest":
        """Create from dictionary; camelCase keys from browser callers are accepted."""
        return cls(
            type=ThreadType.parse(data.get("type", "live")),
            away_candidates=list(data.get("away_candidates", data.get("awayCandidates")) or []),
            home_candidates=list(data.get("home_candidates", data.get("homeCandidates")) or []),
            event_date=data.get("event_date", data.get("eventDate")),
            event_id=data.get("event_id", data.get("eventId")),
        )


@dataclass
class MatchThreads:
    """Both threads for one game, either possibly absent."""
    live_thread: Optional[RedditPost] = None
    post_thread: Optional[RedditPost] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "live_thread": self.live_thread.to_dict() if self.live_thread else None,
            "post_thread": self.post_thread.to_dict() if self.post_thread else None,
        }
