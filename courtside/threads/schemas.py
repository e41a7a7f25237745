"""
Pydantic schemas for raw Reddit listings.

Reddit wraps everything in ``{"kind": ..., "data": ...}`` things. Listings
hold children; comment ``replies`` are either another listing or "".
"""
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _to_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


LooseStr = Annotated[Optional[str], BeforeValidator(_to_str)]
LooseFloat = Annotated[Optional[float], BeforeValidator(_to_float)]


class RedditModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RawThing(RedditModel):
    kind: LooseStr = None
    data: Dict[str, Any] = Field(default_factory=dict)


class RawListingData(RedditModel):
    children: List[RawThing] = Field(default_factory=list)


class RawListing(RedditModel):
    kind: LooseStr = None
    data: RawListingData = Field(default_factory=RawListingData)


class RawPost(RedditModel):
    """``data`` of a t3 (link/self post) thing."""
    id: LooseStr = None
    title: LooseStr = None
    permalink: LooseStr = None
    url: LooseStr = None
    selftext: LooseStr = None
    created_utc: LooseFloat = None
    score: LooseFloat = None
    num_comments: LooseFloat = None


class RawComment(RedditModel):
    """``data`` of a t1 (comment) thing."""
    id: LooseStr = None
    author: LooseStr = None
    body: LooseStr = None
    score: LooseFloat = None
    created_utc: LooseFloat = None
    # Listing dict, or "" when there are no replies
    replies: Any = None
