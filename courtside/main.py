"""
Courtside - Main FastAPI Application
NBA scores from ESPN and r/nba game threads, served through a tiered cache
"""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from config.settings import settings
from courtside.dependencies import Services, close_services, get_services
from courtside.reddit_client import is_reddit_url
from courtside.threads import SearchRequest, ThreadType, build_expanded_query

# Version tracking
APP_VERSION = "v0.3.0"
APP_NAME = "Courtside"
APP_STAGE = "Beta"

logger = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(f"{APP_NAME} {APP_VERSION} starting")
    yield
    close_services()
    logger.info(f"{APP_NAME} stopped")


app = FastAPI(
    title=f"{APP_NAME} ({APP_STAGE})",
    description="Live NBA scores and r/nba game threads",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "source": "espn+reddit", "mode": "live"}


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "stage": APP_STAGE,
        "full": f"{APP_NAME} {APP_VERSION} ({APP_STAGE})"
    }


@app.get("/cache/stats")
def cache_stats(services: Services = Depends(get_services)):
    """Get cache statistics for every tier."""
    return services.cache.get_stats()


@app.post("/cache/cleanup")
def cache_cleanup(services: Services = Depends(get_services)):
    """
    Purge expired entries from every tier.

    Meant to be called by an external scheduler.
    """
    try:
        return {"removed": services.cache.cleanup()}
    except Exception as e:
        return {"removed": {}, "error": str(e)}


# =============================================================================
# SCORES API
# =============================================================================

@app.get("/api/scoreboard")
def api_scoreboard(
    date: Optional[str] = Query(None, description="Date in YYYYMMDD format, defaults to today"),
    force_refresh: bool = Query(False, alias="forceRefresh"),
    services: Services = Depends(get_services),
):
    """Scoreboard for a day: every game with teams, scores and status."""
    try:
        return services.scores.get_scoreboard(date, force_refresh=force_refresh)
    except Exception as e:
        return {"events": [], "error": str(e)}


@app.get("/api/boxscore/{event_id}")
def api_boxscore(
    event_id: str,
    force_refresh: bool = Query(False, alias="forceRefresh"),
    services: Services = Depends(get_services),
):
    """Box score for one game, joined with its scoreboard entry when available."""
    try:
        return services.scores.get_boxscore(event_id, force_refresh=force_refresh)
    except Exception as e:
        return {"error": str(e)}


@app.get("/api/standings")
def api_standings(
    force_refresh: bool = Query(False, alias="forceRefresh"),
    services: Services = Depends(get_services),
):
    try:
        return services.scores.get_standings(force_refresh=force_refresh)
    except Exception as e:
        return {"conferences": [], "error": str(e)}


# =============================================================================
# REDDIT API
# =============================================================================

class ThreadSearchBody(BaseModel):
    """
    Request body for thread search.

    When ``query`` is given the raw Reddit search listing is returned instead.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: str = "live"
    away_candidates: List[str] = []
    home_candidates: List[str] = []
    event_date: Optional[str] = None
    event_id: Optional[str] = None
    query: Optional[str] = None


@app.get("/api/reddit/index")
def api_reddit_index(
    force_refresh: bool = Query(False, alias="forceRefresh"),
    services: Services = Depends(get_services),
):
    """Today's daily game thread index as ``pair_key -> {gdt, pgt}``."""
    try:
        return services.threads.get_index(force_refresh=force_refresh)
    except Exception as e:
        return {"error": str(e)}


@app.post("/api/reddit/search")
def api_reddit_search(body: ThreadSearchBody, services: Services = Depends(get_services)):
    try:
        if body.query:
            return services.threads.search_raw(body.query)
        request = SearchRequest.from_dict(body.model_dump())
        return services.threads.search_thread(request)
    except Exception as e:
        return {"post": None, "source": None, "error": str(e)}


@app.get("/api/reddit/threads")
def api_reddit_threads(
    away: str = Query(..., description="Away team name"),
    home: str = Query(..., description="Home team name"),
    event_date: Optional[str] = Query(None, alias="eventDate"),
    services: Services = Depends(get_services),
):
    """Live and post-game threads for a matchup; either may be null."""
    try:
        return services.threads.resolve_threads_for_match(away, home, event_date).to_dict()
    except Exception as e:
        return {"live_thread": None, "post_thread": None, "error": str(e)}


@app.get("/api/reddit/comments/{post_id}")
def api_reddit_comments(
    post_id: str,
    sort: str = Query("new", description="new or top"),
    permalink: Optional[str] = Query(None),
    bypass_cache: bool = Query(False, alias="bypassCache"),
    services: Services = Depends(get_services),
):
    try:
        return services.threads.get_comments(post_id, sort, permalink, bypass_cache=bypass_cache)
    except Exception as e:
        return {"comments": [], "error": str(e)}


@app.get("/api/reddit/subreddit/{subreddit}")
def api_reddit_subreddit(
    subreddit: str,
    sort: str = Query("new", description="new or hot"),
    services: Services = Depends(get_services),
):
    try:
        return services.threads.get_feed(subreddit, sort)
    except Exception as e:
        return {"posts": [], "error": str(e)}


@app.post("/api/reddit/refresh")
def api_reddit_refresh(services: Services = Depends(get_services)):
    """Drop every cached Reddit response."""
    try:
        return {"cleared": services.threads.clear_cache()}
    except Exception as e:
        return {"cleared": 0, "error": str(e)}


@app.get("/api/reddit/debug")
def api_reddit_debug(
    away: str = Query(...),
    home: str = Query(...),
    type: str = Query("live"),
):
    """Show how a matchup's names expand and the query built from them."""
    try:
        return build_expanded_query(ThreadType.parse(type), away, home)
    except Exception as e:
        return {"error": str(e)}


@app.get("/api/reddit/proxy")
def api_reddit_proxy(
    url: Optional[str] = Query(None, description="reddit.com URL to fetch"),
    services: Services = Depends(get_services),
):
    """
    Same-origin bridge for browser callers.

    Upstream status and body are passed through unchanged.
    """
    if not url:
        return JSONResponse(status_code=400, content={"error": "Missing url parameter"})
    if not is_reddit_url(url):
        return JSONResponse(status_code=403, content={"error": "Only reddit.com URLs may be proxied"})

    try:
        upstream = services.reddit.proxy_fetch(url)
    except Exception as e:
        logger.warning(f"Proxy fetch failed for {url}: {e}")
        return JSONResponse(status_code=502, content={"error": str(e)})

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("Content-Type", "application/json"),
    )
