"""
ESPN public site API adapter.

Each method issues exactly one GET and returns the decoded JSON unchanged;
shaping happens in ``courtside.scores.transformer``.
"""
import logging
from typing import Any, Dict, Optional, Protocol

import requests

from courtside.utils.http import get_json
from config.settings import Settings

logger = logging.getLogger("espn_client")

PROVIDER = "espn"


class ScoresProvider(Protocol):
    """
    Interface for scores data sources.

    Implementations:
    - ESPNClient: ESPN's public JSON endpoints
    """

    def get_scoreboard(self, date: Optional[str] = None) -> Dict[str, Any]:
        """Raw scoreboard for ``date`` (YYYYMMDD) or today."""
        ...

    def get_summary(self, event_id: str) -> Dict[str, Any]:
        """Raw game summary (box score, header, plays)."""
        ...

    def get_standings(self) -> Dict[str, Any]:
        """Raw league standings."""
        ...


class ESPNClient:
    """ESPN implementation of ScoresProvider over ``requests``."""

    def __init__(self, settings: Settings, http: Any = None):
        self._site_url = settings.espn_site_url.rstrip("/")
        self._web_url = settings.espn_web_url.rstrip("/")
        self._standings_url = settings.espn_standings_url
        self._timeout = settings.http_timeout_seconds
        self._http = http or requests.Session()
        self._headers = {"Accept": "application/json"}

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.debug(f"GET {url} {params or ''}")
        return get_json(
            self._http,
            url,
            PROVIDER,
            params=params,
            headers=self._headers,
            timeout=self._timeout,
        )

    def get_scoreboard(self, date: Optional[str] = None) -> Dict[str, Any]:
        params = {"dates": date} if date else None
        return self._get(f"{self._site_url}/scoreboard", params)

    def get_summary(self, event_id: str) -> Dict[str, Any]:
        return self._get(f"{self._web_url}/summary", {"event": event_id})

    def get_standings(self) -> Dict[str, Any]:
        return self._get(self._standings_url)
