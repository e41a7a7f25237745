"""
Reddit JSON API adapter.

Direct calls impersonate a browser (user-agent + accept headers) because
Reddit blocks obvious bots. When a proxy is configured the request goes to
``<proxy>?url=<target>`` with no such headers; the proxy attaches them.
"""
import logging
from typing import Any, Dict, Optional, Protocol
from urllib.parse import urlencode, urlparse

import requests

from courtside.errors import UpstreamUnavailableError
from courtside.utils.http import get_json
from config.settings import Settings

logger = logging.getLogger("reddit_client")

PROVIDER = "reddit"

# Headers the proxy bridge sends upstream on behalf of browser callers
BROWSER_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
    "Referer": "https://www.reddit.com/r/nba/",
}


class ThreadProvider(Protocol):
    """
    Interface for discussion thread sources.

    Implementations:
    - RedditClient: reddit.com JSON endpoints, direct or via proxy
    """

    def search_raw(self, query: str, time_range: str = "week", sort: str = "new") -> Dict[str, Any]:
        ...

    def get_thread_content(self, permalink: str) -> Any:
        ...

    def get_comments_raw(self, post_id: str, sort: str = "new", permalink: Optional[str] = None) -> Any:
        ...

    def get_subreddit_feed(self, subreddit: str, sort: str = "new") -> Dict[str, Any]:
        ...


def normalize_permalink(permalink: str) -> str:
    """Accept "/r/nba/comments/x/y/" or a full reddit URL; return the path."""
    permalink = (permalink or "").strip()
    if permalink.startswith("http://") or permalink.startswith("https://"):
        permalink = urlparse(permalink).path
    if permalink and not permalink.startswith("/"):
        permalink = "/" + permalink
    return permalink


class RedditClient:
    """Reddit implementation of ThreadProvider over ``requests``."""

    def __init__(self, settings: Settings, http: Any = None):
        self._base_url = settings.reddit_base_url.rstrip("/")
        self._subreddit = settings.subreddit
        self._proxy_url = settings.reddit_proxy_url
        self._timeout = settings.http_timeout_seconds
        self._http = http or requests.Session()
        self._headers = {
            "User-Agent": settings.reddit_user_agent,
            "Accept": "application/json",
        }

    @property
    def uses_proxy(self) -> bool:
        return bool(self._proxy_url)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        target = f"{self._base_url}{path}"
        if params:
            target = f"{target}?{urlencode(params)}"

        if self._proxy_url:
            logger.debug(f"GET (proxied) {target}")
            return get_json(
                self._http,
                self._proxy_url,
                PROVIDER,
                params={"url": target},
                timeout=self._timeout,
            )

        logger.debug(f"GET {target}")
        return get_json(self._http, target, PROVIDER, headers=self._headers, timeout=self._timeout)

    def search_raw(self, query: str, time_range: str = "week", sort: str = "new") -> Dict[str, Any]:
        return self._get(
            f"/r/{self._subreddit}/search.json",
            {"q": query, "restrict_sr": 1, "sort": sort, "t": time_range},
        )

    def get_thread_content(self, permalink: str) -> Any:
        return self._get(f"{normalize_permalink(permalink).rstrip('/')}.json")

    def get_comments_raw(self, post_id: str, sort: str = "new", permalink: Optional[str] = None) -> Any:
        if permalink:
            path = f"{normalize_permalink(permalink).rstrip('/')}.json"
        else:
            path = f"/comments/{post_id}.json"
        return self._get(path, {"sort": sort})

    def get_subreddit_feed(self, subreddit: str, sort: str = "new") -> Dict[str, Any]:
        return self._get(f"/r/{subreddit}/{sort}.json", {"limit": 100})

    def proxy_fetch(self, url: str) -> requests.Response:
        """
        Fetch a reddit.com URL for a browser caller and return the raw response.

        Status and body are passed through untouched; network failures raise
        ``UpstreamUnavailableError``.
        """
        headers = {"User-Agent": self._headers["User-Agent"], **BROWSER_HEADERS}
        logger.debug(f"Proxy GET {url}")
        try:
            return self._http.get(url, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailableError(str(e), PROVIDER, url) from e


def is_reddit_url(url: str) -> bool:
    """Only reddit.com (and subdomains) over http(s) may be proxied."""
    parsed = urlparse(url or "")
    host = (parsed.hostname or "").lower()
    return parsed.scheme in ("http", "https") and (host == "reddit.com" or host.endswith(".reddit.com"))
