"""
Remote shared cache tier backed by a Supabase table.

Rows look like ``{key, data, expires_at, updated_at}`` and are reached
through the PostgREST interface Supabase exposes at ``/rest/v1/<table>``.
Every instance of the app reads and writes the same rows, so an index
fetched by one instance is reused by the others. Failures are logged and
reported as misses.
"""
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import requests

from .core import Clock, TTLSpec
from .coalescer import RequestCoalescer

logger = logging.getLogger("cache.remote")


def _iso(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()


def _parse_iso(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None


class RemoteSharedCache:
    """
    Shared cache over Supabase's REST API.

    Usage:
        remote = RemoteSharedCache(url, key)
        remote.set("reddit:index", mapping, ttl=600)
        mapping = remote.get("reddit:index")
    """

    def __init__(
        self,
        supabase_url: str,
        api_key: str,
        table: str = "reddit_cache",
        default_ttl: float = 600.0,
        timeout: float = 5.0,
        http: Any = None,
        clock: Optional[Clock] = None,
    ):
        self._endpoint = f"{supabase_url.rstrip('/')}/rest/v1/{table}"
        self._api_key = api_key
        self._default_ttl = default_ttl
        self._timeout = timeout
        self._http = http or requests.Session()
        self._clock = clock or time.time
        self._coalescer = RequestCoalescer()
        self._stats_lock = threading.Lock()
        self._stats = {"reads": 0, "hits": 0, "writes": 0, "errors": 0}

    def _count(self, stat: str) -> None:
        with self._stats_lock:
            self._stats[stat] += 1

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        headers.update(extra)
        return headers

    def _failed(self, operation: str, key: str, error: Exception) -> None:
        self._count("errors")
        logger.warning(f"Remote cache {operation} failed for {key}: {error}")

    def get(self, key: str) -> Optional[Any]:
        """Return the shared value if present and unexpired; expired rows are deleted."""
        self._count("reads")
        try:
            response = self._http.get(
                self._endpoint,
                params={"key": f"eq.{key}", "select": "data,expires_at"},
                headers=self._headers(),
                timeout=self._timeout,
            )
            response.raise_for_status()
            rows = response.json()
            if not isinstance(rows, list):
                raise ValueError(f"expected a row list, got {type(rows).__name__}")
            if not rows:
                return None
            row = rows[0]
            if not isinstance(row, dict):
                raise ValueError(f"expected a row object, got {type(row).__name__}")
            expires_at = _parse_iso(row.get("expires_at"))
        except Exception as e:
            self._failed("read", key, e)
            return None

        if expires_at is not None and expires_at <= self._clock():
            self.delete(key)
            return None
        if row.get("data") is None:
            return None
        self._count("hits")
        return row["data"]

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Upsert on ``key``."""
        ttl = self._default_ttl if ttl is None else ttl
        now = self._clock()
        body = {
            "key": key,
            "data": value,
            "expires_at": _iso(now + ttl),
            "updated_at": _iso(now),
        }
        try:
            response = self._http.post(
                self._endpoint,
                params={"on_conflict": "key"},
                json=body,
                headers=self._headers(Prefer="resolution=merge-duplicates,return=minimal"),
                timeout=self._timeout,
            )
            response.raise_for_status()
        except Exception as e:
            self._failed("write", key, e)
            return
        self._count("writes")

    def _delete_where(self, params: Dict[str, str], label: str) -> bool:
        try:
            response = self._http.delete(
                self._endpoint,
                params=params,
                headers=self._headers(),
                timeout=self._timeout,
            )
            response.raise_for_status()
        except Exception as e:
            self._failed("delete", label, e)
            return False
        return True

    def delete(self, key: str) -> bool:
        return self._delete_where({"key": f"eq.{key}"}, key)

    def delete_prefix(self, prefix: str) -> int:
        # PostgREST "like" uses * as the wildcard
        return int(self._delete_where({"key": f"like.{prefix}*"}, f"{prefix}*"))

    def clear(self) -> int:
        """Delete every row. Returns 1 on success, 0 on failure (row count is not reported)."""
        return int(self._delete_where({"key": "neq."}, "*"))

    def cleanup(self) -> int:
        """Delete rows whose ``expires_at`` has passed."""
        return int(self._delete_where({"expires_at": f"lt.{_iso(self._clock())}"}, "expired"))

    def get_or_fetch(
        self,
        key: str,
        producer: Callable[[], Any],
        ttl: Optional[TTLSpec] = None,
    ) -> Any:
        def store(value: Any) -> None:
            self.set(key, value, ttl(value) if callable(ttl) else ttl)

        return self._coalescer.get_or_fetch(key, producer, lookup=lambda: self.get(key), on_success=store)

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            return dict(self._stats)
