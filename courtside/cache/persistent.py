"""
Persistent local cache tier.

Serialized payloads in a SQLite table (via SQLAlchemy) that survive process
restarts. The store is an optimization, never a source of truth: every
failure is logged and reported to the caller as a miss.
"""
import json
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from courtside.db import create_db_engine, init_db, make_session_factory
from courtside.models import CacheRecord
from courtside.utils.helpers import content_hash
from .core import Clock, TTLSpec
from .coalescer import RequestCoalescer

logger = logging.getLogger("cache.persistent")


@dataclass
class StoredRecord:
    """A decoded row from the persistent store."""
    key: str
    value: Any
    written_at: float
    ttl: float
    content_hash: str

    def age(self, now: float) -> float:
        return now - self.written_at

    def is_expired(self, now: float) -> bool:
        return self.age(now) > self.ttl


class PersistentStore:
    """
    SQLite-backed cache tier.

    Usage:
        store = PersistentStore.from_url("sqlite:///./data/cache.db")
        store.set("espn:scoreboard:today", payload, ttl=21600)
        record = store.get_record("espn:scoreboard:today")
    """

    def __init__(
        self,
        engine: Engine,
        default_ttl: float = 3600.0,
        clock: Optional[Clock] = None,
    ):
        self._engine = engine
        self._session_factory = make_session_factory(engine)
        self._default_ttl = default_ttl
        self._clock = clock or time.time
        self._coalescer = RequestCoalescer()
        self._stats_lock = threading.Lock()
        self._stats = {"reads": 0, "hits": 0, "writes": 0, "errors": 0}
        try:
            init_db(engine)
        except Exception as e:
            self._count("errors")
            logger.warning(f"Persistent cache unavailable, continuing without it: {e}")

    def _count(self, stat: str) -> None:
        with self._stats_lock:
            self._stats[stat] += 1

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> "PersistentStore":
        return cls(create_db_engine(database_url), **kwargs)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Get a session that commits on success and rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _failed(self, operation: str, key: str, error: Exception) -> None:
        self._count("errors")
        logger.warning(f"Persistent cache {operation} failed for {key}: {error}")

    def get_record(self, key: str) -> Optional[StoredRecord]:
        """Return the stored record regardless of age, or None."""
        self._count("reads")
        try:
            with self._session() as session:
                row = session.get(CacheRecord, key)
                if row is None:
                    return None
                record = StoredRecord(
                    key=row.key,
                    value=json.loads(row.value),
                    written_at=row.written_at,
                    ttl=row.ttl_seconds,
                    content_hash=row.content_hash,
                )
        except Exception as e:
            self._failed("read", key, e)
            return None
        self._count("hits")
        return record

    def get(self, key: str) -> Optional[Any]:
        """Return the value if present and within its TTL."""
        record = self.get_record(key)
        if record is None or record.is_expired(self._clock()):
            return None
        return record.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None, digest: Optional[str] = None) -> None:
        """Upsert ``value`` under ``key``; last writer wins."""
        ttl = self._default_ttl if ttl is None else ttl
        try:
            payload = json.dumps(value)
            with self._session() as session:
                session.merge(
                    CacheRecord(
                        key=key,
                        value=payload,
                        content_hash=digest or content_hash(value),
                        written_at=self._clock(),
                        ttl_seconds=ttl,
                    )
                )
        except Exception as e:
            self._failed("write", key, e)
            return
        self._count("writes")

    def touch(self, key: str) -> bool:
        """Reset the freshness timestamp of an existing record."""
        try:
            with self._session() as session:
                row = session.get(CacheRecord, key)
                if row is None:
                    return False
                row.written_at = self._clock()
        except Exception as e:
            self._failed("touch", key, e)
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            with self._session() as session:
                deleted = session.query(CacheRecord).filter(CacheRecord.key == key).delete()
        except Exception as e:
            self._failed("delete", key, e)
            return False
        return deleted > 0

    def delete_prefix(self, prefix: str) -> int:
        try:
            with self._session() as session:
                deleted = (
                    session.query(CacheRecord)
                    .filter(CacheRecord.key.startswith(prefix, autoescape=True))
                    .delete(synchronize_session=False)
                )
        except Exception as e:
            self._failed("delete", f"{prefix}*", e)
            return 0
        return deleted

    def clear(self) -> int:
        try:
            with self._session() as session:
                deleted = session.query(CacheRecord).delete()
        except Exception as e:
            self._failed("clear", "*", e)
            return 0
        logger.info(f"Cleared {deleted} persistent cache records")
        return deleted

    def cleanup(self) -> int:
        """Delete records past their TTL."""
        now = self._clock()
        try:
            with self._session() as session:
                deleted = (
                    session.query(CacheRecord)
                    .filter(CacheRecord.written_at + CacheRecord.ttl_seconds < now)
                    .delete(synchronize_session=False)
                )
        except Exception as e:
            self._failed("cleanup", "*", e)
            return 0
        if deleted:
            logger.info(f"Removed {deleted} expired persistent cache records")
        return deleted

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
