"""
Tests for the persistent (SQLite) and remote (Supabase) cache tiers.
"""
import threading
from datetime import datetime, timezone

import pytest
import requests
from sqlalchemy.exc import OperationalError

from courtside.cache import (
    CacheBackend,
    DataCategory,
    PersistentStore,
    RemoteSharedCache,
    TieredCache,
    get_policy,
)

from conftest import FakeResponse, FakeSession


def iso(epoch):
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()


# =============================================================================
# PersistentStore
# =============================================================================

def test_persistent_round_trip_keeps_hash_and_timestamp(persistent, clock):
    persistent.set("espn:standings", {"conferences": []}, ttl=600)

    record = persistent.get_record("espn:standings")
    assert record.value == {"conferences": []}
    assert record.written_at == clock.now
    assert record.ttl == 600
    assert record.content_hash


def test_persistent_get_respects_ttl(persistent, clock):
    persistent.set("k", [1, 2], ttl=60)
    clock.advance(61)

    assert persistent.get("k") is None
    assert persistent.get_record("k") is not None  # stale copy still readable


def test_persistent_set_overwrites(persistent):
    persistent.set("k", {"v": 1}, ttl=60)
    persistent.set("k", {"v": 2}, ttl=60)
    assert persistent.get("k") == {"v": 2}


def test_persistent_touch_refreshes_timestamp(persistent, clock):
    persistent.set("k", "v", ttl=60)
    clock.advance(50)

    assert persistent.touch("k") is True
    assert persistent.touch("missing") is False
    clock.advance(50)
    assert persistent.get("k") == "v"


def test_persistent_cleanup_and_prefix_delete(persistent, clock):
    persistent.set("reddit:index", {}, ttl=10)
    persistent.set("reddit:comments:x:new", [], ttl=1000)
    persistent.set("espn:standings", {}, ttl=1000)
    clock.advance(20)

    assert persistent.cleanup() == 1
    assert persistent.delete_prefix("reddit:") == 1
    assert persistent.get("espn:standings") == {}


def test_persistent_prefix_delete_treats_underscore_literally(persistent):
    persistent.set("a_b", 1, ttl=60)
    persistent.set("axb", 2, ttl=60)

    assert persistent.delete_prefix("a_") == 1
    assert persistent.get("axb") == 2


def test_persistent_failures_are_misses(tmp_path, clock):
    store = PersistentStore.from_url(f"sqlite:///{tmp_path / 'cache.db'}", clock=clock)

    def broken_session():
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    store._session_factory = broken_session

    assert store.get("k") is None
    store.set("k", {"v": 1}, ttl=60)  # does not raise
    assert store.cleanup() == 0
    assert store.get_stats()["errors"] >= 3


# =============================================================================
# RemoteSharedCache
# =============================================================================

def make_remote(session, clock):
    return RemoteSharedCache(
        "https://project.supabase.co/",
        "service-key",
        table="reddit_cache",
        http=session,
        clock=clock,
    )


def test_remote_get_returns_unexpired_row(clock):
    session = FakeSession()
    session.responses.append(FakeResponse(200, [{"data": {"a": 1}, "expires_at": iso(clock.now + 60)}]))
    remote = make_remote(session, clock)

    assert remote.get("reddit:index") == {"a": 1}

    call = session.calls[0]
    assert call["url"] == "https://project.supabase.co/rest/v1/reddit_cache"
    assert call["params"] == {"key": "eq.reddit:index", "select": "data,expires_at"}
    assert call["headers"]["apikey"] == "service-key"
    assert call["headers"]["Authorization"] == "Bearer service-key"


def test_remote_expired_row_is_deleted_and_missed(clock):
    session = FakeSession()
    session.responses.append(FakeResponse(200, [{"data": {"a": 1}, "expires_at": iso(clock.now - 1)}]))
    session.responses.append(FakeResponse(204, None, text=""))
    remote = make_remote(session, clock)

    assert remote.get("reddit:index") is None
    assert session.calls[1]["method"] == "DELETE"
    assert session.calls[1]["params"] == {"key": "eq.reddit:index"}


def test_remote_set_upserts_on_key(clock):
    session = FakeSession()
    session.responses.append(FakeResponse(201, None, text=""))
    remote = make_remote(session, clock)

    remote.set("reddit:index", {"a": 1}, ttl=600)

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["params"] == {"on_conflict": "key"}
    assert call["json"]["key"] == "reddit:index"
    assert call["json"]["data"] == {"a": 1}
    assert call["json"]["expires_at"] == iso(clock.now + 600)
    assert "merge-duplicates" in call["headers"]["Prefer"]


def test_remote_errors_are_misses(clock):
    def responder(method, url, kwargs):
        raise requests.ConnectionError("unreachable")

    remote = make_remote(FakeSession(responder), clock)

    assert remote.get("k") is None
    remote.set("k", 1)
    assert remote.delete("k") is False
    assert remote.get_stats()["errors"] == 3


def test_remote_http_error_is_a_miss(clock):
    session = FakeSession()
    session.responses.append(FakeResponse(500, {"message": "boom"}))
    remote = make_remote(session, clock)

    assert remote.get("k") is None


@pytest.mark.parametrize("body", [
    {"message": "relation does not exist"},
    ["not a row"],
    [{"data": {"v": 1}, "expires_at": 12345}],
])
def test_remote_malformed_reply_is_a_miss(clock, body):
    session = FakeSession()
    session.responses.append(FakeResponse(200, body))
    remote = make_remote(session, clock)

    assert remote.get("k") is None
    assert remote.get_stats()["errors"] == 1


def test_malformed_remote_reply_falls_through_to_upstream(memory, clock):
    session = FakeSession(lambda method, url, kwargs: FakeResponse(200, {"message": "bad gateway html"}))
    cache = TieredCache(memory, remote=make_remote(session, clock), clock=clock)
    try:
        value = cache.get("reddit:index", lambda: {"fresh": True}, get_policy(DataCategory.THREAD_INDEX))
    finally:
        cache.close()

    assert value == {"fresh": True}


def test_remote_prefix_delete_uses_like(clock):
    session = FakeSession()
    session.responses.append(FakeResponse(204, None, text=""))
    remote = make_remote(session, clock)

    assert remote.delete_prefix("reddit:") == 1
    assert session.calls[0]["params"] == {"key": "like.reddit:*"}


# =============================================================================
# Shared interface
# =============================================================================

def test_every_tier_is_a_cache_backend(memory, persistent, clock):
    remote = make_remote(FakeSession(), clock)
    for tier in (memory, persistent, remote):
        assert isinstance(tier, CacheBackend)


def test_backends_share_get_or_fetch_semantics(memory, persistent, clock):
    calls = []

    def produce():
        calls.append(1)
        return {"value": len(calls)}

    tiers = [memory, persistent]
    for tier in tiers:
        assert tier.get_or_fetch("shared", produce, ttl=60) == {"value": len(calls)}
        assert tier.get_or_fetch("shared", produce, ttl=60) == {"value": len(calls)}
    assert len(calls) == len(tiers)


# =============================================================================
# Statistics
# =============================================================================

def hammer(read, threads=8, reads_each=250):
    start = threading.Barrier(threads)

    def worker():
        start.wait()
        for i in range(reads_each):
            read(f"k{i}")

    workers = [threading.Thread(target=worker) for _ in range(threads)]
    for w in workers:
        w.start()
    for w in workers:
        w.join(timeout=30)
    return threads * reads_each


def test_remote_counters_survive_concurrent_reads(clock):
    remote = make_remote(FakeSession(lambda method, url, kwargs: FakeResponse(200, [])), clock)

    total = hammer(remote.get)

    assert remote.get_stats()["reads"] == total


def test_persistent_counters_survive_concurrent_reads(tmp_path, clock):
    store = PersistentStore.from_url(f"sqlite:///{tmp_path / 'cache.db'}", clock=clock)

    def broken_session():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    store._session_factory = broken_session

    total = hammer(store.get)

    stats = store.get_stats()
    assert stats["reads"] == total
    assert stats["errors"] == total
