import json

import pytest

from app.services import session_store
from app.services.session_store import CrudSessionStore, SessionSection
from tests.mocks import FakeRedis


@pytest.fixture()
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(session_store, "get_session_redis", lambda: client)
    return client


def test_section_round_trips_values(sessions):
    section = sessions.section("CrudList-list-")
    assert section.get("page") is None
    assert section.get("page", 0) == 0
    section.set("page", 2)
    section.update({"itemsPerPage": 25, "sort": {"column": "name", "direction": "desc"}})
    assert section.get("page") == 2
    assert section.get("itemsPerPage") == 25
    assert section.get("sort") == {"column": "name", "direction": "desc"}


def test_sections_are_isolated_by_scope(sessions):
    sessions.section("CrudItem-item-1").set("page", 3)
    assert sessions.section("CrudItem-item-2").get("page") is None
    assert sessions.section("CrudItem-item-1").get("page") == 3


def test_sections_are_isolated_by_token():
    store = {}
    CrudSessionStore("alice", fallback_store=store).section("s").set("page", 1)
    assert CrudSessionStore("bob", fallback_store=store).section("s").get("page") is None


def test_values_go_to_redis_when_available(fake_redis):
    section = SessionSection("token", "CrudList-list-", ttl_seconds=60, fallback_store={})
    section.set("page", 4)
    key = "session:crud:token:CrudList-list-"
    assert json.loads(fake_redis.data[key]) == {"page": 4}
    assert fake_redis.ttls[key] == 60
    assert section.get("page") == 4


def test_redis_failure_falls_back_to_memory(monkeypatch):
    client = FakeRedis(fail=True)
    monkeypatch.setattr(session_store, "get_session_redis", lambda: client)
    fallback = {}
    section = SessionSection("token", "scope", fallback_store=fallback)
    section.set("page", 1)
    assert fallback["token:scope"]["payload"] == {"page": 1}
    assert section.get("page") == 1


def test_missing_store_without_fallback_raises(monkeypatch):
    monkeypatch.setattr(session_store, "_fallback_enabled", lambda: False)
    section = SessionSection("token", "scope", fallback_store={})
    assert section.get("page") is None
    with pytest.raises(RuntimeError):
        section.set("page", 1)


def test_memory_fallback_entries_expire(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(session_store, "monotonic", lambda: clock[0])
    fallback = {}
    section = SessionSection("token", "scope", ttl_seconds=60, fallback_store=fallback)
    section.set("page", 2)
    SessionSection("token", "other", ttl_seconds=600, fallback_store=fallback).set("page", 5)

    clock[0] += 59
    assert section.get("page") == 2

    clock[0] += 2
    assert section.get("page") is None
    assert "token:scope" not in fallback
    assert fallback["token:other"]["payload"] == {"page": 5}


def test_memory_fallback_write_drops_expired_entries(monkeypatch):
    clock = [0.0]
    monkeypatch.setattr(session_store, "monotonic", lambda: clock[0])
    fallback = {}
    SessionSection("old", "scope", ttl_seconds=10, fallback_store=fallback).set("page", 1)
    clock[0] += 11
    SessionSection("new", "scope", ttl_seconds=10, fallback_store=fallback).set("page", 1)
    assert list(fallback) == ["new:scope"]
