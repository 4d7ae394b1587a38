"""Unit tests for RedisFocusStore using fakeredis."""

from __future__ import annotations

from unittest.mock import patch

import fakeredis
import pytest

from redwing.core.exceptions import CacheError
from redwing.models.escalation import FocusLock
from redwing.persistence.redis_backend import RedisFocusStore


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def fake_client(fake_server):
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def backend(fake_client):
    with patch("redis.Redis", return_value=fake_client):
        return RedisFocusStore(host="localhost", port=6379, db=0, key_prefix="test")


def _lock(escalation_id: str = "ESC-1", authority: str = "2348099999999") -> FocusLock:
    return FocusLock(authority_identity=authority, locked_escalation_id=escalation_id, school_id="SCH-001")


class TestPutGet:
    def test_returns_none_on_miss(self, backend):
        assert backend.get("nobody") is None

    def test_round_trips_lock(self, backend):
        backend.put(_lock(), 60)
        lock = backend.get("2348099999999")
        assert lock.locked_escalation_id == "ESC-1"
        assert lock.school_id == "SCH-001"

    def test_key_layout_and_ttl(self, backend, fake_client):
        backend.put(_lock(), 120)
        key = "test:focus:2348099999999"
        assert fake_client.exists(key)
        assert 0 < fake_client.ttl(key) <= 120

    def test_put_overwrites(self, backend):
        backend.put(_lock("ESC-1"), 60)
        backend.put(_lock("ESC-2"), 60)
        assert backend.get("2348099999999").locked_escalation_id == "ESC-2"


class TestDelete:
    def test_unconditional(self, backend):
        backend.put(_lock(), 60)
        assert backend.delete("2348099999999") is True
        assert backend.get("2348099999999") is None
        assert backend.delete("2348099999999") is False

    def test_compare_and_delete_matching(self, backend):
        backend.put(_lock("ESC-1"), 60)
        assert backend.delete("2348099999999", "ESC-1") is True
        assert backend.get("2348099999999") is None

    def test_compare_and_delete_keeps_newer_lock(self, backend):
        backend.put(_lock("ESC-2"), 60)
        assert backend.delete("2348099999999", "ESC-1") is False
        assert backend.get("2348099999999").locked_escalation_id == "ESC-2"

    def test_compare_and_delete_on_missing_key(self, backend):
        assert backend.delete("2348099999999", "ESC-1") is False


class TestErrorWrapping:
    def test_get_wraps_redis_error(self):
        b = RedisFocusStore.__new__(RedisFocusStore)
        b._key_prefix = "test"
        b._client = None  # will cause AttributeError -> CacheError
        with pytest.raises(CacheError):
            b.get("k")

    def test_put_wraps_redis_error(self):
        b = RedisFocusStore.__new__(RedisFocusStore)
        b._key_prefix = "test"
        b._client = None
        with pytest.raises(CacheError):
            b.put(_lock(), 60)
