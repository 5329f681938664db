"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import threading
from collections import defaultdict

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

pytest_plugins = [
    "bookings.tests.fixtures",
]


class FakeRedis:
    """Just enough of the redis-py client for the per-user event streams."""

    def __init__(self):
        self.streams = defaultdict(list)
        self._lock = threading.Lock()
        self._seq = 0

    def xadd(self, key, fields, maxlen=None, approximate=True):
        with self._lock:
            self._seq += 1
            entry_id = f"{self._seq}-0"
            self.streams[key].append((entry_id, dict(fields)))
        return entry_id.encode()

    def xread(self, streams, count=None, block=None):
        return []

    def ping(self):
        return True

    def events_for(self, user_id: int) -> list[str]:
        return [fields["type"] for _, fields in self.streams[f"events:user:{user_id}"]]


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr("core.redis.get_redis_client", lambda: client)
    monkeypatch.setattr("core.health.get_redis_client", lambda: client)
    return client


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """DRF API client for request/response helpers."""
    return APIClient()
