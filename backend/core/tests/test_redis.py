from __future__ import annotations

import json

from core.redis import push_event, push_events, read_user_events


def test_push_event_appends_to_user_stream(fake_redis):
    entry_id = push_event(7, "booking:accepted", {"booking_id": "b-1", "status": "accepted"})

    assert entry_id == "1-0"
    [(_, fields)] = fake_redis.streams["events:user:7"]
    assert fields["type"] == "booking:accepted"
    assert json.loads(fields["payload"]) == {"booking_id": "b-1", "status": "accepted"}


def test_push_event_swallows_redis_failures(monkeypatch):
    def broken_client():
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr("core.redis.get_redis_client", broken_client)

    assert push_event(7, "booking:cancelled", {}) is None


def test_push_events_skips_missing_and_duplicate_users(fake_redis):
    pushed = push_events([3, None, 3, 5], "booking:completed", {"booking_id": "b-1"})

    assert pushed == 2
    assert fake_redis.events_for(3) == ["booking:completed"]
    assert fake_redis.events_for(5) == ["booking:completed"]


def test_read_user_events_decodes_entries(monkeypatch, fake_redis):
    entries = [
        (b"5-0", {b"type": b"booking:tip_added", b"payload": b'{"tip_amount": "15.00"}'}),
        (b"6-0", {b"type": b"booking:completed", b"payload": b"not json"}),
    ]
    monkeypatch.setattr(
        fake_redis, "xread", lambda streams, count=None, block=None: [(b"stream", entries)]
    )

    cursor, events = read_user_events(9, cursor="0-0", block_ms=0)

    assert cursor == "6-0"
    assert events == [
        {"id": "5-0", "type": "booking:tip_added", "payload": {"tip_amount": "15.00"}},
        {"id": "6-0", "type": "booking:completed", "payload": {"raw": "not json"}},
    ]


def test_read_user_events_without_new_entries(fake_redis):
    assert read_user_events(9, cursor="$", block_ms=100) == ("$", [])
