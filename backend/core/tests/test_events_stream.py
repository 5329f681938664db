import pytest

pytestmark = pytest.mark.django_db

STREAM_URL = "/api/events/stream/"


class _Calls(list):
    """List of recorded reader calls that can also carry the ``reader`` attribute."""


@pytest.fixture
def reader_calls(monkeypatch):
    """Replace the Redis reader; records each call and replays ``reader_calls.result``."""
    calls = _Calls()

    def fake_reader(user_id, *, cursor, block_ms, count):
        calls.append({"user_id": user_id, "cursor": cursor, "block_ms": block_ms, "count": count})
        return fake_reader.result or (cursor, [])

    fake_reader.result = None
    monkeypatch.setattr("core.events_api.read_user_events", fake_reader)
    calls.reader = fake_reader
    return calls


def test_anonymous_poll_is_rejected(api_client):
    assert api_client.get(STREAM_URL).status_code == 401


def test_poll_defaults_to_new_events_only(api_client, customer_user, reader_calls):
    reader_calls.reader.result = ("10-0", [])
    api_client.force_authenticate(user=customer_user)

    resp = api_client.get(STREAM_URL)

    assert resp.status_code == 200
    assert resp.data["cursor"] == "10-0"
    assert resp.data["events"] == []
    assert resp.data["now"]
    assert reader_calls == [
        {"user_id": customer_user.id, "cursor": "$", "block_ms": 25000, "count": 100}
    ]


def test_poll_resumes_from_cursor(api_client, pilot_user, reader_calls):
    events = [
        {"id": "1-0", "type": "booking:accepted", "payload": {"booking_id": "b-1"}},
        {"id": "2-0", "type": "booking:completed", "payload": {"booking_id": "b-1"}},
    ]
    reader_calls.reader.result = ("2-0", events)
    api_client.force_authenticate(user=pilot_user)

    resp = api_client.get(STREAM_URL, {"cursor": "0-0", "timeout": "5"})

    assert resp.data == {"cursor": "2-0", "events": events, "now": resp.data["now"]}
    assert reader_calls[0]["cursor"] == "0-0"
    assert reader_calls[0]["block_ms"] == 5000


@pytest.mark.parametrize(
    "timeout, block_ms",
    [("abc", 25000), ("600", 60000), ("-3", 0), ("0.5", 500)],
)
def test_poll_timeout_is_clamped(api_client, customer_user, reader_calls, timeout, block_ms):
    api_client.force_authenticate(user=customer_user)

    resp = api_client.get(STREAM_URL, {"timeout": timeout})

    assert resp.status_code == 200
    assert reader_calls[0]["block_ms"] == block_ms
