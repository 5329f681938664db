"""
Per-user booking event streams on Redis.

Each user has one capped stream (``events:user:<id>``). Lifecycle code appends
an entry after a transition commits; the long-poll endpoint reads from it.
Entries carry ``type`` and a JSON ``payload`` and are only change hints.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Tuple

import redis
from django.conf import settings

logger = logging.getLogger(__name__)

STREAM_MAXLEN = 1000

Event = Dict[str, Any]


@lru_cache(maxsize=1)
def get_redis_client() -> "redis.Redis":
    """Shared client for ``settings.REDIS_URL``."""
    url = getattr(settings, "REDIS_URL", None)
    if not url:
        raise RuntimeError("REDIS_URL is not configured")
    return redis.Redis.from_url(url)


def _user_stream_key(user_id: int) -> str:
    return f"events:user:{int(user_id)}"


def _text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


def _encode_entry(event_type: str, payload: Dict[str, Any] | None) -> Dict[str, str]:
    body = json.dumps(payload or {}, separators=(",", ":"), default=str)
    return {"type": event_type, "payload": body}


def _decode_entry(raw_id: Any, fields: Dict[Any, Any]) -> Event:
    decoded = {_text(key): _text(value) for key, value in fields.items()}
    body = decoded.get("payload") or "{}"
    try:
        payload = json.loads(body)
    except ValueError:
        payload = {"raw": body}
    return {"id": _text(raw_id), "type": decoded.get("type") or "", "payload": payload}


def push_event(user_id: int, event_type: str, payload: Dict[str, Any]) -> str | None:
    """
    Append ``event_type`` to one user's stream.

    Returns the entry id, or None when Redis could not be reached. A failed
    push is logged and never propagates into the caller's transition.
    """
    try:
        entry_id = get_redis_client().xadd(
            _user_stream_key(user_id),
            _encode_entry(event_type, payload),
            maxlen=STREAM_MAXLEN,
            approximate=True,
        )
    except Exception:
        logger.warning(
            "events: could not push %s to user %s", event_type, user_id, exc_info=True
        )
        return None
    return _text(entry_id)


def push_events(user_ids: Iterable[int | None], event_type: str, payload: Dict[str, Any]) -> int:
    """Push to each distinct user id, skipping empty ones; returns how many succeeded."""
    recipients = sorted({int(uid) for uid in user_ids if uid})
    results = [push_event(uid, event_type, payload) for uid in recipients]
    return sum(1 for entry_id in results if entry_id is not None)


def read_user_events(
    user_id: int,
    *,
    cursor: str,
    block_ms: int,
    count: int = 100,
) -> Tuple[str, List[Event]]:
    """
    Wait up to ``block_ms`` for entries after ``cursor``.

    Returns ``(next_cursor, events)``; the cursor is unchanged when nothing
    arrived or Redis failed.
    """
    stream_key = _user_stream_key(user_id)
    try:
        records = get_redis_client().xread(
            {stream_key: cursor}, count=count, block=max(block_ms, 0)
        )
    except Exception:
        logger.warning(
            "events: XREAD failed for %s at cursor %s", stream_key, cursor, exc_info=True
        )
        return cursor, []

    if not records:
        return cursor, []
    _, entries = records[0]
    events = [_decode_entry(raw_id, fields) for raw_id, fields in entries]
    return (events[-1]["id"] if events else cursor), events
