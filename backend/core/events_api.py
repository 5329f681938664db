from __future__ import annotations

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.redis import read_user_events

DEFAULT_TIMEOUT_SECONDS = 25.0
MAX_TIMEOUT_SECONDS = 60.0
MAX_EVENTS_PER_POLL = 100


def _parse_timeout(raw: str | None) -> float:
    """Seconds to block, clamped to ``[0, MAX_TIMEOUT_SECONDS]``."""
    try:
        seconds = float(raw) if raw is not None else DEFAULT_TIMEOUT_SECONDS
    except ValueError:
        seconds = DEFAULT_TIMEOUT_SECONDS
    return min(max(seconds, 0.0), MAX_TIMEOUT_SECONDS)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def events_stream(request):
    """
    Long-poll for the caller's booking events.

    ``cursor`` is the last event id seen ("$" waits for new ones only) and
    ``timeout`` how long to block, in seconds. Events are hints; clients
    re-fetch the booking for its committed state.
    """
    params = request.query_params
    next_cursor, events = read_user_events(
        user_id=request.user.id,
        cursor=(params.get("cursor") or "").strip() or "$",
        block_ms=int(_parse_timeout(params.get("timeout")) * 1000),
        count=MAX_EVENTS_PER_POLL,
    )
    return Response({"cursor": next_cursor, "events": events, "now": timezone.now().isoformat()})
