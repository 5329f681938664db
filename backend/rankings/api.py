from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .serializers import PilotStatsSerializer
from .services import get_or_create_stats, leaderboard

DEFAULT_LEADERBOARD_LIMIT = 100
MAX_LEADERBOARD_LIMIT = 500


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def leaderboard_view(request):
    """Top pilots by total flight hours."""
    raw_limit = request.query_params.get("limit")
    try:
        limit = int(raw_limit) if raw_limit else DEFAULT_LEADERBOARD_LIMIT
    except (TypeError, ValueError):
        return Response(
            {"detail": "limit must be an integer."},
            status=status.HTTP_400_BAD_REQUEST,
        )
    limit = max(1, min(limit, MAX_LEADERBOARD_LIMIT))
    data = PilotStatsSerializer(leaderboard(limit), many=True).data
    return Response({"results": data})


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def my_stats(request):
    user = request.user
    if not user.is_pilot():
        return Response(
            {"detail": "Only pilots have flight stats."},
            status=status.HTTP_403_FORBIDDEN,
        )
    return Response(PilotStatsSerializer(get_or_create_stats(user.id)).data)
