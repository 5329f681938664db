from __future__ import annotations

import logging
from typing import Any, Dict

from django.db import connection
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from core.redis import get_redis_client

logger = logging.getLogger(__name__)


def _error_payload(exc: Exception) -> str:
    message = str(exc) or exc.__class__.__name__
    return f"{exc.__class__.__name__}: {message}"


@api_view(["GET"])
@authentication_classes([])
@permission_classes([])
def healthz(request):
    """Report database and Redis reachability."""
    checks: Dict[str, Dict[str, Any]] = {}

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        checks["db"] = {"ok": True}
    except Exception as exc:
        logger.warning("healthz: database check failed", exc_info=True)
        checks["db"] = {"ok": False, "error": _error_payload(exc)}

    try:
        get_redis_client().ping()
        checks["redis"] = {"ok": True}
    except Exception as exc:
        logger.warning("healthz: redis check failed", exc_info=True)
        checks["redis"] = {"ok": False, "error": _error_payload(exc)}

    overall_ok = all(check["ok"] for check in checks.values())
    return Response(
        {"ok": overall_ok, "checks": checks},
        status=status.HTTP_200_OK if overall_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
