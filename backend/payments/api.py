"""Pilot payouts API endpoints."""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .ledger import compute_pilot_balances, get_pilot_earnings_queryset
from .models import PilotPayoutAccount
from .serializers import NO_PAYOUT_ACCOUNT, PayoutAccountSerializer, TransactionSerializer
from .stripe_api import (
    StripeConfigurationError,
    StripePaymentError,
    StripeTransientError,
    create_connect_onboarding_link,
)

logger = logging.getLogger(__name__)
STRIPE_ERRORS = (StripeConfigurationError, StripePaymentError, StripeTransientError)
ONBOARDING_ERROR_MESSAGE = "Stripe onboarding is temporarily unavailable. Please try again later."
DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 200


def _parse_limit(value: str | None) -> int:
    if not value:
        return DEFAULT_HISTORY_LIMIT
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValueError("limit must be an integer.")
    if parsed <= 0:
        raise ValueError("limit must be greater than zero.")
    return min(parsed, MAX_HISTORY_LIMIT)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def pilot_balance(request):
    """Payout account state plus pending and lifetime earnings."""
    account = PilotPayoutAccount.objects.filter(user=request.user).first()
    connect = PayoutAccountSerializer(account).data if account else NO_PAYOUT_ACCOUNT
    return Response({"connect": connect, "balances": compute_pilot_balances(request.user.id)})


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def pilot_history(request):
    """Return the most recent payout and tip ledger rows for the pilot."""
    try:
        limit = _parse_limit(request.query_params.get("limit"))
    except ValueError as exc:
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    qs = get_pilot_earnings_queryset(request.user.id)
    results = TransactionSerializer(qs[:limit], many=True).data
    return Response({"results": results, "count": qs.count()})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def pilot_start_onboarding(request):
    """Start or resume Stripe Connect onboarding; pilots only."""
    user = request.user
    if not user.is_pilot():
        return Response(
            {"detail": "Only pilots can receive payouts."}, status=status.HTTP_403_FORBIDDEN
        )
    try:
        url = create_connect_onboarding_link(user)
    except STRIPE_ERRORS as exc:
        logger.warning("payments: onboarding link for user %s failed: %s", user.id, exc)
        return Response(
            {"detail": ONBOARDING_ERROR_MESSAGE}, status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    account_id = (
        PilotPayoutAccount.objects.filter(user=user)
        .values_list("stripe_account_id", flat=True)
        .first()
    )
    return Response({"onboarding_url": url, "stripe_account_id": account_id or None})
