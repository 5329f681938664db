from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import Transaction

PILOT_EARNING_KINDS = [
    Transaction.Kind.PILOT_PAYOUT,
    Transaction.Kind.TIP_PAYOUT,
]
TWO_PLACES = Decimal("0.01")


def log_transaction(
    *,
    user_id: int,
    booking_id,
    kind: str,
    amount: Decimal,
    currency: str = "usd",
    stripe_id: Optional[str] = None,
) -> Transaction:
    """
    Record a money movement for a booking.

    One row per (booking, kind); logging the same movement twice returns the
    existing row so retried settlements never double count.
    """
    existing = Transaction.objects.filter(booking_id=booking_id, kind=kind).first()
    if existing is not None:
        return existing
    try:
        with transaction.atomic():
            return Transaction.objects.create(
                user_id=user_id,
                booking_id=booking_id,
                kind=kind,
                amount=amount,
                currency=currency,
                stripe_id=stripe_id,
            )
    except IntegrityError:
        return Transaction.objects.get(booking_id=booking_id, kind=kind)


def get_pilot_earnings_queryset(user_id: int):
    """Return the queryset of pilot-facing transactions for a user."""
    return Transaction.objects.filter(
        user_id=user_id,
        kind__in=PILOT_EARNING_KINDS,
    ).order_by("-created_at")


def compute_pilot_balances(user_id: int) -> dict[str, str]:
    """Compute lifetime and recent earnings figures for a pilot."""
    lifetime_payouts = Decimal("0.00")
    lifetime_tips = Decimal("0.00")
    last_30_days = Decimal("0.00")
    cutoff = timezone.now() - timedelta(days=30)

    for tx in get_pilot_earnings_queryset(user_id):
        amount = Decimal(tx.amount)
        if tx.kind == Transaction.Kind.PILOT_PAYOUT:
            lifetime_payouts += amount
        elif tx.kind == Transaction.Kind.TIP_PAYOUT:
            lifetime_tips += amount
        if tx.created_at >= cutoff:
            last_30_days += amount

    def _format(value: Decimal) -> str:
        return f"{value.quantize(TWO_PLACES)}"

    return {
        "lifetime_payouts": _format(lifetime_payouts),
        "lifetime_tips": _format(lifetime_tips),
        "lifetime_earnings": _format(lifetime_payouts + lifetime_tips),
        "last_30_days": _format(last_30_days),
    }
