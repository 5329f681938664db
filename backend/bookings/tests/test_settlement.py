"""Tests for exactly-once settlement of completed and cancelled bookings."""

from __future__ import annotations

from decimal import Decimal

import pytest

from bookings import settlement
from bookings.models import Booking
from payments.models import Transaction
from payments.stripe_api import PayoutAccountNotReady, StripeTransientError

pytestmark = pytest.mark.django_db


def test_idempotency_token_format():
    assert settlement.idempotency_token("abc", settlement.PURPOSE_TIP) == "booking:abc:tip"


def test_settle_completion_pays_pilot_once(stripe_gateway, completed_booking, pilot_user):
    assert settlement.settle_completion(completed_booking.pk) is True
    assert settlement.settle_completion(completed_booking.pk) is True

    stripe_gateway.transfer.assert_called_once()
    completed_booking.refresh_from_db()
    assert completed_booking.settled
    assert completed_booking.settled_at is not None
    payout = Transaction.objects.get(booking=completed_booking, kind=Transaction.Kind.PILOT_PAYOUT)
    assert payout.user_id == pilot_user.id
    assert payout.amount == Decimal("100.00")
    assert payout.stripe_id == completed_booking.transfer_id


def test_settle_completion_ignores_open_bookings(stripe_gateway, accepted_booking):
    assert settlement.settle_completion(accepted_booking.pk) is False
    stripe_gateway.transfer.assert_not_called()


def test_failed_transfer_is_retried_with_the_same_token(stripe_gateway, completed_booking):
    stripe_gateway.transfer.side_effect = [
        PayoutAccountNotReady("Pilot payout account is not ready."),
        StripeTransientError("timeout"),
        "tr_recovered",
    ]

    assert settlement.settle_completion(completed_booking.pk) is False
    assert settlement.settle_completion(completed_booking.pk) is False
    completed_booking.refresh_from_db()
    assert completed_booking.awaiting_settlement

    assert settlement.settle_completion(completed_booking.pk) is True
    keys = {call.kwargs["idempotency_key"] for call in stripe_gateway.transfer.call_args_list}
    assert keys == {f"booking:{completed_booking.pk}:completion"}
    completed_booking.refresh_from_db()
    assert completed_booking.transfer_id == "tr_recovered"


def test_settle_tip_requires_a_tip(stripe_gateway, completed_booking):
    assert settlement.settle_tip(completed_booking.pk) is False

    Booking.objects.filter(pk=completed_booking.pk).update(tip_amount=Decimal("12.50"))
    assert settlement.settle_tip(completed_booking.pk) is True

    kwargs = stripe_gateway.transfer.call_args.kwargs
    assert kwargs["amount"] == Decimal("12.50")
    assert kwargs["purpose"] == settlement.PURPOSE_TIP
    assert "source_transaction" not in kwargs
    assert Transaction.objects.filter(
        booking=completed_booking, kind=Transaction.Kind.TIP_PAYOUT
    ).exists()


def test_void_payment_only_for_cancelled_bookings(
    stripe_gateway, booking_factory, accepted_booking
):
    assert settlement.void_payment(accepted_booking.pk) is False

    cancelled = booking_factory(status=Booking.Status.CANCELLED)
    assert settlement.void_payment(cancelled.pk) is True
    assert settlement.void_payment(cancelled.pk) is True

    stripe_gateway.void.assert_called_once()
    refund = Transaction.objects.get(booking=cancelled, kind=Transaction.Kind.REFUND)
    assert refund.stripe_id == "re_test_1"
