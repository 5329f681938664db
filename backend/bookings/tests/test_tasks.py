"""Tests for bookings Celery tasks."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from bookings.models import Booking
from bookings.tasks import backfill_completion_stats, reconcile_payments
from payments.stripe_api import StripeTransientError
from rankings.models import FlightLog, PilotStats

pytestmark = pytest.mark.django_db


def test_reconcile_payments_settles_outstanding_bookings(
    stripe_gateway, booking_factory, pilot_user
):
    unsettled = booking_factory(pilot=pilot_user, status=Booking.Status.COMPLETED)
    tipped = booking_factory(
        pilot=pilot_user,
        status=Booking.Status.COMPLETED,
        settled=True,
        tip_amount=Decimal("5.00"),
    )
    unvoided = booking_factory(status=Booking.Status.CANCELLED, cancelled_at=timezone.now())
    booking_factory(pilot=pilot_user, status=Booking.Status.COMPLETED, settled=True)
    stale = booking_factory(
        pilot=pilot_user,
        status=Booking.Status.COMPLETED,
        completed_at=timezone.now() - timedelta(days=90),
    )

    counts = reconcile_payments()

    assert counts == {"completion": 1, "tip": 1, "void": 1}
    assert Booking.objects.get(pk=unsettled.pk).settled
    assert Booking.objects.get(pk=tipped.pk).tip_settled
    assert Booking.objects.get(pk=unvoided.pk).payment_voided
    assert not Booking.objects.get(pk=stale.pk).settled

    # Nothing left to do on the next run.
    assert reconcile_payments() == {"completion": 0, "tip": 0, "void": 0}
    assert stripe_gateway.transfer.call_count == 2
    assert stripe_gateway.void.call_count == 1


def test_reconcile_payments_keeps_going_after_failures(
    stripe_gateway, booking_factory, pilot_user
):
    first = booking_factory(pilot=pilot_user, status=Booking.Status.COMPLETED)
    second = booking_factory(pilot=pilot_user, status=Booking.Status.COMPLETED)
    stripe_gateway.transfer.side_effect = [StripeTransientError("timeout"), "tr_ok"]

    counts = reconcile_payments()

    assert counts["completion"] == 1
    settled = Booking.objects.filter(pk__in=[first.pk, second.pk], settled=True)
    assert settled.count() == 1


def test_backfill_completion_stats(booking_factory, pilot_user):
    missing = booking_factory(pilot=pilot_user, status=Booking.Status.COMPLETED)
    booking_factory(pilot=pilot_user, status=Booking.Status.ACCEPTED)

    assert backfill_completion_stats() == 1
    assert FlightLog.objects.filter(booking=missing).exists()
    stats = PilotStats.objects.get(pilot=pilot_user)
    assert stats.completed_bookings == 1
    assert stats.total_flight_hours == Decimal("2.00")

    assert backfill_completion_stats() == 0


def test_reconcile_payments_warns_about_bookings_past_the_window(
    caplog, stripe_gateway, booking_factory, pilot_user
):
    long_ago = timezone.now() - timedelta(days=90)
    booking_factory(pilot=pilot_user, status=Booking.Status.COMPLETED, completed_at=long_ago)
    booking_factory(status=Booking.Status.CANCELLED, cancelled_at=long_ago)
    booking_factory(
        pilot=pilot_user, status=Booking.Status.COMPLETED, settled=True, completed_at=long_ago
    )

    with caplog.at_level("WARNING", logger="bookings.tasks"):
        counts = reconcile_payments()

    assert counts == {"completion": 0, "tip": 0, "void": 0}
    [record] = [r for r in caplog.records if "reconcile window" in r.getMessage()]
    assert record.aged_out == 2
    stripe_gateway.transfer.assert_not_called()
