"""Celery tasks for bookings."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.db.models import Exists, OuterRef, Q
from django.utils import timezone

from rankings.models import FlightLog

from . import settlement
from .lifecycle import dispatch_completion_stats
from .models import Booking

logger = logging.getLogger(__name__)


def _lookback_cutoff():
    days = int(getattr(settings, "BOOKING_RECONCILE_LOOKBACK_DAYS", 30))
    return timezone.now() - timedelta(days=days)


def _warn_aged_out(cutoff) -> int:
    """Log bookings still owing a money movement that are too old to retry automatically."""
    aged_out = Booking.objects.filter(
        Q(status=Booking.Status.COMPLETED, settled=False, completed_at__lt=cutoff)
        | Q(
            status=Booking.Status.COMPLETED,
            tip_amount__isnull=False,
            tip_settled=False,
            completed_at__lt=cutoff,
        )
        | Q(status=Booking.Status.CANCELLED, payment_voided=False, cancelled_at__lt=cutoff)
    ).count()
    if aged_out:
        logger.warning(
            "bookings: %s bookings with unfinished payments are past the reconcile window",
            aged_out,
            extra={"aged_out": aged_out, "cutoff": cutoff.isoformat()},
        )
    return aged_out


@shared_task(name="bookings.reconcile_payments")
def reconcile_payments() -> dict[str, int]:
    """
    Retry money movements that a lifecycle transition left unfinished.

    Covers completed bookings whose payout or tip transfer failed and cancelled
    bookings whose payment was not released. Each retry reuses the booking's
    idempotency token, so an earlier call that reached Stripe is not repeated.
    Returns how many of each were brought up to date.
    """
    cutoff = _lookback_cutoff()
    counts = {"completion": 0, "tip": 0, "void": 0}

    unsettled = Booking.objects.filter(
        status=Booking.Status.COMPLETED,
        settled=False,
        completed_at__gte=cutoff,
    ).values_list("pk", flat=True)
    tips = Booking.objects.filter(
        status=Booking.Status.COMPLETED,
        tip_amount__isnull=False,
        tip_settled=False,
        completed_at__gte=cutoff,
    ).values_list("pk", flat=True)
    unvoided = Booking.objects.filter(
        status=Booking.Status.CANCELLED,
        payment_voided=False,
        cancelled_at__gte=cutoff,
    ).values_list("pk", flat=True)

    jobs = (
        ("completion", settlement.settle_completion, list(unsettled)),
        ("tip", settlement.settle_tip, list(tips)),
        ("void", settlement.void_payment, list(unvoided)),
    )
    for purpose, handler, booking_ids in jobs:
        for booking_id in booking_ids:
            try:
                if handler(booking_id):
                    counts[purpose] += 1
            except Exception:
                logger.exception(
                    "bookings: reconcile %s failed for booking %s",
                    purpose,
                    booking_id,
                )

    _warn_aged_out(cutoff)
    if any(counts.values()):
        logger.info("bookings: reconciled payments %s", counts)
    return counts


@shared_task(name="bookings.backfill_completion_stats")
def backfill_completion_stats() -> int:
    """
    Re-queue pilot stats for completed bookings that never got a flight log.

    Returns the number of bookings re-queued.
    """
    flight_logged = FlightLog.objects.filter(booking_id=OuterRef("pk"))
    missing = (
        Booking.objects.filter(
            status=Booking.Status.COMPLETED,
            completed_at__gte=_lookback_cutoff(),
        )
        .annotate(has_flight_log=Exists(flight_logged))
        .filter(has_flight_log=False)
    )

    queued = 0
    for booking in missing:
        dispatch_completion_stats(booking)
        queued += 1
    return queued
