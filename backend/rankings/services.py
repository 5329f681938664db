"""Pilot stats bookkeeping for completed bookings."""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F

from .models import FlightLog, PilotStats
from .tiers import calculate_tier

logger = logging.getLogger(__name__)


def get_or_create_stats(pilot_id: int) -> PilotStats:
    stats, _ = PilotStats.objects.get_or_create(pilot_id=pilot_id)
    return stats


def record_completion(*, pilot_id: int, hours, booking_id) -> PilotStats:
    """
    Credit a completed booking's flight hours to the pilot.

    Safe to call repeatedly for the same booking: the flight log row is the
    marker that the booking was already counted.
    """
    hours = Decimal(str(hours)).quantize(Decimal("0.01"))
    with transaction.atomic():
        _, created = FlightLog.objects.get_or_create(
            booking_id=booking_id,
            defaults={"pilot_id": pilot_id, "hours": hours},
        )
        stats = get_or_create_stats(pilot_id)
        if not created:
            logger.info(
                "rankings: completion for booking %s already recorded",
                booking_id,
                extra={"booking_id": str(booking_id), "pilot_id": pilot_id},
            )
            return stats

        PilotStats.objects.filter(pk=stats.pk).update(
            total_flight_hours=F("total_flight_hours") + hours,
            completed_bookings=F("completed_bookings") + 1,
        )
        stats = PilotStats.objects.select_for_update().get(pk=stats.pk)
        new_tier = calculate_tier(stats.total_flight_hours)
        if new_tier != stats.tier:
            logger.info(
                "rankings: pilot %s moved from tier %s to %s",
                pilot_id,
                stats.tier,
                new_tier,
                extra={"pilot_id": pilot_id, "booking_id": str(booking_id)},
            )
            stats.tier = new_tier
            stats.save(update_fields=["tier", "updated_at"])
    return stats


def pilot_rank(pilot_id: int) -> int:
    """Current tier for a pilot; pilots with no stats yet are tier 0."""
    tier = PilotStats.objects.filter(pilot_id=pilot_id).values_list("tier", flat=True).first()
    return tier or 0


def leaderboard(limit: int = 100):
    return (
        PilotStats.objects.select_related("pilot")
        .order_by("-total_flight_hours", "-completed_bookings", "pilot_id")[:limit]
    )
