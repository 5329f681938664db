from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from .tiers import tier_name


class PilotStats(models.Model):
    pilot = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="pilot_stats",
    )
    total_flight_hours = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    completed_bookings = models.PositiveIntegerField(default=0)
    tier = models.PositiveSmallIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-total_flight_hours", "pilot_id"]
        verbose_name_plural = "pilot stats"

    def __str__(self) -> str:
        return f"{self.pilot_id}: {self.total_flight_hours}h (tier {self.tier})"

    @property
    def tier_name(self) -> str:
        return tier_name(self.tier)


class FlightLog(models.Model):
    """One row per completed booking credited to a pilot's stats."""

    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="flight_log",
    )
    pilot = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="flight_logs",
    )
    hours = models.DecimalField(max_digits=6, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"FlightLog booking={self.booking_id} pilot={self.pilot_id} {self.hours}h"
