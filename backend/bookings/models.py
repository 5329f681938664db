"""Database models for drone flight bookings."""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q


class Booking(models.Model):
    """A customer's request for a drone flight, and its settlement state."""

    class Status(models.TextChoices):
        AVAILABLE = "available", "available"
        ACCEPTED = "accepted", "accepted"
        COMPLETED = "completed", "completed"
        CANCELLED = "cancelled", "cancelled"

    class Specialization(models.TextChoices):
        AUTOMOTIVE = "automotive", "Automotive"
        MOTION_PICTURE = "motion_picture", "Motion Picture"
        REAL_ESTATE = "real_estate", "Real Estate"
        AGRICULTURE = "agriculture", "Agriculture"
        INSPECTIONS = "inspections", "Inspections"
        SEARCH_RESCUE = "search_rescue", "Search & Rescue"
        LOGISTICS = "logistics", "Logistics"
        DRONE_ART = "drone_art", "Drone Art"
        SURVEILLANCE_SECURITY = "surveillance_security", "Surveillance & Security"

    class CancelledBy(models.TextChoices):
        CUSTOMER = "customer", "customer"
        PILOT = "pilot", "pilot"
        SYSTEM = "system", "system"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="bookings_as_customer",
        on_delete=models.CASCADE,
    )
    pilot = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="bookings_as_pilot",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
    )
    former_pilot = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="released_bookings",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        help_text="Pilot who held the booking when it was cancelled.",
    )

    # Scheduling/location details are stored and returned as provided.
    location_lat = models.FloatField()
    location_lng = models.FloatField()
    location_name = models.CharField(max_length=255, blank=True, default="")
    scheduled_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    specialization = models.CharField(
        max_length=32,
        choices=Specialization.choices,
        blank=True,
        default="",
    )
    description = models.TextField(blank=True, default="")

    payment_amount = models.DecimalField(max_digits=10, decimal_places=2)
    tip_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=8, default="usd")
    estimated_flight_hours = models.DecimalField(max_digits=6, decimal_places=2)
    required_minimum_rank = models.PositiveSmallIntegerField(default=0)

    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.AVAILABLE,
    )
    pilot_completed = models.BooleanField(default=False)
    customer_completed = models.BooleanField(default=False)
    pilot_rated = models.BooleanField(default=False)
    customer_rated = models.BooleanField(default=False)
    settled = models.BooleanField(
        default=False,
        help_text="True once the completion transfer to the pilot succeeded.",
    )
    tip_settled = models.BooleanField(default=False)
    payment_voided = models.BooleanField(default=False)
    cancelled_by = models.CharField(
        max_length=16,
        choices=CancelledBy.choices,
        blank=True,
        default="",
    )

    payment_intent_id = models.CharField(max_length=120)
    charge_id = models.CharField(max_length=120, blank=True, default="")
    transfer_id = models.CharField(max_length=120, blank=True, default="")
    tip_transfer_id = models.CharField(max_length=120, blank=True, default="")

    accepted_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    settled_at = models.DateTimeField(null=True, blank=True)
    tip_settled_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "specialization"], name="booking_status_spec_idx"),
            models.Index(fields=["customer", "status"], name="booking_customer_status_idx"),
            models.Index(fields=["pilot", "status"], name="booking_pilot_status_idx"),
            models.Index(fields=["status", "settled"], name="booking_status_settled_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(payment_amount__gt=0),
                name="booking_payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(estimated_flight_hours__gt=0),
                name="booking_flight_hours_positive",
            ),
            models.CheckConstraint(
                condition=(
                    Q(status__in=["accepted", "completed"], pilot__isnull=False)
                    | Q(status__in=["available", "cancelled"], pilot__isnull=True)
                ),
                name="booking_pilot_matches_status",
            ),
            models.CheckConstraint(
                condition=(
                    Q(status="completed", pilot_completed=True, customer_completed=True)
                    | (~Q(status="completed") & ~Q(pilot_completed=True, customer_completed=True))
                ),
                name="booking_completed_iff_both_confirmed",
            ),
            models.CheckConstraint(
                condition=Q(status="completed") | Q(pilot_rated=False, customer_rated=False),
                name="booking_rated_only_when_completed",
            ),
            models.CheckConstraint(
                condition=Q(tip_amount__isnull=True) | Q(status="completed", tip_amount__gt=0),
                name="booking_tip_only_when_completed",
            ),
            models.CheckConstraint(
                condition=Q(status="completed") | Q(settled=False, tip_settled=False),
                name="booking_settled_only_when_completed",
            ),
        ]

    def __str__(self) -> str:
        """Return a human-readable representation."""
        return f"Booking {self.pk} ({self.status})"

    def is_terminal(self) -> bool:
        """Return True if the booking reached a terminal state."""
        return self.status in {
            self.Status.COMPLETED,
            self.Status.CANCELLED,
        }

    def is_active(self) -> bool:
        """Return True if the booking is waiting for a pilot or in progress."""
        return self.status in {
            self.Status.AVAILABLE,
            self.Status.ACCEPTED,
        }

    @property
    def awaiting_settlement(self) -> bool:
        return self.status == self.Status.COMPLETED and not self.settled

    @property
    def awaiting_tip_settlement(self) -> bool:
        return (
            self.status == self.Status.COMPLETED
            and self.tip_amount is not None
            and not self.tip_settled
        )
