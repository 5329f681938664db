from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator
from django.db import models
from django.db.models import Q


class Review(models.Model):
    """A score one party of a completed booking gave the other."""

    class Role(models.TextChoices):
        PILOT_TO_CUSTOMER = "pilot_to_customer", "Pilot to customer"
        CUSTOMER_TO_PILOT = "customer_to_pilot", "Customer to pilot"

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    role = models.CharField(max_length=32, choices=Role.choices)
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="authored_reviews",
    )
    subject = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_reviews",
    )
    rating = models.PositiveSmallIntegerField(validators=[MaxValueValidator(5)])
    comment = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["subject", "created_at"], name="review_subject_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["booking", "author", "role"],
                name="unique_rating_per_booking_author_role",
            ),
            models.CheckConstraint(condition=Q(rating__lte=5), name="review_rating_at_most_5"),
        ]

    def __str__(self) -> str:
        return f"{self.rating}/5 from user {self.author_id} on booking {self.booking_id}"
