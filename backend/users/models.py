from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Marketplace account; a user books flights as a customer or flies them as a pilot."""

    class UserType(models.TextChoices):
        CUSTOMER = "customer", "Customer"
        PILOT = "pilot", "Pilot"

    user_type = models.CharField(
        max_length=16,
        choices=UserType.choices,
        default=UserType.CUSTOMER,
    )
    call_sign = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Public display name shown to the other party.",
    )
    stripe_customer_id = models.CharField(
        max_length=120,
        blank=True,
        default="",
        help_text="Stripe Customer ID used to pay for bookings.",
    )
    # Denormalized from reviews.Review; refreshed whenever a rating lands.
    rating = models.FloatField(null=True, blank=True)
    review_count = models.PositiveIntegerField(default=0)

    def is_pilot(self) -> bool:
        return self.user_type == self.UserType.PILOT

    @property
    def display_name(self) -> str:
        return self.call_sign or self.get_full_name() or self.username
