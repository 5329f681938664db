from django.conf import settings
from django.db import models
from django.db.models import Q


class Transaction(models.Model):
    """
    Ledger row for one money movement on a booking.

    Each kind happens at most once per booking, so the row doubles as the
    record that a settlement step already ran.
    """

    class Kind(models.TextChoices):
        BOOKING_CHARGE = "BOOKING_CHARGE", "Booking charge"
        PILOT_PAYOUT = "PILOT_PAYOUT", "Pilot payout"
        TIP_PAYOUT = "TIP_PAYOUT", "Tip payout"
        REFUND = "REFUND", "Refund"

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="transactions",
        help_text="Customer charged or refunded, or pilot paid.",
    )
    kind = models.CharField(max_length=32, choices=Kind.choices)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=8, default="usd")
    stripe_id = models.CharField(
        max_length=255,
        blank=True,
        null=True,
        help_text="PaymentIntent, Transfer or Refund id at Stripe.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "kind", "created_at"], name="txn_user_kind_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["booking", "kind"],
                name="unique_transaction_kind_per_booking",
            ),
            models.CheckConstraint(condition=Q(amount__gt=0), name="txn_amount_positive"),
        ]

    def __str__(self) -> str:
        return f"{self.kind} {self.amount} {self.currency} (booking {self.booking_id})"


class PilotPayoutAccount(models.Model):
    """A pilot's Stripe Connect Express account, mirrored from Stripe."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payout_account",
    )
    stripe_account_id = models.CharField(max_length=255, blank=True, default="")
    charges_enabled = models.BooleanField(default=False)
    payouts_enabled = models.BooleanField(default=False)
    requirements_due = models.JSONField(default=dict, blank=True)
    is_fully_onboarded = models.BooleanField(default=False)
    last_synced_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["user_id"]

    def __str__(self) -> str:
        return f"Payout account {self.stripe_account_id or '-'} for user {self.user_id}"

    @property
    def can_receive_transfers(self) -> bool:
        return bool(self.stripe_account_id) and self.payouts_enabled
