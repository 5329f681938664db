from __future__ import annotations

from rest_framework import serializers

from .models import PilotPayoutAccount, Transaction


class TransactionSerializer(serializers.ModelSerializer):
    """One pilot earnings row: a payout or a tip transfer."""

    booking_id = serializers.UUIDField(read_only=True)
    currency = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = ("id", "created_at", "kind", "amount", "currency", "booking_id", "stripe_id")
        read_only_fields = fields

    def get_currency(self, obj: Transaction) -> str:
        return (obj.currency or "").upper()


class PayoutAccountSerializer(serializers.ModelSerializer):
    has_account = serializers.SerializerMethodField()

    class Meta:
        model = PilotPayoutAccount
        fields = (
            "has_account",
            "stripe_account_id",
            "payouts_enabled",
            "is_fully_onboarded",
            "requirements_due",
        )
        read_only_fields = fields

    def get_has_account(self, obj) -> bool:
        return True


NO_PAYOUT_ACCOUNT = {
    "has_account": False,
    "stripe_account_id": None,
    "payouts_enabled": False,
    "is_fully_onboarded": False,
    "requirements_due": {},
}
