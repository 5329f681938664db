"""Serializers for booking-related API endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from rest_framework import serializers

from rankings.tiers import MAX_TIER, tier_name

from .domain import MAX_RATING, MIN_RATING
from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Serialize Booking instances for API usage."""

    customer_name = serializers.ReadOnlyField(source="customer.display_name")
    pilot_name = serializers.SerializerMethodField()
    required_minimum_rank_name = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = (
            "id",
            "status",
            "customer",
            "customer_name",
            "pilot",
            "pilot_name",
            "former_pilot",
            "location_lat",
            "location_lng",
            "location_name",
            "scheduled_date",
            "end_date",
            "specialization",
            "description",
            "payment_amount",
            "tip_amount",
            "currency",
            "estimated_flight_hours",
            "required_minimum_rank",
            "required_minimum_rank_name",
            "pilot_completed",
            "customer_completed",
            "pilot_rated",
            "customer_rated",
            "settled",
            "tip_settled",
            "payment_voided",
            "cancelled_by",
            "accepted_at",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_pilot_name(self, obj: Booking) -> str | None:
        pilot = obj.pilot if obj.pilot_id else None
        return pilot.display_name if pilot else None

    def get_required_minimum_rank_name(self, obj: Booking) -> str:
        return tier_name(obj.required_minimum_rank)


class BookingCreateSerializer(serializers.Serializer):
    """Validate a customer's booking request before payment is captured."""

    location_lat = serializers.FloatField(min_value=-90, max_value=90)
    location_lng = serializers.FloatField(min_value=-180, max_value=180)
    location_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True)
    end_date = serializers.DateTimeField(required=False, allow_null=True)
    specialization = serializers.ChoiceField(
        choices=Booking.Specialization.choices,
        required=False,
        allow_blank=True,
    )
    description = serializers.CharField(required=False, allow_blank=True)
    payment_amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0.01"),
    )
    estimated_flight_hours = serializers.DecimalField(
        max_digits=6,
        decimal_places=2,
        min_value=Decimal("0.01"),
    )
    required_minimum_rank = serializers.IntegerField(
        min_value=0,
        max_value=MAX_TIER,
        required=False,
        default=0,
    )
    payment_method_id = serializers.CharField(
        write_only=True,
        help_text="Stripe PaymentMethod ID used to pay for this booking.",
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        start = attrs.get("scheduled_date")
        end = attrs.get("end_date")
        if start and end and end < start:
            raise serializers.ValidationError(
                {"end_date": "End date must be on or after the scheduled date."}
            )
        return attrs


class RatingSerializer(serializers.Serializer):
    score = serializers.IntegerField(min_value=MIN_RATING, max_value=MAX_RATING)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class TipSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0.01"))
