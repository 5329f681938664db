from rest_framework import serializers

from .models import PilotStats
from .tiers import hours_to_next_tier


class PilotStatsSerializer(serializers.ModelSerializer):
    call_sign = serializers.SerializerMethodField()
    tier_name = serializers.CharField(read_only=True)
    hours_to_next_tier = serializers.SerializerMethodField()

    class Meta:
        model = PilotStats
        fields = (
            "pilot",
            "call_sign",
            "total_flight_hours",
            "completed_bookings",
            "tier",
            "tier_name",
            "hours_to_next_tier",
        )
        read_only_fields = fields

    def get_call_sign(self, obj: PilotStats) -> str:
        pilot = getattr(obj, "pilot", None)
        return getattr(pilot, "display_name", "") if pilot else ""

    def get_hours_to_next_tier(self, obj: PilotStats) -> str | None:
        remaining = hours_to_next_tier(obj.total_flight_hours)
        return None if remaining is None else f"{remaining:.2f}"
