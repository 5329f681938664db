from __future__ import annotations

from rest_framework import serializers

from .models import Review


class ReviewSerializer(serializers.ModelSerializer):
    """Read-only view of a rating; ratings are written through the booking API."""

    author_name = serializers.ReadOnlyField(source="author.display_name")
    booking = serializers.UUIDField(source="booking_id", read_only=True)

    class Meta:
        model = Review
        fields = (
            "id",
            "booking",
            "role",
            "author",
            "author_name",
            "subject",
            "rating",
            "comment",
            "created_at",
        )
        read_only_fields = fields
