from __future__ import annotations

import uuid

from django.contrib.auth import get_user_model
from django.db import models
from django.shortcuts import get_object_or_404
from rest_framework import permissions, viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from .models import Review
from .serializers import ReviewSerializer

User = get_user_model()


def _parse_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ReviewViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Ratings left on bookings.

    Ratings are written through the booking ``rate`` action; this endpoint only
    reads them. Without a ``subject`` filter, it lists ratings the caller gave
    or received.
    """

    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        qs = Review.objects.select_related("author")

        subject_id = _parse_int(self.request.query_params.get("subject"))
        if subject_id:
            qs = qs.filter(subject_id=subject_id)
        else:
            qs = qs.filter(models.Q(author=user) | models.Q(subject=user))

        booking_param = self.request.query_params.get("booking")
        if booking_param:
            try:
                qs = qs.filter(booking_id=uuid.UUID(booking_param))
            except ValueError:
                return Review.objects.none()

        role_param = self.request.query_params.get("role")
        if role_param in Review.Role.values:
            qs = qs.filter(role=role_param)

        return qs


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def rating_summary(request, user_id: int):
    """Average rating and count for a user."""
    user = get_object_or_404(User, pk=user_id)
    return Response(
        {
            "user_id": user.id,
            "rating": round(user.rating, 2) if user.rating is not None else None,
            "review_count": user.review_count,
        }
    )
