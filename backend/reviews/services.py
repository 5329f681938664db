from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Avg, Count

from .models import Review

logger = logging.getLogger(__name__)
User = get_user_model()


def refresh_rating_aggregates(user_id: int) -> None:
    """Recompute ``User.rating`` and ``User.review_count`` from the user's reviews."""
    agg = Review.objects.filter(subject_id=user_id).aggregate(avg=Avg("rating"), count=Count("id"))
    User.objects.filter(pk=user_id).update(rating=agg["avg"], review_count=agg["count"] or 0)


def record_rating(
    *,
    booking_id,
    from_user_id: int,
    to_user_id: int,
    role: str,
    score: int,
    comment: str = "",
) -> Review:
    """
    Store one rating left on a booking and refresh the subject's aggregates.

    Repeated deliveries for the same (booking, author, role) keep the first
    rating.
    """
    with transaction.atomic():
        review, created = Review.objects.get_or_create(
            booking_id=booking_id,
            author_id=from_user_id,
            role=role,
            defaults={
                "subject_id": to_user_id,
                "rating": score,
                "comment": comment or "",
            },
        )
        if not created:
            logger.info(
                "reviews: rating for booking %s by user %s already recorded",
                booking_id,
                from_user_id,
                extra={"booking_id": str(booking_id), "role": role},
            )
        refresh_rating_aggregates(review.subject_id)
    return review
