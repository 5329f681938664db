from celery import shared_task

from .services import record_rating as record_rating_service


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 5},
    name="reviews.record_rating",
)
def record_rating(
    self,
    booking_id: str,
    from_user_id: int,
    to_user_id: int,
    role: str,
    score: int,
    comment: str = "",
) -> int:
    """Celery entrypoint for storing a booking rating; returns the review id."""
    review = record_rating_service(
        booking_id=booking_id,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        role=role,
        score=score,
        comment=comment,
    )
    return review.id
