import pytest

from reviews.models import Review
from reviews.services import record_rating
from reviews.tasks import record_rating as record_rating_task

pytestmark = pytest.mark.django_db


def test_record_rating_updates_subject_aggregates(booking_factory, customer_user, pilot_user):
    first = booking_factory(pilot=pilot_user, status="completed")
    second = booking_factory(pilot=pilot_user, status="completed")

    record_rating(
        booking_id=first.pk,
        from_user_id=customer_user.id,
        to_user_id=pilot_user.id,
        role=Review.Role.CUSTOMER_TO_PILOT,
        score=5,
        comment="Great footage",
    )
    record_rating(
        booking_id=second.pk,
        from_user_id=customer_user.id,
        to_user_id=pilot_user.id,
        role=Review.Role.CUSTOMER_TO_PILOT,
        score=2,
    )

    pilot_user.refresh_from_db()
    assert pilot_user.rating == 3.5
    assert pilot_user.review_count == 2


def test_repeated_delivery_keeps_first_rating(completed_booking, customer_user, pilot_user):
    kwargs = {
        "booking_id": completed_booking.pk,
        "from_user_id": customer_user.id,
        "to_user_id": pilot_user.id,
        "role": Review.Role.CUSTOMER_TO_PILOT,
    }
    first = record_rating(score=4, **kwargs)
    second = record_rating(score=1, **kwargs)

    assert first.pk == second.pk
    assert Review.objects.get().rating == 4
    pilot_user.refresh_from_db()
    assert pilot_user.review_count == 1


def test_record_rating_task_returns_review_id(completed_booking, customer_user, pilot_user):
    result = record_rating_task.delay(
        str(completed_booking.pk),
        pilot_user.id,
        customer_user.id,
        Review.Role.PILOT_TO_CUSTOMER,
        0,
        "",
    )

    review = Review.objects.get(pk=result.get())
    assert review.subject_id == customer_user.id
    assert review.rating == 0
