import pytest
from rest_framework.test import APIClient

from reviews.models import Review
from reviews.services import record_rating

pytestmark = pytest.mark.django_db


def auth(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def reviews(completed_booking, customer_user, pilot_user):
    from_customer = record_rating(
        booking_id=completed_booking.pk,
        from_user_id=customer_user.id,
        to_user_id=pilot_user.id,
        role=Review.Role.CUSTOMER_TO_PILOT,
        score=5,
        comment="Smooth",
    )
    from_pilot = record_rating(
        booking_id=completed_booking.pk,
        from_user_id=pilot_user.id,
        to_user_id=customer_user.id,
        role=Review.Role.PILOT_TO_CUSTOMER,
        score=3,
    )
    return from_customer, from_pilot


def test_list_reviews_for_subject(reviews, outsider_user, pilot_user):
    resp = auth(outsider_user).get("/api/reviews/", {"subject": pilot_user.id})

    assert resp.status_code == 200
    assert len(resp.data) == 1
    assert resp.data[0]["rating"] == 5
    assert resp.data[0]["author_name"] == "customer"


def test_list_defaults_to_own_reviews(reviews, customer_user, outsider_user):
    assert len(auth(customer_user).get("/api/reviews/").data) == 2
    assert auth(outsider_user).get("/api/reviews/").data == []


def test_filter_by_booking_and_role(reviews, completed_booking, customer_user):
    client = auth(customer_user)

    resp = client.get(
        "/api/reviews/",
        {"booking": str(completed_booking.pk), "role": Review.Role.PILOT_TO_CUSTOMER},
    )
    assert [row["rating"] for row in resp.data] == [3]

    assert client.get("/api/reviews/", {"booking": "nope"}).data == []


def test_rating_summary(reviews, outsider_user, pilot_user):
    resp = auth(outsider_user).get(f"/api/reviews/summary/{pilot_user.id}/")

    assert resp.status_code == 200
    assert resp.data == {"user_id": pilot_user.id, "rating": 5.0, "review_count": 1}

    assert auth(outsider_user).get("/api/reviews/summary/999999/").status_code == 404
