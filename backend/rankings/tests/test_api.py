from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from rankings.models import PilotStats

pytestmark = pytest.mark.django_db


def auth(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def test_leaderboard(pilot_user, other_pilot, customer_user):
    PilotStats.objects.create(pilot=pilot_user, total_flight_hours=Decimal("30"), tier=2)
    PilotStats.objects.create(pilot=other_pilot, total_flight_hours=Decimal("8"), tier=0)

    resp = auth(customer_user).get("/api/rankings/leaderboard/")

    assert resp.status_code == 200
    top = resp.data["results"][0]
    assert top["call_sign"] == "Maverick"
    assert top["tier_name"] == "Intermediate"
    assert top["hours_to_next_tier"] == "20.00"
    assert len(resp.data["results"]) == 2

    resp = auth(customer_user).get("/api/rankings/leaderboard/", {"limit": 1})
    assert len(resp.data["results"]) == 1
    assert auth(customer_user).get("/api/rankings/leaderboard/", {"limit": "x"}).status_code == 400


def test_my_stats(pilot_user, customer_user):
    resp = auth(pilot_user).get("/api/rankings/me/")

    assert resp.status_code == 200
    assert resp.data["tier"] == 0
    assert resp.data["total_flight_hours"] == "0.00"
    assert resp.data["hours_to_next_tier"] == "10.00"

    assert auth(customer_user).get("/api/rankings/me/").status_code == 403
