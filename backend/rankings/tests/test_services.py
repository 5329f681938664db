from decimal import Decimal

import pytest

from rankings.models import FlightLog, PilotStats
from rankings.services import leaderboard, pilot_rank, record_completion
from rankings.tasks import record_completion as record_completion_task

pytestmark = pytest.mark.django_db


def test_record_completion_accumulates_hours_and_tier(booking_factory, pilot_user):
    first = booking_factory(
        pilot=pilot_user,
        status="completed",
        estimated_flight_hours=Decimal("6.00"),
    )
    second = booking_factory(
        pilot=pilot_user,
        status="completed",
        estimated_flight_hours=Decimal("5.50"),
    )

    stats = record_completion(pilot_id=pilot_user.id, hours="6.00", booking_id=first.pk)
    assert stats.tier == 0
    assert pilot_rank(pilot_user.id) == 0

    stats = record_completion(pilot_id=pilot_user.id, hours="5.50", booking_id=second.pk)
    assert stats.total_flight_hours == Decimal("11.50")
    assert stats.completed_bookings == 2
    assert stats.tier == 1
    assert pilot_rank(pilot_user.id) == 1


def test_record_completion_counts_each_booking_once(completed_booking, pilot_user):
    record_completion(pilot_id=pilot_user.id, hours="2.00", booking_id=completed_booking.pk)
    record_completion(pilot_id=pilot_user.id, hours="2.00", booking_id=completed_booking.pk)

    stats = PilotStats.objects.get(pilot=pilot_user)
    assert stats.completed_bookings == 1
    assert stats.total_flight_hours == Decimal("2.00")
    assert FlightLog.objects.filter(booking=completed_booking).count() == 1


def test_record_completion_task(completed_booking, pilot_user):
    result = record_completion_task.delay(pilot_user.id, "2.00", str(completed_booking.pk))

    assert result.get() == {
        "pilot_id": pilot_user.id,
        "total_flight_hours": "2.00",
        "tier": 0,
    }


def test_pilot_rank_defaults_to_zero(pilot_user):
    assert pilot_rank(pilot_user.id) == 0


def test_leaderboard_order(pilot_user, other_pilot):
    PilotStats.objects.create(pilot=pilot_user, total_flight_hours=Decimal("30"), tier=2)
    PilotStats.objects.create(pilot=other_pilot, total_flight_hours=Decimal("120"), tier=4)

    assert [s.pilot_id for s in leaderboard()] == [other_pilot.id, pilot_user.id]
    assert len(leaderboard(limit=1)) == 1
