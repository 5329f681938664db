from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from bookings.models import Booking

pytestmark = pytest.mark.django_db


def test_seed_demo_bookings_covers_each_stage(customer_user, pilot_user):
    out = StringIO()

    call_command("seed_demo_bookings", "--count", "5", stdout=out)

    assert "Bookings created: 5" in out.getvalue()
    statuses = sorted(Booking.objects.values_list("status", flat=True))
    assert statuses == ["accepted", "accepted", "available", "cancelled", "completed"]
    completed = Booking.objects.get(status=Booking.Status.COMPLETED)
    assert completed.pilot == pilot_user
    assert completed.settled is True
    cancelled = Booking.objects.get(status=Booking.Status.CANCELLED)
    assert cancelled.pilot is None
    assert cancelled.former_pilot == pilot_user


def test_seed_without_pilots_only_creates_available(customer_user):
    call_command("seed_demo_bookings", "--count", "3", stdout=StringIO())

    assert set(Booking.objects.values_list("status", flat=True)) == {"available"}


def test_seed_requires_customers():
    with pytest.raises(CommandError):
        call_command("seed_demo_bookings", stdout=StringIO())
