"""Tests for the database-backed ledger store."""

from __future__ import annotations

import uuid

import pytest

from bookings.domain import BookingNotFound
from bookings.models import Booking
from bookings.store import OrmLedgerStore, coerce_booking_id, split_lookup

pytestmark = pytest.mark.django_db


def test_split_lookup():
    assert split_lookup("status") == ("status", "exact")
    assert split_lookup("pilot_id__isnull") == ("pilot_id", "isnull")
    assert split_lookup("status__in") == ("status", "in")
    with pytest.raises(ValueError):
        split_lookup("payment_amount__gt")


def test_coerce_booking_id():
    booking_id = uuid.uuid4()
    assert coerce_booking_id(booking_id) is booking_id
    assert coerce_booking_id(str(booking_id)) == booking_id
    with pytest.raises(BookingNotFound):
        coerce_booking_id("not-a-uuid")


def test_get_missing_booking():
    with pytest.raises(BookingNotFound):
        OrmLedgerStore().get(uuid.uuid4())


def test_conditional_update_reports_whether_it_applied(booking_factory, pilot_user):
    booking = booking_factory()
    store = OrmLedgerStore()

    result = store.conditional_update(
        booking.pk,
        {"status": Booking.Status.AVAILABLE, "pilot_id__isnull": True},
        {"status": Booking.Status.ACCEPTED, "pilot_id": pilot_user.id},
    )
    assert result.applied
    assert result.current.pilot_id == pilot_user.id

    result = store.conditional_update(
        booking.pk,
        {"status": Booking.Status.AVAILABLE, "pilot_id__isnull": True},
        {"status": Booking.Status.ACCEPTED, "pilot_id": pilot_user.id},
    )
    assert not result.applied
    assert result.current.status == Booking.Status.ACCEPTED


def test_conditional_update_rejects_unsupported_lookups(booking_factory):
    booking = booking_factory()

    with pytest.raises(ValueError):
        OrmLedgerStore().conditional_update(
            booking.pk, {"payment_amount__gte": 1}, {"description": "changed"}
        )
    booking.refresh_from_db()
    assert booking.description == ""
