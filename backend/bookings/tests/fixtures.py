"""Shared user, booking and payment gateway fixtures for the test suite."""

from __future__ import annotations

import itertools
from decimal import Decimal
from types import SimpleNamespace
from typing import Callable
from unittest.mock import MagicMock

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from bookings.models import Booking
from payments.models import PilotPayoutAccount
from payments.stripe_api import CapturedPayment

User = get_user_model()


def _create_user(*, username: str, user_type: str, **extra) -> User:
    return User.objects.create_user(
        username=username,
        password="testpass",
        email=f"{username}@example.com",
        user_type=user_type,
        **extra,
    )


def _connect_payout_account(user: User) -> PilotPayoutAccount:
    return PilotPayoutAccount.objects.create(
        user=user,
        stripe_account_id=f"acct_test_{user.username}",
        payouts_enabled=True,
        charges_enabled=True,
        is_fully_onboarded=True,
        requirements_due={
            "currently_due": [],
            "eventually_due": [],
            "past_due": [],
            "disabled_reason": "",
        },
        last_synced_at=timezone.now(),
    )


@pytest.fixture
def customer_user(db):
    return _create_user(
        username="customer",
        user_type=User.UserType.CUSTOMER,
        stripe_customer_id="cus_test_customer",
    )


@pytest.fixture
def pilot_user(db):
    user = _create_user(username="pilot", user_type=User.UserType.PILOT, call_sign="Maverick")
    _connect_payout_account(user)
    return user


@pytest.fixture
def other_pilot(db):
    user = _create_user(username="other-pilot", user_type=User.UserType.PILOT, call_sign="Iceman")
    _connect_payout_account(user)
    return user


@pytest.fixture
def outsider_user(db):
    return _create_user(username="outsider", user_type=User.UserType.CUSTOMER)


@pytest.fixture
def booking_factory(customer_user) -> Callable[..., Booking]:
    counter = itertools.count(1)

    def _create_booking(
        *,
        customer=None,
        pilot=None,
        status=Booking.Status.AVAILABLE,
        **extra_fields,
    ) -> Booking:
        index = next(counter)
        fields = {
            "location_lat": 37.7749,
            "location_lng": -122.4194,
            "location_name": "Golden Gate Park",
            "specialization": Booking.Specialization.REAL_ESTATE,
            "payment_amount": Decimal("100.00"),
            "estimated_flight_hours": Decimal("2.00"),
            "required_minimum_rank": 0,
            "payment_intent_id": f"pi_test_{index}",
            "charge_id": f"ch_test_{index}",
        }
        fields.update(extra_fields)
        if status == Booking.Status.COMPLETED:
            fields.setdefault("pilot_completed", True)
            fields.setdefault("customer_completed", True)
            fields.setdefault("completed_at", timezone.now())
        return Booking.objects.create(
            customer=customer or customer_user,
            pilot=pilot,
            status=status,
            **fields,
        )

    return _create_booking


@pytest.fixture
def accepted_booking(booking_factory, pilot_user) -> Booking:
    return booking_factory(
        pilot=pilot_user,
        status=Booking.Status.ACCEPTED,
        accepted_at=timezone.now(),
    )


@pytest.fixture
def completed_booking(booking_factory, pilot_user) -> Booking:
    return booking_factory(pilot=pilot_user, status=Booking.Status.COMPLETED)


@pytest.fixture
def stripe_gateway(monkeypatch):
    """
    Replace the Stripe-facing payment helpers used by the booking engine.

    ``capture``/``transfer``/``void`` are MagicMocks; set ``side_effect`` on
    them to simulate gateway failures.
    """
    transfer_ids = itertools.count(1)

    capture = MagicMock(
        side_effect=lambda **kwargs: CapturedPayment(
            payment_intent_id=f"pi_{kwargs['booking_id'][:8]}",
            charge_id=f"ch_{kwargs['booking_id'][:8]}",
        )
    )
    transfer = MagicMock(side_effect=lambda **kwargs: f"tr_test_{next(transfer_ids)}")
    void = MagicMock(return_value="re_test_1")

    monkeypatch.setattr("bookings.lifecycle.capture_booking_payment", capture)
    monkeypatch.setattr("bookings.lifecycle.void_booking_payment", void)
    monkeypatch.setattr("bookings.settlement.create_pilot_transfer", transfer)
    monkeypatch.setattr("bookings.settlement.void_booking_payment", void)
    return SimpleNamespace(capture=capture, transfer=transfer, void=void)
