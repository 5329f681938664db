"""In-process ledger store used to drive the engine from many threads."""

from __future__ import annotations

import threading
import uuid
from decimal import Decimal
from typing import Any, Mapping

from bookings.domain import BookingNotFound
from bookings.models import Booking
from bookings.store import UpdateResult, coerce_booking_id, split_lookup


def row_from(booking: Booking) -> dict[str, Any]:
    fields = Booking._meta.concrete_fields
    return {field.attname: getattr(booking, field.attname) for field in fields}


class InMemoryLedgerStore:
    """Holds booking rows as dicts; every read and write happens under one lock."""

    def __init__(self):
        self._rows: dict[uuid.UUID, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.writes = 0

    def get(self, booking_id) -> Booking:
        pk = coerce_booking_id(booking_id)
        with self._lock:
            row = self._rows.get(pk)
            if row is None:
                raise BookingNotFound(booking_id=booking_id)
            return Booking(**row)

    def insert(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.pk in self._rows:
                raise ValueError(f"Booking {booking.pk} already exists.")
            self._rows[booking.pk] = row_from(booking)
        return booking

    def conditional_update(
        self,
        booking_id,
        predicate: Mapping[str, Any],
        values: Mapping[str, Any],
    ) -> UpdateResult:
        pk = coerce_booking_id(booking_id)
        with self._lock:
            row = self._rows.get(pk)
            if row is None:
                raise BookingNotFound(booking_id=booking_id)
            applied = all(self._matches(row, key, expected) for key, expected in predicate.items())
            if applied:
                unknown = set(values) - set(row)
                if unknown:
                    raise KeyError(f"Unknown booking columns: {sorted(unknown)}")
                row.update(values)
                self.writes += 1
            return UpdateResult(applied=applied, current=Booking(**row))

    @staticmethod
    def _matches(row: dict[str, Any], key: str, expected: Any) -> bool:
        field, lookup = split_lookup(key)
        value = row[field]
        if lookup == "isnull":
            return (value is None) == bool(expected)
        if lookup == "in":
            return value in expected
        return value == expected


def make_booking(
    *,
    status: str = Booking.Status.ACCEPTED,
    customer_id: int = 1,
    pilot_id: int | None = 2,
    required_minimum_rank: int = 0,
    **extra: Any,
) -> Booking:
    """Unsaved booking with ids only, suitable for ``InMemoryLedgerStore.insert``."""
    if status in (Booking.Status.AVAILABLE, Booking.Status.CANCELLED):
        pilot_id = None
    return Booking(
        id=uuid.uuid4(),
        customer_id=customer_id,
        pilot_id=pilot_id,
        status=status,
        location_lat=37.7749,
        location_lng=-122.4194,
        payment_amount=Decimal("100.00"),
        estimated_flight_hours=Decimal("2.00"),
        required_minimum_rank=required_minimum_rank,
        payment_intent_id="pi_fake",
        charge_id="ch_fake",
        **extra,
    )
