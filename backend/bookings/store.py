"""
Ledger store access for bookings.

Every lifecycle transition is a single conditional write: "set these columns
where the row still matches this predicate". The store reports whether the
write applied; callers never derive a transition from a separate read.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from django.utils import timezone

from .domain import BookingNotFound
from .models import Booking

# Predicates use Django lookup syntax restricted to these operators so any
# store can evaluate them.
SUPPORTED_LOOKUPS = ("exact", "in", "isnull")


@dataclass(frozen=True)
class UpdateResult:
    applied: bool
    current: Booking


class LedgerStore(Protocol):
    def get(self, booking_id) -> Booking: ...

    def insert(self, booking: Booking) -> Booking: ...

    def conditional_update(
        self,
        booking_id,
        predicate: Mapping[str, Any],
        values: Mapping[str, Any],
    ) -> UpdateResult: ...


def split_lookup(key: str) -> tuple[str, str]:
    """Split ``field__lookup`` into its parts, defaulting to exact match."""
    field, _, lookup = key.partition("__")
    lookup = lookup or "exact"
    if lookup not in SUPPORTED_LOOKUPS:
        raise ValueError(f"Unsupported predicate lookup '{key}'.")
    return field, lookup


def coerce_booking_id(booking_id) -> uuid.UUID:
    """Normalize an opaque booking id, treating malformed ids as missing bookings."""
    if isinstance(booking_id, uuid.UUID):
        return booking_id
    try:
        return uuid.UUID(str(booking_id))
    except (TypeError, ValueError) as exc:
        raise BookingNotFound(booking_id=booking_id) from exc


class OrmLedgerStore:
    """Ledger store backed by the Django database (one UPDATE per transition)."""

    def get(self, booking_id) -> Booking:
        try:
            return Booking.objects.get(pk=coerce_booking_id(booking_id))
        except Booking.DoesNotExist as exc:
            raise BookingNotFound(booking_id=booking_id) from exc

    def insert(self, booking: Booking) -> Booking:
        booking.save(force_insert=True)
        return booking

    def conditional_update(
        self,
        booking_id,
        predicate: Mapping[str, Any],
        values: Mapping[str, Any],
    ) -> UpdateResult:
        pk = coerce_booking_id(booking_id)
        for key in predicate:
            split_lookup(key)
        rows = (
            Booking.objects.filter(pk=pk, **predicate)
            .update(**values, updated_at=timezone.now())
        )
        return UpdateResult(applied=rows == 1, current=self.get(pk))


_default_store: LedgerStore = OrmLedgerStore()


def get_ledger_store() -> LedgerStore:
    return _default_store
