"""Read-only booking projections for clients."""

from __future__ import annotations

import math

from django.db.models import Q, QuerySet

from .domain import ActorRole
from .models import Booking
from .store import get_ledger_store

EARTH_RADIUS_KM = 6371.0088
KM_PER_DEGREE_LAT = 111.32


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(latitude: float, longitude: float, radius_km: float) -> dict[str, float]:
    """Lat/lng lookups for a box enclosing the radius, used as a SQL prefilter."""
    lat_delta = radius_km / KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(latitude))
    lng_delta = 180.0 if cos_lat < 1e-6 else min(180.0, radius_km / (KM_PER_DEGREE_LAT * cos_lat))
    return {
        "location_lat__gte": latitude - lat_delta,
        "location_lat__lte": latitude + lat_delta,
        "location_lng__gte": longitude - lng_delta,
        "location_lng__lte": longitude + lng_delta,
    }


def available_bookings(
    *,
    specialization: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    radius_km: float | None = None,
    pilot_rank: int | None = None,
) -> list[Booking]:
    """
    Bookings waiting for a pilot, newest first.

    The radius filter only applies when latitude, longitude and radius are all
    given.
    """
    qs = Booking.objects.filter(status=Booking.Status.AVAILABLE, pilot__isnull=True)
    if specialization:
        qs = qs.filter(specialization=specialization)
    if pilot_rank is not None:
        qs = qs.filter(required_minimum_rank__lte=pilot_rank)

    geo = latitude is not None and longitude is not None and radius_km is not None
    if not geo:
        return list(qs.order_by("-created_at"))

    # Bounding box spans the antimeridian poorly; skip the longitude prefilter there.
    box = bounding_box(latitude, longitude, radius_km)
    if box["location_lng__gte"] < -180 or box["location_lng__lte"] > 180:
        box.pop("location_lng__gte")
        box.pop("location_lng__lte")
    candidates = qs.filter(**box).order_by("-created_at")
    return [
        booking
        for booking in candidates
        if haversine_km(latitude, longitude, booking.location_lat, booking.location_lng)
        <= radius_km
    ]


def bookings_for_party(user, role: ActorRole | str) -> QuerySet[Booking]:
    """A pilot's accepted/completed bookings, or everything a customer created."""
    role = ActorRole(role)
    if role is ActorRole.PILOT:
        qs = Booking.objects.filter(
            pilot=user,
            status__in=[Booking.Status.ACCEPTED, Booking.Status.COMPLETED],
        )
    else:
        qs = Booking.objects.filter(customer=user)
    return qs.order_by("-created_at")


def participant_bookings(user) -> QuerySet[Booking]:
    return Booking.objects.filter(
        Q(customer=user) | Q(pilot=user) | Q(former_pilot=user)
    ).order_by("-created_at")


def get_booking(booking_id) -> Booking:
    return get_ledger_store().get(booking_id)


def completed_bookings_count(user, role: ActorRole | str) -> int:
    role = ActorRole(role)
    field = "pilot" if role is ActorRole.PILOT else "customer"
    return Booking.objects.filter(status=Booking.Status.COMPLETED, **{field: user}).count()
