from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from itertools import cycle

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from bookings.models import Booking

User = get_user_model()


@dataclass(frozen=True)
class Scenario:
    key: str
    status: str
    pilot_completed: bool = False
    customer_completed: bool = False
    cancelled_by: str = ""


@dataclass(frozen=True)
class Site:
    name: str
    lat: float
    lng: float
    specialization: str
    description: str
    amount: Decimal
    hours: Decimal


SCENARIOS = [
    Scenario(key="available", status=Booking.Status.AVAILABLE),
    Scenario(key="accepted", status=Booking.Status.ACCEPTED),
    Scenario(key="pilot_confirmed", status=Booking.Status.ACCEPTED, pilot_completed=True),
    Scenario(
        key="completed",
        status=Booking.Status.COMPLETED,
        pilot_completed=True,
        customer_completed=True,
    ),
    Scenario(
        key="cancelled_customer",
        status=Booking.Status.CANCELLED,
        cancelled_by=Booking.CancelledBy.CUSTOMER,
    ),
]

SITES = [
    Site(
        "Golden Gate Bridge, San Francisco",
        37.7749,
        -122.4194,
        Booking.Specialization.REAL_ESTATE,
        "Aerial photography of a property listing and the surrounding area.",
        Decimal("850.00"),
        Decimal("3.50"),
    ),
    Site(
        "Hollywood Hills, Los Angeles",
        34.0522,
        -118.2437,
        Booking.Specialization.MOTION_PICTURE,
        "Cinematic drone footage for an independent film production.",
        Decimal("1500.00"),
        Decimal("6.00"),
    ),
    Site(
        "Brooklyn Bridge, New York",
        40.7128,
        -74.0060,
        Booking.Specialization.INSPECTIONS,
        "Bridge inspection footage of structural elements and visible wear.",
        Decimal("1200.00"),
        Decimal("2.00"),
    ),
    Site(
        "Millennium Park, Chicago",
        41.8781,
        -87.6298,
        Booking.Specialization.DRONE_ART,
        "Dynamic aerial coverage of an outdoor concert.",
        Decimal("650.00"),
        Decimal("3.00"),
    ),
]


class Command(BaseCommand):
    help = "Create demo bookings across lifecycle stages without touching Stripe."

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--count",
            type=int,
            default=10,
            help="Number of bookings to create.",
        )

    def handle(self, *args, **options) -> None:
        count = options["count"]
        if count <= 0:
            raise CommandError("--count must be greater than 0.")

        customers = list(User.objects.filter(user_type=User.UserType.CUSTOMER).order_by("id"))
        if not customers:
            raise CommandError("No customer accounts found. Create users before bookings.")
        pilots = list(User.objects.filter(user_type=User.UserType.PILOT).order_by("id"))
        if not pilots:
            self.stdout.write(
                self.style.WARNING("No pilot accounts; seeding available bookings only.")
            )

        customers_cycle = cycle(customers)
        pilots_cycle = cycle(pilots) if pilots else None
        sites_cycle = cycle(SITES)
        now = timezone.now()
        created = 0

        with transaction.atomic():
            for index in range(count):
                scenario = SCENARIOS[index % len(SCENARIOS)]
                if pilots_cycle is None and scenario.status != Booking.Status.AVAILABLE:
                    scenario = SCENARIOS[0]
                site = next(sites_cycle)
                pilot = next(pilots_cycle) if pilots_cycle else None
                scheduled = now + timedelta(days=2 + index)
                fields = {
                    "customer": next(customers_cycle),
                    "location_lat": site.lat,
                    "location_lng": site.lng,
                    "location_name": site.name,
                    "scheduled_date": scheduled,
                    "end_date": scheduled + timedelta(hours=float(site.hours)),
                    "specialization": site.specialization,
                    "description": site.description,
                    "payment_amount": site.amount,
                    "estimated_flight_hours": site.hours,
                    "required_minimum_rank": index % 3,
                    "status": scenario.status,
                    "pilot_completed": scenario.pilot_completed,
                    "customer_completed": scenario.customer_completed,
                    "payment_intent_id": f"pi_demo_{index + 1}",
                    "charge_id": f"ch_demo_{index + 1}",
                }
                if scenario.status in (Booking.Status.ACCEPTED, Booking.Status.COMPLETED):
                    fields["pilot"] = pilot
                    fields["accepted_at"] = now
                if scenario.status == Booking.Status.COMPLETED:
                    fields["completed_at"] = now
                    fields["settled"] = True
                    fields["settled_at"] = now
                    fields["transfer_id"] = f"tr_demo_{index + 1}"
                if scenario.status == Booking.Status.CANCELLED:
                    fields["former_pilot"] = pilot
                    fields["cancelled_by"] = scenario.cancelled_by
                    fields["cancelled_at"] = now
                    fields["payment_voided"] = True
                    fields["voided_at"] = now
                Booking.objects.create(**fields)
                created += 1

        self.stdout.write(self.style.SUCCESS("Demo booking population complete."))
        self.stdout.write(f"Bookings created: {created}")
