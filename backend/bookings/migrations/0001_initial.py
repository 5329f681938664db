import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("location_lat", models.FloatField()),
                ("location_lng", models.FloatField()),
                ("location_name", models.CharField(blank=True, default="", max_length=255)),
                ("scheduled_date", models.DateTimeField(blank=True, null=True)),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                (
                    "specialization",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("automotive", "Automotive"),
                            ("motion_picture", "Motion Picture"),
                            ("real_estate", "Real Estate"),
                            ("agriculture", "Agriculture"),
                            ("inspections", "Inspections"),
                            ("search_rescue", "Search & Rescue"),
                            ("logistics", "Logistics"),
                            ("drone_art", "Drone Art"),
                            ("surveillance_security", "Surveillance & Security"),
                        ],
                        default="",
                        max_length=32,
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                ("payment_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "tip_amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True),
                ),
                ("currency", models.CharField(default="usd", max_length=8)),
                ("estimated_flight_hours", models.DecimalField(decimal_places=2, max_digits=6)),
                ("required_minimum_rank", models.PositiveSmallIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "available"),
                            ("accepted", "accepted"),
                            ("completed", "completed"),
                            ("cancelled", "cancelled"),
                        ],
                        default="available",
                        max_length=16,
                    ),
                ),
                ("pilot_completed", models.BooleanField(default=False)),
                ("customer_completed", models.BooleanField(default=False)),
                ("pilot_rated", models.BooleanField(default=False)),
                ("customer_rated", models.BooleanField(default=False)),
                (
                    "settled",
                    models.BooleanField(
                        default=False,
                        help_text="True once the completion transfer to the pilot succeeded.",
                    ),
                ),
                ("tip_settled", models.BooleanField(default=False)),
                ("payment_voided", models.BooleanField(default=False)),
                (
                    "cancelled_by",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("customer", "customer"),
                            ("pilot", "pilot"),
                            ("system", "system"),
                        ],
                        default="",
                        max_length=16,
                    ),
                ),
                ("payment_intent_id", models.CharField(max_length=120)),
                ("charge_id", models.CharField(blank=True, default="", max_length=120)),
                ("transfer_id", models.CharField(blank=True, default="", max_length=120)),
                ("tip_transfer_id", models.CharField(blank=True, default="", max_length=120)),
                ("accepted_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("settled_at", models.DateTimeField(blank=True, null=True)),
                ("tip_settled_at", models.DateTimeField(blank=True, null=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings_as_customer",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "pilot",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings_as_pilot",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "former_pilot",
                    models.ForeignKey(
                        blank=True,
                        help_text="Pilot who held the booking when it was cancelled.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="released_bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "specialization"], name="booking_status_spec_idx"
                    ),
                    models.Index(
                        fields=["customer", "status"], name="booking_customer_status_idx"
                    ),
                    models.Index(fields=["pilot", "status"], name="booking_pilot_status_idx"),
                    models.Index(fields=["status", "settled"], name="booking_status_settled_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("payment_amount__gt", 0)),
                        name="booking_payment_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("estimated_flight_hours__gt", 0)),
                        name="booking_flight_hours_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("status__in", ["accepted", "completed"]),
                                ("pilot__isnull", False),
                            ),
                            models.Q(
                                ("status__in", ["available", "cancelled"]),
                                ("pilot__isnull", True),
                            ),
                            _connector="OR",
                        ),
                        name="booking_pilot_matches_status",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("status", "completed"),
                                ("pilot_completed", True),
                                ("customer_completed", True),
                            ),
                            models.Q(
                                models.Q(("status", "completed"), _negated=True),
                                models.Q(
                                    ("pilot_completed", True),
                                    ("customer_completed", True),
                                    _negated=True,
                                ),
                            ),
                            _connector="OR",
                        ),
                        name="booking_completed_iff_both_confirmed",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("status", "completed"),
                            models.Q(("pilot_rated", False), ("customer_rated", False)),
                            _connector="OR",
                        ),
                        name="booking_rated_only_when_completed",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("tip_amount__isnull", True),
                            models.Q(("status", "completed"), ("tip_amount__gt", 0)),
                            _connector="OR",
                        ),
                        name="booking_tip_only_when_completed",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("status", "completed"),
                            models.Q(("settled", False), ("tip_settled", False)),
                            _connector="OR",
                        ),
                        name="booking_settled_only_when_completed",
                    ),
                ],
            },
        ),
    ]
