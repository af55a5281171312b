from decimal import Decimal

import django.db.models.deletion
import shared.domain.base
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("fleet", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Reservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("booking_reference", models.CharField(editable=False, max_length=32, unique=True)),
                ("start_date", models.DateField()),
                (
                    "end_date",
                    models.DateField(help_text="Exclusive: the last occupied night is the day before."),
                ),
                ("guests", models.PositiveSmallIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("CONFIRMED", "Confirmed"), ("CANCELLED", "Cancelled")],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                ("base_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "total_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Frozen at commit time; later pricing changes never alter it.",
                        max_digits=12,
                    ),
                ),
                ("price_per_guest", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("guest_name", models.CharField(blank=True, max_length=255)),
                ("guest_email", models.EmailField(blank=True, max_length=254)),
                ("guest_phone", models.CharField(blank=True, max_length=32)),
                ("special_requests", models.TextField(blank=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "cabins",
                    models.ManyToManyField(blank=True, related_name="reservations", to="fleet.cabin"),
                ),
                (
                    "unit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="fleet.reservableunit",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reservations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Reservation",
                "verbose_name_plural": "Reservations",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["unit", "start_date", "end_date"], name="bookings_res_unit_dates_idx"),
                    models.Index(fields=["status"], name="bookings_res_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gt", models.F("start_date"))),
                        name="reservation_valid_dates",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("guests__gte", 1)),
                        name="reservation_positive_guests",
                    ),
                ],
            },
            bases=(shared.domain.base.EventRecorder, models.Model),
        ),
        migrations.CreateModel(
            name="ReservationGuest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("age", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("nationality", models.CharField(blank=True, max_length=64)),
                (
                    "reservation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="guest_details",
                        to="bookings.reservation",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reservation guest",
                "verbose_name_plural": "Reservation guests",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="ReservationNight",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("slot", models.CharField(max_length=32)),
                ("night", models.DateField()),
                (
                    "reservation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="night_claims",
                        to="bookings.reservation",
                    ),
                ),
                (
                    "unit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="night_claims",
                        to="fleet.reservableunit",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reserved night",
                "verbose_name_plural": "Reserved nights",
                "ordering": ["unit", "night", "slot"],
                "constraints": [
                    models.UniqueConstraint(fields=("unit", "slot", "night"), name="reservation_night_unique_slot")
                ],
            },
        ),
    ]
