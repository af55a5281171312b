from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ReservableUnit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("VESSEL", "Vessel"), ("PACKAGE", "Package")], max_length=10)),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(blank=True, max_length=255, unique=True)),
                ("description", models.TextField(blank=True)),
                (
                    "base_rate",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Per-day rate for vessels, per-guest price for packages.",
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "duration_days",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Fixed length of a package departure in days. Unused for vessels.",
                        null=True,
                    ),
                ),
                (
                    "max_guests",
                    models.PositiveSmallIntegerField(
                        help_text="Aggregate guest capacity.",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Reservable unit",
                "verbose_name_plural": "Reservable units",
                "ordering": ["name"],
                "indexes": [models.Index(fields=["kind", "is_active"], name="fleet_unit_kind_active_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("kind", "PACKAGE"), _negated=True) | models.Q(("duration_days__gte", 1)),
                        name="package_requires_duration",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Cabin",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                (
                    "capacity",
                    models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                (
                    "rate_delta",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Added to the vessel price when this cabin is part of a booking.",
                        max_digits=10,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "unit",
                    models.ForeignKey(
                        limit_choices_to={"kind": "VESSEL"},
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="cabins",
                        to="fleet.reservableunit",
                    ),
                ),
            ],
            options={
                "verbose_name": "Cabin",
                "verbose_name_plural": "Cabins",
                "ordering": ["unit", "name"],
                "constraints": [
                    models.UniqueConstraint(fields=("unit", "name"), name="cabin_unique_name_per_unit")
                ],
            },
        ),
    ]
