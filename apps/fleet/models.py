"""Catalog models for vessels, cabins and fixed-departure packages."""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.entities import CabinSnapshot, UnitKind, UnitSnapshot


class ReservableUnitQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)


class ReservableUnit(models.Model):
    """A dahabiya vessel or a fixed-departure package that can be booked."""

    class Kind(models.TextChoices):
        VESSEL = UnitKind.VESSEL.value, _("Vessel")
        PACKAGE = UnitKind.PACKAGE.value, _("Package")

    kind = models.CharField(max_length=10, choices=Kind.choices)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    description = models.TextField(blank=True)
    base_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Per-day rate for vessels, per-guest price for packages."),
    )
    duration_days = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text=_("Fixed length of a package departure in days. Unused for vessels."),
    )
    max_guests = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1)],
        help_text=_("Aggregate guest capacity."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReservableUnitQuerySet.as_manager()

    class Meta:
        verbose_name = _("Reservable unit")
        verbose_name_plural = _("Reservable units")
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(kind="PACKAGE") | models.Q(duration_days__gte=1),
                name="package_requires_duration",
            ),
        ]
        indexes = [
            models.Index(fields=["kind", "is_active"], name="fleet_unit_kind_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.get_kind_display()})"

    @property
    def is_vessel(self) -> bool:
        return self.kind == self.Kind.VESSEL

    @property
    def is_package(self) -> bool:
        return self.kind == self.Kind.PACKAGE

    def clean(self) -> None:
        if self.is_package and not self.duration_days:
            raise ValidationError(_("A package must define its duration in days."))

    def save(self, *args, **kwargs):  # type: ignore
        if not self.slug:
            base_slug = slugify(self.name)[:200] or self.kind.lower()
            candidate = base_slug
            counter = 1
            while self.__class__.objects.filter(slug=candidate).exclude(pk=self.pk).exists():
                counter += 1
                candidate = f"{base_slug}-{counter}"
            self.slug = candidate
        super().save(*args, **kwargs)

    def to_snapshot(self) -> UnitSnapshot:
        return UnitSnapshot(
            id=self.pk,
            kind=UnitKind(self.kind),
            base_rate=self.base_rate,
            max_guests=self.max_guests,
            duration_days=self.duration_days,
            is_active=self.is_active,
        )


class Cabin(models.Model):
    """A cabin on a vessel, the sub-resource that vessel bookings occupy."""

    unit = models.ForeignKey(
        ReservableUnit,
        on_delete=models.CASCADE,
        related_name="cabins",
        limit_choices_to={"kind": ReservableUnit.Kind.VESSEL},
    )
    name = models.CharField(max_length=100)
    capacity = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    rate_delta = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Added to the vessel price when this cabin is part of a booking."),
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Cabin")
        verbose_name_plural = _("Cabins")
        ordering = ["unit", "name"]
        constraints = [
            models.UniqueConstraint(fields=["unit", "name"], name="cabin_unique_name_per_unit"),
        ]

    def __str__(self) -> str:
        return f"{self.unit.name}: {self.name}"

    def clean(self) -> None:
        if self.unit_id and not self.unit.is_vessel:
            raise ValidationError(_("Cabins can only belong to vessels."))

    def to_snapshot(self) -> CabinSnapshot:
        return CabinSnapshot(
            id=self.pk,
            capacity=self.capacity,
            rate_delta=self.rate_delta,
        )
