"""Reservation models for the booking core."""

from __future__ import annotations

import secrets
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.base import EventRecorder
from shared.domain.value_objects import DateRange

from .domain.entities import (
    InvalidTransition,
    LIVE_STATUSES,
    ReservationSnapshot,
    ReservationStatus,
)

UNIT_SLOT = "unit"


def cabin_slot(cabin_id: int) -> str:
    return f"cabin:{cabin_id}"


class ReservationQuerySet(models.QuerySet):
    def live(self):
        return self.filter(status__in=[status.value for status in LIVE_STATUSES])

    def overlapping(self, start_date, end_date):
        """Half-open overlap: existing.start < end AND start < existing.end"""
        return self.filter(start_date__lt=end_date, end_date__gt=start_date)


class Reservation(EventRecorder, models.Model):
    """A booking of a vessel's cabins or of a package departure."""

    class Status(models.TextChoices):
        PENDING = ReservationStatus.PENDING.value, _("Pending")
        CONFIRMED = ReservationStatus.CONFIRMED.value, _("Confirmed")
        CANCELLED = ReservationStatus.CANCELLED.value, _("Cancelled")

    booking_reference = models.CharField(max_length=32, unique=True, editable=False)
    unit = models.ForeignKey(
        "fleet.ReservableUnit",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    cabins = models.ManyToManyField(
        "fleet.Cabin",
        blank=True,
        related_name="reservations",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reservations",
    )
    start_date = models.DateField()
    end_date = models.DateField(help_text=_("Exclusive: the last occupied night is the day before."))
    guests = models.PositiveSmallIntegerField()
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    base_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Frozen at commit time; later pricing changes never alter it."),
    )
    price_per_guest = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    guest_name = models.CharField(max_length=255, blank=True)
    guest_email = models.EmailField(blank=True)
    guest_phone = models.CharField(max_length=32, blank=True)
    special_requests = models.TextField(blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="reservation_valid_dates",
            ),
            models.CheckConstraint(
                condition=models.Q(guests__gte=1),
                name="reservation_positive_guests",
            ),
        ]
        indexes = [
            models.Index(fields=["unit", "start_date", "end_date"], name="bookings_res_unit_dates_idx"),
            models.Index(fields=["status"], name="bookings_res_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Reservation {self.booking_reference} ({self.status})"

    def clean(self) -> None:
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError(_("End date must be after start date."))

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_reference:
            self.booking_reference = self.generate_booking_reference(self.unit.kind)
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_reference(kind: str) -> str:
        stamp = timezone.now().strftime("%y%m%d")
        return f"{kind}-{stamp}-{secrets.token_hex(4).upper()}"

    @property
    def dates(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)

    @property
    def status_value(self) -> ReservationStatus:
        return ReservationStatus(self.status)

    @property
    def is_live(self) -> bool:
        return self.status_value.is_live

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days

    def transition_to(self, target: ReservationStatus) -> ReservationStatus:
        """Move along the status FSM, returning the previous status"""
        current = self.status_value
        if not current.can_transition_to(target):
            raise InvalidTransition(current, target)
        self.status = target.value
        return current

    def slots(self):
        """Conflict slots this reservation occupies"""
        if self.unit.is_package:
            return [UNIT_SLOT]
        return [cabin_slot(cabin_id) for cabin_id in self.cabin_ids()]

    def cabin_ids(self):
        return sorted(cabin.pk for cabin in self.cabins.all())

    def to_snapshot(self) -> ReservationSnapshot:
        return ReservationSnapshot(
            id=self.pk,
            unit_id=self.unit_id,
            start_date=self.start_date,
            end_date=self.end_date,
            guests=self.guests,
            status=self.status_value,
            cabin_ids=frozenset(self.cabin_ids()),
        )


class ReservationNight(models.Model):
    """
    One occupied night of one slot

    The unique (unit, slot, night) constraint is the storage-level
    guarantee that two live reservations never hold the same cabin (or the
    same package departure) on the same night. Rows exist only while the
    reservation is live.
    """

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name="night_claims",
    )
    unit = models.ForeignKey(
        "fleet.ReservableUnit",
        on_delete=models.CASCADE,
        related_name="night_claims",
    )
    slot = models.CharField(max_length=32)
    night = models.DateField()

    class Meta:
        verbose_name = _("Reserved night")
        verbose_name_plural = _("Reserved nights")
        ordering = ["unit", "night", "slot"]
        constraints = [
            models.UniqueConstraint(
                fields=["unit", "slot", "night"],
                name="reservation_night_unique_slot",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.unit_id}/{self.slot} @ {self.night}"


class ReservationGuest(models.Model):
    """Traveller details captured with a reservation (not validated)."""

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name="guest_details",
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    nationality = models.CharField(max_length=64, blank=True)

    class Meta:
        verbose_name = _("Reservation guest")
        verbose_name_plural = _("Reservation guests")
        ordering = ["id"]

    def __str__(self) -> str:
        return self.name
