"""Conflict detection and night claims for reservations."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional, Set, TYPE_CHECKING

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from .models import Reservation, ReservationNight

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.fleet.models import ReservableUnit

logger = logging.getLogger(__name__)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection(queryset.db).in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


class ConflictDetector:
    """
    Answers whether a date range collides with live reservations of a unit.

    Only PENDING and CONFIRMED reservations count. Passing lock=True adds
    SELECT ... FOR UPDATE when called inside a transaction.
    """

    def _colliding(self, unit_id: int, start: date, end: date, exclude_reservation_id: Optional[int] = None):
        queryset = Reservation.objects.live().overlapping(start, end).filter(unit_id=unit_id)
        if exclude_reservation_id is not None:
            queryset = queryset.exclude(pk=exclude_reservation_id)
        return queryset

    def has_conflict(
        self,
        unit_id: int,
        cabin_ids: Optional[Iterable[int]],
        start: date,
        end: date,
        exclude_reservation_id: Optional[int] = None,
        lock: bool = False,
    ) -> bool:
        queryset = self._colliding(unit_id, start, end, exclude_reservation_id)

        if cabin_ids is not None:
            queryset = queryset.filter(cabins__id__in=list(cabin_ids))

        if lock:
            queryset = _lock_queryset_if_possible(queryset)

        return queryset.exists()

    def busy_cabin_ids(
        self,
        unit_id: int,
        start: date,
        end: date,
        exclude_reservation_id: Optional[int] = None,
        lock: bool = False,
    ) -> Set[int]:
        """Cabins of the unit held by a live reservation overlapping the range"""
        queryset = Reservation.cabins.through.objects.filter(
            reservation__in=self._colliding(unit_id, start, end, exclude_reservation_id),
        )

        if lock:
            queryset = _lock_queryset_if_possible(queryset)

        return set(queryset.values_list("cabin_id", flat=True))

    def live_reservations(self, unit_id: int, start: date, end: date):
        """Live reservations of the unit overlapping the range, cabins prefetched"""
        return self._colliding(unit_id, start, end).prefetch_related("cabins")


def claim_nights(reservation: Reservation) -> None:
    """
    Write one ReservationNight per occupied night and slot.

    Must run inside a transaction; an IntegrityError here means another
    live reservation already holds one of the slots.
    """

    unit: "ReservableUnit" = reservation.unit
    rows = [
        ReservationNight(
            reservation=reservation,
            unit=unit,
            slot=slot,
            night=night,
        )
        for slot in reservation.slots()
        for night in reservation.dates.nights()
    ]
    ReservationNight.objects.bulk_create(rows)
    logger.debug(f"Claimed {len(rows)} nights for reservation {reservation.pk}")


def release_nights(reservation: Reservation) -> int:
    """Drop the night claims of a reservation, returning how many were removed"""

    deleted, _ = ReservationNight.objects.filter(reservation=reservation).delete()
    logger.debug(f"Released {deleted} nights for reservation {reservation.pk}")
    return deleted


def lock_unit(unit_id):
    """Active unit row, locked for the rest of the transaction where supported"""

    from apps.fleet.models import ReservableUnit

    queryset = _lock_queryset_if_possible(ReservableUnit.objects.active().filter(pk=unit_id))
    return queryset.first()


def lock_reservation(reservation_id):
    queryset = _lock_queryset_if_possible(
        Reservation.objects.select_related("unit").filter(pk=reservation_id)
    )
    return queryset.first()
