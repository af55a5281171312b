"""
Calendar Index

Per-date view of the live reservations of one unit. Built once from the
reservations overlapping a window and then queried by date.
"""

from calendar import monthrange
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List

from shared.domain.value_objects import DateRange

from .entities import ReservationSnapshot, UnitSnapshot


@dataclass(frozen=True)
class CalendarDay:
    is_available: bool
    reserved_count: int
    capacity: int


def month_range(year: int, month: int) -> DateRange:
    """Half-open range covering every day of the month"""
    first = date(year, month, 1)
    return DateRange(first, first + timedelta(days=monthrange(year, month)[1]))


class CalendarIndex:
    """
    Maps each night of a window to the live reservations occupying it

    Cancelled reservations are ignored when the index is built.
    """

    def __init__(self, window: DateRange, reservations: Iterable[ReservationSnapshot]):
        self.window = window
        self._by_night: Dict[date, List[ReservationSnapshot]] = defaultdict(list)
        for reservation in reservations:
            if not reservation.is_live:
                continue
            if not reservation.dates.overlaps_with(window):
                continue
            for night in reservation.dates.nights():
                if window.contains(night):
                    self._by_night[night].append(reservation)

    def reserved_cabins_on(self, night: date) -> set:
        cabins = set()
        for reservation in self._by_night.get(night, ()):
            cabins.update(reservation.cabin_ids)
        return cabins

    def day(self, unit: UnitSnapshot, night: date, cabin_count: int) -> CalendarDay:
        """
        Saturation for one date

        Vessels count distinct reserved cabins against the active cabin
        count. Packages are fixed departures: one reservation fills the
        single slot.
        """
        if unit.is_vessel:
            reserved = len(self.reserved_cabins_on(night))
            capacity = cabin_count
        else:
            reserved = len(self._by_night.get(night, ()))
            capacity = 1
        return CalendarDay(
            is_available=reserved < capacity,
            reserved_count=reserved,
            capacity=capacity,
        )

    def days(self, unit: UnitSnapshot, cabin_count: int = 0) -> Dict[date, CalendarDay]:
        return {
            night: self.day(unit, night, cabin_count)
            for night in self.window.nights()
        }
