"""
Availability queries

Read-only side of the booking core: availability checks with prices,
month calendars and alternative-date suggestions. Nothing here takes
locks unless a write-path caller asks for them.
"""

from dataclasses import replace
from datetime import date
from typing import Dict, List, Optional
import logging

from django.conf import settings  # type: ignore

from apps.bookings.domain.calendar_index import CalendarDay, CalendarIndex, month_range
from apps.bookings.domain.capacity import (
    MAX_CABIN_SEARCH,
    resolve_package,
    resolve_vessel,
)
from apps.bookings.domain.entities import (
    AvailabilityQuery,
    AvailabilityResult,
    ReasonCode,
    UnitNotFound,
)
from apps.bookings.domain.pricing import PER_CABIN, PER_GUEST, PRICING_MODES, DurationMismatch, compute_price
from apps.bookings.services import ConflictDetector
from apps.fleet.models import ReservableUnit
from shared.domain.value_objects import DateRange
from shared.infrastructure.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

DEFAULT_ALTERNATIVES_LIMIT = 5
DEFAULT_ALTERNATIVES_WINDOW_DAYS = 60
DEFAULT_MAX_NIGHTS = 90

PAST_START_REASON = 'start date in past'


def booking_setting(name: str, default):
    return getattr(settings, 'BOOKING', {}).get(name, default)


class AvailabilityService:
    """
    Answers "can this unit take this party on these dates, and for how much"

    Usage:
        service = AvailabilityService(clock=FixedClock(date(2026, 3, 1)))
        result = service.check_availability(AvailabilityQuery(...))
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        conflicts: Optional[ConflictDetector] = None,
        pricing_mode: Optional[str] = None,
        max_cabin_search: Optional[int] = None,
        max_nights: Optional[int] = None,
    ):
        self.clock = clock or SystemClock()
        self.conflicts = conflicts or ConflictDetector()
        self.pricing_mode = pricing_mode or booking_setting('VESSEL_PRICING', PER_CABIN)
        if self.pricing_mode not in PRICING_MODES:
            raise ValueError(f"Unknown vessel pricing mode: {self.pricing_mode}")
        self.max_cabin_search = max_cabin_search or booking_setting('MAX_CABIN_SEARCH', MAX_CABIN_SEARCH)
        self.max_nights = max_nights or booking_setting('MAX_NIGHTS', DEFAULT_MAX_NIGHTS)

    # ===== Lookups =====

    def load_unit(self, unit_id) -> ReservableUnit:
        """Active unit by id, UnitNotFound otherwise"""
        unit = ReservableUnit.objects.active().filter(pk=unit_id).first()
        if unit is None:
            raise UnitNotFound(unit_id)
        return unit

    # ===== Availability =====

    def check_availability(self, query: AvailabilityQuery) -> AvailabilityResult:
        """
        Decide availability and price for a query

        Raises:
            UnitNotFound: if the unit does not exist or is inactive
        """
        rejection = self.validate(query)
        if rejection is not None:
            return rejection
        unit = self.load_unit(query.unit_id)
        return self.evaluate(unit, query)

    def validate(self, query: AvailabilityQuery, check_past: bool = True) -> Optional[AvailabilityResult]:
        """
        Shape and date checks that need no database access

        check_past=False skips the start-in-the-past rule, for stays that
        are already under way and keep their start date.
        """
        error = query.validation_error()
        if error:
            return AvailabilityResult.rejected(ReasonCode.VALIDATION_ERROR, error)
        if len(query.dates) > self.max_nights:
            return AvailabilityResult.rejected(
                ReasonCode.VALIDATION_ERROR,
                f"stay longer than {self.max_nights} nights",
            )
        if check_past and query.start_date < self.clock.today():
            return AvailabilityResult.rejected(ReasonCode.VALIDATION_ERROR, PAST_START_REASON)
        return None

    def evaluate(self, unit: ReservableUnit, query: AvailabilityQuery, lock: bool = False) -> AvailabilityResult:
        """
        Run capacity and pricing for an already loaded unit

        The booking transaction calls this with the unit row locked and
        lock=True so the conflict reads happen on the locked state.
        """
        snapshot = unit.to_snapshot()
        start, end = query.start_date, query.end_date

        if unit.is_package:
            if query.cabin_ids is not None:
                return AvailabilityResult.rejected(
                    ReasonCode.VALIDATION_ERROR,
                    'packages are not booked by cabin',
                )
            conflict = self.conflicts.has_conflict(
                unit.pk, None, start, end,
                exclude_reservation_id=query.exclude_reservation_id,
                lock=lock,
            )
            decision = resolve_package(snapshot, query.guests, conflict)
        else:
            cabins = [cabin.to_snapshot() for cabin in unit.cabins.filter(is_active=True)]
            if query.cabin_ids is not None:
                unknown = set(query.cabin_ids) - {cabin.id for cabin in cabins}
                if unknown:
                    return AvailabilityResult.rejected(
                        ReasonCode.NOT_FOUND,
                        f'cabins {sorted(unknown)} do not belong to this vessel',
                    )
            busy = self.conflicts.busy_cabin_ids(
                unit.pk, start, end,
                exclude_reservation_id=query.exclude_reservation_id,
                lock=lock,
            )
            decision = resolve_vessel(
                snapshot,
                query.guests,
                cabins,
                busy,
                requested_cabin_ids=query.cabin_ids,
                max_cabins=self.max_cabin_search,
            )

        if not decision.feasible:
            return AvailabilityResult.rejected(decision.code, decision.reason)

        selected = decision.selection.cabins if decision.selection else ()
        try:
            quote = compute_price(
                snapshot, start, end, query.guests,
                cabins=selected,
                per_guest=self.pricing_mode == PER_GUEST,
            )
        except DurationMismatch as e:
            return AvailabilityResult.rejected(
                ReasonCode.DURATION_MISMATCH,
                str(e),
                required_duration=e.required_duration,
                duration_days=e.requested_duration,
            )

        return AvailabilityResult(
            is_available=True,
            total_price=quote.total_price,
            base_price=quote.base_price,
            price_per_guest=quote.price_per_guest,
            duration_days=quote.duration_days,
            cabin_ids=decision.selection.cabin_ids if decision.selection else (),
        )

    # ===== Calendar =====

    def get_calendar(self, unit_id, month: int, year: int) -> Dict[date, CalendarDay]:
        """
        Saturation of every day of a month for one unit

        Raises:
            UnitNotFound: if the unit does not exist or is inactive
            ValueError: if month is outside 1..12
        """
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month: {month}")
        unit = self.load_unit(unit_id)
        window = month_range(year, month)
        reservations = [
            reservation.to_snapshot()
            for reservation in self.conflicts.live_reservations(unit.pk, window.start_date, window.end_date)
        ]
        cabin_count = unit.cabins.filter(is_active=True).count() if unit.is_vessel else 0
        index = CalendarIndex(window, reservations)
        return index.days(unit.to_snapshot(), cabin_count=cabin_count)

    # ===== Alternatives =====

    def suggest_alternatives(
        self,
        query: AvailabilityQuery,
        limit: Optional[int] = None,
        window_days: Optional[int] = None,
    ) -> List[DateRange]:
        """
        Nearby ranges of the same length that are bookable

        Offsets grow one day at a time up to window_days, trying the
        earlier start before the later one. Starts before today are
        skipped.
        """
        limit = limit or booking_setting('ALTERNATIVES_LIMIT', DEFAULT_ALTERNATIVES_LIMIT)
        window_days = window_days or booking_setting('ALTERNATIVES_WINDOW_DAYS', DEFAULT_ALTERNATIVES_WINDOW_DAYS)

        if query.validation_error():
            return []
        unit = self.load_unit(query.unit_id)
        today = self.clock.today()
        alternatives: List[DateRange] = []

        for offset in range(1, window_days + 1):
            for candidate in (query.dates.shifted(-offset), query.dates.shifted(offset)):
                if candidate.start_date < today:
                    continue
                if self.evaluate(unit, query.with_dates(candidate)).is_available:
                    alternatives.append(candidate)
                if len(alternatives) >= limit:
                    logger.debug(f"Found {len(alternatives)} alternatives for unit {unit.pk}")
                    return alternatives

        return alternatives

    def check_with_alternatives(self, query: AvailabilityQuery) -> AvailabilityResult:
        """check_availability, plus alternatives when the request is refused"""
        result = self.check_availability(query)
        if not self._shift_may_help(result):
            return result
        return replace(result, alternatives=tuple(self.suggest_alternatives(query)))

    @staticmethod
    def _shift_may_help(result: AvailabilityResult) -> bool:
        # Moving the dates cannot fix capacity, duration or lookup failures
        if result.is_available:
            return False
        if result.code == ReasonCode.ALREADY_BOOKED:
            return True
        return result.code == ReasonCode.VALIDATION_ERROR and result.reason == PAST_START_REASON
