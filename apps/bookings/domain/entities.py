"""
Booking Domain Entities

Plain value types used by the availability and pricing core:
- UnitKind / ReservationStatus: catalog kinds and the reservation FSM
- ReasonCode: outcome codes returned to callers
- UnitSnapshot / CabinSnapshot / ReservationSnapshot: immutable views of
  stored records, with optional fields modelled explicitly as None
- AvailabilityQuery / AvailabilityResult / BookingRejection: read and
  write path contracts

Nothing in this module touches the database.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from shared.domain.base import ValueObject
from shared.domain.value_objects import DateRange


class UnitKind(str, Enum):
    VESSEL = 'VESSEL'
    PACKAGE = 'PACKAGE'


class ReservationStatus(str, Enum):
    """
    Reservation Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (payment callback or admin action)
    - PENDING -> CANCELLED
    - CONFIRMED -> CANCELLED
    CANCELLED is terminal.
    """
    PENDING = 'PENDING'
    CONFIRMED = 'CONFIRMED'
    CANCELLED = 'CANCELLED'

    def can_transition_to(self, target: 'ReservationStatus') -> bool:
        return target in _TRANSITIONS[self]

    @property
    def is_live(self) -> bool:
        """Live reservations occupy capacity and take part in conflict checks"""
        return self in LIVE_STATUSES


_TRANSITIONS = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {ReservationStatus.CANCELLED},
    ReservationStatus.CANCELLED: set(),
}

LIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


class ReasonCode(str, Enum):
    """Outcome codes shared by the availability and booking paths"""
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    NOT_FOUND = 'NOT_FOUND'
    DURATION_MISMATCH = 'DURATION_MISMATCH'
    CAPACITY_EXCEEDED = 'CAPACITY_EXCEEDED'
    ALREADY_BOOKED = 'ALREADY_BOOKED'


# ===== Errors =====

class UnitNotFound(LookupError):
    def __init__(self, unit_id):
        self.unit_id = unit_id
        super().__init__(f"Reservable unit {unit_id} not found")


class ReservationNotFound(LookupError):
    def __init__(self, reservation_id):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} not found")


class InvalidTransition(ValueError):
    def __init__(self, current: ReservationStatus, target: Optional[ReservationStatus], message: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot move reservation from {current.value} to {target.value}")


class ReservationNotModifiable(InvalidTransition):
    """Dates, guests and cabins are frozen once a reservation is cancelled"""

    def __init__(self, current: ReservationStatus):
        super().__init__(current, None, message=f"A {current.value} reservation can no longer be modified")


# ===== Snapshots =====

@dataclass(frozen=True)
class UnitSnapshot(ValueObject):
    id: int
    kind: UnitKind
    base_rate: Decimal
    max_guests: int
    duration_days: Optional[int] = None
    is_active: bool = True

    @property
    def is_vessel(self) -> bool:
        return self.kind == UnitKind.VESSEL


@dataclass(frozen=True)
class CabinSnapshot(ValueObject):
    id: int
    capacity: int
    rate_delta: Decimal = Decimal('0')


@dataclass(frozen=True)
class ReservationSnapshot(ValueObject):
    id: int
    unit_id: int
    start_date: date
    end_date: date
    guests: int
    status: ReservationStatus
    cabin_ids: FrozenSet[int] = frozenset()

    @property
    def dates(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)

    @property
    def is_live(self) -> bool:
        return self.status.is_live


# ===== Read / write contracts =====

@dataclass(frozen=True)
class AvailabilityQuery(ValueObject):
    """
    A request to book a unit for [start_date, end_date)

    exclude_reservation_id lets an existing reservation be re-checked
    without conflicting with itself. cabin_ids pins an explicit cabin
    choice on a vessel instead of letting the resolver pick.
    """
    unit_id: int
    start_date: date
    end_date: date
    guests: int
    exclude_reservation_id: Optional[int] = None
    cabin_ids: Optional[Tuple[int, ...]] = None

    def validation_error(self) -> Optional[str]:
        """Return a reason if the query is malformed, None otherwise"""
        if self.guests is None or self.guests <= 0:
            return 'invalid guest count'
        if self.start_date >= self.end_date:
            return 'end date must be after start date'
        if self.cabin_ids is not None and not self.cabin_ids:
            return 'cabin list must not be empty'
        return None

    @property
    def dates(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)

    def with_dates(self, dates: DateRange) -> 'AvailabilityQuery':
        return AvailabilityQuery(
            unit_id=self.unit_id,
            start_date=dates.start_date,
            end_date=dates.end_date,
            guests=self.guests,
            exclude_reservation_id=self.exclude_reservation_id,
            cabin_ids=self.cabin_ids,
        )


@dataclass(frozen=True)
class AvailabilityResult(ValueObject):
    is_available: bool
    total_price: Decimal = Decimal('0')
    base_price: Decimal = Decimal('0')
    price_per_guest: Decimal = Decimal('0')
    duration_days: int = 0
    code: Optional[ReasonCode] = None
    reason: str = ''
    required_duration: Optional[int] = None
    cabin_ids: Tuple[int, ...] = ()
    alternatives: Tuple[DateRange, ...] = field(default=(), compare=False)

    @classmethod
    def rejected(cls, code: ReasonCode, reason: str, **extra) -> 'AvailabilityResult':
        return cls(is_available=False, code=code, reason=reason, **extra)


@dataclass(frozen=True)
class BookingRejection(ValueObject):
    """
    Typed refusal from the booking transaction

    concurrent is set when the atomic insert lost a race against another
    commit; callers treat it exactly like ALREADY_BOOKED.
    """
    code: ReasonCode
    reason: str
    required_duration: Optional[int] = None
    concurrent: bool = False

    @classmethod
    def from_result(cls, result: AvailabilityResult) -> 'BookingRejection':
        return cls(
            code=result.code,
            reason=result.reason,
            required_duration=result.required_duration,
        )
