"""
Booking Domain Events

Events that represent things that have happened to a reservation.
They are published on the message bus after the transaction commits;
notification, loyalty and reporting collaborators subscribe to them.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Tuple

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


@dataclass
class ReservationCreated(DomainEvent):
    """
    Event: A new PENDING reservation was committed

    Triggers:
    - Send booking acknowledgement to the guest
    - Start payment flow
    """
    reservation_id: int = None
    unit_id: int = None
    dates: DateRange = None
    guests: int = 0
    total_price: Decimal = Decimal('0')
    cabin_ids: Tuple[int, ...] = field(default_factory=tuple)


@dataclass
class ReservationConfirmed(DomainEvent):
    """
    Event: Reservation confirmed (PENDING -> CONFIRMED)

    Triggers:
    - Send confirmation to guest
    - Award loyalty points
    """
    reservation_id: int = None
    unit_id: int = None
    dates: DateRange = None


@dataclass
class ReservationCancelled(DomainEvent):
    """
    Event: Reservation was cancelled

    The reservation's nights are free again from this point on.
    """
    reservation_id: int = None
    unit_id: int = None
    reason: str = ''
    old_status: str = ''


@dataclass
class ReservationModified(DomainEvent):
    """Event: Dates or party size of a live reservation changed"""
    reservation_id: int = None
    unit_id: int = None
    old_dates: DateRange = None
    new_dates: DateRange = None
    old_total_price: Decimal = Decimal('0')
    new_total_price: Decimal = Decimal('0')
