"""
Pricing Engine

Pure price computation for a unit, date range and party size.

PACKAGE: base_price is the per-guest package rate; the requested range
must match the package duration exactly. total = base * guests.
VESSEL: base_price is the daily rate times days plus the rate deltas of
the selected cabins. total = base, or base * guests when vessels are
priced per guest.

Both kinds then apply one seasonal multiplier chosen by the month of the
start date (not per night) and round half-up to a whole currency unit.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from datetime import date
from typing import Sequence

from .entities import CabinSnapshot, UnitSnapshot

PEAK_MONTHS = frozenset({12, 1, 2})
LOW_MONTHS = frozenset({6, 7, 8})

PEAK_MULTIPLIER = Decimal('1.20')
LOW_MULTIPLIER = Decimal('0.90')
REGULAR_MULTIPLIER = Decimal('1.00')

PER_CABIN = 'per_cabin'
PER_GUEST = 'per_guest'
PRICING_MODES = (PER_CABIN, PER_GUEST)

WHOLE_UNIT = Decimal('1')


class DurationMismatch(ValueError):
    """Requested range does not match the package's fixed duration"""

    def __init__(self, required_duration: int, requested_duration: int):
        self.required_duration = required_duration
        self.requested_duration = requested_duration
        super().__init__(
            f"Package duration is {required_duration} days, "
            f"but {requested_duration} days requested"
        )


@dataclass(frozen=True)
class PriceQuote:
    base_price: Decimal
    total_price: Decimal
    price_per_guest: Decimal
    multiplier: Decimal
    duration_days: int


def seasonal_multiplier(start: date) -> Decimal:
    if start.month in PEAK_MONTHS:
        return PEAK_MULTIPLIER
    if start.month in LOW_MONTHS:
        return LOW_MULTIPLIER
    return REGULAR_MULTIPLIER


def round_currency(amount: Decimal) -> Decimal:
    return amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def compute_price(
    unit: UnitSnapshot,
    start: date,
    end: date,
    guests: int,
    cabins: Sequence[CabinSnapshot] = (),
    per_guest: bool = False,
) -> PriceQuote:
    """
    Compute base, total and per-guest price

    Raises:
        ValueError: if guests is not positive or end is not after start
        DurationMismatch: if a package is requested for the wrong length
    """
    if guests <= 0:
        raise ValueError("Guests count must be positive")
    duration_days = (end - start).days
    if duration_days <= 0:
        raise ValueError("End date must be after start date")

    multiplier = seasonal_multiplier(start)

    if unit.is_vessel:
        deltas = sum((cabin.rate_delta for cabin in cabins), Decimal('0'))
        base_price = unit.base_rate * duration_days + deltas
        subtotal = base_price * guests if per_guest else base_price
    else:
        if duration_days != unit.duration_days:
            raise DurationMismatch(unit.duration_days, duration_days)
        base_price = unit.base_rate
        subtotal = base_price * guests

    total_price = round_currency(subtotal * multiplier)
    return PriceQuote(
        base_price=base_price,
        total_price=total_price,
        price_per_guest=round_currency(total_price / guests),
        multiplier=multiplier,
        duration_days=duration_days,
    )
