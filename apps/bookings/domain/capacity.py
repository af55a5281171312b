"""
Capacity Resolver

Maps a guest count onto the inventory of a unit.

Packages are single-inventory departures: one booking takes the whole
departure, so the only questions are the guest ceiling and whether the
dates are already taken.

Vessels are booked by cabin. The resolver searches for the smallest set
of free cabins that holds the party:
1. fewest cabins
2. total capacity closest to (never below) the guest count
3. lowest total rate delta
4. lowest cabin ids, so equal candidates always resolve the same way

Cabin counts are small, so the search enumerates index combinations of
increasing size and skips any size whose best possible capacity cannot
reach the guest count.
"""

from dataclasses import dataclass
from decimal import Decimal
from itertools import accumulate, combinations
from typing import Iterable, Optional, Sequence, Tuple

from .entities import CabinSnapshot, ReasonCode, UnitSnapshot

MAX_CABIN_SEARCH = 20


@dataclass(frozen=True)
class CabinSelection:
    cabins: Tuple[CabinSnapshot, ...]

    @property
    def cabin_ids(self) -> Tuple[int, ...]:
        return tuple(sorted(cabin.id for cabin in self.cabins))

    @property
    def total_capacity(self) -> int:
        return sum(cabin.capacity for cabin in self.cabins)

    @property
    def total_rate_delta(self) -> Decimal:
        return sum((cabin.rate_delta for cabin in self.cabins), Decimal('0'))


@dataclass(frozen=True)
class CapacityDecision:
    feasible: bool
    code: Optional[ReasonCode] = None
    reason: str = ''
    selection: Optional[CabinSelection] = None

    @classmethod
    def accept(cls, selection: Optional[CabinSelection] = None) -> 'CapacityDecision':
        return cls(feasible=True, selection=selection)

    @classmethod
    def reject(cls, code: ReasonCode, reason: str) -> 'CapacityDecision':
        return cls(feasible=False, code=code, reason=reason)


def select_cabins(
    cabins: Sequence[CabinSnapshot],
    guests: int,
    max_cabins: int = MAX_CABIN_SEARCH,
) -> Optional[CabinSelection]:
    """
    Pick the preferred cabin combination that holds `guests`

    Returns None when no combination of the given cabins is large enough.
    Only the `max_cabins` largest cabins are considered.
    """
    if guests <= 0 or not cabins:
        return None

    pool = sorted(cabins, key=lambda c: (-c.capacity, c.rate_delta, c.id))[:max_cabins]
    capacities = [cabin.capacity for cabin in pool]
    # best_sum[k - 1] is the largest capacity any k cabins can reach
    best_sum = list(accumulate(capacities))

    for size in range(1, len(pool) + 1):
        if best_sum[size - 1] < guests:
            continue

        best_key = None
        best_indexes = None
        for indexes in combinations(range(len(pool)), size):
            capacity = 0
            for index in indexes:
                capacity += capacities[index]
            if capacity < guests:
                continue
            key = (
                capacity - guests,
                sum((pool[i].rate_delta for i in indexes), Decimal('0')),
                tuple(sorted(pool[i].id for i in indexes)),
            )
            if best_key is None or key < best_key:
                best_key = key
                best_indexes = indexes

        if best_indexes is not None:
            return CabinSelection(tuple(pool[i] for i in best_indexes))

    return None


def resolve_package(unit: UnitSnapshot, guests: int, has_conflict: bool) -> CapacityDecision:
    if guests <= 0:
        return CapacityDecision.reject(ReasonCode.VALIDATION_ERROR, 'invalid guest count')
    if guests > unit.max_guests:
        return CapacityDecision.reject(
            ReasonCode.CAPACITY_EXCEEDED,
            f'capacity exceeded: maximum is {unit.max_guests} guests',
        )
    if has_conflict:
        return CapacityDecision.reject(
            ReasonCode.ALREADY_BOOKED,
            'this departure is already booked for the selected dates',
        )
    return CapacityDecision.accept()


def resolve_vessel(
    unit: UnitSnapshot,
    guests: int,
    cabins: Sequence[CabinSnapshot],
    busy_cabin_ids: Iterable[int],
    requested_cabin_ids: Optional[Sequence[int]] = None,
    max_cabins: int = MAX_CABIN_SEARCH,
) -> CapacityDecision:
    """
    Decide whether a vessel can take `guests` given which cabins are busy

    `cabins` are all active cabins of the vessel; `busy_cabin_ids` are the
    ones already claimed for the requested dates.
    """
    if guests <= 0:
        return CapacityDecision.reject(ReasonCode.VALIDATION_ERROR, 'invalid guest count')

    fleet_capacity = sum(cabin.capacity for cabin in cabins)
    ceiling = min(unit.max_guests, fleet_capacity)
    if guests > ceiling:
        return CapacityDecision.reject(
            ReasonCode.CAPACITY_EXCEEDED,
            f'capacity exceeded: maximum is {ceiling} guests',
        )

    busy = set(busy_cabin_ids)

    if requested_cabin_ids is not None:
        by_id = {cabin.id: cabin for cabin in cabins}
        chosen = tuple(by_id[cabin_id] for cabin_id in sorted(set(requested_cabin_ids)))
        if busy.intersection(c.id for c in chosen):
            return CapacityDecision.reject(
                ReasonCode.ALREADY_BOOKED,
                'one or more selected cabins are already booked for these dates',
            )
        selection = CabinSelection(chosen)
        if selection.total_capacity < guests:
            return CapacityDecision.reject(
                ReasonCode.CAPACITY_EXCEEDED,
                f'capacity exceeded: selected cabins hold {selection.total_capacity} guests',
            )
        return CapacityDecision.accept(selection)

    free = [cabin for cabin in cabins if cabin.id not in busy]
    selection = select_cabins(free, guests, max_cabins=max_cabins)
    if selection is None:
        return CapacityDecision.reject(
            ReasonCode.ALREADY_BOOKED,
            'not enough free cabins for the selected dates',
        )
    return CapacityDecision.accept(selection)
