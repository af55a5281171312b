"""Value objects shared by the booking core."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Half-open span of stay dates, ``[start_date, end_date)``

    The end date is the departure day and is not occupied, so a range
    ending on the 15th and one starting on the 15th share no night.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.end_date <= self.start_date:
            raise ValueError(f"Empty date range: {self.start_date} .. {self.end_date}")

    def overlaps_with(self, other: 'DateRange') -> bool:
        return self.start_date < other.end_date and other.start_date < self.end_date

    def contains(self, day: date) -> bool:
        return self.start_date <= day < self.end_date

    def nights(self) -> Iterator[date]:
        for offset in range(len(self)):
            yield self.start_date + timedelta(days=offset)

    def shifted(self, days: int) -> 'DateRange':
        step = timedelta(days=days)
        return DateRange(self.start_date + step, self.end_date + step)

    def __len__(self) -> int:
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"{self.start_date:%Y-%m-%d}/{self.end_date:%Y-%m-%d}"
