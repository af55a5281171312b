"""
Clock abstraction

The booking core never reads system time directly: services receive a
Clock so that "today" can be pinned in tests.
"""

from abc import ABC, abstractmethod
from datetime import date

from django.utils import timezone  # type: ignore


class Clock(ABC):
    """Source of the current local date"""

    @abstractmethod
    def today(self) -> date:
        pass


class SystemClock(Clock):
    """Current date in the project's TIME_ZONE"""

    def today(self) -> date:
        return timezone.localdate()


class FixedClock(Clock):
    """Clock frozen at a given date"""

    def __init__(self, current: date):
        self._current = current

    def today(self) -> date:
        return self._current

    def __repr__(self):
        return f"FixedClock({self._current})"
