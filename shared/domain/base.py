"""
Domain building blocks for the booking core.

ValueObject marks immutable, identity-less records (snapshots, queries,
results). DomainEvent is the envelope of everything published after a
commit. EventRecorder lets a Django model hold events until its unit of
work collects them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from django.utils import timezone  # type: ignore


@dataclass(frozen=True)
class ValueObject:
    """Frozen dataclass base; equality is by field values"""


@dataclass
class DomainEvent:
    """
    Envelope for a fact about a reservation

    ``aggregate_id`` is the reservation primary key. ``occurred_at`` is
    timezone-aware so subscribers can compare it with model timestamps.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=timezone.now)
    aggregate_id: Optional[int] = None

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event_id': str(self.event_id),
            'event_type': self.event_type,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': self.aggregate_id,
        }


class EventRecorder:
    """
    Mixin for models that raise domain events

    Events sit in the instance __dict__ and are created on first use,
    which keeps Model.__init__ and pickling untouched.
    """

    _EVENTS_ATTR = '_recorded_events'

    def add_event(self, event: DomainEvent):
        if event.aggregate_id is None:
            event.aggregate_id = getattr(self, 'pk', None)
        self.__dict__.setdefault(self._EVENTS_ATTR, []).append(event)

    def clear_events(self):
        self.__dict__.pop(self._EVENTS_ATTR, None)

    @property
    def events(self) -> List[DomainEvent]:
        return list(self.__dict__.get(self._EVENTS_ATTR, ()))
