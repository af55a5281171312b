"""
Unit of Work

One booking write is one database transaction. Events recorded on
reservations during the block reach the event bus only once that
transaction has committed; a rollback drops them.
"""

from typing import List, Optional
import logging

from django.db import transaction  # type: ignore

from shared.domain.base import DomainEvent, EventRecorder

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    Atomic block plus deferred event delivery

    Usage:
        with DjangoUnitOfWork() as uow:
            unit = lock_unit(unit_id)
            reservation = Reservation.objects.create(...)
            reservation.add_event(ReservationCreated(...))
            uow.collect_events(reservation)
        # subscribers run after COMMIT

    Nested inside an outer atomic block the events wait for the outermost
    commit, as transaction.on_commit does.
    """

    def __init__(self, using: Optional[str] = None, bus=None):
        self._using = using
        self._bus = bus
        self._events: List[DomainEvent] = []
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self._schedule_publish()
            elif self._events:
                logger.warning(f"Transaction aborted, dropping {len(self._events)} event(s)")
        finally:
            self._events = []
            self._atomic.__exit__(exc_type, exc_val, exc_tb)
        return False

    def collect_events(self, recorder: EventRecorder):
        """Move pending events off a reservation into this unit of work"""
        pending = recorder.events
        if not pending:
            return
        self._events.extend(pending)
        recorder.clear_events()
        logger.debug(f"Collected {len(pending)} event(s) from {recorder.__class__.__name__} {getattr(recorder, 'pk', None)}")

    def _schedule_publish(self):
        if not self._events:
            return
        events = list(self._events)
        transaction.on_commit(lambda: self._publish(events), using=self._using)

    def _publish(self, events: List[DomainEvent]):
        bus = self._bus
        if bus is None:
            from shared.application.message_bus import event_bus as bus
        bus.publish(events)
