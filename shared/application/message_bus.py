"""
Event Bus

Delivers committed reservation events to in-process subscribers
(guest notifications, loyalty, reporting). Subscribers are matched on the
event class and its bases, so a handler registered for DomainEvent sees
every event.
"""

from collections import defaultdict
from typing import Callable, DefaultDict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]


class EventBus:
    """Fan-out of domain events, one event to many subscribers"""

    def __init__(self):
        self._subscribers: DefaultDict[Type[DomainEvent], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[DomainEvent], handler: Handler) -> Handler:
        self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed {_name(handler)} to {event_type.__name__}")
        return handler

    def unsubscribe(self, event_type: Type[DomainEvent], handler: Handler):
        subscribers = self._subscribers.get(event_type, [])
        if handler in subscribers:
            subscribers.remove(handler)

    def on(self, event_type: Type[DomainEvent]) -> Callable[[Handler], Handler]:
        """Decorator form of subscribe"""
        def decorator(handler: Handler) -> Handler:
            return self.subscribe(event_type, handler)
        return decorator

    def subscribers_for(self, event: DomainEvent) -> List[Handler]:
        matched: List[Handler] = []
        for klass in type(event).__mro__:
            matched.extend(self._subscribers.get(klass, ()))
        return matched

    def publish(self, events: Iterable[DomainEvent]) -> int:
        """
        Deliver events in order and return how many deliveries succeeded

        A failing subscriber is logged and skipped. The reservation it
        reacts to is already committed.
        """
        delivered = 0
        for event in events:
            subscribers = self.subscribers_for(event)
            logger.info(
                f"Publishing {event.event_type} for reservation {event.aggregate_id} "
                f"to {len(subscribers)} subscriber(s)"
            )
            for handler in subscribers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(f"Subscriber {_name(handler)} failed on {event.event_type}")
                else:
                    delivered += 1
        return delivered


def _name(handler: Handler) -> str:
    return getattr(handler, '__qualname__', repr(handler))


event_bus = EventBus()
