"""
Event dispatch for discovery changes.

Callbacks run synchronously on the event loop thread, from inside the
datagram handler. There is no queue and no ordering guarantee between
subscribers of the same event.

Subscriber exceptions are NOT caught: an exception raised by one
callback propagates out of ``dispatch`` and the remaining subscribers
for that dispatch are not called. Callbacks that can fail should guard
themselves.
"""

import logging
import uuid
from enum import Enum
from typing import Callable, Dict, Union

from .service import ServiceRecord

logger = logging.getLogger(__name__)


class ServiceEvent(Enum):
    """Events an application can subscribe to."""
    SERVICE_ANNOUNCED = "serviceAnnounced"
    SERVICE_RENOUNCED = "serviceRenounced"


# Callback type for service events
ServiceCallback = Callable[[ServiceRecord], None]

EventName = Union[ServiceEvent, str]


def as_event(event: EventName) -> ServiceEvent:
    """Accept a ServiceEvent or its string value ("serviceAnnounced", ...)."""
    if isinstance(event, ServiceEvent):
        return event
    return ServiceEvent(event)


class EventDispatcher:
    """Per-event registry of callbacks."""

    def __init__(self):
        self._subscribers: Dict[ServiceEvent, Dict[str, ServiceCallback]] = {
            event: {} for event in ServiceEvent
        }

    def subscribe(self, event: EventName, callback: ServiceCallback) -> str:
        """
        Register a callback.

        Returns:
            Opaque subscription id, needed to unsubscribe.

        Raises:
            ValueError: If ``event`` is not a known event name.
        """
        subscription_id = uuid.uuid4().hex
        self._subscribers[as_event(event)][subscription_id] = callback
        return subscription_id

    def unsubscribe(self, event: EventName, subscription_id: str) -> bool:
        """Remove a callback. False if the event or id is unknown."""
        try:
            subscribers = self._subscribers[as_event(event)]
        except ValueError:
            return False
        return subscribers.pop(subscription_id, None) is not None

    def dispatch(self, event: ServiceEvent, record: ServiceRecord):
        """Invoke every current subscriber of ``event`` with ``record``."""
        # Snapshot so callbacks may (un)subscribe while we iterate
        callbacks = list(self._subscribers[event].values())
        logger.debug(f"Dispatching {event.value} for {record.key} to {len(callbacks)} subscriber(s)")
        for callback in callbacks:
            callback(record)

    def subscriber_count(self, event: EventName) -> int:
        return len(self._subscribers[as_event(event)])
