# File: smart_parking/infrastructure/messaging.py
"""
Messaging Infrastructure for the Smart Parking engine

This module implements in-process event-driven communication:
1. Event Bus - Publish/subscribe for domain events raised by the parking lot
2. Event Handlers - Side effects for parked, queued, left and reallocated events
3. Event Store - Keeps published events for the lifetime of the process

Nothing here leaves the process and nothing survives a restart.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import logging
import threading

from ..domain.models import (
    DomainEvent, EventType, VehicleLeftEvent, VehicleParkedEvent,
    VehicleQueuedEvent, VehicleReallocatedEvent
)


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    A failing handler is logged and does not stop the remaining handlers.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to events of a specific type"""
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe a handler to every event type"""
        for event_type in EventType:
            self.subscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe handler from events"""
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type.value}")

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers"""
        self._logger.debug(f"Publishing event: {event.event_type.value} (ID: {event.event_id})")

        for handler in list(self._subscribers.get(event.event_type, [])):
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.event_type.value} with "
                    f"{handler.__class__.__name__}: {e}",
                    exc_info=True
                )

    def publish_all(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.publish(event)

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._subscribers.get(event_type, []))

    def clear_subscribers(self) -> None:
        """Remove all subscribers (for testing)"""
        self._subscribers.clear()


# ============================================================================
# CONCRETE HANDLERS
# ============================================================================

class ParkingEventHandler(EventHandler):
    """Logs parking activity"""

    def __init__(self):
        self._logger = logging.getLogger(self.__class__.__name__)

    def handle(self, event: DomainEvent) -> None:
        """Handle parking events"""
        if isinstance(event, VehicleParkedEvent):
            self._logger.info(
                f"Slot {event.slot_id} [{event.slot_category.value}] occupied by "
                f"{event.license_plate} (ticket {event.ticket_id})"
            )
        elif isinstance(event, VehicleQueuedEvent):
            self._logger.info(f"{event.license_plate} waiting at position {event.position}")
        elif isinstance(event, VehicleLeftEvent):
            self._logger.info(
                f"Slot {event.slot_id} released by {event.license_plate} after "
                f"{event.duration_minutes} min, fee: {event.fee.format()}"
            )
        elif isinstance(event, VehicleReallocatedEvent):
            self._logger.info(
                f"{event.license_plate} moved from slot {event.from_slot_id} "
                f"to slot {event.to_slot_id}"
            )


class InMemoryEventStore(EventHandler):
    """Keeps every published event in arrival order"""

    def __init__(self):
        self._events: List[DomainEvent] = []
        self._lock = threading.Lock()

    def handle(self, event: DomainEvent) -> None:
        self.save(event)

    def save(self, event: DomainEvent) -> None:
        with self._lock:
            self._events.append(event)

    def get_events(self, event_type: Optional[EventType] = None) -> List[DomainEvent]:
        with self._lock:
            if event_type is None:
                return list(self._events)
            return [event for event in self._events if event.event_type == event_type]

    def get_events_for_lot(self, parking_lot_id: str) -> List[DomainEvent]:
        with self._lock:
            return [event for event in self._events if event.parking_lot_id == parking_lot_id]

    def count(self) -> int:
        with self._lock:
            return len(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
