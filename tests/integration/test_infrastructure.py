#!/usr/bin/env python3
"""
Infrastructure Integration Tests

Tests for the event bus, the event store, the in-memory repository and the
object factories.
"""

import unittest
from unittest.mock import Mock

from smart_parking.domain.aggregates import ParkingLot
from smart_parking.domain.models import EventType, SlotCategory, Vehicle, VehicleQueuedEvent
from smart_parking.domain.strategies import NearestEligibleSlotStrategy
from smart_parking.infrastructure.factories import ParkingLotBuilder, ServiceFactory, VehicleFactory
from smart_parking.infrastructure.messaging import EventBus, EventHandler, InMemoryEventStore
from smart_parking.infrastructure.repositories import InMemoryParkingLotRepository

from . import FakeClock, IntegrationTestConfig
from smart_parking.config import ParkingSettings


class FailingHandler(EventHandler):

    def handle(self, event):
        raise RuntimeError("handler failure")


class TestEventBus(unittest.TestCase):
    """Integration tests for publish/subscribe"""

    def setUp(self):
        self.bus = EventBus()
        self.store = InMemoryEventStore()
        self.event = VehicleQueuedEvent("lot-1", "CAR1", 1)

    def test_subscribed_handler_receives_event(self):
        self.bus.subscribe(EventType.VEHICLE_QUEUED, self.store)
        self.bus.publish(self.event)

        self.assertEqual(self.store.get_events(), [self.event])
        self.assertEqual(self.store.get_events(EventType.VEHICLE_LEFT), [])
        self.assertEqual(self.store.get_events_for_lot("lot-1"), [self.event])

    def test_subscribe_is_idempotent_and_reversible(self):
        self.bus.subscribe(EventType.VEHICLE_QUEUED, self.store)
        self.bus.subscribe(EventType.VEHICLE_QUEUED, self.store)
        self.assertEqual(self.bus.subscriber_count(EventType.VEHICLE_QUEUED), 1)

        self.bus.unsubscribe(EventType.VEHICLE_QUEUED, self.store)
        self.bus.publish(self.event)
        self.assertEqual(self.store.count(), 0)

    def test_failing_handler_does_not_stop_others(self):
        self.bus.subscribe(EventType.VEHICLE_QUEUED, FailingHandler())
        self.bus.subscribe(EventType.VEHICLE_QUEUED, self.store)

        with self.assertLogs("EventBus", level="ERROR"):
            self.bus.publish(self.event)

        self.assertEqual(self.store.count(), 1)

    def test_subscribe_all(self):
        handler = Mock(spec=EventHandler)
        handler.can_handle.return_value = True
        self.bus.subscribe_all(handler)

        for event_type in EventType:
            self.assertEqual(self.bus.subscriber_count(event_type), 1)

        self.bus.publish(self.event)
        handler.handle.assert_called_once_with(self.event)

        self.bus.clear_subscribers()
        self.assertEqual(self.bus.subscriber_count(EventType.VEHICLE_QUEUED), 0)

    def test_default_bus_logs_events(self):
        bus = ServiceFactory.create_event_bus()
        with self.assertLogs("ParkingEventHandler", level="INFO") as logs:
            bus.publish(self.event)
        self.assertIn("CAR1 waiting at position 1", logs.output[0])


class TestRepository(unittest.TestCase):
    """Integration tests for the in-memory parking lot repository"""

    def setUp(self):
        self.repository = InMemoryParkingLotRepository()
        self.settings = ParkingSettings(**IntegrationTestConfig.SETTINGS)

    def test_add_get_delete(self):
        lot = ParkingLot(3, settings=self.settings, name="North")
        self.repository.add(lot)

        self.assertIs(self.repository.get(lot.id), lot)
        self.assertTrue(self.repository.exists(lot.id))
        self.assertEqual(self.repository.count(), 1)
        self.assertIs(self.repository.find_by_name("North"), lot)
        self.assertIsNone(self.repository.find_by_name("South"))

        self.assertTrue(self.repository.delete(lot.id))
        self.assertFalse(self.repository.delete(lot.id))
        self.assertIsNone(self.repository.get(lot.id))

    def test_duplicate_id_rejected(self):
        lot = ParkingLot(3, settings=self.settings, id="lot-1")
        self.repository.add(lot)
        with self.assertRaises(KeyError):
            self.repository.add(ParkingLot(3, settings=self.settings, id="lot-1"))

    def test_pagination(self):
        for i in range(5):
            self.repository.add(ParkingLot(1, settings=self.settings, name=f"Lot {i}"))
        self.assertEqual(len(self.repository.get_all(skip=1, limit=3)), 3)
        self.repository.clear()
        self.assertEqual(self.repository.count(), 0)


class TestFactories(unittest.TestCase):
    """Integration tests for the object factories"""

    def setUp(self):
        self.settings = ParkingSettings(**IntegrationTestConfig.SETTINGS)

    def test_vehicle_factory(self):
        factory = VehicleFactory()

        vehicle = factory.create("ka01", vehicle_type="bike", is_electric=True)
        self.assertEqual((vehicle.plate, vehicle.vehicle_type, vehicle.is_electric), ("KA01", "BIKE", True))

        vehicles = factory.create_many(3, prefix="TEST", is_vip=True)
        self.assertEqual([v.plate for v in vehicles], ["TEST001", "TEST002", "TEST003"])
        self.assertTrue(all(v.is_vip for v in vehicles))

    def test_builder(self):
        clock = FakeClock()
        strategy = NearestEligibleSlotStrategy()

        lot = (
            ParkingLotBuilder()
            .with_slots(10)
            .with_name("Built Lot")
            .with_settings(self.settings)
            .with_seed(7)
            .with_clock(clock)
            .with_parking_strategy(strategy)
            .build()
        )

        self.assertEqual(lot.name, "Built Lot")
        self.assertEqual(lot.settings.seed, 7)
        self.assertEqual(self.settings.seed, 42)
        self.assertEqual(lot.count_by_category(SlotCategory.EV_CHARGING), 2)
        self.assertEqual(lot.admit(Vehicle("CAR1")).ticket.entry_time, clock.now)

    def test_builder_requires_slot_count(self):
        with self.assertRaises(ValueError):
            ParkingLotBuilder().with_name("Empty").build()

    def test_service_factory_shares_dependencies(self):
        factory = ServiceFactory(settings=self.settings, clock=FakeClock())

        service = factory.create_parking_service()
        processor = factory.create_command_processor()

        self.assertIs(service.repository, processor.service.repository)
        self.assertIs(service.event_bus, factory.event_bus)
        self.assertIs(service.settings, self.settings)


if __name__ == '__main__':
    unittest.main()
