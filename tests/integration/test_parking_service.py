#!/usr/bin/env python3
"""
Parking Service Integration Tests

These tests drive the application service over a real parking lot, the
in-memory repository and the event bus:
1. Lot creation and lookup
2. Vehicle entry, waiting backlog and exit
3. Vehicle lookup and lot status
4. Optimization and pricing use cases
5. Domain events reaching the event store
"""

import unittest
from decimal import Decimal

from smart_parking.application.dtos import (
    AdmissionStatusDTO, ExitRequestDTO, MoneyDTO, ParkingLotStatusDTO, ParkingRequestDTO
)
from smart_parking.application.parking_service import (
    ParkingLotNotFoundError, VehicleNotParkedError, VehicleValidationError
)
from smart_parking.domain.models import EventType

from . import FakeClock, IntegrationTestConfig, create_test_factory


# ============================================================================
# INTEGRATION TEST BASE CLASS
# ============================================================================

class ServiceTestBase(unittest.TestCase):
    """Base class with a 10-slot lot: VIP #1 at 5m, EV #2-#3 at 15m, REGULAR #4-#10 at 25m"""

    def setUp(self):
        self.clock = FakeClock()
        self.factory, self.event_store = create_test_factory(self.clock)
        self.service = self.factory.create_parking_service()
        status = self.service.create_lot(IntegrationTestConfig.SAMPLE_LOT_SIZE, name="Test Lot")
        self.lot_id = status.parking_lot_id

    def park(self, plate, is_vip=False, is_electric=False, vehicle_type="CAR"):
        return self.service.park_vehicle(ParkingRequestDTO(
            parking_lot_id=self.lot_id,
            license_plate=plate,
            vehicle_type=vehicle_type,
            is_vip=is_vip,
            is_electric=is_electric
        ))

    def exit(self, plate):
        return self.service.exit_vehicle(
            ExitRequestDTO(parking_lot_id=self.lot_id, license_plate=plate)
        )

    def fill(self, count=10):
        return [
            self.park(f"FLEX{i + 1:02d}", is_vip=True, is_electric=True)
            for i in range(count)
        ]


# ============================================================================
# LOT MANAGEMENT
# ============================================================================

class TestLotManagement(ServiceTestBase):

    def test_created_lot_status(self):
        status = self.service.get_lot_status(self.lot_id)

        self.assertIsInstance(status, ParkingLotStatusDTO)
        self.assertEqual(status.name, "Test Lot")
        self.assertEqual(status.total_slots, 10)
        self.assertEqual((status.vip_slots, status.ev_slots, status.regular_slots), (1, 2, 7))
        self.assertEqual(status.available_slots, 10)
        self.assertEqual(status.occupancy_rate, 0.0)
        self.assertEqual(status.current_multiplier, Decimal("1.0"))
        self.assertEqual([slot.slot_id for slot in status.nearest_available], [1, 2, 3, 4, 5])
        self.assertEqual(status.total_revenue.amount, Decimal("0.00"))
        self.assertEqual(status.timestamp, self.clock.now)

    def test_invalid_lot_size(self):
        with self.assertRaises(ValueError):
            self.service.create_lot(0)

    def test_unknown_lot(self):
        with self.assertRaises(ParkingLotNotFoundError):
            self.service.get_lot("missing")
        with self.assertRaises(ParkingLotNotFoundError):
            self.service.park_vehicle(ParkingRequestDTO(parking_lot_id="missing", license_plate="A1"))

    def test_lots_are_independent(self):
        other = self.service.create_lot(5, name="Second Lot")
        self.park("CAR1")

        self.assertEqual(self.service.get_lot_status(other.parking_lot_id).occupied_slots, 0)
        self.assertEqual(len(self.service.list_lots()), 2)
        self.assertEqual(self.factory.repository.find_by_name("Second Lot").id, other.parking_lot_id)

    def test_seed_override(self):
        lot = self.service.create_lot(5, seed=99)
        self.assertEqual(self.service.get_lot(lot.parking_lot_id).settings.seed, 99)


# ============================================================================
# PARKING AND EXIT
# ============================================================================

class TestParkingFlow(ServiceTestBase):

    def test_park_vehicle(self):
        result = self.park("ka01ab1234")

        self.assertTrue(result.success)
        self.assertEqual(result.status, AdmissionStatusDTO.ADMITTED)
        self.assertEqual(result.license_plate, "KA01AB1234")
        self.assertEqual(result.slot.slot_id, 4)
        self.assertEqual(result.slot.category, "REGULAR")
        self.assertTrue(result.ticket_id.startswith("TKT"))
        self.assertEqual(result.timestamp, self.clock.now)

        events = self.event_store.get_events(EventType.VEHICLE_PARKED)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].parking_lot_id, self.lot_id)

    def test_invalid_vehicle_returns_failed_result(self):
        request = ParkingRequestDTO.model_construct(
            parking_lot_id=self.lot_id,
            license_plate="   ",
            vehicle_type="CAR",
            is_vip=False,
            is_electric=False
        )

        result = self.service.park_vehicle(request)

        self.assertFalse(result.success)
        self.assertIn("Invalid vehicle", result.message)
        self.assertEqual(self.event_store.count(), 0)

    def test_duplicate_rejected(self):
        self.park("CAR1")
        result = self.park("CAR1")

        self.assertFalse(result.success)
        self.assertEqual(result.status, AdmissionStatusDTO.REJECTED)
        self.assertIn("already parked", result.message)

    def test_full_lot_queues_vehicle(self):
        self.assertTrue(all(result.success for result in self.fill()))

        result = self.park("CAR11")

        self.assertFalse(result.success)
        self.assertEqual(result.status, AdmissionStatusDTO.QUEUED)
        self.assertEqual(result.queue_position, 1)
        self.assertIn("waiting queue", result.message)
        self.assertEqual(len(self.event_store.get_events(EventType.VEHICLE_QUEUED)), 1)

    def test_exit_vehicle(self):
        self.park("CAR1")
        self.clock.advance(hours=2)

        result = self.exit("car1")

        self.assertTrue(result.success)
        self.assertEqual(result.slot_id, 4)
        self.assertEqual(result.duration_minutes, 120)
        self.assertEqual(result.duration_hours, 2.0)
        self.assertEqual(result.total_fee.amount, Decimal("100.00"))
        self.assertIsNone(result.drained)
        self.assertEqual(result.timestamp, self.clock.now)

        status = self.service.get_lot_status(self.lot_id)
        self.assertEqual(status.total_revenue.amount, Decimal("100.00"))
        self.assertEqual(status.vehicles_served, 1)
        self.assertEqual(status.occupied_slots, 0)

        left = self.event_store.get_events(EventType.VEHICLE_LEFT)
        self.assertEqual(len(left), 1)
        self.assertEqual(left[0].fee.amount, Decimal("100.00"))

    def test_exit_unknown_vehicle(self):
        result = self.exit("NOPE")

        self.assertFalse(result.success)
        self.assertEqual(result.message, "Vehicle NOPE not found in parking")
        self.assertIsNone(result.total_fee)

    def test_exit_drains_waiting_vehicle(self):
        self.fill()
        self.park("CAR11")

        result = self.exit("FLEX04")

        self.assertTrue(result.success)
        self.assertIsNotNone(result.drained)
        self.assertTrue(result.drained.success)
        self.assertEqual(result.drained.license_plate, "CAR11")
        self.assertEqual(result.drained.slot.slot_id, 4)
        self.assertEqual(self.service.get_lot_status(self.lot_id).waiting_vehicles, 0)

    def test_event_order_for_exit_with_drain(self):
        self.fill()
        self.park("CAR11")
        self.event_store.clear()

        self.exit("FLEX04")

        self.assertEqual(
            [event.event_type for event in self.event_store.get_events()],
            [EventType.VEHICLE_LEFT, EventType.VEHICLE_PARKED]
        )


# ============================================================================
# QUERIES
# ============================================================================

class TestVehicleLookup(ServiceTestBase):

    def test_find_parked_vehicle(self):
        parked = self.park("CAR1")

        location = self.service.find_vehicle(self.lot_id, " car1 ")

        self.assertTrue(location.found)
        self.assertEqual(location.slot.slot_id, 4)
        self.assertEqual(location.ticket_id, parked.ticket_id)
        self.assertEqual(location.entry_time, self.clock.now)

    def test_find_waiting_vehicle(self):
        self.fill()
        self.park("CAR11")

        location = self.service.find_vehicle(self.lot_id, "CAR11")

        self.assertFalse(location.found)
        self.assertEqual(location.waiting_position, 1)

    def test_find_unknown_vehicle(self):
        location = self.service.find_vehicle(self.lot_id, "NOPE")
        self.assertFalse(location.found)
        self.assertIsNone(location.slot)
        self.assertEqual(location.message, "Vehicle NOPE not found in parking")

    def test_blank_plate_rejected(self):
        with self.assertRaises(VehicleValidationError):
            self.service.find_vehicle(self.lot_id, "  ")

    def test_status_lists_occupied_and_waiting(self):
        self.fill()
        self.park("CAR11")
        self.park("CAR12")

        status = self.service.get_lot_status(self.lot_id)

        self.assertEqual(status.occupied_slots, 10)
        self.assertEqual(status.available_slots, 0)
        self.assertEqual(status.occupancy_rate, 100.0)
        self.assertEqual(status.current_multiplier, Decimal("1.5"))
        self.assertEqual(status.nearest_available, [])
        self.assertEqual([slot.license_plate for slot in status.occupied][:2], ["FLEX01", "FLEX02"])
        self.assertEqual(status.waiting_plates, ["CAR11", "CAR12"])
        self.assertIn('"waiting_plates":["CAR11","CAR12"]', status.to_json())


# ============================================================================
# OPTIMIZATION AND PRICING
# ============================================================================

class TestOptimizationAndPricing(ServiceTestBase):

    def test_optimize_moves_vehicle(self):
        self.park("VIP1", is_vip=True)
        self.park("FLEX1", is_vip=True, is_electric=True)
        self.exit("VIP1")

        result = self.service.optimize_lot(self.lot_id)

        self.assertTrue(result.success)
        self.assertEqual(result.moved_count, 1)
        self.assertEqual(result.total_distance_saved, 10)
        self.assertEqual(result.moves[0].license_plate, "FLEX1")
        self.assertEqual((result.moves[0].from_slot_id, result.moves[0].to_slot_id), (2, 1))
        self.assertEqual(result.message, "Optimized 1 vehicle(s)")
        self.assertEqual(len(self.event_store.get_events(EventType.VEHICLE_REALLOCATED)), 1)

    def test_optimize_without_moves(self):
        self.park("CAR1")

        result = self.service.optimize_lot(self.lot_id)

        self.assertEqual(result.moved_count, 0)
        self.assertEqual(result.vehicles_scanned, 1)
        self.assertEqual(result.message, "No optimization needed - all vehicles in optimal positions")

    def test_pricing_info(self):
        self.fill(count=7)

        info = self.service.get_pricing_info(self.lot_id)

        self.assertEqual(info.parking_lot_id, self.lot_id)
        self.assertEqual(info.occupancy_rate, Decimal("0.7"))
        self.assertEqual(info.quote_occupancy_multiplier, Decimal("1.2"))
        self.assertEqual(info.settlement_multiplier, Decimal("1.2"))
        self.assertEqual(info.peak_windows, [[8, 10], [17, 20]])
        self.assertEqual(info.maximum_price.amount, Decimal("500.00"))

    def test_quote_price(self):
        self.park("VIP1", is_vip=True)
        self.clock.advance(hours=2)

        breakdown = self.service.quote_price(self.lot_id, "vip1")

        # 100/h x 2h x 0.8 low occupancy x 0.8 VIP
        self.assertEqual(breakdown.base_amount.amount, Decimal("200.00"))
        self.assertEqual(breakdown.final_price.amount, Decimal("128.00"))
        self.assertEqual(breakdown.time_label, "Off-peak")
        self.assertFalse(breakdown.was_clamped)

    def test_quote_for_vehicle_not_parked(self):
        with self.assertRaises(VehicleNotParkedError):
            self.service.quote_price(self.lot_id, "NOPE")

    def test_money_dto_precision(self):
        with self.assertRaises(ValueError):
            MoneyDTO(amount=Decimal("1.234"))
        self.assertEqual(MoneyDTO(amount=Decimal("12.5")).format(), "INR 12.50")


if __name__ == '__main__':
    unittest.main()
