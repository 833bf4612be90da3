#!/usr/bin/env python3
"""
Slot Registry Unit Tests

Tests for the category split and the seeded slot layout.
"""

import unittest
from decimal import Decimal

from smart_parking.config import ParkingSettings
from smart_parking.domain.models import SlotCategory
from smart_parking.domain.slot_registry import SlotLayout, SlotRegistry, round_half_up


class TestSlotLayout(unittest.TestCase):
    """Unit tests for SlotLayout"""

    def test_ten_slot_split(self):
        layout = SlotLayout.for_total(10)
        self.assertEqual((layout.vip_count, layout.ev_count, layout.regular_count), (1, 2, 7))

    def test_split_rounds_half_up(self):
        test_cases = [
            (5, (1, 1, 3)),
            (15, (2, 3, 10)),
            (25, (3, 5, 17)),
            (100, (10, 20, 70)),
        ]
        for total, expected in test_cases:
            with self.subTest(total=total):
                layout = SlotLayout.for_total(total)
                self.assertEqual((layout.vip_count, layout.ev_count, layout.regular_count), expected)

    def test_minimums_are_clamped_for_tiny_lots(self):
        one = SlotLayout.for_total(1)
        self.assertEqual((one.vip_count, one.ev_count, one.regular_count), (1, 0, 0))

        two = SlotLayout.for_total(2)
        self.assertEqual((two.vip_count, two.ev_count, two.regular_count), (1, 1, 0))

        three = SlotLayout.for_total(3)
        self.assertEqual((three.vip_count, three.ev_count, three.regular_count), (1, 1, 1))

    def test_non_positive_total_rejected(self):
        for total in (0, -5):
            with self.subTest(total=total):
                with self.assertRaises(ValueError):
                    SlotLayout.for_total(total)

    def test_counts_must_add_up(self):
        with self.assertRaises(ValueError):
            SlotLayout(total=10, vip_count=1, ev_count=2, regular_count=6)

    def test_categories_in_id_order(self):
        categories = SlotLayout.for_total(10).categories_in_order()
        self.assertEqual(categories[0], SlotCategory.VIP)
        self.assertEqual(categories[1:3], [SlotCategory.EV_CHARGING] * 2)
        self.assertEqual(categories[3:], [SlotCategory.REGULAR] * 7)

    def test_round_half_up(self):
        self.assertEqual(round_half_up(Decimal("0.5")), 1)
        self.assertEqual(round_half_up(Decimal("2.5")), 3)
        self.assertEqual(round_half_up(Decimal("2.49")), 2)


class TestSlotRegistry(unittest.TestCase):
    """Unit tests for SlotRegistry"""

    def setUp(self):
        self.settings = ParkingSettings(seed=42)
        self.registry = SlotRegistry(20, self.settings)

    def test_slot_ids_and_categories(self):
        slots = self.registry.slots
        self.assertEqual([slot.slot_id for slot in slots], list(range(1, 21)))
        self.assertEqual(len(self.registry), 20)
        self.assertEqual(len(self.registry.slots_by_category(SlotCategory.VIP)), 2)
        self.assertEqual(len(self.registry.slots_by_category(SlotCategory.EV_CHARGING)), 4)
        self.assertEqual(len(self.registry.slots_by_category(SlotCategory.REGULAR)), 14)
        self.assertTrue(all(not slot.is_occupied for slot in slots))

    def test_distances_within_category_ranges(self):
        ranges = {
            SlotCategory.VIP: (5, 25),
            SlotCategory.EV_CHARGING: (15, 45),
            SlotCategory.REGULAR: (25, 75),
        }
        for slot in self.registry:
            low, high = ranges[slot.category]
            with self.subTest(slot=slot.slot_id):
                self.assertGreaterEqual(slot.distance_from_entrance, low)
                self.assertLess(slot.distance_from_entrance, high)

    def test_base_rates(self):
        self.assertEqual(self.registry.rate_for(SlotCategory.REGULAR).amount, Decimal("50"))
        self.assertEqual(self.registry.rate_for(SlotCategory.VIP).amount, Decimal("100"))
        self.assertEqual(self.registry.rate_for(SlotCategory.EV_CHARGING).amount, Decimal("80"))
        self.assertEqual(self.registry.get(1).base_rate.amount, Decimal("100"))

    def test_same_seed_same_layout(self):
        other = SlotRegistry(20, ParkingSettings(seed=42))
        self.assertEqual(
            [slot.distance_from_entrance for slot in self.registry],
            [slot.distance_from_entrance for slot in other]
        )

    def test_unknown_slot(self):
        self.assertIsNone(self.registry.get(21))

    def test_invalid_size_rejected(self):
        with self.assertRaises(ValueError):
            SlotRegistry(0, self.settings)


class TestParkingSettings(unittest.TestCase):
    """Unit tests for settings validation"""

    def test_defaults(self):
        settings = ParkingSettings()
        self.assertEqual(settings.vip_distance_range, (5, 25))
        self.assertEqual(settings.nearest_report_size, 5)

    def test_empty_distance_range_rejected(self):
        with self.assertRaises(ValueError):
            ParkingSettings(ev_distance_range=(30, 30))

    def test_ratios_cannot_exceed_one(self):
        with self.assertRaises(ValueError):
            ParkingSettings(vip_ratio=Decimal("0.6"), ev_ratio=Decimal("0.5"))

    def test_log_level_normalized(self):
        self.assertEqual(ParkingSettings(log_level="debug").log_level, "DEBUG")
        with self.assertRaises(ValueError):
            ParkingSettings(log_level="verbose")


if __name__ == '__main__':
    unittest.main()
