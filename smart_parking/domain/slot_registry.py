# File: smart_parking/domain/slot_registry.py
"""
Slot Registry for the Smart Parking engine

Builds the fixed slot layout of a lot:
1. Category counts - VIP and EV shares of the total, at least one of each
2. Distances - drawn from a seeded generator so the same size gives the same layout
3. Base rates - hourly rate per category from the settings

Slot ids run 1..N with VIP slots first, EV charging slots next and regular
slots last. The registry never changes after construction.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterator, List, Optional, Tuple
import logging
import random

from ..config import ParkingSettings, get_settings
from .models import Money, ParkingSlot, SlotCategory


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class SlotLayout:
    """Value Object: How many slots of each category a lot has"""
    total: int
    vip_count: int
    ev_count: int
    regular_count: int

    def __post_init__(self):
        if self.total < 1:
            raise ValueError(f"Total slots must be at least 1, got: {self.total}")

        if min(self.vip_count, self.ev_count, self.regular_count) < 0:
            raise ValueError("Slot counts cannot be negative")

        if self.vip_count + self.ev_count + self.regular_count != self.total:
            raise ValueError("Slot counts must add up to the total")

    @classmethod
    def for_total(
        cls,
        total_slots: int,
        vip_ratio: Decimal = Decimal('0.1'),
        ev_ratio: Decimal = Decimal('0.2')
    ) -> 'SlotLayout':
        """
        Derive the category split for a lot size
        Minimums of one VIP and one EV slot are clamped so exactly N slots exist
        """
        if total_slots < 1:
            raise ValueError(f"Total slots must be at least 1, got: {total_slots}")

        vip = max(1, round_half_up(Decimal(total_slots) * vip_ratio))
        ev = max(1, round_half_up(Decimal(total_slots) * ev_ratio))

        vip = min(vip, total_slots)
        ev = min(ev, total_slots - vip)
        regular = total_slots - vip - ev

        return cls(total=total_slots, vip_count=vip, ev_count=ev, regular_count=regular)

    def categories_in_order(self) -> List[SlotCategory]:
        """One category per slot id, in id order"""
        return (
            [SlotCategory.VIP] * self.vip_count
            + [SlotCategory.EV_CHARGING] * self.ev_count
            + [SlotCategory.REGULAR] * self.regular_count
        )

    def count_for(self, category: SlotCategory) -> int:
        return {
            SlotCategory.VIP: self.vip_count,
            SlotCategory.EV_CHARGING: self.ev_count,
            SlotCategory.REGULAR: self.regular_count,
        }[category]


class SlotRegistry:
    """
    Creates and owns the slots of one lot
    Distances come from a generator owned by the registry, never the global one
    """

    def __init__(self, total_slots: int, settings: Optional[ParkingSettings] = None):
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(self.__class__.__name__)

        self.layout = SlotLayout.for_total(
            total_slots,
            vip_ratio=self.settings.vip_ratio,
            ev_ratio=self.settings.ev_ratio
        )
        self._random = random.Random(self.settings.seed)
        self._slots: Dict[int, ParkingSlot] = {}

        self._build_slots()

    def _build_slots(self) -> None:
        """Create slots 1..N in category order"""
        for slot_id, category in enumerate(self.layout.categories_in_order(), start=1):
            low, high = self._distance_range(category)
            self._slots[slot_id] = ParkingSlot(
                slot_id=slot_id,
                category=category,
                distance_from_entrance=self._random.randrange(low, high),
                base_rate=self.rate_for(category)
            )

        self.logger.info(
            f"Initialized {self.layout.total} slots: {self.layout.vip_count} VIP, "
            f"{self.layout.ev_count} EV, {self.layout.regular_count} Regular "
            f"(seed={self.settings.seed})"
        )

    def _distance_range(self, category: SlotCategory) -> Tuple[int, int]:
        ranges = {
            SlotCategory.VIP: self.settings.vip_distance_range,
            SlotCategory.EV_CHARGING: self.settings.ev_distance_range,
            SlotCategory.REGULAR: self.settings.regular_distance_range,
        }
        return ranges[category]

    def rate_for(self, category: SlotCategory) -> Money:
        """Hourly base rate for a category"""
        rates = {
            SlotCategory.VIP: self.settings.vip_rate,
            SlotCategory.EV_CHARGING: self.settings.ev_rate,
            SlotCategory.REGULAR: self.settings.regular_rate,
        }
        return Money(rates[category], self.settings.currency)

    @property
    def total_slots(self) -> int:
        return self.layout.total

    @property
    def slots(self) -> List[ParkingSlot]:
        """All slots in id order"""
        return list(self._slots.values())

    def get(self, slot_id: int) -> Optional[ParkingSlot]:
        return self._slots.get(slot_id)

    def slots_by_category(self, category: SlotCategory) -> List[ParkingSlot]:
        return [slot for slot in self.slots if slot.category == category]

    def __iter__(self) -> Iterator[ParkingSlot]:
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self._slots)
