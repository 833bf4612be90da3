# File: smart_parking/domain/optimization.py
"""
Parking optimization pass

Moves parked vehicles into strictly closer eligible slots:
1. Scan - every occupied (plate, slot) pair is checked for a closer free slot
2. Move - qualifying vehicles are moved in admission order, each target
   searched again at move time so earlier moves are taken into account

A vehicle is never moved to a slot at the same or a greater distance, and
a freed slot goes straight back to the available pool.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING
import logging

from .models import ParkingSlot
from .strategies import ParkingStrategy

if TYPE_CHECKING:
    from .aggregates import ParkingLot


@dataclass(frozen=True)
class SlotMove:
    """Value Object: One vehicle moved from one slot to another"""
    license_plate: str
    from_slot_id: int
    to_slot_id: int
    from_distance: int
    to_distance: int

    @property
    def distance_saved(self) -> int:
        return self.from_distance - self.to_distance

    def to_dict(self) -> Dict[str, Any]:
        return {
            "license_plate": self.license_plate,
            "from_slot_id": self.from_slot_id,
            "to_slot_id": self.to_slot_id,
            "from_distance": self.from_distance,
            "to_distance": self.to_distance,
        }

    def __str__(self) -> str:
        return (
            f"{self.license_plate}: Slot {self.from_slot_id} ({self.from_distance}m) "
            f"-> Slot {self.to_slot_id} ({self.to_distance}m)"
        )


@dataclass(frozen=True)
class OptimizationReport:
    """Value Object: Result of one optimization pass"""
    moves: Tuple[SlotMove, ...]
    vehicles_scanned: int

    @property
    def moved_count(self) -> int:
        return len(self.moves)

    @property
    def total_distance_saved(self) -> int:
        return sum(move.distance_saved for move in self.moves)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "moves": [move.to_dict() for move in self.moves],
            "moved_count": self.moved_count,
            "vehicles_scanned": self.vehicles_scanned,
            "total_distance_saved": self.total_distance_saved,
        }


class OptimizationPass:
    """Relocates vehicles using the lot's allocation strategy"""

    def __init__(self, pool: Iterable[ParkingSlot], strategy: ParkingStrategy):
        self._pool = pool
        self._strategy = strategy
        self.logger = logging.getLogger(self.__class__.__name__)

    def better_slot(self, current: ParkingSlot) -> Optional[ParkingSlot]:
        """Nearest free eligible slot strictly closer than the current one"""
        vehicle = current.parked_vehicle
        if vehicle is None:
            return None
        return self._strategy.allocate_slot(
            self._pool, vehicle, closer_than=current.distance_from_entrance
        )

    def run(self, lot: 'ParkingLot') -> OptimizationReport:
        occupied = lot.occupied_items()
        candidates = [plate for plate, slot in occupied if self.better_slot(slot) is not None]
        self.logger.debug(f"{len(candidates)} of {len(occupied)} vehicles can move closer")

        moves: List[SlotMove] = []
        for plate in candidates:
            current = lot.find_occupied_slot(plate)
            if current is None:
                continue

            target = self.better_slot(current)
            if target is None:
                continue

            lot.move_vehicle(plate, target)
            moves.append(SlotMove(
                license_plate=plate,
                from_slot_id=current.slot_id,
                to_slot_id=target.slot_id,
                from_distance=current.distance_from_entrance,
                to_distance=target.distance_from_entrance
            ))

        return OptimizationReport(moves=tuple(moves), vehicles_scanned=len(occupied))
