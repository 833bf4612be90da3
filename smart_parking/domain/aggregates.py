# File: smart_parking/domain/aggregates.py
"""
Aggregate Roots for the Smart Parking engine
Following Domain-Driven Design (DDD) Aggregate Pattern

Aggregates:
1. ParkingLot - Root aggregate owning slots, tickets and the waiting backlog

Supporting types:
1. AvailableSlotPool - Free slots ordered nearest first
2. AdmissionResult / ReleaseResult - Outcomes of admit and release
3. LotInvariantError - Raised when internal indices disagree

Key Concepts:
- Every slot is either in the available pool or in the occupied index
- Occupied count, occupied index and ticket index always have the same size
- A plate is parked or waiting, never both
- All public operations hold the lot's re-entrant lock
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from itertools import islice
from typing import Callable, Deque, Dict, Iterable, Iterator, List, Optional, Set, Tuple, Any, Union
import logging
import threading

from sortedcontainers import SortedList

from ..config import ParkingSettings, get_settings
from .models import (
    Entity, DomainEvent, LicensePlate, Money, ParkingSlot, ParkingTicket,
    SlotCategory, Vehicle, VehicleLeftEvent, VehicleParkedEvent,
    VehicleQueuedEvent, VehicleReallocatedEvent
)
from .optimization import OptimizationPass, OptimizationReport
from .slot_registry import SlotRegistry
from .strategies import (
    NearestEligibleSlotStrategy, ParkingStrategy, PriceBreakdown,
    PriceCalculator, PricingInfo
)


Clock = Callable[[], datetime]


class LotInvariantError(AssertionError):
    """Internal lot indices are out of sync; never a user error"""


# ============================================================================
# BASE AGGREGATE ROOT
# ============================================================================

class AggregateRoot(Entity):
    """
    Base class for all aggregate roots
    Provides domain event collection and versioning

    Pending events are kept until clear_events() is called. Callers that use
    the aggregate without the application service must drain them; past
    MAX_PENDING_EVENTS the oldest are dropped.
    """

    MAX_PENDING_EVENTS = 10000

    def __init__(self, id: Optional[str] = None):
        super().__init__(id)
        self._version: int = 1
        self._changes: Deque[DomainEvent] = deque(maxlen=self.MAX_PENDING_EVENTS)
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def version(self) -> int:
        """Get current aggregate version"""
        return self._version

    def _increment_version(self) -> None:
        self._version += 1

    def _add_domain_event(self, event: DomainEvent) -> None:
        """Add a domain event to the list of changes"""
        if len(self._changes) == self._changes.maxlen:
            self._logger.warning(
                f"Pending event buffer full ({self._changes.maxlen}), dropping oldest event"
            )
        self._changes.append(event)
        self._logger.debug(f"Added domain event: {event.__class__.__name__}")

    def clear_events(self) -> List[DomainEvent]:
        """Clear and return all domain events"""
        events = list(self._changes)
        self._changes.clear()
        return events

    @property
    def has_changes(self) -> bool:
        """Check if aggregate has pending domain events"""
        return len(self._changes) > 0

    def _validate_invariants(self) -> None:
        """Validate aggregate invariants - to be overridden by subclasses"""
        pass


# ============================================================================
# AVAILABLE SLOT POOL
# ============================================================================

class AvailableSlotPool:
    """
    Free slots kept sorted by (distance, -category priority, slot id)
    Iteration yields the nearest slot first
    """

    def __init__(self, slots: Iterable[ParkingSlot] = ()):
        self._slots = SortedList(key=lambda slot: slot.sort_key)
        for slot in slots:
            self.add(slot)

    def add(self, slot: ParkingSlot) -> None:
        if slot.is_occupied:
            raise LotInvariantError(f"Occupied slot {slot.slot_id} cannot join the available pool")
        if slot in self._slots:
            raise LotInvariantError(f"Slot {slot.slot_id} is already in the available pool")
        self._slots.add(slot)

    def remove(self, slot: ParkingSlot) -> None:
        if slot not in self._slots:
            raise LotInvariantError(f"Slot {slot.slot_id} is not in the available pool")
        self._slots.remove(slot)

    def nearest(self, limit: int) -> List[ParkingSlot]:
        return list(islice(self._slots, max(0, limit)))

    def __contains__(self, slot: ParkingSlot) -> bool:
        return slot in self._slots

    def __iter__(self) -> Iterator[ParkingSlot]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)


# ============================================================================
# OPERATION RESULTS
# ============================================================================

class AdmissionStatus(Enum):
    ADMITTED = "ADMITTED"
    QUEUED = "QUEUED"
    REJECTED = "REJECTED"


class ReleaseStatus(Enum):
    RELEASED = "RELEASED"
    NOT_PARKED = "NOT_PARKED"


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of admitting one vehicle"""
    status: AdmissionStatus
    license_plate: str
    ticket: Optional[ParkingTicket] = None
    queue_position: Optional[int] = None
    reason: Optional[str] = None

    @property
    def admitted(self) -> bool:
        return self.status == AdmissionStatus.ADMITTED

    @property
    def queued(self) -> bool:
        return self.status == AdmissionStatus.QUEUED

    @property
    def rejected(self) -> bool:
        return self.status == AdmissionStatus.REJECTED

    @property
    def slot(self) -> Optional[ParkingSlot]:
        return self.ticket.slot if self.ticket else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "license_plate": self.license_plate,
            "ticket_id": self.ticket.ticket_id if self.ticket else None,
            "slot_id": self.slot.slot_id if self.slot else None,
            "queue_position": self.queue_position,
            "reason": self.reason
        }


@dataclass(frozen=True)
class ReleaseResult:
    """Outcome of releasing one vehicle, including the backlog drain attempt"""
    status: ReleaseStatus
    license_plate: str
    amount: Optional[Money] = None
    ticket: Optional[ParkingTicket] = None
    slot: Optional[ParkingSlot] = None
    drained: Optional[AdmissionResult] = None

    @property
    def released(self) -> bool:
        return self.status == ReleaseStatus.RELEASED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "license_plate": self.license_plate,
            "amount": self.amount.to_dict() if self.amount else None,
            "ticket_id": self.ticket.ticket_id if self.ticket else None,
            "slot_id": self.slot.slot_id if self.slot else None,
            "drained": self.drained.to_dict() if self.drained else None
        }


# ============================================================================
# PARKING LOT AGGREGATE
# ============================================================================

class ParkingLot(AggregateRoot):
    """
    Aggregate Root: Parking lot with typed slots, tickets and a FIFO backlog
    Enforces allocation, release and relocation rules
    """

    def __init__(
        self,
        total_slots: int,
        settings: Optional[ParkingSettings] = None,
        clock: Optional[Clock] = None,
        parking_strategy: Optional[ParkingStrategy] = None,
        price_calculator: Optional[PriceCalculator] = None,
        name: str = "Smart Parking",
        id: Optional[str] = None
    ):
        super().__init__(id)
        self.name = name
        self.settings = settings or get_settings()
        self._clock: Clock = clock or datetime.now
        self._strategy = parking_strategy or NearestEligibleSlotStrategy()
        self._pricing = price_calculator or PriceCalculator(currency=self.settings.currency)

        self.registry = SlotRegistry(total_slots, self.settings)
        self._pool = AvailableSlotPool(self.registry.slots)

        # plate -> slot / ticket, in admission order
        self._occupied: Dict[str, ParkingSlot] = {}
        self._tickets: Dict[str, ParkingTicket] = {}

        self._waiting: Deque[Vehicle] = deque()
        self._waiting_plates: Set[str] = set()

        # Statistics
        self._occupied_count: int = 0
        self._total_revenue: Money = Money.zero(self.settings.currency)
        self._vehicles_served: int = 0
        self.creation_date: datetime = self._clock()

        self._lock = threading.RLock()

        self._logger.info(f"Parking lot '{self.name}' created with {total_slots} slots")

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def _validate_invariants(self) -> None:
        """Validate lot invariants"""
        if not (self._occupied_count == len(self._occupied) == len(self._tickets)):
            raise LotInvariantError(
                f"Occupied count {self._occupied_count}, occupied index {len(self._occupied)} "
                f"and ticket index {len(self._tickets)} disagree"
            )

        if len(self._pool) + self._occupied_count != self.registry.total_slots:
            raise LotInvariantError(
                f"Available {len(self._pool)} + occupied {self._occupied_count} "
                f"!= total {self.registry.total_slots}"
            )

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def admit(self, vehicle: Vehicle) -> AdmissionResult:
        """
        Give the vehicle the nearest eligible slot, or queue it
        Returns: ADMITTED with a ticket, QUEUED with a 1-based position,
                 or REJECTED when the plate is already parked or waiting
        """
        with self._lock:
            plate = vehicle.plate

            if plate in self._occupied:
                reason = f"Vehicle {plate} is already parked in slot {self._occupied[plate].slot_id}"
                self._logger.warning(reason)
                return AdmissionResult(AdmissionStatus.REJECTED, plate, reason=reason)

            if plate in self._waiting_plates:
                reason = f"Vehicle {plate} is already waiting"
                self._logger.warning(reason)
                return AdmissionResult(AdmissionStatus.REJECTED, plate, reason=reason)

            slot = self._strategy.allocate_slot(self._pool, vehicle)

            if slot is None:
                return self._enqueue(vehicle)

            now = self._clock()
            vehicle.mark_entered(now)
            self._pool.remove(slot)
            slot.occupy(vehicle)

            ticket = ParkingTicket(vehicle, slot, entry_time=now)
            self._occupied[plate] = slot
            self._tickets[plate] = ticket
            self._occupied_count += 1

            self._add_domain_event(VehicleParkedEvent(self.id, ticket))
            self._increment_version()
            self._validate_invariants()

            self._logger.info(
                f"Vehicle {plate} parked in slot {slot.slot_id} "
                f"[{slot.category.value}] {slot.distance_from_entrance}m, ticket {ticket.ticket_id}"
            )
            return AdmissionResult(AdmissionStatus.ADMITTED, plate, ticket=ticket)

    def _enqueue(self, vehicle: Vehicle) -> AdmissionResult:
        self._waiting.append(vehicle)
        self._waiting_plates.add(vehicle.plate)
        position = len(self._waiting)

        self._add_domain_event(
            VehicleQueuedEvent(self.id, vehicle.plate, position, timestamp=self._clock())
        )
        self._logger.info(f"No eligible slot for {vehicle.plate}, queued at position {position}")
        return AdmissionResult(AdmissionStatus.QUEUED, vehicle.plate, queue_position=position)

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def release(self, license_plate: Union[str, LicensePlate]) -> ReleaseResult:
        """
        Charge and remove a parked vehicle, then try to admit the first waiting one
        Returns: RELEASED with the amount and drain outcome, or NOT_PARKED
        Raises: LotInvariantError if only one of the indices knows the plate
        """
        with self._lock:
            plate = LicensePlate.of(license_plate).value
            slot = self._occupied.get(plate)
            ticket = self._tickets.get(plate)

            if slot is None and ticket is None:
                self._logger.warning(f"Vehicle {plate} is not parked")
                return ReleaseResult(ReleaseStatus.NOT_PARKED, plate)

            if slot is None or ticket is None:
                raise LotInvariantError(f"Occupied index and ticket index disagree on {plate}")

            now = self._clock()
            # Occupancy is measured while the slot is still taken
            amount = self._pricing.settle(ticket, self.occupancy_rate, now)
            ticket.complete_payment(amount, now)

            self._total_revenue = self._total_revenue + amount
            self._vehicles_served += 1

            vehicle = slot.vacate()
            self._pool.add(slot)
            del self._occupied[plate]
            del self._tickets[plate]
            self._occupied_count -= 1
            if vehicle is not None:
                vehicle.end_stay()

            self._add_domain_event(VehicleLeftEvent(self.id, ticket))
            self._increment_version()
            self._validate_invariants()

            self._logger.info(
                f"Vehicle {plate} left slot {slot.slot_id} after "
                f"{ticket.duration_minutes()} min, charged {amount.format()}"
            )

            drained = self._drain_backlog()
            return ReleaseResult(
                ReleaseStatus.RELEASED, plate,
                amount=amount, ticket=ticket, slot=slot, drained=drained
            )

    def _drain_backlog(self) -> Optional[AdmissionResult]:
        """Re-run admission for the front of the backlog, once"""
        if not self._waiting:
            return None

        vehicle = self._waiting.popleft()
        self._waiting_plates.discard(vehicle.plate)
        self._logger.info(f"Processing waiting vehicle {vehicle.plate}")
        return self.admit(vehicle)

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def optimize(self) -> OptimizationReport:
        """Move parked vehicles into strictly closer eligible slots"""
        with self._lock:
            report = OptimizationPass(self._pool, self._strategy).run(self)
            self._validate_invariants()
            self._logger.info(
                f"Optimization moved {report.moved_count} of {report.vehicles_scanned} vehicles"
            )
            return report

    def occupied_items(self) -> List[Tuple[str, ParkingSlot]]:
        """Copy of (plate, slot) pairs in admission order"""
        with self._lock:
            return list(self._occupied.items())

    def move_vehicle(self, license_plate: str, target: ParkingSlot) -> ParkingSlot:
        """
        Move a parked vehicle to a free slot; the ticket follows it and
        keeps the time already spent priced at the old slot rate
        Returns: The slot the vehicle left
        """
        with self._lock:
            plate = LicensePlate.of(license_plate).value
            current = self._occupied.get(plate)
            ticket = self._tickets.get(plate)
            if current is None or ticket is None:
                raise LotInvariantError(f"Cannot move {plate}: not parked")

            self._pool.remove(target)
            vehicle = current.vacate()
            target.occupy(vehicle)
            self._pool.add(current)

            now = self._clock()
            self._occupied[plate] = target
            ticket.reassign_slot(target, moved_at=now)

            self._add_domain_event(
                VehicleReallocatedEvent(
                    self.id, plate, current.slot_id, target.slot_id, timestamp=now
                )
            )
            self._increment_version()
            self._logger.info(
                f"Moved {plate} from slot {current.slot_id} ({current.distance_from_entrance}m) "
                f"to slot {target.slot_id} ({target.distance_from_entrance}m)"
            )
            return current

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_occupied_slot(self, license_plate: Union[str, LicensePlate]) -> Optional[ParkingSlot]:
        """Slot holding the plate, None when not parked"""
        with self._lock:
            return self._occupied.get(LicensePlate.of(license_plate).value)

    def find_ticket(self, license_plate: Union[str, LicensePlate]) -> Optional[ParkingTicket]:
        with self._lock:
            return self._tickets.get(LicensePlate.of(license_plate).value)

    def waiting_position(self, license_plate: Union[str, LicensePlate]) -> Optional[int]:
        """1-based backlog position, None when not waiting"""
        with self._lock:
            plate = LicensePlate.of(license_plate).value
            if plate not in self._waiting_plates:
                return None
            for position, vehicle in enumerate(self._waiting, start=1):
                if vehicle.plate == plate:
                    return position
            raise LotInvariantError(f"Backlog index and queue disagree on {plate}")

    def waiting_vehicles(self) -> List[Vehicle]:
        with self._lock:
            return list(self._waiting)

    def nearest_available_slots(self, limit: Optional[int] = None) -> List[ParkingSlot]:
        """Free slots nearest first, at most `limit` of them"""
        with self._lock:
            if limit is None:
                limit = self.settings.nearest_report_size
            return self._pool.nearest(limit)

    @property
    def total_slots(self) -> int:
        return self.registry.total_slots

    @property
    def occupied_count(self) -> int:
        with self._lock:
            return self._occupied_count

    @property
    def available_count(self) -> int:
        with self._lock:
            return len(self._pool)

    @property
    def waiting_count(self) -> int:
        with self._lock:
            return len(self._waiting)

    @property
    def total_revenue(self) -> Money:
        with self._lock:
            return self._total_revenue

    @property
    def vehicles_served(self) -> int:
        with self._lock:
            return self._vehicles_served

    @property
    def occupancy_rate(self) -> float:
        """Occupied share of all slots, 0.0 to 1.0"""
        with self._lock:
            return self._occupied_count / self.registry.total_slots

    def count_by_category(self, category: SlotCategory) -> int:
        return self.registry.layout.count_for(category)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def quote(self, license_plate: Union[str, LicensePlate]) -> Optional[Money]:
        """Dynamic quote for a parked vehicle at the current occupancy"""
        with self._lock:
            ticket = self.find_ticket(license_plate)
            if ticket is None:
                return None
            return self._pricing.quote(ticket, self.occupancy_rate, self._clock())

    def price_breakdown(self, license_plate: Union[str, LicensePlate]) -> Optional[PriceBreakdown]:
        with self._lock:
            ticket = self.find_ticket(license_plate)
            if ticket is None:
                return None
            return self._pricing.breakdown(ticket, self.occupancy_rate, self._clock())

    def current_pricing_multiplier(self) -> Decimal:
        """Occupancy multiplier that release would apply right now"""
        with self._lock:
            return self._pricing.settlement_multiplier(self.occupancy_rate)

    def pricing_info(self) -> PricingInfo:
        with self._lock:
            return self._pricing.pricing_info(self.occupancy_rate)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_status_report(self) -> Dict[str, Any]:
        """Get comprehensive status report"""
        with self._lock:
            return {
                "lot_id": self.id,
                "name": self.name,
                "total_slots": self.total_slots,
                "occupied_slots": self._occupied_count,
                "available_slots": len(self._pool),
                "waiting_vehicles": len(self._waiting),
                "occupancy_rate": round(self.occupancy_rate * 100, 1),
                "total_revenue": self._total_revenue.to_dict(),
                "vehicles_served": self._vehicles_served,
                "slot_counts": {
                    category.value: self.count_by_category(category)
                    for category in SlotCategory
                },
                "nearest_available": [
                    slot.to_dict() for slot in self.nearest_available_slots()
                ],
                "occupied": [
                    {"license_plate": plate, "slot_id": slot.slot_id}
                    for plate, slot in self._occupied.items()
                ],
                "version": self.version
            }

    def to_dict(self) -> Dict[str, Any]:
        return self.get_status_report()

    def __str__(self) -> str:
        return (
            f"ParkingLot '{self.name}': {self._occupied_count}/{self.total_slots} occupied, "
            f"{len(self._waiting)} waiting"
        )
