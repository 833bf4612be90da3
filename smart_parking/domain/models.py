# File: smart_parking/domain/models.py
"""
Domain Models for the Smart Parking engine
Following Domain-Driven Design (DDD) principles with rich domain models

This module contains:
1. Value Objects: LicensePlate and Money, immutable and validated
2. Enums: SlotCategory and EventType
3. Entities: Vehicle, ParkingSlot and ParkingTicket
4. Domain Events: Events raised by the parking lot aggregate

The allocation engine reads and writes vehicles, slots and tickets only
through the methods defined here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any, Union
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
import uuid


CENT = Decimal("0.01")
DEFAULT_CURRENCY = "INR"


# ============================================================================
# DOMAIN PRIMITIVES / VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)  # Value objects are immutable
class LicensePlate:
    """
    Value Object: License plate number
    Identifies a vehicle while it is parked or waiting
    """
    value: str

    def __post_init__(self):
        """Normalize and validate the plate"""
        if self.value is None or not str(self.value).strip():
            raise ValueError("License plate cannot be empty")

        object.__setattr__(self, 'value', str(self.value).strip().upper())

        if len(self.value) > 20:
            raise ValueError(f"License plate must be at most 20 characters, got: {self.value}")

    @classmethod
    def of(cls, plate: Union[str, 'LicensePlate']) -> 'LicensePlate':
        """Accept either a raw string or an existing plate"""
        if isinstance(plate, LicensePlate):
            return plate
        return cls(plate)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Money:
    """
    Value Object: Monetary amount with currency
    Amounts are kept as Decimal; rounding is always half-up on the cent
    """
    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self):
        """Validate money amount"""
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        if self.amount < Decimal('0'):
            raise ValueError("Money amount cannot be negative")

        if len(self.currency) != 3:
            raise ValueError(f"Currency must be 3-letter code: {self.currency}")

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> 'Money':
        return cls(Decimal('0.00'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money amounts (same currency only)"""
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency} to {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        """Multiply money by a decimal"""
        if multiplier < Decimal('0'):
            raise ValueError("Multiplier cannot be negative")
        return Money(self.amount * multiplier, self.currency)

    def rounded(self) -> 'Money':
        """Round half-up to the cent"""
        return Money(self.amount.quantize(CENT, rounding=ROUND_HALF_UP), self.currency)

    def format(self) -> str:
        """Format money for display"""
        return f"{self.currency} {self.amount:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "amount": str(self.rounded().amount),
            "currency": self.currency
        }

    def __str__(self) -> str:
        return self.format()


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class SlotCategory(Enum):
    """
    Enumeration of parking slot categories
    The category decides which vehicles a slot accepts
    """
    REGULAR = "REGULAR"          # Any vehicle
    VIP = "VIP"                  # VIP vehicles only
    EV_CHARGING = "EV_CHARGING"  # Electric vehicles only

    @property
    def priority_weight(self) -> int:
        """Tie-break weight between slots at the same distance"""
        weights = {
            SlotCategory.VIP: 3,
            SlotCategory.EV_CHARGING: 2,
            SlotCategory.REGULAR: 1,
        }
        return weights[self]

    def accepts(self, vehicle: 'Vehicle') -> bool:
        """
        Check if this category can take the given vehicle
        Business rule: EV charging bays need an electric vehicle, VIP bays a VIP
        """
        if self == SlotCategory.EV_CHARGING:
            return vehicle.is_electric
        if self == SlotCategory.VIP:
            return vehicle.is_vip
        return True

    def __str__(self) -> str:
        names = {
            SlotCategory.REGULAR: "Regular",
            SlotCategory.VIP: "VIP",
            SlotCategory.EV_CHARGING: "EV Charging",
        }
        return names[self]


class EventType(str, Enum):
    """Types of domain events raised by the parking lot"""
    VEHICLE_PARKED = "vehicle.parked"
    VEHICLE_QUEUED = "vehicle.queued"
    VEHICLE_LEFT = "vehicle.left"
    VEHICLE_REALLOCATED = "vehicle.reallocated"


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Entity:
    """
    Base class for all domain entities
    Provides common functionality for entities with identity
    """

    def __init__(self, id: Optional[str] = None):
        self._id = id or str(uuid.uuid4())

    @property
    def id(self) -> str:
        """Get entity ID"""
        return self._id

    def __eq__(self, other: object) -> bool:
        """Entities are equal if they have the same ID and type"""
        if not isinstance(other, Entity):
            return False
        return self.id == other.id and type(self) == type(other)

    def __hash__(self) -> int:
        return hash((self.id, type(self).__name__))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


class Vehicle(Entity):
    """
    Entity: A vehicle identified by its license plate
    VIP and electric flags are fixed at creation; the entry time is stamped
    once per stay by the parking lot
    """

    def __init__(
        self,
        license_plate: Union[str, LicensePlate],
        vehicle_type: str = "CAR",
        is_vip: bool = False,
        is_electric: bool = False
    ):
        plate = LicensePlate.of(license_plate)
        super().__init__(plate.value)
        self._license_plate = plate
        self._vehicle_type = (vehicle_type or "CAR").strip().upper()
        self._is_vip = bool(is_vip)
        self._is_electric = bool(is_electric)
        self._entry_time: Optional[datetime] = None

    @property
    def license_plate(self) -> LicensePlate:
        return self._license_plate

    @property
    def plate(self) -> str:
        """Normalized plate string used as index key"""
        return self._license_plate.value

    @property
    def vehicle_type(self) -> str:
        return self._vehicle_type

    @property
    def is_vip(self) -> bool:
        return self._is_vip

    @property
    def is_electric(self) -> bool:
        return self._is_electric

    @property
    def entry_time(self) -> Optional[datetime]:
        return self._entry_time

    def mark_entered(self, entry_time: datetime) -> None:
        """
        Stamp the entry time of the current stay
        Raises: ValueError if the stay already has an entry time
        """
        if self._entry_time is not None:
            raise ValueError(f"Entry time for {self.plate} is already set")
        self._entry_time = entry_time

    def end_stay(self) -> None:
        """Forget the entry time once the vehicle has left"""
        self._entry_time = None

    def parking_duration_minutes(self, now: Optional[datetime] = None) -> int:
        """Whole minutes since entry, 0 when not parked"""
        if self._entry_time is None:
            return 0
        now = now or datetime.now()
        return max(0, int((now - self._entry_time).total_seconds() // 60))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "license_plate": self.plate,
            "vehicle_type": self.vehicle_type,
            "is_vip": self.is_vip,
            "is_electric": self.is_electric,
            "entry_time": self._entry_time.isoformat() if self._entry_time else None
        }

    def __str__(self) -> str:
        flags = ""
        if self.is_vip:
            flags += " [VIP]"
        if self.is_electric:
            flags += " [EV]"
        return f"{self.plate} [{self.vehicle_type}]{flags}"


class ParkingSlot(Entity):
    """
    Entity: Individual parking space
    Identity, category, distance and rate never change; occupancy does
    """

    def __init__(
        self,
        slot_id: int,
        category: SlotCategory,
        distance_from_entrance: int,
        base_rate: Money
    ):
        super().__init__(str(slot_id))
        self._slot_id = slot_id
        self._category = category
        self._distance = distance_from_entrance
        self._base_rate = base_rate
        self._parked_vehicle: Optional[Vehicle] = None

        self._validate()

    def _validate(self) -> None:
        """Validate slot attributes"""
        if self._slot_id <= 0:
            raise ValueError("Slot id must be positive")

        if self._distance < 0:
            raise ValueError("Distance from entrance cannot be negative")

        if self._base_rate.amount <= Decimal('0'):
            raise ValueError("Base rate must be positive")

    @property
    def slot_id(self) -> int:
        return self._slot_id

    @property
    def category(self) -> SlotCategory:
        return self._category

    @property
    def distance_from_entrance(self) -> int:
        return self._distance

    @property
    def base_rate(self) -> Money:
        return self._base_rate

    @property
    def parked_vehicle(self) -> Optional[Vehicle]:
        return self._parked_vehicle

    @property
    def is_occupied(self) -> bool:
        return self._parked_vehicle is not None

    @property
    def sort_key(self):
        """Pool ordering: nearest first, then VIP > EV > REGULAR, then id"""
        return (self._distance, -self._category.priority_weight, self._slot_id)

    def is_available_for(self, vehicle: Vehicle) -> bool:
        """Check if the slot is free and its category accepts the vehicle"""
        if self.is_occupied:
            return False
        return self._category.accepts(vehicle)

    def occupy(self, vehicle: Vehicle) -> None:
        """
        Occupy the slot with a vehicle
        Raises: ValueError if slot is occupied or not eligible
        """
        if self.is_occupied:
            raise ValueError(f"Slot {self._slot_id} is already occupied")

        if not self._category.accepts(vehicle):
            raise ValueError(f"Slot {self._slot_id} [{self._category.value}] cannot take {vehicle}")

        self._parked_vehicle = vehicle

    def vacate(self) -> Optional[Vehicle]:
        """Vacate the slot and return the vehicle that was in it"""
        vehicle = self._parked_vehicle
        self._parked_vehicle = None
        return vehicle

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "slot_id": self._slot_id,
            "category": self._category.value,
            "distance_from_entrance": self._distance,
            "base_rate": self._base_rate.to_dict(),
            "is_occupied": self.is_occupied,
            "license_plate": self._parked_vehicle.plate if self._parked_vehicle else None
        }

    def __str__(self) -> str:
        status = "[OCCUPIED]" if self.is_occupied else "[AVAILABLE]"
        vehicle_info = f" ({self._parked_vehicle.plate})" if self._parked_vehicle else ""
        return (
            f"{status} Slot#{self._slot_id:02d} [{self._category.value}] "
            f"{self._distance}m {self._base_rate.format()}/hr{vehicle_info}"
        )


class ParkingTicket(Entity):
    """
    Entity: Ticket for one stay of one vehicle
    Created on admission, finalized exactly once on exit
    """

    def __init__(
        self,
        vehicle: Vehicle,
        slot: ParkingSlot,
        entry_time: Optional[datetime] = None
    ):
        super().__init__(self._generate_ticket_id())
        self.vehicle = vehicle
        self.slot = slot
        self.entry_time: datetime = entry_time or datetime.now()
        self.exit_time: Optional[datetime] = None
        self.price_charged: Money = Money.zero(slot.base_rate.currency)
        self.is_paid = False

        # Base charge for time spent in slots the vehicle was moved out of
        self.accrued_base: Money = Money.zero(slot.base_rate.currency)
        self.accrued_minutes: int = 0
        self.segment_start: datetime = self.entry_time

    @staticmethod
    def _generate_ticket_id() -> str:
        return "TKT" + uuid.uuid4().hex[:8].upper()

    @property
    def ticket_id(self) -> str:
        return self.id

    def duration_minutes(self, now: Optional[datetime] = None) -> int:
        """Whole minutes between entry and exit (or now while still parked)"""
        end_time = self.exit_time or now or datetime.now()
        return max(0, int((end_time - self.entry_time).total_seconds() // 60))

    def duration_hours(self, now: Optional[datetime] = None) -> float:
        return self.duration_minutes(now) / 60.0

    def reassign_slot(self, slot: ParkingSlot, moved_at: Optional[datetime] = None) -> None:
        """
        Point the ticket at the slot the vehicle was moved to

        Time already spent stays priced at the old slot's rate; the new
        rate only applies from moved_at onwards.
        """
        if self.is_paid:
            raise ValueError(f"Ticket {self.ticket_id} is already closed")

        moved_at = moved_at or datetime.now()
        minutes = max(self.accrued_minutes, self.duration_minutes(moved_at))
        segment_hours = Decimal(minutes - self.accrued_minutes) / Decimal(60)

        self.accrued_base = self.accrued_base + self.slot.base_rate * segment_hours
        self.accrued_minutes = minutes
        self.segment_start = moved_at
        self.slot = slot

    def complete_payment(self, amount: Money, paid_at: Optional[datetime] = None) -> None:
        """
        Finalize the ticket
        Raises: ValueError if the ticket was already paid
        """
        if self.is_paid:
            raise ValueError(f"Ticket {self.ticket_id} is already paid")

        self.exit_time = paid_at or datetime.now()
        self.price_charged = amount
        self.is_paid = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "ticket_id": self.ticket_id,
            "license_plate": self.vehicle.plate,
            "slot_id": self.slot.slot_id,
            "entry_time": self.entry_time.isoformat(),
            "exit_time": self.exit_time.isoformat() if self.exit_time else None,
            "price_charged": self.price_charged.to_dict(),
            "accrued_base": self.accrued_base.to_dict(),
            "is_paid": self.is_paid
        }

    def __str__(self) -> str:
        return (
            f"Ticket {self.ticket_id}: {self.vehicle.plate} at Slot {self.slot.slot_id} "
            f"- {self.price_charged.format()}"
        )


# ============================================================================
# DOMAIN EVENTS (for event-driven architecture)
# ============================================================================

class DomainEvent(ABC):
    """
    Base class for all domain events
    Events represent something that happened in the domain
    """

    event_type: EventType

    def __init__(self, parking_lot_id: str, timestamp: Optional[datetime] = None):
        self.event_id = str(uuid.uuid4())
        self.parking_lot_id = parking_lot_id
        self.timestamp = timestamp or datetime.now()
        self.version = "1.0"

    @abstractmethod
    def _data(self) -> Dict[str, Any]:
        """Event payload"""

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization"""
        data = {"parking_lot_id": self.parking_lot_id}
        data.update(self._data())
        return {
            "event_type": self.event_type.value,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
            "data": data
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__} at {self.timestamp}"


class VehicleParkedEvent(DomainEvent):
    """Event raised when a vehicle is given a slot"""

    event_type = EventType.VEHICLE_PARKED

    def __init__(self, parking_lot_id: str, ticket: ParkingTicket):
        super().__init__(parking_lot_id, ticket.entry_time)
        self.ticket_id = ticket.ticket_id
        self.license_plate = ticket.vehicle.plate
        self.slot_id = ticket.slot.slot_id
        self.slot_category = ticket.slot.category

    def _data(self) -> Dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "license_plate": self.license_plate,
            "slot_id": self.slot_id,
            "slot_category": self.slot_category.value
        }


class VehicleQueuedEvent(DomainEvent):
    """Event raised when no eligible slot exists and the vehicle waits"""

    event_type = EventType.VEHICLE_QUEUED

    def __init__(self, parking_lot_id: str, license_plate: str, position: int,
                 timestamp: Optional[datetime] = None):
        super().__init__(parking_lot_id, timestamp)
        self.license_plate = license_plate
        self.position = position

    def _data(self) -> Dict[str, Any]:
        return {"license_plate": self.license_plate, "position": self.position}


class VehicleLeftEvent(DomainEvent):
    """Event raised when a vehicle leaves and pays"""

    event_type = EventType.VEHICLE_LEFT

    def __init__(self, parking_lot_id: str, ticket: ParkingTicket):
        super().__init__(parking_lot_id, ticket.exit_time)
        self.ticket_id = ticket.ticket_id
        self.license_plate = ticket.vehicle.plate
        self.slot_id = ticket.slot.slot_id
        self.entry_time = ticket.entry_time
        self.exit_time = ticket.exit_time
        self.duration_minutes = ticket.duration_minutes()
        self.fee = ticket.price_charged

    def _data(self) -> Dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "license_plate": self.license_plate,
            "slot_id": self.slot_id,
            "entry_time": self.entry_time.isoformat(),
            "exit_time": self.exit_time.isoformat() if self.exit_time else None,
            "duration_minutes": self.duration_minutes,
            "fee": self.fee.to_dict()
        }


class VehicleReallocatedEvent(DomainEvent):
    """Event raised when the optimizer moves a vehicle to a closer slot"""

    event_type = EventType.VEHICLE_REALLOCATED

    def __init__(self, parking_lot_id: str, license_plate: str, from_slot_id: int,
                 to_slot_id: int, timestamp: Optional[datetime] = None):
        super().__init__(parking_lot_id, timestamp)
        self.license_plate = license_plate
        self.from_slot_id = from_slot_id
        self.to_slot_id = to_slot_id

    def _data(self) -> Dict[str, Any]:
        return {
            "license_plate": self.license_plate,
            "from_slot_id": self.from_slot_id,
            "to_slot_id": self.to_slot_id
        }
