# File: smart_parking/application/dtos.py
"""
Data Transfer Objects (DTOs) for the Smart Parking engine

This module defines DTOs for data transfer between layers:
1. Input DTOs - Parking and exit requests coming from the command surface
2. Output DTOs - Allocation, exit, status, optimization and pricing results
3. DTOFactory - Builds output DTOs from domain objects

DTO Principles:
- Validation at creation (pydantic)
- No business logic, only data
- Serialization/deserialization support
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Any, Type, TypeVar
import json

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain.models import Money, ParkingSlot
from ..domain.optimization import OptimizationReport, SlotMove
from ..domain.strategies import PriceBreakdown, PricingInfo

T = TypeVar('T', bound='BaseDTO')


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        data = self.model_dump(**kwargs)
        if exclude_none:
            data = {k: v for k, v in data.items() if v is not None}
        return data

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Create DTO from dictionary"""
        return cls(**data)

    @classmethod
    def from_json(cls: Type[T], json_str: str) -> T:
        """Create DTO from JSON string"""
        return cls(**json.loads(json_str))


# ============================================================================
# ENUM DTOs
# ============================================================================

class SlotCategoryDTO(str, Enum):
    """Parking slot category DTO"""
    REGULAR = "REGULAR"
    VIP = "VIP"
    EV_CHARGING = "EV_CHARGING"


class AdmissionStatusDTO(str, Enum):
    """Admission outcome DTO"""
    ADMITTED = "ADMITTED"
    QUEUED = "QUEUED"
    REJECTED = "REJECTED"


# ============================================================================
# COMMON VALUE OBJECT DTOs
# ============================================================================

class MoneyDTO(BaseDTO):
    """Money value object DTO"""
    amount: Decimal = Field(ge=0, description="Amount")
    currency: str = Field(default="INR", min_length=3, max_length=3, description="Currency code (ISO 4217)")

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Ensure amount has at most 2 decimal places"""
        if v.as_tuple().exponent < -2:
            raise ValueError("Amount cannot have more than 2 decimal places")
        return v

    def format(self) -> str:
        return f"{self.currency} {self.amount:.2f}"


class ParkingSlotDTO(BaseDTO):
    """Parking slot DTO"""
    slot_id: int = Field(ge=1, description="Slot id")
    category: SlotCategoryDTO = Field(description="Slot category")
    distance_from_entrance: int = Field(ge=0, description="Distance from the entrance in meters")
    base_rate: MoneyDTO = Field(description="Hourly base rate")
    is_occupied: bool = Field(default=False, description="Occupancy flag")
    license_plate: Optional[str] = Field(default=None, description="Plate of the parked vehicle")


# ============================================================================
# PARKING OPERATION DTOs
# ============================================================================

class ParkingRequestDTO(BaseDTO):
    """DTO for parking request"""
    parking_lot_id: str = Field(description="Parking lot ID")
    license_plate: str = Field(min_length=1, max_length=20, description="License plate number")
    vehicle_type: str = Field(default="CAR", min_length=1, description="Free-form vehicle type label")
    is_vip: bool = Field(default=False, description="VIP vehicle")
    is_electric: bool = Field(default=False, description="Electric vehicle")

    @field_validator('license_plate', 'vehicle_type')
    @classmethod
    def normalize_text(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Value cannot be blank")
        return v


class ExitRequestDTO(BaseDTO):
    """DTO for exit request"""
    parking_lot_id: str = Field(description="Parking lot ID")
    license_plate: str = Field(min_length=1, max_length=20, description="License plate number")

    @field_validator('license_plate')
    @classmethod
    def normalize_plate(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("License plate cannot be blank")
        return v


class ParkingAllocationDTO(BaseDTO):
    """DTO for parking allocation result"""
    success: bool = Field(description="Vehicle holds a slot")
    status: Optional[AdmissionStatusDTO] = Field(default=None, description="Admission outcome")
    license_plate: Optional[str] = Field(default=None, description="License plate")
    ticket_id: Optional[str] = Field(default=None, description="Parking ticket ID")
    slot: Optional[ParkingSlotDTO] = Field(default=None, description="Allocated slot")
    queue_position: Optional[int] = Field(default=None, ge=1, description="1-based backlog position")
    message: Optional[str] = Field(default=None, description="Result message")
    timestamp: Optional[datetime] = Field(default=None, description="Allocation timestamp")


class ParkingExitDTO(BaseDTO):
    """DTO for parking exit result"""
    success: bool = Field(description="Exit success")
    license_plate: Optional[str] = Field(default=None, description="License plate")
    ticket_id: Optional[str] = Field(default=None, description="Closed ticket ID")
    slot_id: Optional[int] = Field(default=None, description="Freed slot")
    duration_minutes: Optional[int] = Field(default=None, ge=0, description="Whole minutes parked")
    duration_hours: Optional[float] = Field(default=None, ge=0, description="Parking duration in hours")
    total_fee: Optional[MoneyDTO] = Field(default=None, description="Amount charged")
    drained: Optional[ParkingAllocationDTO] = Field(
        default=None, description="Outcome for the waiting vehicle given the freed capacity"
    )
    message: Optional[str] = Field(default=None, description="Result message")
    timestamp: Optional[datetime] = Field(default=None, description="Exit timestamp")


class VehicleLocationDTO(BaseDTO):
    """DTO for vehicle lookup result"""
    found: bool = Field(description="Vehicle is parked")
    license_plate: str = Field(description="License plate")
    slot: Optional[ParkingSlotDTO] = Field(default=None, description="Slot holding the vehicle")
    ticket_id: Optional[str] = Field(default=None, description="Active ticket ID")
    entry_time: Optional[datetime] = Field(default=None, description="Entry time")
    waiting_position: Optional[int] = Field(default=None, ge=1, description="Backlog position when waiting")
    message: Optional[str] = Field(default=None, description="Result message")


class ParkingLotStatusDTO(BaseDTO):
    """DTO for parking lot status"""
    parking_lot_id: str = Field(description="Parking lot ID")
    name: str = Field(description="Parking lot name")
    total_slots: int = Field(ge=1, description="Total slots")
    occupied_slots: int = Field(ge=0, description="Occupied slots")
    available_slots: int = Field(ge=0, description="Available slots")
    waiting_vehicles: int = Field(ge=0, description="Vehicles in the backlog")
    occupancy_rate: float = Field(ge=0, le=100, description="Occupancy rate percentage")
    vip_slots: int = Field(ge=0, description="VIP slot count")
    ev_slots: int = Field(ge=0, description="EV charging slot count")
    regular_slots: int = Field(ge=0, description="Regular slot count")
    total_revenue: MoneyDTO = Field(description="Revenue collected so far")
    vehicles_served: int = Field(ge=0, description="Vehicles that have left and paid")
    current_multiplier: Decimal = Field(description="Occupancy multiplier applied on exit right now")
    nearest_available: List[ParkingSlotDTO] = Field(default_factory=list, description="Nearest free slots")
    occupied: List[ParkingSlotDTO] = Field(default_factory=list, description="Occupied slots in admission order")
    waiting_plates: List[str] = Field(default_factory=list, description="Backlog, front first")
    timestamp: datetime = Field(default_factory=datetime.now, description="Status timestamp")


class SlotMoveDTO(BaseDTO):
    """DTO for one optimization move"""
    license_plate: str
    from_slot_id: int
    to_slot_id: int
    from_distance: int
    to_distance: int


class OptimizationResultDTO(BaseDTO):
    """DTO for optimization result"""
    success: bool = Field(description="Pass completed")
    parking_lot_id: Optional[str] = Field(default=None, description="Parking lot ID")
    vehicles_scanned: int = Field(default=0, ge=0, description="Parked vehicles checked")
    moved_count: int = Field(default=0, ge=0, description="Vehicles moved")
    total_distance_saved: int = Field(default=0, ge=0, description="Meters saved across all moves")
    moves: List[SlotMoveDTO] = Field(default_factory=list, description="Moves in order")
    message: Optional[str] = Field(default=None, description="Result message")


# ============================================================================
# PRICING DTOs
# ============================================================================

class PricingInfoDTO(BaseDTO):
    """DTO for current pricing conditions"""
    parking_lot_id: Optional[str] = Field(default=None, description="Parking lot ID")
    occupancy_rate: Decimal = Field(ge=0, le=1, description="Occupied share of slots")
    quote_occupancy_multiplier: Decimal = Field(description="Occupancy multiplier used by quotes")
    settlement_multiplier: Decimal = Field(description="Occupancy multiplier used on exit")
    peak_windows: List[List[int]] = Field(description="Peak hour windows, [start, end)")
    peak_multiplier: Decimal = Field(description="Peak hour multiplier")
    vip_discount: Decimal = Field(description="VIP multiplier")
    ev_discount: Decimal = Field(description="Electric vehicle multiplier")
    minimum_price: MoneyDTO = Field(description="Quote floor")
    maximum_price: MoneyDTO = Field(description="Quote ceiling")
    vip_maximum_price: MoneyDTO = Field(description="Quote ceiling for VIP vehicles")


class PriceBreakdownDTO(BaseDTO):
    """DTO for the factors of one quote"""
    license_plate: str
    hours: Decimal = Field(ge=1, description="Billable hours, at least one")
    base_rate: MoneyDTO
    base_amount: MoneyDTO
    time_multiplier: Decimal
    time_label: str
    occupancy_multiplier: Decimal
    vehicle_multiplier: Decimal
    unclamped_price: MoneyDTO
    final_price: MoneyDTO
    was_clamped: bool = False


# ============================================================================
# DTO FACTORY
# ============================================================================

class DTOFactory:
    """Factory for creating DTOs from domain objects"""

    @staticmethod
    def create_money(money: Money) -> MoneyDTO:
        """Create MoneyDTO"""
        rounded = money.rounded()
        return MoneyDTO(amount=rounded.amount, currency=rounded.currency)

    @staticmethod
    def create_slot(slot: ParkingSlot) -> ParkingSlotDTO:
        """Create ParkingSlotDTO"""
        return ParkingSlotDTO(
            slot_id=slot.slot_id,
            category=SlotCategoryDTO(slot.category.value),
            distance_from_entrance=slot.distance_from_entrance,
            base_rate=DTOFactory.create_money(slot.base_rate),
            is_occupied=slot.is_occupied,
            license_plate=slot.parked_vehicle.plate if slot.parked_vehicle else None
        )

    @staticmethod
    def create_move(move: SlotMove) -> SlotMoveDTO:
        return SlotMoveDTO(**move.to_dict())

    @staticmethod
    def create_optimization_result(lot_id: str, report: OptimizationReport) -> OptimizationResultDTO:
        """Create OptimizationResultDTO"""
        if report.moved_count:
            message = f"Optimized {report.moved_count} vehicle(s)"
        else:
            message = "No optimization needed - all vehicles in optimal positions"

        return OptimizationResultDTO(
            success=True,
            parking_lot_id=lot_id,
            vehicles_scanned=report.vehicles_scanned,
            moved_count=report.moved_count,
            total_distance_saved=report.total_distance_saved,
            moves=[DTOFactory.create_move(move) for move in report.moves],
            message=message
        )

    @staticmethod
    def create_pricing_info(lot_id: str, info: PricingInfo) -> PricingInfoDTO:
        """Create PricingInfoDTO"""
        return PricingInfoDTO(
            parking_lot_id=lot_id,
            occupancy_rate=info.occupancy_rate,
            quote_occupancy_multiplier=info.quote_occupancy_multiplier,
            settlement_multiplier=info.settlement_multiplier,
            peak_windows=[list(window) for window in info.peak_windows],
            peak_multiplier=info.peak_multiplier,
            vip_discount=info.vip_discount,
            ev_discount=info.ev_discount,
            minimum_price=DTOFactory.create_money(info.minimum_price),
            maximum_price=DTOFactory.create_money(info.maximum_price),
            vip_maximum_price=DTOFactory.create_money(info.vip_maximum_price)
        )

    @staticmethod
    def create_price_breakdown(breakdown: PriceBreakdown) -> PriceBreakdownDTO:
        """Create PriceBreakdownDTO"""
        return PriceBreakdownDTO(
            license_plate=breakdown.license_plate,
            hours=breakdown.hours,
            base_rate=DTOFactory.create_money(breakdown.base_rate),
            base_amount=DTOFactory.create_money(breakdown.base_amount),
            time_multiplier=breakdown.time_multiplier,
            time_label=breakdown.time_label,
            occupancy_multiplier=breakdown.occupancy_multiplier,
            vehicle_multiplier=breakdown.vehicle_multiplier,
            unclamped_price=DTOFactory.create_money(breakdown.unclamped_price),
            final_price=DTOFactory.create_money(breakdown.final_price),
            was_clamped=breakdown.was_clamped
        )
