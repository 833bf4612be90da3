# File: smart_parking/application/parking_service.py
"""
Parking Management Application Service

This module implements the application service layer for the Smart Parking
engine. It orchestrates the parking lot aggregate and handles the use cases
of the system.

Responsibilities:
1. Keep parking lots in the repository and look them up by id
2. Execute the use cases (park, exit, find, status, optimize, pricing)
3. Publish the domain events raised by each use case
4. Translate between request/response DTOs and domain objects

Key Principles:
- Dependency Injection for testability
- Command/Query separation
"""

from datetime import datetime
from typing import Callable, List, Optional, Protocol
import logging

from ..config import ParkingSettings, get_settings
from ..domain.aggregates import AdmissionResult, ParkingLot
from ..domain.models import LicensePlate, SlotCategory
from ..infrastructure.factories import VehicleFactory
from ..infrastructure.messaging import EventBus
from ..infrastructure.repositories import InMemoryParkingLotRepository
from .dtos import (
    AdmissionStatusDTO, DTOFactory, ExitRequestDTO, OptimizationResultDTO,
    ParkingAllocationDTO, ParkingExitDTO, ParkingLotStatusDTO,
    ParkingRequestDTO, PriceBreakdownDTO, PricingInfoDTO, VehicleLocationDTO
)


# ============================================================================
# SERVICE INTERFACES
# ============================================================================

class IParkingService(Protocol):
    """Interface for parking service"""

    def park_vehicle(self, request: ParkingRequestDTO) -> ParkingAllocationDTO:
        """Park a vehicle in the parking lot"""
        ...

    def exit_vehicle(self, request: ExitRequestDTO) -> ParkingExitDTO:
        """Exit a vehicle from the parking lot"""
        ...

    def find_vehicle(self, parking_lot_id: str, license_plate: str) -> VehicleLocationDTO:
        """Locate a vehicle"""
        ...

    def get_lot_status(self, parking_lot_id: str) -> ParkingLotStatusDTO:
        """Get parking lot status"""
        ...

    def optimize_lot(self, parking_lot_id: str) -> OptimizationResultDTO:
        """Move vehicles to closer slots"""
        ...


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ParkingServiceError(Exception):
    """Base exception for parking service errors"""
    pass


class ParkingLotNotFoundError(ParkingServiceError):
    """Exception when a parking lot id is unknown"""
    pass


class VehicleValidationError(ParkingServiceError):
    """Exception for vehicle validation errors"""
    pass


class VehicleNotParkedError(ParkingServiceError):
    """Exception when an operation needs a parked vehicle"""
    pass


# ============================================================================
# MAIN PARKING SERVICE
# ============================================================================

class ParkingService:
    """
    Main application service for parking management

    This service orchestrates the use cases of the system:
    1. Lot creation
    2. Vehicle parking and exit
    3. Vehicle lookup and status monitoring
    4. Slot optimization
    5. Pricing information and quotes
    """

    def __init__(
        self,
        repository: Optional[InMemoryParkingLotRepository] = None,
        event_bus: Optional[EventBus] = None,
        vehicle_factory: Optional[VehicleFactory] = None,
        settings: Optional[ParkingSettings] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.repository = repository or InMemoryParkingLotRepository()
        self.event_bus = event_bus or EventBus()
        self.vehicle_factory = vehicle_factory or VehicleFactory()
        self.settings = settings or get_settings()
        self.clock = clock or datetime.now

        self.logger.info("ParkingService initialized")

    # ------------------------------------------------------------------
    # Lots
    # ------------------------------------------------------------------

    def create_lot(self, total_slots: int, name: str = "Smart Parking",
                   seed: Optional[int] = None) -> ParkingLotStatusDTO:
        """
        Create a parking lot and register it
        Raises: ValueError if total_slots is below 1
        """
        settings = self.settings
        if seed is not None:
            settings = settings.model_copy(update={"seed": seed})

        lot = ParkingLot(total_slots, settings=settings, clock=self.clock, name=name)
        self.repository.add(lot)
        self.logger.info(f"Created parking lot {lot.id} '{name}' with {total_slots} slots")
        return self.get_lot_status(lot.id)

    def get_lot(self, parking_lot_id: str) -> ParkingLot:
        """
        Look up a lot
        Raises: ParkingLotNotFoundError for an unknown id
        """
        lot = self.repository.get(parking_lot_id)
        if lot is None:
            raise ParkingLotNotFoundError(f"Parking lot {parking_lot_id} not found")
        return lot

    def list_lots(self) -> List[ParkingLot]:
        return self.repository.get_all(limit=self.repository.count())

    def _publish_events(self, lot: ParkingLot) -> None:
        """Publish and clear the events raised by the last operation"""
        self.event_bus.publish_all(lot.clear_events())

    # ------------------------------------------------------------------
    # Use cases
    # ------------------------------------------------------------------

    def park_vehicle(self, request: ParkingRequestDTO) -> ParkingAllocationDTO:
        """
        Park a vehicle in the parking lot

        Use Case: Vehicle Entry
        1. Build the vehicle from the request
        2. Admit it (nearest eligible slot, or the waiting backlog)
        3. Publish domain events

        Returns: Parking allocation result
        """
        self.logger.info(f"Processing parking request for {request.license_plate}")
        lot = self.get_lot(request.parking_lot_id)

        try:
            vehicle = self.vehicle_factory.create_from_dto(request)
        except ValueError as e:
            self.logger.warning(f"Invalid vehicle {request.license_plate}: {e}")
            return ParkingAllocationDTO(
                success=False,
                license_plate=request.license_plate,
                message=f"Invalid vehicle: {e}"
            )

        result = lot.admit(vehicle)
        self._publish_events(lot)
        return self._to_allocation_dto(result)

    def exit_vehicle(self, request: ExitRequestDTO) -> ParkingExitDTO:
        """
        Exit a vehicle from the parking lot

        Use Case: Vehicle Exit
        1. Charge the settlement price and close the ticket
        2. Free the slot
        3. Give the freed capacity to the first waiting vehicle
        4. Publish domain events

        Returns: Parking exit result
        """
        self.logger.info(f"Processing exit request for {request.license_plate}")
        lot = self.get_lot(request.parking_lot_id)

        result = lot.release(request.license_plate)
        self._publish_events(lot)

        if not result.released:
            return ParkingExitDTO(
                success=False,
                license_plate=result.license_plate,
                message=f"Vehicle {result.license_plate} not found in parking",
                timestamp=self.clock()
            )

        ticket = result.ticket
        return ParkingExitDTO(
            success=True,
            license_plate=result.license_plate,
            ticket_id=ticket.ticket_id,
            slot_id=result.slot.slot_id,
            duration_minutes=ticket.duration_minutes(),
            duration_hours=round(ticket.duration_hours(), 2),
            total_fee=DTOFactory.create_money(result.amount),
            drained=self._to_allocation_dto(result.drained) if result.drained else None,
            message=f"Vehicle exited, paid {result.amount.format()}",
            timestamp=ticket.exit_time
        )

    def find_vehicle(self, parking_lot_id: str, license_plate: str) -> VehicleLocationDTO:
        """Locate a parked or waiting vehicle"""
        lot = self.get_lot(parking_lot_id)
        plate = self._normalize_plate(license_plate)

        slot = lot.find_occupied_slot(plate)
        if slot is not None:
            ticket = lot.find_ticket(plate)
            return VehicleLocationDTO(
                found=True,
                license_plate=plate,
                slot=DTOFactory.create_slot(slot),
                ticket_id=ticket.ticket_id if ticket else None,
                entry_time=ticket.entry_time if ticket else None,
                message=f"Vehicle {plate} is in slot {slot.slot_id}"
            )

        position = lot.waiting_position(plate)
        if position is not None:
            return VehicleLocationDTO(
                found=False,
                license_plate=plate,
                waiting_position=position,
                message=f"Vehicle {plate} is waiting at position {position}"
            )

        self.logger.warning(f"Vehicle {plate} not found in lot {parking_lot_id}")
        return VehicleLocationDTO(
            found=False,
            license_plate=plate,
            message=f"Vehicle {plate} not found in parking"
        )

    def get_lot_status(self, parking_lot_id: str) -> ParkingLotStatusDTO:
        """Get parking lot status"""
        lot = self.get_lot(parking_lot_id)

        return ParkingLotStatusDTO(
            parking_lot_id=lot.id,
            name=lot.name,
            total_slots=lot.total_slots,
            occupied_slots=lot.occupied_count,
            available_slots=lot.available_count,
            waiting_vehicles=lot.waiting_count,
            occupancy_rate=round(lot.occupancy_rate * 100, 1),
            vip_slots=lot.count_by_category(SlotCategory.VIP),
            ev_slots=lot.count_by_category(SlotCategory.EV_CHARGING),
            regular_slots=lot.count_by_category(SlotCategory.REGULAR),
            total_revenue=DTOFactory.create_money(lot.total_revenue),
            vehicles_served=lot.vehicles_served,
            current_multiplier=lot.current_pricing_multiplier(),
            nearest_available=[DTOFactory.create_slot(slot) for slot in lot.nearest_available_slots()],
            occupied=[DTOFactory.create_slot(slot) for _, slot in lot.occupied_items()],
            waiting_plates=[vehicle.plate for vehicle in lot.waiting_vehicles()],
            timestamp=self.clock()
        )

    def optimize_lot(self, parking_lot_id: str) -> OptimizationResultDTO:
        """Move parked vehicles to strictly closer eligible slots"""
        lot = self.get_lot(parking_lot_id)
        report = lot.optimize()
        self._publish_events(lot)
        return DTOFactory.create_optimization_result(lot.id, report)

    def get_pricing_info(self, parking_lot_id: str) -> PricingInfoDTO:
        """Current multipliers, peak windows and discounts"""
        lot = self.get_lot(parking_lot_id)
        return DTOFactory.create_pricing_info(lot.id, lot.pricing_info())

    def quote_price(self, parking_lot_id: str, license_plate: str) -> PriceBreakdownDTO:
        """
        Dynamic quote for a parked vehicle with every factor shown
        Raises: VehicleNotParkedError if the vehicle holds no slot
        """
        lot = self.get_lot(parking_lot_id)
        plate = self._normalize_plate(license_plate)

        breakdown = lot.price_breakdown(plate)
        if breakdown is None:
            raise VehicleNotParkedError(f"Vehicle {plate} is not parked")
        return DTOFactory.create_price_breakdown(breakdown)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _normalize_plate(self, license_plate: str) -> str:
        try:
            return LicensePlate(license_plate).value
        except ValueError as e:
            raise VehicleValidationError(str(e)) from e

    def _to_allocation_dto(self, result: AdmissionResult) -> ParkingAllocationDTO:
        """Map an admission outcome to the response DTO"""
        if result.admitted:
            slot = result.slot
            return ParkingAllocationDTO(
                success=True,
                status=AdmissionStatusDTO.ADMITTED,
                license_plate=result.license_plate,
                ticket_id=result.ticket.ticket_id,
                slot=DTOFactory.create_slot(slot),
                message=(
                    f"Vehicle parked in slot {slot.slot_id} "
                    f"({slot.distance_from_entrance}m from entrance)"
                ),
                timestamp=result.ticket.entry_time
            )

        if result.queued:
            return ParkingAllocationDTO(
                success=False,
                status=AdmissionStatusDTO.QUEUED,
                license_plate=result.license_plate,
                queue_position=result.queue_position,
                message=f"No suitable slot available, added to waiting queue (position {result.queue_position})",
                timestamp=self.clock()
            )

        return ParkingAllocationDTO(
            success=False,
            status=AdmissionStatusDTO.REJECTED,
            license_plate=result.license_plate,
            message=result.reason,
            timestamp=self.clock()
        )
