# File: smart_parking/infrastructure/factories.py
"""
Factory Pattern Implementation for the Smart Parking engine

This module centralizes object creation:
1. VehicleFactory - Vehicles from raw values or request DTOs
2. ParkingLotBuilder - Step-by-step construction of a configured parking lot
3. ServiceFactory - Wires the parking service, event bus and command processor
"""

from datetime import datetime
from typing import Callable, List, Optional, TYPE_CHECKING

from ..config import ParkingSettings, get_settings
from ..domain.aggregates import ParkingLot
from ..domain.models import Vehicle
from ..domain.strategies import ParkingStrategy, PriceCalculator
from ..application.dtos import ParkingRequestDTO
from .messaging import EventBus, InMemoryEventStore, ParkingEventHandler
from .repositories import InMemoryParkingLotRepository

if TYPE_CHECKING:
    from ..application.commands import CommandProcessor
    from ..application.parking_service import ParkingService


# ============================================================================
# DOMAIN OBJECT FACTORIES
# ============================================================================

class VehicleFactory:
    """Factory for creating Vehicle domain objects"""

    def create(
        self,
        license_plate: str,
        vehicle_type: str = "CAR",
        is_vip: bool = False,
        is_electric: bool = False
    ) -> Vehicle:
        """
        Create a Vehicle

        Args:
            license_plate: Vehicle license plate
            vehicle_type: Free-form type label (CAR, SUV, BIKE...)
            is_vip: Vehicle may use VIP slots
            is_electric: Vehicle may use EV charging slots
        """
        return Vehicle(
            license_plate=license_plate,
            vehicle_type=vehicle_type,
            is_vip=is_vip,
            is_electric=is_electric
        )

    def create_many(self, count: int, prefix: str = "TEST", **kwargs) -> List[Vehicle]:
        """Create vehicles with plates PREFIX001, PREFIX002, ..."""
        return [
            self.create(license_plate=f"{prefix}{str(i + 1).zfill(3)}", **kwargs)
            for i in range(count)
        ]

    def create_from_dto(self, dto: ParkingRequestDTO) -> Vehicle:
        """Create vehicle from a parking request"""
        return self.create(
            license_plate=dto.license_plate,
            vehicle_type=dto.vehicle_type,
            is_vip=dto.is_vip,
            is_electric=dto.is_electric
        )


# ============================================================================
# BUILDER
# ============================================================================

class ParkingLotBuilder:
    """Builder pattern for constructing configured ParkingLot instances"""

    def __init__(self):
        self.reset()

    def reset(self) -> 'ParkingLotBuilder':
        """Reset builder state"""
        self._total_slots: Optional[int] = None
        self._name = "Smart Parking"
        self._settings: Optional[ParkingSettings] = None
        self._seed: Optional[int] = None
        self._clock: Optional[Callable[[], datetime]] = None
        self._parking_strategy: Optional[ParkingStrategy] = None
        self._price_calculator: Optional[PriceCalculator] = None
        return self

    def with_slots(self, total_slots: int) -> 'ParkingLotBuilder':
        self._total_slots = total_slots
        return self

    def with_name(self, name: str) -> 'ParkingLotBuilder':
        self._name = name
        return self

    def with_settings(self, settings: ParkingSettings) -> 'ParkingLotBuilder':
        self._settings = settings
        return self

    def with_seed(self, seed: int) -> 'ParkingLotBuilder':
        """Override the layout seed without touching other settings"""
        self._seed = seed
        return self

    def with_clock(self, clock: Callable[[], datetime]) -> 'ParkingLotBuilder':
        self._clock = clock
        return self

    def with_parking_strategy(self, strategy: ParkingStrategy) -> 'ParkingLotBuilder':
        self._parking_strategy = strategy
        return self

    def with_price_calculator(self, calculator: PriceCalculator) -> 'ParkingLotBuilder':
        self._price_calculator = calculator
        return self

    def build(self) -> ParkingLot:
        """
        Build the parking lot
        Raises: ValueError if the slot count was never set
        """
        if self._total_slots is None:
            raise ValueError("Number of slots must be set before building")

        settings = self._settings or get_settings()
        if self._seed is not None:
            settings = settings.model_copy(update={"seed": self._seed})

        lot = ParkingLot(
            total_slots=self._total_slots,
            settings=settings,
            clock=self._clock,
            parking_strategy=self._parking_strategy,
            price_calculator=self._price_calculator,
            name=self._name
        )
        self.reset()
        return lot


# ============================================================================
# SERVICE FACTORIES
# ============================================================================

class ServiceFactory:
    """Factory for creating application services"""

    def __init__(
        self,
        settings: Optional[ParkingSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        event_bus: Optional[EventBus] = None,
        repository: Optional[InMemoryParkingLotRepository] = None,
        vehicle_factory: Optional[VehicleFactory] = None
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        self.event_bus = event_bus or self.create_event_bus()
        self.repository = repository or InMemoryParkingLotRepository()
        self.vehicle_factory = vehicle_factory or VehicleFactory()

    @staticmethod
    def create_event_bus(event_store: Optional[InMemoryEventStore] = None) -> EventBus:
        """Event bus with the logging handler and, optionally, an event store"""
        bus = EventBus()
        bus.subscribe_all(ParkingEventHandler())
        if event_store is not None:
            bus.subscribe_all(event_store)
        return bus

    def create_parking_service(self) -> 'ParkingService':
        """Create ParkingService with dependencies"""
        from ..application.parking_service import ParkingService

        return ParkingService(
            repository=self.repository,
            event_bus=self.event_bus,
            vehicle_factory=self.vehicle_factory,
            settings=self.settings,
            clock=self.clock
        )

    def create_command_processor(self) -> 'CommandProcessor':
        """Create CommandProcessor with dependencies"""
        from ..application.commands import CommandProcessor

        return CommandProcessor(self.create_parking_service())
