# File: smart_parking/main.py
"""
Main application entry point for the Smart Parking engine

Two ways to drive a lot from the console:
1. demo - a scripted scenario that fills a small lot, queues a vehicle,
   releases one, optimizes and prints the summary
2. interactive - a menu for parking, exiting, finding vehicles, showing
   status and pricing, optimizing and quoting prices
"""

import argparse
import logging
import sys
from typing import Callable, List, Optional

from .application.commands import (
    CommandProcessor, ExitVehicleCommand, FindVehicleCommand,
    OptimizeParkingCommand, ParkVehicleCommand, ShowStatusCommand
)
from .application.dtos import (
    ExitRequestDTO, OptimizationResultDTO, ParkingAllocationDTO,
    ParkingExitDTO, ParkingLotStatusDTO, ParkingRequestDTO, PricingInfoDTO,
    PriceBreakdownDTO, VehicleLocationDTO
)
from .application.parking_service import ParkingService, ParkingServiceError
from .config import ParkingSettings, get_settings
from .infrastructure.factories import ServiceFactory

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
BANNER = "=" * 47


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Setup application logging configuration"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )
    return logging.getLogger(__name__)


# ============================================================================
# CONSOLE RENDERING
# ============================================================================

def format_allocation(result: ParkingAllocationDTO) -> str:
    if result.success and result.slot is not None:
        slot = result.slot
        return (
            f"SUCCESS: {result.license_plate} parked in Slot #{slot.slot_id} [{slot.category}] "
            f"{slot.distance_from_entrance}m, ticket {result.ticket_id}"
        )
    if result.queue_position is not None:
        return f"QUEUED: {result.license_plate} waiting at position {result.queue_position}"
    return f"REJECTED: {result.message}"


def format_exit(result: ParkingExitDTO) -> List[str]:
    if not result.success:
        return [f"ERROR: {result.message}"]

    lines = [
        f"SUCCESS: {result.license_plate} left Slot #{result.slot_id}",
        f"  Duration: {result.duration_minutes} min",
        f"  Amount charged: {result.total_fee.format()}",
    ]
    if result.drained is not None:
        lines.append(f"  Waiting vehicle: {format_allocation(result.drained)}")
    return lines


def format_location(result: VehicleLocationDTO) -> List[str]:
    if not result.found or result.slot is None:
        return [result.message or f"Vehicle {result.license_plate} not found"]

    slot = result.slot
    return [
        "VEHICLE FOUND:",
        f"  License: {result.license_plate}",
        f"  Slot: #{slot.slot_id} [{slot.category}]",
        f"  Distance: {slot.distance_from_entrance}m",
        f"  Rate: {slot.base_rate.format()}/hour",
        f"  Ticket: {result.ticket_id}",
    ]


def format_status(status: ParkingLotStatusDTO) -> List[str]:
    lines = [
        f"Parking Lot: {status.name} ({status.parking_lot_id})",
        f"Slots: {status.total_slots} total "
        f"({status.vip_slots} VIP, {status.ev_slots} EV, {status.regular_slots} Regular)",
        f"Occupied: {status.occupied_slots}  Available: {status.available_slots}  "
        f"Waiting: {status.waiting_vehicles}",
        f"Occupancy: {status.occupancy_rate:.1f}%  Current multiplier: {status.current_multiplier}x",
        f"Revenue: {status.total_revenue.format()}  Vehicles served: {status.vehicles_served}",
        "",
        "Nearest available slots:",
    ]
    for slot in status.nearest_available:
        lines.append(
            f"  Slot #{slot.slot_id} [{slot.category}] {slot.distance_from_entrance}m "
            f"{slot.base_rate.format()}/hr"
        )
    if not status.nearest_available:
        lines.append("  (none)")

    lines.append("Occupied slots:")
    for slot in status.occupied:
        lines.append(f"  Slot #{slot.slot_id} [{slot.category}] -> {slot.license_plate}")
    if not status.occupied:
        lines.append("  (none)")

    if status.waiting_plates:
        lines.append(f"Waiting queue: {', '.join(status.waiting_plates)}")
    return lines


def format_pricing_info(info: PricingInfoDTO) -> List[str]:
    windows = ", ".join(f"{start:02d}:00-{end:02d}:00" for start, end in info.peak_windows)
    return [
        f"Occupancy: {float(info.occupancy_rate) * 100:.1f}%",
        f"Quote occupancy multiplier: {info.quote_occupancy_multiplier}x",
        f"Exit occupancy multiplier: {info.settlement_multiplier}x",
        f"Peak hours ({info.peak_multiplier}x): {windows}",
        f"VIP multiplier: {info.vip_discount}x  EV multiplier: {info.ev_discount}x",
        f"Quote range: {info.minimum_price.format()} - {info.maximum_price.format()} "
        f"(VIP up to {info.vip_maximum_price.format()})",
    ]


def format_breakdown(breakdown: PriceBreakdownDTO) -> List[str]:
    lines = [
        f"Price breakdown for {breakdown.license_plate}:",
        f"  Hours: {breakdown.hours:.2f}, current rate {breakdown.base_rate.format()}/hour, base {breakdown.base_amount.format()}",
        f"  Time of day: {breakdown.time_label} ({breakdown.time_multiplier}x)",
        f"  Occupancy: {breakdown.occupancy_multiplier}x",
        f"  Vehicle: {breakdown.vehicle_multiplier}x",
        f"  Quote: {breakdown.final_price.format()}",
    ]
    if breakdown.was_clamped:
        lines.append(f"  (limited from {breakdown.unclamped_price.format()})")
    return lines


def format_optimization(result: OptimizationResultDTO) -> List[str]:
    lines = [result.message or ""]
    for move in result.moves:
        lines.append(
            f"  {move.license_plate}: Slot #{move.from_slot_id} ({move.from_distance}m) "
            f"-> Slot #{move.to_slot_id} ({move.to_distance}m)"
        )
    lines.append(f"Vehicles scanned: {result.vehicles_scanned}")
    return lines


def format_summary(status: ParkingLotStatusDTO) -> List[str]:
    return [
        "========== SYSTEM SUMMARY ==========",
        f"Parking Lot: {status.parking_lot_id}",
        f"Total Slots: {status.total_slots}",
        f"Occupied Slots: {status.occupied_slots}",
        f"Available Slots: {status.available_slots}",
        f"Waiting Queue: {status.waiting_vehicles}",
        f"Total Revenue: {status.total_revenue.format()}",
        f"Vehicles Served: {status.vehicles_served}",
        f"Occupancy Rate: {status.occupancy_rate:.1f}%",
    ]


def format_complexity() -> List[str]:
    return [
        "Operation costs (N slots):",
        "  Park vehicle:    O(log N) per inspected candidate",
        "  Exit vehicle:    O(log N) plus one backlog admission",
        "  Find vehicle:    O(1)",
        "  Optimize:        O(N log N) per pass in the worst case",
        "  Duplicate check: O(1) for parked and waiting plates",
    ]


# ============================================================================
# CONSOLE APPLICATION
# ============================================================================

class ParkingConsole:
    """Menu-driven console over one parking lot"""

    MENU = [
        "1. Park Vehicle",
        "2. Exit Vehicle",
        "3. Find Vehicle",
        "4. Show Parking Status",
        "5. Run Parking Optimization",
        "6. Pricing Info & Quote",
        "7. Exit System",
    ]

    def __init__(
        self,
        service: ParkingService,
        processor: CommandProcessor,
        parking_lot_id: str,
        input_func: Optional[Callable[[str], str]] = None,
        output: Optional[Callable[[str], None]] = None
    ):
        self.service = service
        self.processor = processor
        self.parking_lot_id = parking_lot_id
        self._input = input_func or input
        self._output = output or print
        self.logger = logging.getLogger(self.__class__.__name__)

    def _write(self, lines) -> None:
        if isinstance(lines, str):
            lines = [lines]
        for line in lines:
            self._output(line)

    def _ask_bool(self, prompt: str) -> bool:
        return self._input(prompt).strip().lower() in ("y", "yes", "true", "1")

    def park(self) -> None:
        plate = self._input("Enter license plate: ")
        vehicle_type = self._input("Enter vehicle type (CAR/SUV/BIKE): ") or "CAR"
        is_vip = self._ask_bool("Is VIP? (y/n): ")
        is_electric = self._ask_bool("Is Electric? (y/n): ")

        try:
            request = ParkingRequestDTO(
                parking_lot_id=self.parking_lot_id,
                license_plate=plate,
                vehicle_type=vehicle_type,
                is_vip=is_vip,
                is_electric=is_electric
            )
        except ValueError as e:
            self._write(f"ERROR: {e}")
            return

        result = self.processor.process(ParkVehicleCommand(request))
        if result.dto is None:
            self._write(f"ERROR: {result.error_message}")
            return
        self._write(format_allocation(result.dto))

    def exit(self) -> None:
        plate = self._input("Enter license plate: ")
        try:
            request = ExitRequestDTO(parking_lot_id=self.parking_lot_id, license_plate=plate)
        except ValueError as e:
            self._write(f"ERROR: {e}")
            return

        location = self.service.find_vehicle(self.parking_lot_id, request.license_plate)
        if not location.found:
            self._write("ERROR: Vehicle not found in parking!")
            return

        self._write(format_location(location))
        if not self._ask_bool("Confirm exit? (y/n): "):
            self._write("Exit cancelled.")
            return

        result = self.processor.process(ExitVehicleCommand(request))
        self._write(format_exit(result.dto) if result.dto else f"ERROR: {result.error_message}")

    def find(self) -> None:
        plate = self._input("Enter license plate: ")
        result = self.processor.process(FindVehicleCommand(self.parking_lot_id, plate))
        if result.dto is None:
            self._write(f"ERROR: {result.error_message}")
            return
        self._write(format_location(result.dto))

    def status(self) -> None:
        result = self.processor.process(ShowStatusCommand(self.parking_lot_id))
        self._write(format_status(result.dto))
        self._write("")
        self._write("[PRICING INFORMATION]")
        self._write(format_pricing_info(self.service.get_pricing_info(self.parking_lot_id)))

    def optimize(self) -> None:
        result = self.processor.process(OptimizeParkingCommand(self.parking_lot_id))
        self._write(format_optimization(result.dto))

    def pricing(self) -> None:
        self._write("[PRICING INFORMATION]")
        self._write(format_pricing_info(self.service.get_pricing_info(self.parking_lot_id)))

        plate = self._input("Quote for license plate (blank to skip): ")
        if not plate.strip():
            return
        try:
            breakdown = self.service.quote_price(self.parking_lot_id, plate)
        except ParkingServiceError as e:
            self._write(f"ERROR: {e}")
            return
        self._write(format_breakdown(breakdown))

    def summary(self) -> None:
        self._write(format_summary(self.service.get_lot_status(self.parking_lot_id)))

    def run(self) -> int:
        """Run the menu until the user exits"""
        actions = {
            "1": self.park,
            "2": self.exit,
            "3": self.find,
            "4": self.status,
            "5": self.optimize,
            "6": self.pricing,
        }

        while True:
            self._write(["", "============== MAIN MENU ==============", *self.MENU])
            try:
                choice = self._input("Choose option (1-7): ").strip()
            except EOFError:
                choice = "7"

            if choice == "7":
                self.summary()
                self._write("Thank you for using Smart Parking System!")
                return 0

            action = actions.get(choice)
            if action is None:
                self._write("Invalid choice! Try again.")
                continue
            action()


# ============================================================================
# DEMO SCENARIO
# ============================================================================

def run_demo(service: ParkingService, processor: CommandProcessor, total_slots: int,
             output: Callable[[str], None] = print) -> str:
    """Fill a lot past capacity, release one vehicle, optimize and summarize"""
    def write(lines) -> None:
        for line in ([lines] if isinstance(lines, str) else lines):
            output(line)

    status = service.create_lot(total_slots, name="Demo Lot")
    lot_id = status.parking_lot_id
    write([BANNER, "       SMART PARKING SYSTEM - DEMO", BANNER])
    write(format_status(status))

    arrivals = [("VIP001", True, False), ("EV001", False, True), ("EV002", False, True)]
    regular_count = max(0, status.total_slots - len(arrivals)) + 1
    arrivals += [(f"CAR{str(i + 1).zfill(3)}", False, False) for i in range(regular_count)]

    write(["", "[ARRIVALS]"])
    for plate, is_vip, is_electric in arrivals:
        request = ParkingRequestDTO(
            parking_lot_id=lot_id,
            license_plate=plate,
            is_vip=is_vip,
            is_electric=is_electric
        )
        write(format_allocation(processor.process(ParkVehicleCommand(request)).dto))

    write(["", "[DEPARTURE]"])
    leaving = arrivals[3][0] if len(arrivals) > 3 else arrivals[0][0]
    exit_result = processor.process(
        ExitVehicleCommand(ExitRequestDTO(parking_lot_id=lot_id, license_plate=leaving))
    )
    write(format_exit(exit_result.dto))

    write(["", "[OPTIMIZATION]"])
    write(format_optimization(processor.process(OptimizeParkingCommand(lot_id)).dto))

    write(["", "[PRICING]"])
    write(format_pricing_info(service.get_pricing_info(lot_id)))
    write(format_breakdown(service.quote_price(lot_id, arrivals[0][0])))

    write(["", "[COMPLEXITY]"])
    write(format_complexity())

    write([""])
    write(format_summary(service.get_lot_status(lot_id)))
    return lot_id


# ============================================================================
# ENTRY POINT
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smart-parking",
        description="Smart Parking slot allocation and dynamic pricing engine"
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the slot layout")

    subparsers = parser.add_subparsers(dest="command")

    demo = subparsers.add_parser("demo", help="Run the scripted demo scenario")
    demo.add_argument("--slots", type=int, default=10, help="Number of slots (default: 10)")

    interactive = subparsers.add_parser("interactive", help="Start the interactive menu")
    interactive.add_argument("--slots", type=int, default=None, help="Number of slots (asked when omitted)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application"""
    args = build_parser().parse_args(argv)

    settings: ParkingSettings = get_settings()
    if args.seed is not None:
        settings = settings.model_copy(update={"seed": args.seed})

    logger = setup_logging(args.log_level or settings.log_level, args.log_file or settings.log_file)

    factory = ServiceFactory(settings=settings)
    service = factory.create_parking_service()
    processor = CommandProcessor(service)

    try:
        if args.command == "interactive":
            slots = args.slots
            while slots is None:
                try:
                    slots = int(input("Enter total parking slots: "))
                except ValueError:
                    print("Please enter a whole number.")
            lot = service.create_lot(slots)
            print(f"SUCCESS: Parking Lot '{lot.parking_lot_id}' created!")
            return ParkingConsole(service, processor, lot.parking_lot_id).run()

        run_demo(service, processor, args.slots if args.command == "demo" else 10)
        return 0
    except ValueError as e:
        logger.error(f"Invalid input: {e}")
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
