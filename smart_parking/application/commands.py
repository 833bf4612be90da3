# File: smart_parking/application/commands.py
"""
Command Pattern Implementation for the Smart Parking engine

This module wraps parking operations as first-class objects. Each command
can be validated, executed and logged, and the processor keeps an audit
trail of everything it ran.

Command Types:
1. Parking Commands - Vehicle entry and exit
2. Query Commands - Vehicle lookup and lot status
3. Admin Commands - Slot optimization
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging
import uuid

from .dtos import BaseDTO, ExitRequestDTO, ParkingRequestDTO
from .parking_service import ParkingService, ParkingServiceError


# ============================================================================
# COMMAND RESULT
# ============================================================================

@dataclass
class CommandResult:
    """Outcome of one command execution"""
    success: bool
    command_id: str
    command_type: str
    executed_at: datetime
    dto: Optional[BaseDTO] = None
    message: Optional[str] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "success": self.success,
            "command_id": self.command_id,
            "command_type": self.command_type,
            "executed_at": self.executed_at.isoformat(),
            "data": self.dto.to_dict(mode="json") if self.dto is not None else None,
            "message": self.message,
            "error_message": self.error_message
        }


# ============================================================================
# COMMAND INTERFACES AND BASE CLASSES
# ============================================================================

class Command(ABC):
    """
    Abstract base class for all commands

    A command represents an intent to change or inspect the system state.
    Commands are named in the imperative (e.g., ParkVehicleCommand).
    """

    def __init__(self, command_id: Optional[str] = None, executed_by: Optional[str] = None):
        self.command_id = command_id or str(uuid.uuid4())
        self.executed_at: Optional[datetime] = None
        self.executed_by = executed_by or "system"
        self.result: Optional[CommandResult] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate command parameters before execution

        Returns: (is_valid, error_messages)
        """
        pass

    @abstractmethod
    def _run(self, service: ParkingService) -> Tuple[bool, BaseDTO, str]:
        """Perform the operation; returns (success, dto, message)"""
        pass

    def execute(self, service: ParkingService) -> CommandResult:
        """
        Execute the command using the provided service
        Service errors and invalid input become a failed result
        """
        self.logger.info(f"Executing {self.get_description()}")
        self.executed_at = datetime.now()

        is_valid, errors = self.validate()
        if not is_valid:
            self.result = self._result(False, error_message=f"Validation failed: {errors}")
            return self.result

        try:
            success, dto, message = self._run(service)
        except (ParkingServiceError, ValueError) as e:
            self.logger.warning(f"{self.get_description()} failed: {e}")
            self.result = self._result(False, error_message=str(e))
            return self.result

        self.result = self._result(
            success, dto=dto, message=message,
            error_message=None if success else message
        )
        return self.result

    def _result(self, success: bool, **kwargs) -> CommandResult:
        return CommandResult(
            success=success,
            command_id=self.command_id,
            command_type=self.__class__.__name__,
            executed_at=self.executed_at or datetime.now(),
            **kwargs
        )

    def get_description(self) -> str:
        """Get human-readable command description"""
        return self.__class__.__name__.replace("Command", "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert command to dictionary for serialization"""
        return {
            "command_id": self.command_id,
            "command_type": self.__class__.__name__,
            "description": self.get_description(),
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "executed_by": self.executed_by,
            "result": self.result.to_dict() if self.result else None
        }


class LotCommand(Command, ABC):
    """Command addressed to one parking lot"""

    def __init__(self, parking_lot_id: str, **kwargs):
        super().__init__(**kwargs)
        self.parking_lot_id = parking_lot_id

    def validate(self) -> Tuple[bool, List[str]]:
        errors = []
        if not self.parking_lot_id:
            errors.append("Parking lot ID is required")
        return len(errors) == 0, errors


# ============================================================================
# PARKING COMMANDS
# ============================================================================

class ParkVehicleCommand(Command):
    """
    Command: Park a vehicle

    Business Operation: Vehicle Entry and Slot Allocation
    """

    def __init__(self, request: ParkingRequestDTO, executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.request = request

    def validate(self) -> Tuple[bool, List[str]]:
        """Validate parking request"""
        errors = []
        if not self.request.license_plate:
            errors.append("License plate is required")
        if not self.request.parking_lot_id:
            errors.append("Parking lot ID is required")
        return len(errors) == 0, errors

    def _run(self, service: ParkingService) -> Tuple[bool, BaseDTO, str]:
        allocation = service.park_vehicle(self.request)
        return allocation.success, allocation, allocation.message or ""

    def get_description(self) -> str:
        return f"Park Vehicle {self.request.license_plate}"


class ExitVehicleCommand(Command):
    """
    Command: Exit a vehicle

    Business Operation: Vehicle Exit, Fee Calculation and Backlog Drain
    """

    def __init__(self, request: ExitRequestDTO, executed_by: Optional[str] = None):
        super().__init__(executed_by=executed_by)
        self.request = request

    def validate(self) -> Tuple[bool, List[str]]:
        """Validate exit request"""
        errors = []
        if not self.request.license_plate:
            errors.append("License plate is required")
        if not self.request.parking_lot_id:
            errors.append("Parking lot ID is required")
        return len(errors) == 0, errors

    def _run(self, service: ParkingService) -> Tuple[bool, BaseDTO, str]:
        exit_result = service.exit_vehicle(self.request)
        return exit_result.success, exit_result, exit_result.message or ""

    def get_description(self) -> str:
        return f"Exit Vehicle {self.request.license_plate}"


# ============================================================================
# QUERY COMMANDS
# ============================================================================

class FindVehicleCommand(LotCommand):
    """Command: Locate a vehicle"""

    def __init__(self, parking_lot_id: str, license_plate: str, executed_by: Optional[str] = None):
        super().__init__(parking_lot_id, executed_by=executed_by)
        self.license_plate = license_plate

    def validate(self) -> Tuple[bool, List[str]]:
        is_valid, errors = super().validate()
        if not self.license_plate or not self.license_plate.strip():
            errors.append("License plate is required")
        return len(errors) == 0, errors

    def _run(self, service: ParkingService) -> Tuple[bool, BaseDTO, str]:
        location = service.find_vehicle(self.parking_lot_id, self.license_plate)
        return location.found, location, location.message or ""

    def get_description(self) -> str:
        return f"Find Vehicle {self.license_plate}"


class ShowStatusCommand(LotCommand):
    """Command: Report lot status"""

    def _run(self, service: ParkingService) -> Tuple[bool, BaseDTO, str]:
        status = service.get_lot_status(self.parking_lot_id)
        message = (
            f"{status.occupied_slots}/{status.total_slots} occupied, "
            f"{status.waiting_vehicles} waiting"
        )
        return True, status, message


# ============================================================================
# ADMIN COMMANDS
# ============================================================================

class OptimizeParkingCommand(LotCommand):
    """Command: Move parked vehicles to closer slots"""

    def _run(self, service: ParkingService) -> Tuple[bool, BaseDTO, str]:
        optimization = service.optimize_lot(self.parking_lot_id)
        return optimization.success, optimization, optimization.message or ""


# ============================================================================
# COMMAND PROCESSOR
# ============================================================================

class CommandProcessor:
    """
    Processes commands and keeps the history of executed commands
    """

    def __init__(self, service: ParkingService, max_history_size: int = 1000):
        self.service = service
        self.logger = logging.getLogger(self.__class__.__name__)
        self.command_history: List[Command] = []
        self.max_history_size = max_history_size

    def process(self, command: Command) -> CommandResult:
        """
        Process a command

        Args:
            command: Command to execute

        Returns: Execution result
        """
        self.logger.debug(f"Processing command: {command.get_description()}")
        result = command.execute(self.service)
        self._add_to_history(command)
        return result

    def process_batch(self, commands: List[Command]) -> List[CommandResult]:
        """Process multiple commands in order"""
        return [self.process(command) for command in commands]

    def get_history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get command history, oldest first"""
        history = self.command_history.copy()
        if limit:
            history = history[-limit:]
        return [cmd.to_dict() for cmd in history]

    def clear_history(self) -> None:
        self.command_history.clear()

    def _add_to_history(self, command: Command) -> None:
        """Add command to history, respecting max size"""
        self.command_history.append(command)
        if len(self.command_history) > self.max_history_size:
            self.command_history = self.command_history[-self.max_history_size:]
