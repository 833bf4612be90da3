# File: smart_parking/domain/strategies.py
"""
Strategy Pattern Implementation for the Smart Parking engine

This module encapsulates the algorithms the parking lot delegates to. Each
strategy can be swapped at runtime and tested on its own.

Key Strategies:
1. Parking Allocation Strategies - How a slot is picked from the available pool
2. Pricing Strategies - How a ticket is priced
   - DynamicPricingStrategy: the quote shown to drivers (time of day, occupancy,
     vehicle discounts, clamped to a floor and a ceiling)
   - SettlementPricingStrategy: the amount actually charged on exit
3. PriceCalculator - Facade bundling the quote and settlement strategies
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any, Iterable, Tuple, Union
import logging

from .models import Money, ParkingSlot, ParkingTicket, Vehicle, CENT


Ratio = Union[float, Decimal]


def to_decimal(value: Ratio) -> Decimal:
    """Convert a float or Decimal ratio without binary float noise"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def billable_hours(ticket: ParkingTicket, now: Optional[datetime] = None) -> Decimal:
    """Elapsed whole minutes as hours, never less than one hour"""
    hours = Decimal(ticket.duration_minutes(now)) / Decimal(60)
    return max(Decimal(1), hours)


def base_charge(ticket: ParkingTicket, now: Optional[datetime] = None) -> Money:
    """
    Charge before multipliers: the accrued base for earlier slots plus the
    current slot rate for the rest of the stay. The one hour minimum
    applies to the whole stay.
    """
    accrued_hours = Decimal(ticket.accrued_minutes) / Decimal(60)
    remaining_hours = max(Decimal(0), billable_hours(ticket, now) - accrued_hours)
    return ticket.accrued_base + ticket.slot.base_rate * remaining_hours


# ============================================================================
# STRATEGY INTERFACES
# ============================================================================

class ParkingStrategy(ABC):
    """
    Abstract base class for parking strategies
    Defines the interface for slot allocation algorithms
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def allocate_slot(
        self,
        candidates: Iterable[ParkingSlot],
        vehicle: Vehicle,
        closer_than: Optional[int] = None
    ) -> Optional[ParkingSlot]:
        """
        Pick a slot for the vehicle from candidates given in pool order
        Returns: ParkingSlot if one qualifies, None otherwise
        """
        pass

    @abstractmethod
    def can_park(self, vehicle: Vehicle, slot: ParkingSlot) -> bool:
        """
        Check if vehicle can park in the given slot
        Returns: True if allowed, False otherwise
        """
        pass

    def get_strategy_name(self) -> str:
        """Get human-readable strategy name"""
        return self.__class__.__name__.replace("Strategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Strategy"


class PricingStrategy(ABC):
    """
    Abstract base class for pricing strategies
    Defines the interface for fee calculation algorithms
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def occupancy_multiplier(self, occupancy_ratio: Ratio) -> Decimal:
        """Multiplier applied for the current lot occupancy"""
        pass

    @abstractmethod
    def calculate_parking_fee(
        self,
        ticket: ParkingTicket,
        occupancy_ratio: Ratio,
        now: Optional[datetime] = None
    ) -> Money:
        """
        Calculate parking fee for a ticket at the given occupancy
        Returns: Calculated fee rounded to the cent
        """
        pass


# ============================================================================
# PARKING ALLOCATION STRATEGIES
# ============================================================================

class NearestEligibleSlotStrategy(ParkingStrategy):
    """
    Strategy: Nearest eligible slot
    - Walks candidates nearest first (ties broken by category priority)
    - Skips slots whose category does not accept the vehicle
    - Optionally gives up once candidates are no closer than a bound
    """

    def can_park(self, vehicle: Vehicle, slot: ParkingSlot) -> bool:
        return slot.is_available_for(vehicle)

    def allocate_slot(
        self,
        candidates: Iterable[ParkingSlot],
        vehicle: Vehicle,
        closer_than: Optional[int] = None
    ) -> Optional[ParkingSlot]:
        inspected = 0
        for slot in candidates:
            if closer_than is not None and slot.distance_from_entrance >= closer_than:
                break

            inspected += 1
            if self.can_park(vehicle, slot):
                self.logger.debug(
                    f"Slot {slot.slot_id} chosen for {vehicle.plate} after {inspected} candidates"
                )
                return slot

        self.logger.debug(f"No eligible slot for {vehicle.plate} after {inspected} candidates")
        return None


# ============================================================================
# PRICING VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class PriceBreakdown:
    """Value Object: Every factor that went into a quote"""
    license_plate: str
    hours: Decimal
    base_rate: Money
    base_amount: Money
    time_multiplier: Decimal
    time_label: str
    occupancy_multiplier: Decimal
    vehicle_multiplier: Decimal
    unclamped_price: Money
    final_price: Money

    @property
    def was_clamped(self) -> bool:
        return self.unclamped_price.amount != self.final_price.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "license_plate": self.license_plate,
            "hours": str(self.hours.quantize(CENT, rounding=ROUND_HALF_UP)),
            "base_rate": self.base_rate.to_dict(),
            "base_amount": self.base_amount.to_dict(),
            "time_multiplier": str(self.time_multiplier),
            "time_label": self.time_label,
            "occupancy_multiplier": str(self.occupancy_multiplier),
            "vehicle_multiplier": str(self.vehicle_multiplier),
            "unclamped_price": self.unclamped_price.to_dict(),
            "final_price": self.final_price.to_dict(),
        }


@dataclass(frozen=True)
class PricingInfo:
    """Value Object: Current pricing conditions of a lot"""
    occupancy_rate: Decimal
    quote_occupancy_multiplier: Decimal
    settlement_multiplier: Decimal
    peak_windows: Tuple[Tuple[int, int], ...]
    peak_multiplier: Decimal
    vip_discount: Decimal
    ev_discount: Decimal
    minimum_price: Money
    maximum_price: Money
    vip_maximum_price: Money

    def to_dict(self) -> Dict[str, Any]:
        return {
            "occupancy_rate": str(self.occupancy_rate),
            "quote_occupancy_multiplier": str(self.quote_occupancy_multiplier),
            "settlement_multiplier": str(self.settlement_multiplier),
            "peak_windows": [list(window) for window in self.peak_windows],
            "peak_multiplier": str(self.peak_multiplier),
            "vip_discount": str(self.vip_discount),
            "ev_discount": str(self.ev_discount),
            "minimum_price": self.minimum_price.to_dict(),
            "maximum_price": self.maximum_price.to_dict(),
            "vip_maximum_price": self.vip_maximum_price.to_dict(),
        }


# ============================================================================
# PRICING STRATEGIES
# ============================================================================

class DynamicPricingStrategy(PricingStrategy):
    """
    Strategy: Full dynamic quote
    - Peak hour surcharge based on the entry hour
    - Occupancy surcharge or discount
    - VIP and electric discounts, multiplicative
    - Result clamped to a floor and a ceiling (higher ceiling for VIP)
    """

    PEAK_WINDOWS: Tuple[Tuple[int, int], ...] = ((8, 10), (17, 20))  # [start, end)
    PEAK_MULTIPLIER = Decimal('1.5')

    # (threshold, multiplier), checked in order with ratio > threshold
    OCCUPANCY_SURCHARGES = [
        (Decimal('0.8'), Decimal('1.4')),
        (Decimal('0.6'), Decimal('1.2')),
    ]
    LOW_OCCUPANCY_THRESHOLD = Decimal('0.3')
    LOW_OCCUPANCY_MULTIPLIER = Decimal('0.8')

    VIP_DISCOUNT = Decimal('0.8')
    EV_DISCOUNT = Decimal('0.9')

    MIN_PRICE = Decimal('20.00')
    MAX_PRICE = Decimal('500.00')
    VIP_MAX_PRICE = Decimal('800.00')

    def is_peak_hour(self, hour: int) -> bool:
        return any(start <= hour < end for start, end in self.PEAK_WINDOWS)

    def time_multiplier(self, entry_time: datetime) -> Decimal:
        """Peak multiplier when the stay began inside a peak window"""
        if self.is_peak_hour(entry_time.hour):
            return self.PEAK_MULTIPLIER
        return Decimal('1.0')

    def occupancy_multiplier(self, occupancy_ratio: Ratio) -> Decimal:
        ratio = to_decimal(occupancy_ratio)
        for threshold, multiplier in self.OCCUPANCY_SURCHARGES:
            if ratio > threshold:
                return multiplier
        if ratio < self.LOW_OCCUPANCY_THRESHOLD:
            return self.LOW_OCCUPANCY_MULTIPLIER
        return Decimal('1.0')

    def vehicle_multiplier(self, vehicle: Vehicle) -> Decimal:
        multiplier = Decimal('1.0')
        if vehicle.is_vip:
            multiplier *= self.VIP_DISCOUNT
        if vehicle.is_electric:
            multiplier *= self.EV_DISCOUNT
        return multiplier

    def price_bounds(self, vehicle: Vehicle) -> Tuple[Decimal, Decimal]:
        """Floor and ceiling for the vehicle"""
        ceiling = self.VIP_MAX_PRICE if vehicle.is_vip else self.MAX_PRICE
        return self.MIN_PRICE, ceiling

    def breakdown(
        self,
        ticket: ParkingTicket,
        occupancy_ratio: Ratio,
        now: Optional[datetime] = None
    ) -> PriceBreakdown:
        """Compute the quote and keep every intermediate factor"""
        hours = billable_hours(ticket, now)
        base_rate = ticket.slot.base_rate
        base_amount = base_charge(ticket, now)

        time_multiplier = self.time_multiplier(ticket.entry_time)
        occupancy_multiplier = self.occupancy_multiplier(occupancy_ratio)
        vehicle_multiplier = self.vehicle_multiplier(ticket.vehicle)

        unclamped = (
            base_amount * (time_multiplier * occupancy_multiplier * vehicle_multiplier)
        ).rounded()

        floor, ceiling = self.price_bounds(ticket.vehicle)
        final_amount = max(floor, min(ceiling, unclamped.amount))

        return PriceBreakdown(
            license_plate=ticket.vehicle.plate,
            hours=hours,
            base_rate=base_rate,
            base_amount=base_amount.rounded(),
            time_multiplier=time_multiplier,
            time_label="Peak" if time_multiplier > Decimal('1.0') else "Off-peak",
            occupancy_multiplier=occupancy_multiplier,
            vehicle_multiplier=vehicle_multiplier,
            unclamped_price=unclamped,
            final_price=Money(final_amount, base_rate.currency).rounded()
        )

    def calculate_parking_fee(
        self,
        ticket: ParkingTicket,
        occupancy_ratio: Ratio,
        now: Optional[datetime] = None
    ) -> Money:
        fee = self.breakdown(ticket, occupancy_ratio, now).final_price
        self.logger.debug(f"Quoted {fee.format()} for {ticket.vehicle.plate}")
        return fee


class SettlementPricingStrategy(PricingStrategy):
    """
    Strategy: Amount charged when a vehicle leaves
    - Base charge for the stay (at least one hour), earlier slots at their own rate
    - Occupancy surcharge only, no discount for an empty lot
    - VIP discount only; no time of day, no electric discount, no clamp
    """

    OCCUPANCY_SURCHARGES = [
        (Decimal('0.8'), Decimal('1.5')),
        (Decimal('0.6'), Decimal('1.2')),
    ]
    VIP_DISCOUNT = Decimal('0.8')

    def occupancy_multiplier(self, occupancy_ratio: Ratio) -> Decimal:
        ratio = to_decimal(occupancy_ratio)
        for threshold, multiplier in self.OCCUPANCY_SURCHARGES:
            if ratio > threshold:
                return multiplier
        return Decimal('1.0')

    def calculate_parking_fee(
        self,
        ticket: ParkingTicket,
        occupancy_ratio: Ratio,
        now: Optional[datetime] = None
    ) -> Money:
        hours = billable_hours(ticket, now)
        multiplier = self.occupancy_multiplier(occupancy_ratio)
        if ticket.vehicle.is_vip:
            multiplier *= self.VIP_DISCOUNT

        fee = (base_charge(ticket, now) * multiplier).rounded()
        self.logger.debug(
            f"Settled {fee.format()} for {ticket.vehicle.plate} "
            f"({hours:.2f}h x {multiplier})"
        )
        return fee


# ============================================================================
# PRICE CALCULATOR FACADE
# ============================================================================

class PriceCalculator:
    """
    Facade over the quote and settlement strategies
    Read-only: pricing never changes lot state
    """

    def __init__(
        self,
        quote_strategy: Optional[DynamicPricingStrategy] = None,
        settlement_strategy: Optional[PricingStrategy] = None,
        currency: str = "INR"
    ):
        self.quote_strategy = quote_strategy or DynamicPricingStrategy()
        self.settlement_strategy = settlement_strategy or SettlementPricingStrategy()
        self.currency = currency
        self.logger = logging.getLogger(self.__class__.__name__)

    def quote(self, ticket: ParkingTicket, occupancy_ratio: Ratio,
              now: Optional[datetime] = None) -> Money:
        """Full dynamic price, clamped"""
        return self.quote_strategy.calculate_parking_fee(ticket, occupancy_ratio, now)

    def settle(self, ticket: ParkingTicket, occupancy_ratio: Ratio,
               now: Optional[datetime] = None) -> Money:
        """Price charged on exit"""
        return self.settlement_strategy.calculate_parking_fee(ticket, occupancy_ratio, now)

    def breakdown(self, ticket: ParkingTicket, occupancy_ratio: Ratio,
                  now: Optional[datetime] = None) -> PriceBreakdown:
        return self.quote_strategy.breakdown(ticket, occupancy_ratio, now)

    def settlement_multiplier(self, occupancy_ratio: Ratio) -> Decimal:
        return self.settlement_strategy.occupancy_multiplier(occupancy_ratio)

    def pricing_info(self, occupancy_ratio: Ratio) -> PricingInfo:
        """Snapshot of the multipliers in force at the given occupancy"""
        quote = self.quote_strategy
        ratio = to_decimal(occupancy_ratio)
        return PricingInfo(
            occupancy_rate=ratio,
            quote_occupancy_multiplier=quote.occupancy_multiplier(ratio),
            settlement_multiplier=self.settlement_multiplier(ratio),
            peak_windows=tuple(quote.PEAK_WINDOWS),
            peak_multiplier=quote.PEAK_MULTIPLIER,
            vip_discount=quote.VIP_DISCOUNT,
            ev_discount=quote.EV_DISCOUNT,
            minimum_price=Money(quote.MIN_PRICE, self.currency),
            maximum_price=Money(quote.MAX_PRICE, self.currency),
            vip_maximum_price=Money(quote.VIP_MAX_PRICE, self.currency)
        )
