"""
Read-only pricing snapshot records.

Pricing tables are fetched and administered elsewhere; this package only ever
sees them as a frozen ``PricingSnapshot``.  Ancillary condition configs are
already parsed into one of the ``Condition`` variants by the time a snapshot
exists (see ``services/ancillaryConditions.py``).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Optional, Union


def normalize_name(value: Optional[str]) -> str:
    """Case- and whitespace-insensitive key for name based lookups."""
    return (value or "").strip().lower()


class ConditionType(str, enum.Enum):
    TIME_WINDOW = "time_window"
    ADDITIONAL_STOPS = "additional_stops"
    ALWAYS = "always"


class PricingTier(str, enum.Enum):
    CUSTOMER_OVERRIDE = "customer_override"
    DEFAULT_MATRIX = "default_matrix"


# ---------------------------------------------------------------------------
# Parsed ancillary conditions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimeWindow:
    """Inclusive window in minutes since midnight; may wrap past midnight."""
    start_minute: int
    end_minute: int

    @property
    def wraps_midnight(self) -> bool:
        return self.start_minute > self.end_minute

    def contains(self, minute: int) -> bool:
        if self.wraps_midnight:
            return minute >= self.start_minute or minute <= self.end_minute
        return self.start_minute <= minute <= self.end_minute

    def label(self) -> str:
        return (
            f"{self.start_minute // 60:02d}:{self.start_minute % 60:02d}-"
            f"{self.end_minute // 60:02d}:{self.end_minute % 60:02d}"
        )


@dataclass(frozen=True)
class StopThreshold:
    trigger_count: int = 0
    per_occurrence: bool = False


@dataclass(frozen=True)
class Unconditional:
    pass


Condition = Union[TimeWindow, StopThreshold, Unconditional]


@dataclass(frozen=True)
class AncillaryService:
    id: int
    name: str
    condition_type: ConditionType
    # None when the config was missing or malformed; callers fall back to
    # their own defaults.
    condition: Optional[Condition] = None
    is_per_occurrence: bool = False


# ---------------------------------------------------------------------------
# Pricing table rows
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CustomerServicePrice:
    """Customer-specific override, keyed by service and vehicle type names."""
    customer_id: int
    service_name: str
    vehicle_type: str
    price: Decimal


@dataclass(frozen=True)
class VehicleTypeServicePrice:
    """Default matrix entry, keyed by service and vehicle type ids."""
    service_id: int
    vehicle_type_id: int
    price: Decimal


@dataclass(frozen=True)
class ContractorServicePrice:
    contractor_id: int
    service_id: Optional[int]
    vehicle_type_id: Optional[int]
    cost: Decimal
    service_name: str = ""
    vehicle_type: str = ""


@dataclass(frozen=True)
class PriceMatch:
    price: Decimal
    tier: PricingTier


@dataclass(frozen=True)
class PricingSnapshot:
    """Immutable bundle of every pricing table the engine consults."""
    customer_prices: tuple[CustomerServicePrice, ...] = ()
    vehicle_type_prices: tuple[VehicleTypeServicePrice, ...] = ()
    ancillary_services: tuple[AncillaryService, ...] = ()
    contractor_prices: tuple[ContractorServicePrice, ...] = ()
    _customer_index: dict = field(default=None, init=False, repr=False, compare=False)
    _matrix_index: dict = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        customer_index: dict[tuple[int, str, str], Decimal] = {}
        for row in self.customer_prices:
            key = (row.customer_id, normalize_name(row.service_name), normalize_name(row.vehicle_type))
            customer_index.setdefault(key, row.price)
        matrix_index: dict[tuple[int, int], Decimal] = {}
        for row in self.vehicle_type_prices:
            matrix_index.setdefault((row.service_id, row.vehicle_type_id), row.price)
        object.__setattr__(self, "_customer_index", customer_index)
        object.__setattr__(self, "_matrix_index", matrix_index)

    def customer_service_price(
        self,
        customer_id: Optional[int],
        service_name: Optional[str],
        vehicle_type: Optional[str],
    ) -> Optional[Decimal]:
        if customer_id is None:
            return None
        key = (customer_id, normalize_name(service_name), normalize_name(vehicle_type))
        return self._customer_index.get(key)

    def matrix_price(
        self,
        service_id: Optional[int],
        vehicle_type_id: Optional[int],
    ) -> Optional[Decimal]:
        if service_id is None or vehicle_type_id is None:
            return None
        return self._matrix_index.get((service_id, vehicle_type_id))

    def find_ancillary(
        self,
        predicate: Callable[[AncillaryService], bool],
    ) -> Optional[AncillaryService]:
        for service in self.ancillary_services:
            if predicate(service):
                return service
        return None

    def contractor_matrix(self, contractor_id: int) -> list[ContractorServicePrice]:
        return [row for row in self.contractor_prices if row.contractor_id == contractor_id]
