"""
In-memory booking draft records.

A ``BookingDraft`` is the single-owner, mutable record that the booking editor
works on.  It is never persisted by this package; the surrounding application
receives the final draft on save.
"""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from booking_pricing.core.config import settings


CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Coerce a number-ish value to a two-place ``Decimal``.

    ``None`` and empty strings count as zero, matching how blank price inputs
    are treated on the booking form.
    """
    if value is None or value == "":
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class BookingStatus(str, enum.Enum):
    NEW = "new"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ON_THE_WAY = "otw"
    ON_THE_SPOT = "ots"
    PASSENGER_ON_BOARD = "pob"
    JOB_COMPLETED = "jc"
    SENT_DOCUMENTS = "sd"
    CANCELED = "canceled"


class StopKind(str, enum.Enum):
    PICKUP = "pickup"
    DROPOFF = "dropoff"


@dataclass
class StopSlot:
    """One extra pickup or dropoff stop."""
    location: str = ""
    price: Decimal = ZERO

    @property
    def is_occupied(self) -> bool:
        return bool(self.location and self.location.strip())


@dataclass
class ExtraService:
    name: str
    price: Decimal = ZERO


@dataclass(frozen=True)
class BookingIdentity:
    """The attributes that define which prices apply to a booking.

    The service and vehicle type are each carried by id and by name because
    pricing tables key on either, depending on the tier.
    """
    customer_id: Optional[int] = None
    service_id: Optional[int] = None
    service_type: str = ""
    vehicle_type_id: Optional[int] = None
    vehicle_type: str = ""

    @property
    def is_complete(self) -> bool:
        return (
            self.customer_id is not None
            and (self.service_id is not None or bool(self.service_type))
            and (self.vehicle_type_id is not None or bool(self.vehicle_type))
        )


def _empty_stops() -> list[StopSlot]:
    return [StopSlot() for _ in range(settings.max_extra_stops)]


@dataclass
class BookingDraft:
    # Identity
    customer_id: Optional[int] = None
    service_id: Optional[int] = None
    service_type: str = ""
    vehicle_type_id: Optional[int] = None
    vehicle_type: str = ""
    contractor_id: Optional[int] = None

    status: BookingStatus = BookingStatus.NEW

    # Timing
    pickup_date: Optional[date] = None
    pickup_time: str = ""

    # Extra stops
    pickup_stops: list[StopSlot] = field(default_factory=_empty_stops)
    dropoff_stops: list[StopSlot] = field(default_factory=_empty_stops)

    # Billing
    base_price: Decimal = ZERO
    midnight_surcharge: Decimal = ZERO
    additional_discount: Decimal = ZERO
    extra_services: list[ExtraService] = field(default_factory=list)
    final_price: Decimal = ZERO

    # Contractor / driver billing
    job_cost: Optional[Decimal] = None
    cash_to_collect: Decimal = ZERO

    def identity(self) -> BookingIdentity:
        return BookingIdentity(
            customer_id=self.customer_id,
            service_id=self.service_id,
            service_type=(self.service_type or "").strip(),
            vehicle_type_id=self.vehicle_type_id,
            vehicle_type=(self.vehicle_type or "").strip(),
        )

    def stops(self, kind: StopKind) -> list[StopSlot]:
        return self.pickup_stops if kind == StopKind.PICKUP else self.dropoff_stops

    def copy(self) -> BookingDraft:
        return copy.deepcopy(self)
