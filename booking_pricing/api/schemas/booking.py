"""
Pydantic v2 schemas for the booking pricing API.

Covers:
- Booking draft and edit-tracking state (in and out)
- Pricing snapshot tables supplied by the caller
- Single user edits applied through the editor
- Recompute results with the pricing breakdown
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from booking_pricing.core.config import settings
from booking_pricing.models import (
    BookingDraft,
    BookingIdentity,
    BookingStatus,
    ExtraService,
    PricingSnapshot,
    StopKind,
    StopSlot,
    to_money,
)
from booking_pricing.services.editTracking import GUARDED_FIELDS, EditTracker
from booking_pricing.services.pricingSnapshot import build_pricing_snapshot
from booking_pricing.services.recomputeEngine import PricingBreakdown, RecomputeResult


# ---------------------------------------------------------------------------
# Booking draft
# ---------------------------------------------------------------------------

class StopSlotSchema(BaseModel):
    location: str = ""
    price: Decimal = Decimal("0")


class ExtraServiceSchema(BaseModel):
    name: str
    price: Decimal = Decimal("0")


def _pad_stops(stops: list[StopSlotSchema]) -> list[StopSlot]:
    slots = [StopSlot(location=s.location, price=to_money(s.price)) for s in stops]
    slots.extend(StopSlot() for _ in range(settings.max_extra_stops - len(slots)))
    return slots


class BookingDraftSchema(BaseModel):
    """A booking draft as exchanged with the booking form."""

    customer_id: Optional[int] = None
    service_id: Optional[int] = None
    service_type: str = ""
    vehicle_type_id: Optional[int] = None
    vehicle_type: str = ""
    contractor_id: Optional[int] = None

    status: BookingStatus = BookingStatus.NEW

    pickup_date: Optional[date] = None
    pickup_time: str = ""

    pickup_stops: list[StopSlotSchema] = Field(
        default_factory=list,
        max_length=settings.max_extra_stops,
        description="Additional pickup stops, in slot order",
    )
    dropoff_stops: list[StopSlotSchema] = Field(
        default_factory=list,
        max_length=settings.max_extra_stops,
        description="Additional dropoff stops, in slot order",
    )

    base_price: Decimal = Decimal("0")
    midnight_surcharge: Decimal = Decimal("0")
    additional_discount: Decimal = Decimal("0")
    extra_services: list[ExtraServiceSchema] = Field(default_factory=list)
    final_price: Decimal = Decimal("0")

    job_cost: Optional[Decimal] = None
    cash_to_collect: Decimal = Decimal("0")

    def to_domain(self) -> BookingDraft:
        return BookingDraft(
            customer_id=self.customer_id,
            service_id=self.service_id,
            service_type=self.service_type,
            vehicle_type_id=self.vehicle_type_id,
            vehicle_type=self.vehicle_type,
            contractor_id=self.contractor_id,
            status=self.status,
            pickup_date=self.pickup_date,
            pickup_time=self.pickup_time,
            pickup_stops=_pad_stops(self.pickup_stops),
            dropoff_stops=_pad_stops(self.dropoff_stops),
            base_price=to_money(self.base_price),
            midnight_surcharge=to_money(self.midnight_surcharge),
            additional_discount=to_money(self.additional_discount),
            extra_services=[
                ExtraService(name=svc.name, price=to_money(svc.price))
                for svc in self.extra_services
            ],
            final_price=to_money(self.final_price),
            job_cost=to_money(self.job_cost) if self.job_cost is not None else None,
            cash_to_collect=to_money(self.cash_to_collect),
        )

    @classmethod
    def from_domain(cls, draft: BookingDraft) -> BookingDraftSchema:
        return cls(
            customer_id=draft.customer_id,
            service_id=draft.service_id,
            service_type=draft.service_type,
            vehicle_type_id=draft.vehicle_type_id,
            vehicle_type=draft.vehicle_type,
            contractor_id=draft.contractor_id,
            status=draft.status,
            pickup_date=draft.pickup_date,
            pickup_time=draft.pickup_time,
            pickup_stops=[StopSlotSchema(location=s.location, price=s.price) for s in draft.pickup_stops],
            dropoff_stops=[StopSlotSchema(location=s.location, price=s.price) for s in draft.dropoff_stops],
            base_price=draft.base_price,
            midnight_surcharge=draft.midnight_surcharge,
            additional_discount=draft.additional_discount,
            extra_services=[
                ExtraServiceSchema(name=svc.name, price=svc.price) for svc in draft.extra_services
            ],
            final_price=draft.final_price,
            job_cost=draft.job_cost,
            cash_to_collect=draft.cash_to_collect,
        )


# ---------------------------------------------------------------------------
# Edit tracking
# ---------------------------------------------------------------------------

class BookingIdentitySchema(BaseModel):
    customer_id: Optional[int] = None
    service_id: Optional[int] = None
    service_type: str = ""
    vehicle_type_id: Optional[int] = None
    vehicle_type: str = ""


class TrackingStateSchema(BaseModel):
    """Edit-tracking state carried between requests by the client."""

    manual_fields: list[str] = Field(
        default_factory=list,
        description="Fields a user has edited directly; recomputation leaves them alone",
    )
    last_identity: Optional[BookingIdentitySchema] = Field(
        default=None,
        description="Identity observed on the previous pass; omit for a new draft",
    )
    stored_pickup_time: Optional[str] = Field(
        default=None,
        description="Pickup time the stored midnight surcharge was priced for (existing bookings)",
    )

    @field_validator("manual_fields")
    @classmethod
    def _known_fields(cls, value: list[str]) -> list[str]:
        unknown = sorted(set(value) - GUARDED_FIELDS)
        if unknown:
            raise ValueError(f"Unknown tracked field(s): {', '.join(unknown)}")
        return value

    def to_domain(self) -> EditTracker:
        last = BookingIdentity(**self.last_identity.model_dump()) if self.last_identity else None
        return EditTracker(
            manual_fields=self.manual_fields,
            last_identity=last,
            stored_pickup_time=self.stored_pickup_time,
        )

    @classmethod
    def from_domain(cls, tracker: EditTracker) -> TrackingStateSchema:
        last = tracker.last_identity
        return cls(
            manual_fields=sorted(tracker.manual_fields),
            last_identity=BookingIdentitySchema(**asdict(last)) if last is not None else None,
            stored_pickup_time=tracker.stored_pickup_time,
        )


# ---------------------------------------------------------------------------
# Pricing snapshot
# ---------------------------------------------------------------------------

class CustomerServicePriceIn(BaseModel):
    customer_id: int
    service_name: str
    vehicle_type: str
    price: Decimal


class VehicleTypeServicePriceIn(BaseModel):
    service_id: int
    vehicle_type_id: int
    price: Decimal


class ServiceDefinitionIn(BaseModel):
    id: int
    name: str
    is_ancillary: bool = True
    condition_type: Optional[str] = None
    condition_config: Optional[str] = Field(
        default=None,
        description='JSON string, e.g. {"start_time": "23:00", "end_time": "06:59"} or {"trigger_count": 1}',
    )
    is_per_occurrence: bool = False


class ContractorServicePriceIn(BaseModel):
    contractor_id: int
    service_id: Optional[int] = None
    vehicle_type_id: Optional[int] = None
    service_name: str = ""
    vehicle_type: str = ""
    cost: Decimal


class PricingSnapshotIn(BaseModel):
    customer_prices: list[CustomerServicePriceIn] = Field(default_factory=list)
    vehicle_type_prices: list[VehicleTypeServicePriceIn] = Field(default_factory=list)
    services: list[ServiceDefinitionIn] = Field(default_factory=list)
    contractor_prices: list[ContractorServicePriceIn] = Field(default_factory=list)

    def to_snapshot(self) -> PricingSnapshot:
        return build_pricing_snapshot(
            customer_prices=[row.model_dump() for row in self.customer_prices],
            vehicle_type_prices=[row.model_dump() for row in self.vehicle_type_prices],
            services=[row.model_dump() for row in self.services],
            contractor_prices=[row.model_dump() for row in self.contractor_prices],
        )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class RecomputeRequest(BaseModel):
    draft: BookingDraftSchema = Field(default_factory=BookingDraftSchema)
    tracking: TrackingStateSchema = Field(default_factory=TrackingStateSchema)
    snapshot: PricingSnapshotIn = Field(default_factory=PricingSnapshotIn)


class BookingEditIn(BaseModel):
    """A single user edit, applied before the recompute pass."""

    action: Literal["set_field", "add_stop", "update_stop", "remove_stop"]
    field: Optional[str] = Field(default=None, description="Field name for set_field")
    value: Any = None
    stop_kind: Optional[StopKind] = None
    stop_index: Optional[int] = Field(default=None, ge=1, le=settings.max_extra_stops)
    location: Optional[str] = None
    price: Optional[Decimal] = None


class EditRequest(RecomputeRequest):
    edit: BookingEditIn


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class FieldChangeOut(BaseModel):
    field: str
    old: Optional[Decimal] = None
    new: Optional[Decimal] = None


class PricingBreakdownOut(BaseModel):
    """Pricing details behind the draft's totals."""

    model_config = ConfigDict(from_attributes=True)

    subtotal: Decimal
    final_price: Decimal
    extra_services_total: Decimal
    stops_total: Decimal

    midnight_status: str
    midnight_magnitude: Decimal
    surcharge_window: str

    stop_surcharge: Decimal = Field(
        description="Additional-stops charge per policy (flat or per occurrence)",
    )
    stop_slot_default: Decimal
    effective_stop_count: int
    stop_trigger_count: int
    stop_per_occurrence: bool

    job_cost_mode: str
    job_cost_read_only: bool
    contractor_balance: Decimal = Field(
        description="cash_to_collect minus job_cost; positive means the contractor owes the difference",
    )

    advisories: list[str] = Field(default_factory=list)
    currency: str = settings.currency

    @classmethod
    def from_breakdown(cls, breakdown: PricingBreakdown) -> PricingBreakdownOut:
        return cls(
            subtotal=breakdown.totals.subtotal,
            final_price=breakdown.totals.final_price,
            extra_services_total=breakdown.totals.extra_services_total,
            stops_total=breakdown.totals.stops_total,
            midnight_status=breakdown.midnight.status.value,
            midnight_magnitude=breakdown.midnight.magnitude,
            surcharge_window=breakdown.midnight.window.label(),
            stop_surcharge=breakdown.stops.aggregate,
            stop_slot_default=breakdown.stops.slot_default,
            effective_stop_count=breakdown.stops.effective_count,
            stop_trigger_count=breakdown.stops.trigger_count,
            stop_per_occurrence=breakdown.stops.per_occurrence,
            job_cost_mode=breakdown.contractor.mode.value,
            job_cost_read_only=breakdown.job_cost_read_only,
            contractor_balance=breakdown.contractor_balance,
            advisories=[advisory.value for advisory in breakdown.advisories],
        )


class RecomputeOut(BaseModel):
    draft: BookingDraftSchema
    tracking: TrackingStateSchema
    changes: list[FieldChangeOut] = Field(default_factory=list)
    breakdown: PricingBreakdownOut

    @classmethod
    def from_result(
        cls,
        result: RecomputeResult,
        changes: Optional[list[FieldChangeOut]] = None,
    ) -> RecomputeOut:
        if changes is None:
            changes = [
                FieldChangeOut(field=c.field, old=c.old, new=c.new) for c in result.changes
            ]
        return cls(
            draft=BookingDraftSchema.from_domain(result.draft),
            tracking=TrackingStateSchema.from_domain(result.tracker),
            changes=changes,
            breakdown=PricingBreakdownOut.from_breakdown(result.breakdown),
        )
