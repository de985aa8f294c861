"""
Booking Recompute Engine
========================

One explicit, synchronous pricing pass over a booking draft::

    recompute(draft, tracker, snapshot) -> RecomputeResult

Steps, in order:

1. Observe the identity triple; a change releases every MANUAL field.  A
   stored midnight surcharge is released once the pickup time has moved.
2. Base price (customer-specific tier) -- only once the identity is complete.
3. Midnight surcharge -- an INDETERMINATE result keeps the stored value.
4. Stop slot prices -- occupied AUTO slots get the per-slot default, empty
   AUTO slots are zeroed.
5. Contractor claim -- system-owned while a contractor is set.
6. Totals via the aggregator.

Steps 2-4 go through the edit tracker's write gate.  The inputs are never
mutated: the draft and tracker are copied, so calling ``recompute`` again
with the same inputs gives the same answer, and feeding a result back in
produces no further changes.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Callable

from booking_pricing.events.bookingEvents import (
    emit_field_released,
    emit_identity_changed,
    emit_recomputed,
)
from booking_pricing.models import (
    BookingDraft,
    BookingIdentity,
    PricingSnapshot,
    StopKind,
    ZERO,
)
from booking_pricing.services.contractorCost import (
    ContractorCost,
    JobCostMode,
    contractor_balance,
    resolve_job_cost,
)
from booking_pricing.services.editTracking import (
    BASE_PRICE_FIELD,
    MIDNIGHT_SURCHARGE_FIELD,
    EditTracker,
    stop_price_field,
)
from booking_pricing.services.priceAggregator import PriceTotals, aggregate_prices
from booking_pricing.services.pricingTiers import resolve_base_price
from booking_pricing.services.stopSurcharge import StopSurcharge, calculate_stop_surcharge
from booking_pricing.services.timeWindowSurcharge import (
    TimeWindowSurcharge,
    calculate_time_window_surcharge,
)

logger = logging.getLogger(__name__)


class Advisory(str, enum.Enum):
    NEGATIVE_FINAL_PRICE = "negative_final_price"
    MIDNIGHT_SURCHARGE_PRESERVED = "midnight_surcharge_preserved"
    STOP_CHARGE_MISMATCH = "stop_charge_mismatch"
    CONTRACTOR_PRICING_MISSING = "contractor_pricing_missing"


@dataclass(frozen=True)
class FieldChange:
    field: str
    old: Any
    new: Any


@dataclass(frozen=True)
class PricingBreakdown:
    totals: PriceTotals
    midnight: TimeWindowSurcharge
    stops: StopSurcharge
    contractor: ContractorCost
    contractor_balance: Decimal
    advisories: tuple[Advisory, ...] = ()

    @property
    def job_cost_read_only(self) -> bool:
        return self.contractor.read_only


@dataclass
class RecomputeResult:
    draft: BookingDraft
    tracker: EditTracker
    breakdown: PricingBreakdown
    changes: tuple[FieldChange, ...] = ()
    events: list[dict[str, Any]] = field(default_factory=list)

    @property
    def changed_fields(self) -> list[str]:
        return [change.field for change in self.changes]


def _identity_payload(identity: BookingIdentity) -> dict[str, Any]:
    return asdict(identity)


def _gated_write(
    tracker: EditTracker,
    changes: list[FieldChange],
    field_name: str,
    current: Any,
    candidate: Any,
    setter: Callable[[Any], None],
) -> None:
    if tracker.permits_write(field_name, current, candidate):
        setter(candidate)
        changes.append(FieldChange(field=field_name, old=current, new=candidate))


def recompute(
    draft: BookingDraft,
    tracker: EditTracker,
    snapshot: PricingSnapshot,
) -> RecomputeResult:
    """Run one pricing pass and return the updated draft and tracker."""
    working = draft.copy()
    tracking = tracker.copy()
    changes: list[FieldChange] = []
    events: list[dict[str, Any]] = []
    advisories: list[Advisory] = []

    # 1. Identity
    identity = working.identity()
    identity_change = tracking.observe_identity(identity)
    if identity_change is not None:
        events.append(emit_identity_changed(
            _identity_payload(identity_change.previous),
            _identity_payload(identity_change.current),
            list(identity_change.released_fields),
        ))
    if tracking.observe_pickup_time(working.pickup_time):
        events.append(emit_field_released(MIDNIGHT_SURCHARGE_FIELD, "pickup_time_changed"))

    # 2. Base price
    if identity.is_complete:
        _gated_write(
            tracking, changes, BASE_PRICE_FIELD,
            working.base_price,
            resolve_base_price(snapshot, identity),
            lambda value: setattr(working, "base_price", value),
        )

    # 3. Midnight surcharge
    midnight = calculate_time_window_surcharge(snapshot, identity, working.pickup_time)
    if midnight.is_indeterminate:
        advisories.append(Advisory.MIDNIGHT_SURCHARGE_PRESERVED)
    else:
        _gated_write(
            tracking, changes, MIDNIGHT_SURCHARGE_FIELD,
            working.midnight_surcharge,
            midnight.amount,
            lambda value: setattr(working, "midnight_surcharge", value),
        )

    # 4. Stop slot prices
    stops = calculate_stop_surcharge(snapshot, working)
    for kind in (StopKind.PICKUP, StopKind.DROPOFF):
        for index, slot in enumerate(working.stops(kind), start=1):
            candidate = stops.slot_default if slot.is_occupied else ZERO
            _gated_write(
                tracking, changes, stop_price_field(kind, index),
                slot.price,
                candidate,
                lambda value, slot=slot: setattr(slot, "price", value),
            )
    if stops.slot_total_mismatch:
        advisories.append(Advisory.STOP_CHARGE_MISMATCH)

    # 5. Contractor claim
    contractor = resolve_job_cost(snapshot, working)
    if contractor.read_only and working.job_cost != contractor.cost:
        changes.append(FieldChange(field="job_cost", old=working.job_cost, new=contractor.cost))
        working.job_cost = contractor.cost
    if contractor.mode == JobCostMode.NO_PRICING:
        advisories.append(Advisory.CONTRACTOR_PRICING_MISSING)

    # 6. Totals
    totals = aggregate_prices(working)
    if working.final_price != totals.final_price:
        changes.append(FieldChange(field="final_price", old=working.final_price, new=totals.final_price))
        working.final_price = totals.final_price
    if totals.is_negative:
        advisories.append(Advisory.NEGATIVE_FINAL_PRICE)

    breakdown = PricingBreakdown(
        totals=totals,
        midnight=midnight,
        stops=stops,
        contractor=contractor,
        contractor_balance=contractor_balance(working),
        advisories=tuple(advisories),
    )

    if changes:
        events.append(emit_recomputed(
            [change.field for change in changes],
            str(totals.final_price),
        ))

    return RecomputeResult(
        draft=working,
        tracker=tracking,
        breakdown=breakdown,
        changes=tuple(changes),
        events=events,
    )
