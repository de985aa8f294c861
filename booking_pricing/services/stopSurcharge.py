"""
Stop-Count Surcharge Calculator ("additional stops").

The magnitude comes from the additional-stops ancillary service through the
two pricing tiers.  Pickup and dropoff extra stops are counted separately and
the larger count is used, so both lists get the same per-stop default price.

Policy:

- effective count below ``trigger_count`` (or no stops at all): no charge
- per-occurrence: ``magnitude x effective count``
- flat fee: ``magnitude`` once, whatever the count

Independently of the aggregate, every occupied stop slot that is still under
automatic control defaults to ``magnitude`` while the surcharge is active.
With a flat fee the slot defaults and the aggregate disagree; the result
carries ``slot_total_mismatch`` so the discrepancy can be surfaced rather
than silently resolved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from booking_pricing.models import (
    AncillaryService,
    BookingDraft,
    ConditionType,
    PricingSnapshot,
    PricingTier,
    StopSlot,
    StopThreshold,
    ZERO,
    to_money,
)
from booking_pricing.services.pricingTiers import resolve_tiered_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StopSurcharge:
    magnitude: Decimal
    trigger_count: int
    per_occurrence: bool
    pickup_count: int
    dropoff_count: int
    effective_count: int
    active: bool
    aggregate: Decimal
    slot_default: Decimal
    tier: Optional[PricingTier] = None

    @property
    def slot_total(self) -> Decimal:
        """What the per-slot defaults add up to across both stop lists."""
        return to_money(self.slot_default * (self.pickup_count + self.dropoff_count))

    @property
    def slot_total_mismatch(self) -> bool:
        return self.active and self.slot_total != self.aggregate


def count_occupied(stops: Iterable[StopSlot]) -> int:
    return sum(1 for stop in stops if stop.is_occupied)


def effective_stop_count(draft: BookingDraft) -> int:
    return max(count_occupied(draft.pickup_stops), count_occupied(draft.dropoff_stops))


def find_stop_service(snapshot: PricingSnapshot) -> Optional[AncillaryService]:
    return snapshot.find_ancillary(
        lambda service: service.condition_type == ConditionType.ADDITIONAL_STOPS
    )


def calculate_stop_surcharge(
    snapshot: PricingSnapshot,
    draft: BookingDraft,
) -> StopSurcharge:
    """Compute the additional-stops surcharge and the per-slot default price."""
    identity = draft.identity()
    pickup_count = count_occupied(draft.pickup_stops)
    dropoff_count = count_occupied(draft.dropoff_stops)
    effective = max(pickup_count, dropoff_count)

    service = find_stop_service(snapshot)
    threshold = StopThreshold()
    match = None
    if service is not None:
        if isinstance(service.condition, StopThreshold):
            threshold = service.condition
        else:
            threshold = StopThreshold(per_occurrence=service.is_per_occurrence)
        match = resolve_tiered_price(
            snapshot,
            customer_id=identity.customer_id,
            service_name=service.name,
            vehicle_type=identity.vehicle_type,
            service_id=service.id,
            vehicle_type_id=identity.vehicle_type_id,
        )

    magnitude = match.price if match is not None else ZERO

    def _result(active: bool, aggregate: Decimal) -> StopSurcharge:
        return StopSurcharge(
            magnitude=magnitude,
            trigger_count=threshold.trigger_count,
            per_occurrence=threshold.per_occurrence,
            pickup_count=pickup_count,
            dropoff_count=dropoff_count,
            effective_count=effective,
            active=active,
            aggregate=aggregate,
            slot_default=magnitude if active else ZERO,
            tier=match.tier if match is not None else None,
        )

    if magnitude <= ZERO:
        return _result(False, ZERO)

    if effective == 0 or effective < threshold.trigger_count:
        return _result(False, ZERO)

    if threshold.per_occurrence:
        aggregate = to_money(magnitude * effective)
    else:
        aggregate = magnitude

    logger.debug(
        "Additional stops surcharge: %d stop(s), trigger=%d, %s -> %s",
        effective,
        threshold.trigger_count,
        "per occurrence" if threshold.per_occurrence else "flat",
        aggregate,
    )
    return _result(True, aggregate)
