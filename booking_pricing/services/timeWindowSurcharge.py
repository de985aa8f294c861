"""
Time-Window Surcharge Calculator ("midnight surcharge").

The surcharge magnitude comes from the time-window ancillary service via the
usual two pricing tiers.  The active window comes from the service's parsed
condition, falling back to the configured default (23:00-06:59).  Windows
may wrap past midnight.

Three outcomes are possible:

- a positive amount (pickup inside the window, magnitude > 0)
- a definite zero (outside the window, or no magnitude configured)
- INDETERMINATE, when the pickup time is blank or cannot be parsed.  The
  caller must keep whatever surcharge is currently stored.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from booking_pricing.models import (
    AncillaryService,
    BookingIdentity,
    ConditionType,
    PricingSnapshot,
    PricingTier,
    TimeWindow,
    ZERO,
)
from booking_pricing.services.ancillaryConditions import default_time_window
from booking_pricing.services.pricingTiers import resolve_tiered_price

logger = logging.getLogger(__name__)


# Formats accepted for the free-text pickup time field
PICKUP_TIME_FORMATS: tuple[str, ...] = (
    "%H:%M",
    "%H:%M:%S",
    "%I:%M %p",
    "%I:%M:%S %p",
    "%I:%M%p",
    "%I %p",
)


class SurchargeStatus(str, enum.Enum):
    APPLIED = "applied"
    NOT_APPLIED = "not_applied"
    NO_PRICING = "no_pricing"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class TimeWindowSurcharge:
    status: SurchargeStatus
    amount: Optional[Decimal]
    magnitude: Decimal
    window: TimeWindow
    tier: Optional[PricingTier] = None
    pickup_minute: Optional[int] = None

    @property
    def is_indeterminate(self) -> bool:
        return self.status == SurchargeStatus.INDETERMINATE


def parse_pickup_minutes(pickup_time: Optional[str]) -> Optional[int]:
    """Convert a pickup time string to minutes since midnight.

    Returns ``None`` for blank or unrecognised input.
    """
    if not pickup_time or not pickup_time.strip():
        return None
    text = pickup_time.strip().upper()
    for fmt in PICKUP_TIME_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed.hour * 60 + parsed.minute
    return None


def _is_time_window_service(service: AncillaryService) -> bool:
    return service.condition_type == ConditionType.TIME_WINDOW


def find_time_window_service(snapshot: PricingSnapshot) -> Optional[AncillaryService]:
    return snapshot.find_ancillary(_is_time_window_service)


def resolve_window(service: Optional[AncillaryService]) -> TimeWindow:
    if service is not None and isinstance(service.condition, TimeWindow):
        return service.condition
    return default_time_window()


def calculate_time_window_surcharge(
    snapshot: PricingSnapshot,
    identity: BookingIdentity,
    pickup_time: Optional[str],
) -> TimeWindowSurcharge:
    """Compute the midnight surcharge candidate for a booking."""
    service = find_time_window_service(snapshot)
    window = resolve_window(service)

    match = None
    if service is not None:
        match = resolve_tiered_price(
            snapshot,
            customer_id=identity.customer_id,
            service_name=service.name,
            vehicle_type=identity.vehicle_type,
            service_id=service.id,
            vehicle_type_id=identity.vehicle_type_id,
        )

    magnitude = match.price if match is not None else ZERO
    if magnitude <= ZERO:
        return TimeWindowSurcharge(
            status=SurchargeStatus.NO_PRICING,
            amount=ZERO,
            magnitude=ZERO,
            window=window,
        )

    minute = parse_pickup_minutes(pickup_time)
    if minute is None:
        if pickup_time and pickup_time.strip():
            logger.info(
                "Unparseable pickup time %r; keeping the stored midnight surcharge",
                pickup_time,
            )
        return TimeWindowSurcharge(
            status=SurchargeStatus.INDETERMINATE,
            amount=None,
            magnitude=magnitude,
            window=window,
            tier=match.tier,
        )

    if window.contains(minute):
        return TimeWindowSurcharge(
            status=SurchargeStatus.APPLIED,
            amount=magnitude,
            magnitude=magnitude,
            window=window,
            tier=match.tier,
            pickup_minute=minute,
        )

    return TimeWindowSurcharge(
        status=SurchargeStatus.NOT_APPLIED,
        amount=ZERO,
        magnitude=magnitude,
        window=window,
        tier=match.tier,
        pickup_minute=minute,
    )
