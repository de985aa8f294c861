"""
Pricing Tier Resolver.

Two tiers are consulted, in strict precedence:

1. Customer-specific override -- ``(customer_id, service name, vehicle type)``
2. Default matrix entry       -- ``(service_id, vehicle_type_id)``

"Not found" is reported as ``None`` rather than zero so callers can pick
their own fallback.  A miss at every tier is a legitimate zero-charge
outcome, not an error.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from booking_pricing.models import (
    BookingIdentity,
    PriceMatch,
    PricingSnapshot,
    PricingTier,
    ZERO,
)

logger = logging.getLogger(__name__)


def resolve_customer_service_price(
    snapshot: PricingSnapshot,
    customer_id: Optional[int],
    service_name: Optional[str],
    vehicle_type: Optional[str],
) -> Optional[Decimal]:
    """Customer-specific override price, or ``None`` when there is none."""
    return snapshot.customer_service_price(customer_id, service_name, vehicle_type)


def resolve_tiered_price(
    snapshot: PricingSnapshot,
    *,
    customer_id: Optional[int],
    service_name: Optional[str],
    vehicle_type: Optional[str],
    service_id: Optional[int],
    vehicle_type_id: Optional[int],
) -> Optional[PriceMatch]:
    """Walk both tiers and return the first hit along with the tier it came from."""
    override = resolve_customer_service_price(snapshot, customer_id, service_name, vehicle_type)
    if override is not None:
        return PriceMatch(price=override, tier=PricingTier.CUSTOMER_OVERRIDE)

    default = snapshot.matrix_price(service_id, vehicle_type_id)
    if default is not None:
        return PriceMatch(price=default, tier=PricingTier.DEFAULT_MATRIX)

    return None


def resolve_base_price(snapshot: PricingSnapshot, identity: BookingIdentity) -> Decimal:
    """Base fare for a booking.

    Only the customer-specific tier applies to base fares; without an
    override the base price is zero.
    """
    price = resolve_customer_service_price(
        snapshot,
        identity.customer_id,
        identity.service_type,
        identity.vehicle_type,
    )
    if price is None:
        logger.debug(
            "No customer pricing for customer=%s service=%r vehicle_type=%r; base price is 0",
            identity.customer_id,
            identity.service_type,
            identity.vehicle_type,
        )
        return ZERO
    return price
