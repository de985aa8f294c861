"""
Booking pricing domain records
==============================

Central import point for the booking draft and pricing snapshot types.

Usage::

    from booking_pricing.models import BookingDraft, PricingSnapshot
"""

# -- Booking draft --
from .booking import (
    BookingDraft,
    BookingIdentity,
    BookingStatus,
    CENTS,
    ExtraService,
    StopKind,
    StopSlot,
    ZERO,
    to_money,
)

# -- Pricing snapshot --
from .pricing import (
    AncillaryService,
    Condition,
    ConditionType,
    ContractorServicePrice,
    CustomerServicePrice,
    PriceMatch,
    PricingSnapshot,
    PricingTier,
    StopThreshold,
    TimeWindow,
    Unconditional,
    VehicleTypeServicePrice,
    normalize_name,
)

__all__ = [
    "AncillaryService",
    "BookingDraft",
    "BookingIdentity",
    "BookingStatus",
    "CENTS",
    "Condition",
    "ConditionType",
    "ContractorServicePrice",
    "CustomerServicePrice",
    "ExtraService",
    "PriceMatch",
    "PricingSnapshot",
    "PricingTier",
    "StopKind",
    "StopSlot",
    "StopThreshold",
    "TimeWindow",
    "Unconditional",
    "VehicleTypeServicePrice",
    "ZERO",
    "normalize_name",
    "to_money",
]
