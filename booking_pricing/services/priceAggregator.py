"""
Price Aggregator.

    final_price = base_price
                + sum(extra service prices)
                + midnight_surcharge
                + sum(pickup and dropoff stop prices)
                - additional_discount

Pure and idempotent: it reads the draft and returns totals, it never writes.
A negative final price is allowed; it only raises an advisory flag.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from booking_pricing.models import BookingDraft, ZERO, to_money


@dataclass(frozen=True)
class PriceTotals:
    base_price: Decimal
    extra_services_total: Decimal
    midnight_surcharge: Decimal
    stops_total: Decimal
    additional_discount: Decimal
    subtotal: Decimal
    final_price: Decimal

    @property
    def is_negative(self) -> bool:
        return self.final_price < ZERO


def aggregate_prices(draft: BookingDraft) -> PriceTotals:
    base = to_money(draft.base_price)
    extras = sum((to_money(svc.price) for svc in draft.extra_services), ZERO)
    midnight = to_money(draft.midnight_surcharge)
    stops = sum(
        (to_money(stop.price) for stop in (*draft.pickup_stops, *draft.dropoff_stops)),
        ZERO,
    )
    discount = to_money(draft.additional_discount)

    subtotal = to_money(base + extras + midnight + stops)
    return PriceTotals(
        base_price=base,
        extra_services_total=to_money(extras),
        midnight_surcharge=midnight,
        stops_total=to_money(stops),
        additional_discount=discount,
        subtotal=subtotal,
        final_price=to_money(subtotal - discount),
    )
