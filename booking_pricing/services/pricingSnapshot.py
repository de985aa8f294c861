"""
Pricing snapshot loader.

Turns the raw pricing tables handed over by the surrounding application
(customer service pricing, the vehicle-type/service price matrix, service
definitions and contractor pricing) into one immutable ``PricingSnapshot``.
Ancillary condition configs are parsed here, once per load.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from booking_pricing.models import (
    ContractorServicePrice,
    CustomerServicePrice,
    PricingSnapshot,
    VehicleTypeServicePrice,
    to_money,
)
from booking_pricing.services.ancillaryConditions import build_ancillary_service

logger = logging.getLogger(__name__)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def build_pricing_snapshot(
    *,
    customer_prices: Iterable[Mapping[str, Any]] = (),
    vehicle_type_prices: Iterable[Mapping[str, Any]] = (),
    services: Iterable[Mapping[str, Any]] = (),
    contractor_prices: Iterable[Mapping[str, Any]] = (),
) -> PricingSnapshot:
    """Build a snapshot from plain row mappings.

    ``services`` may contain every service definition; only those flagged
    ``is_ancillary`` (or, when the flag is absent, those carrying a
    ``condition_type``) become ancillary surcharge definitions.
    """
    customer_rows = tuple(
        CustomerServicePrice(
            customer_id=int(row["customer_id"]),
            service_name=str(row.get("service_name") or ""),
            vehicle_type=str(row.get("vehicle_type") or ""),
            price=to_money(row.get("price")),
        )
        for row in customer_prices
    )

    matrix_rows = tuple(
        VehicleTypeServicePrice(
            service_id=int(row["service_id"]),
            vehicle_type_id=int(row["vehicle_type_id"]),
            price=to_money(row.get("price")),
        )
        for row in vehicle_type_prices
    )

    ancillary = []
    for record in services:
        if "is_ancillary" in record and not record["is_ancillary"]:
            continue
        service = build_ancillary_service(record)
        if service is not None:
            ancillary.append(service)

    contractor_rows = tuple(
        ContractorServicePrice(
            contractor_id=int(row["contractor_id"]),
            service_id=_optional_int(row.get("service_id")),
            vehicle_type_id=_optional_int(row.get("vehicle_type_id")),
            cost=to_money(row.get("cost")),
            service_name=str(row.get("service_name") or ""),
            vehicle_type=str(row.get("vehicle_type") or ""),
        )
        for row in contractor_prices
    )

    snapshot = PricingSnapshot(
        customer_prices=customer_rows,
        vehicle_type_prices=matrix_rows,
        ancillary_services=tuple(ancillary),
        contractor_prices=contractor_rows,
    )
    logger.debug(
        "Loaded pricing snapshot: %d customer prices, %d matrix entries, "
        "%d ancillary services, %d contractor prices",
        len(customer_rows),
        len(matrix_rows),
        len(ancillary),
        len(contractor_rows),
    )
    return snapshot
