"""
Contractor Cost Resolver.

Decides the contractor/driver claim (``job_cost``) for a booking:

    no contractor                        -> user-owned, no automatic value
    contractor, service/vehicle missing  -> 0, read-only
    contractor, matrix match             -> matrix cost, read-only
    contractor, no matrix match          -> 0, read-only ("no pricing found")

Matrix rows are matched on ``(service_id, vehicle_type_id)``.  When either
side lacks an id the service / vehicle type names are compared instead,
case-insensitively.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from booking_pricing.models import (
    BookingDraft,
    ContractorServicePrice,
    PricingSnapshot,
    ZERO,
    normalize_name,
    to_money,
)

logger = logging.getLogger(__name__)


class JobCostMode(str, enum.Enum):
    USER_EDITABLE = "user_editable"
    INCOMPLETE = "incomplete"
    MATRIX_MATCH = "matrix_match"
    NO_PRICING = "no_pricing"


@dataclass(frozen=True)
class ContractorCost:
    mode: JobCostMode
    cost: Optional[Decimal] = None

    @property
    def read_only(self) -> bool:
        return self.mode != JobCostMode.USER_EDITABLE


def _matches(
    row_id: Optional[int],
    row_name: str,
    draft_id: Optional[int],
    draft_name: str,
) -> bool:
    if row_id is not None and draft_id is not None:
        return row_id == draft_id
    row_key = normalize_name(row_name)
    return bool(row_key) and row_key == normalize_name(draft_name)


def find_contractor_price(
    snapshot: PricingSnapshot,
    draft: BookingDraft,
) -> Optional[ContractorServicePrice]:
    for row in snapshot.contractor_matrix(draft.contractor_id):
        if not _matches(row.service_id, row.service_name, draft.service_id, draft.service_type):
            continue
        if not _matches(row.vehicle_type_id, row.vehicle_type, draft.vehicle_type_id, draft.vehicle_type):
            continue
        return row
    return None


def resolve_job_cost(snapshot: PricingSnapshot, draft: BookingDraft) -> ContractorCost:
    """Resolve the contractor claim for ``draft``."""
    if draft.contractor_id is None:
        return ContractorCost(mode=JobCostMode.USER_EDITABLE)

    identity = draft.identity()
    has_service = identity.service_id is not None or bool(identity.service_type)
    has_vehicle = identity.vehicle_type_id is not None or bool(identity.vehicle_type)
    if not (has_service and has_vehicle):
        return ContractorCost(mode=JobCostMode.INCOMPLETE, cost=ZERO)

    row = find_contractor_price(snapshot, draft)
    if row is None:
        logger.info(
            "No contractor pricing found for contractor=%s service=%s vehicle_type=%s; job cost set to 0",
            draft.contractor_id,
            identity.service_id if identity.service_id is not None else identity.service_type,
            identity.vehicle_type_id if identity.vehicle_type_id is not None else identity.vehicle_type,
        )
        return ContractorCost(mode=JobCostMode.NO_PRICING, cost=ZERO)

    return ContractorCost(mode=JobCostMode.MATRIX_MATCH, cost=row.cost)


def contractor_balance(draft: BookingDraft) -> Decimal:
    """Cash collected from the passenger minus the contractor's claim.

    Positive: the contractor holds cash owed to the company.  Negative: the
    company owes the contractor the difference.
    """
    return to_money(to_money(draft.cash_to_collect) - to_money(draft.job_cost))
