"""
Booking Editor
==============

Single-owner editing session around one booking draft.  Every mutation is
applied to the draft and followed by exactly one ``recompute`` pass; nothing
re-runs implicitly.

Direct edits to ``base_price``, ``midnight_surcharge`` or a stop price move
that field to MANUAL.  Writes made by the engine never do.

The session never persists anything.  ``save`` hands a copy of the final
draft to the caller's persistence function; ``cancel`` just drops the draft.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, TypeVar

from booking_pricing.events.bookingEvents import emit_field_locked, emit_field_released
from booking_pricing.models import (
    BookingDraft,
    BookingStatus,
    ExtraService,
    PricingSnapshot,
    StopKind,
    StopSlot,
    to_money,
)
from booking_pricing.services.editTracking import (
    BASE_PRICE_FIELD,
    MIDNIGHT_SURCHARGE_FIELD,
    EditTracker,
    UnknownFieldError,
    stop_price_field,
)
from booking_pricing.services.fieldLocks import check_field_lock
from booking_pricing.services.recomputeEngine import PricingBreakdown, RecomputeResult, recompute

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class BookingEditError(Exception):
    """Base exception for booking edit errors."""
    pass


class FieldLockedError(BookingEditError):
    """Raised when a field cannot be edited in the booking's current state."""

    def __init__(self, field_name: str, reason: str) -> None:
        self.field_name = field_name
        self.reason = reason
        super().__init__(reason)


class StopCapacityError(BookingEditError):
    """Raised when every extra stop slot of a kind is already taken."""

    def __init__(self, kind: StopKind, capacity: int) -> None:
        self.kind = kind
        super().__init__(f"All {capacity} additional {kind.value} stops are already in use.")


class StopNotFoundError(BookingEditError):
    """Raised when a stop slot is out of range or empty."""

    def __init__(self, kind: StopKind, index: int) -> None:
        self.kind = kind
        self.index = index
        super().__init__(f"No additional {kind.value} stop at position {index}.")


class SessionClosedError(BookingEditError):
    """Raised when a saved or cancelled session is used again."""
    pass


# ---------------------------------------------------------------------------
# Field groups
# ---------------------------------------------------------------------------

MONEY_FIELDS: frozenset[str] = frozenset({
    "base_price",
    "midnight_surcharge",
    "additional_discount",
    "job_cost",
    "cash_to_collect",
})

ID_FIELDS: frozenset[str] = frozenset({
    "customer_id",
    "service_id",
    "vehicle_type_id",
    "contractor_id",
})

TEXT_FIELDS: frozenset[str] = frozenset({
    "service_type",
    "vehicle_type",
    "pickup_time",
})

IDENTITY_FIELDS: frozenset[str] = frozenset({
    "customer_id",
    "service_id",
    "service_type",
    "vehicle_type_id",
    "vehicle_type",
})

_TRACKED_BY_EDIT: frozenset[str] = frozenset({BASE_PRICE_FIELD, MIDNIGHT_SURCHARGE_FIELD})


def _money(field_name: str, value: Any) -> Decimal:
    try:
        amount = to_money(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' must be a monetary amount, got {value!r}.") from exc
    if not amount.is_finite():
        raise ValueError(f"'{field_name}' must be a monetary amount, got {value!r}.")
    return amount


def _whole_number(field_name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"'{field_name}' must be a whole number, got {value!r}.")
    try:
        number = Decimal(str(value).strip())
        if number == number.to_integral_value():
            return int(number)
    except (InvalidOperation, OverflowError, TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' must be a whole number, got {value!r}.") from exc
    raise ValueError(f"'{field_name}' must be a whole number, got {value!r}.")


def _coerce(field_name: str, value: Any) -> Any:
    if field_name in MONEY_FIELDS:
        if field_name == "job_cost" and value is None:
            return None
        return _money(field_name, value)
    if field_name in ID_FIELDS:
        if value is None or value == "":
            return None
        return _whole_number(field_name, value)
    if field_name in TEXT_FIELDS:
        return "" if value is None else str(value)
    if field_name == "pickup_date":
        if value is None or value == "" or isinstance(value, date):
            return value or None
        try:
            return date.fromisoformat(str(value))
        except ValueError as exc:
            raise ValueError(f"'pickup_date' must be an ISO date, got {value!r}.") from exc
    raise UnknownFieldError(field_name)


class BookingEditor:
    """Editing session: a draft, its edit tracker and a pricing snapshot."""

    def __init__(
        self,
        snapshot: PricingSnapshot,
        draft: Optional[BookingDraft] = None,
        tracker: Optional[EditTracker] = None,
    ) -> None:
        self.snapshot = snapshot
        self._draft = draft.copy() if draft is not None else BookingDraft()
        self._tracker = tracker.copy() if tracker is not None else EditTracker()
        self._closed = False
        self.events: list[dict[str, Any]] = []
        self.last_result: RecomputeResult = self._recompute()

    @classmethod
    def for_existing_booking(
        cls,
        snapshot: PricingSnapshot,
        draft: BookingDraft,
    ) -> BookingEditor:
        """Open a session on a stored booking, keeping its stored prices."""
        return cls(snapshot, draft, EditTracker.for_existing_booking(draft))

    # -- Read access --

    @property
    def draft(self) -> BookingDraft:
        return self._draft

    @property
    def tracker(self) -> EditTracker:
        return self._tracker

    @property
    def breakdown(self) -> PricingBreakdown:
        return self.last_result.breakdown

    @property
    def is_closed(self) -> bool:
        return self._closed

    # -- Internal helpers --

    def _recompute(self) -> RecomputeResult:
        result = recompute(self._draft, self._tracker, self.snapshot)
        self._draft = result.draft
        self._tracker = result.tracker
        self.events.extend(result.events)
        self.last_result = result
        return result

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Booking editing session is closed.")

    def _ensure_editable(self, field_name: str) -> None:
        self._ensure_open()
        lock = check_field_lock(self._draft.status, field_name)
        if lock.locked:
            raise FieldLockedError(field_name, lock.reason or "Field is locked.")

    def _lock(self, field_name: str) -> None:
        if self._tracker.mark_manual(field_name):
            self.events.append(emit_field_locked(field_name))

    def _slot(self, kind: StopKind, index: int) -> StopSlot:
        stops = self._draft.stops(kind)
        if not 1 <= index <= len(stops):
            raise StopNotFoundError(kind, index)
        return stops[index - 1]

    # -- Mutations --

    def edit_field(self, field_name: str, value: Any) -> RecomputeResult:
        """Apply a direct user edit to a scalar booking field."""
        self._ensure_editable(field_name)
        coerced = _coerce(field_name, value)

        if field_name == "job_cost" and self.breakdown.job_cost_read_only:
            raise FieldLockedError(
                field_name,
                "Job cost is set from contractor pricing while a contractor is assigned.",
            )

        setattr(self._draft, field_name, coerced)
        if field_name in _TRACKED_BY_EDIT:
            self._lock(field_name)
        return self._recompute()

    def set_identity(self, **changes: Any) -> RecomputeResult:
        """Change any of the identity fields in one step (one recompute)."""
        unknown = set(changes) - IDENTITY_FIELDS
        if unknown:
            raise UnknownFieldError(sorted(unknown)[0])
        for field_name in changes:
            self._ensure_editable(field_name)
        coerced = {name: _coerce(name, value) for name, value in changes.items()}
        for field_name, value in coerced.items():
            setattr(self._draft, field_name, value)
        return self._recompute()

    def set_pickup_time(self, pickup_time: Optional[str]) -> RecomputeResult:
        return self.edit_field("pickup_time", pickup_time)

    def set_contractor(self, contractor_id: Optional[int]) -> RecomputeResult:
        return self.edit_field("contractor_id", contractor_id)

    def set_status(self, status: BookingStatus | str) -> RecomputeResult:
        """Move the booking to ``status``; status is driven by the workflow, not locked."""
        self._ensure_open()
        self._draft.status = BookingStatus(status)
        return self._recompute()

    def add_stop(
        self,
        kind: StopKind,
        location: str,
        price: Any = None,
    ) -> int:
        """Put ``location`` into the first free slot and return its 1-based index.

        Without ``price`` the slot takes the automatic default; an explicit
        price counts as a user edit and locks the slot.
        """
        self._ensure_editable(f"{kind.value}_stops")
        if not location or not location.strip():
            raise ValueError("Stop location must not be empty.")
        stops = self._draft.stops(kind)
        for index, slot in enumerate(stops, start=1):
            if not slot.is_occupied:
                field_name = stop_price_field(kind, index)
                amount = _money(field_name, price) if price is not None else None
                slot.location = location.strip()
                if amount is not None:
                    slot.price = amount
                    self._lock(field_name)
                self._recompute()
                return index
        raise StopCapacityError(kind, len(stops))

    def update_stop(
        self,
        kind: StopKind,
        index: int,
        *,
        location: Optional[str] = None,
        price: Any = None,
    ) -> RecomputeResult:
        """Edit an occupied stop's location and/or price."""
        self._ensure_editable(f"{kind.value}_stops")
        slot = self._slot(kind, index)
        if not slot.is_occupied:
            raise StopNotFoundError(kind, index)
        if location is not None and not location.strip():
            raise ValueError("Stop location must not be empty; remove the stop instead.")
        field_name = stop_price_field(kind, index)
        amount = _money(field_name, price) if price is not None else None
        if location is not None:
            slot.location = location.strip()
        if amount is not None:
            slot.price = amount
            self._lock(field_name)
        return self._recompute()

    def remove_stop(self, kind: StopKind, index: int) -> RecomputeResult:
        """Clear a stop slot and hand it back to automatic pricing."""
        self._ensure_editable(f"{kind.value}_stops")
        slot = self._slot(kind, index)
        if not slot.is_occupied:
            raise StopNotFoundError(kind, index)
        slot.location = ""
        if self._tracker.release_stop(kind, index):
            self.events.append(emit_field_released(stop_price_field(kind, index), "stop_removed"))
        return self._recompute()

    def add_extra_service(self, name: str, price: Any) -> RecomputeResult:
        self._ensure_editable("extra_services")
        self._draft.extra_services.append(ExtraService(name=name, price=_money("extra_services", price)))
        return self._recompute()

    def remove_extra_service(self, index: int) -> RecomputeResult:
        """Remove the extra service at 0-based ``index``."""
        self._ensure_editable("extra_services")
        if not 0 <= index < len(self._draft.extra_services):
            raise IndexError(f"No extra service at position {index}.")
        del self._draft.extra_services[index]
        return self._recompute()

    # -- Lifecycle --

    def save(self, persist: Callable[[BookingDraft], T]) -> T:
        """Hand the final draft to ``persist`` and close the session."""
        self._ensure_open()
        result = persist(self._draft.copy())
        self._closed = True
        logger.info(
            "Booking draft saved (customer=%s, final_price=%s)",
            self._draft.customer_id,
            self._draft.final_price,
        )
        return result

    def cancel(self) -> None:
        """Discard the draft; nothing has been persisted, so nothing to undo."""
        self._closed = True
        logger.debug("Booking editing session cancelled")
