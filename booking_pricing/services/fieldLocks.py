"""
Status-based field locks for booking edits.

Once a booking is under way only a handful of fields may still change, and
closed bookings are frozen entirely::

    new / pending / confirmed   everything editable
    otw / ots / pob             only passenger, driver, vehicle, contractor
    jc / sd / canceled          nothing editable
"""

from __future__ import annotations

from dataclasses import dataclass

from booking_pricing.models import BookingStatus


@dataclass(frozen=True)
class LockResult:
    """Result of a field-lock check."""
    locked: bool
    reason: str | None = None


_IN_PROGRESS_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.ON_THE_WAY,
    BookingStatus.ON_THE_SPOT,
    BookingStatus.PASSENGER_ON_BOARD,
})

_CLOSED_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.JOB_COMPLETED,
    BookingStatus.SENT_DOCUMENTS,
    BookingStatus.CANCELED,
})

# Fields that stay editable while a booking is in progress
IN_PROGRESS_EDITABLE_FIELDS: frozenset[str] = frozenset({
    "passenger_name",
    "passenger_mobile",
    "driver_id",
    "vehicle_id",
    "contractor_id",
})


def check_field_lock(status: BookingStatus, field_name: str) -> LockResult:
    if status in _CLOSED_STATUSES:
        return LockResult(
            locked=True,
            reason=f"Booking is '{status.value}'; no fields can be edited.",
        )
    if status in _IN_PROGRESS_STATUSES and field_name not in IN_PROGRESS_EDITABLE_FIELDS:
        return LockResult(
            locked=True,
            reason=(
                f"Booking is '{status.value}'; only "
                f"{', '.join(sorted(IN_PROGRESS_EDITABLE_FIELDS))} can be edited."
            ),
        )
    return LockResult(locked=False)


def is_field_locked(status: BookingStatus, field_name: str) -> bool:
    return check_field_lock(status, field_name).locked
