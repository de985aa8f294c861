"""
Edit-Tracking State Machine
===========================

Decides whether a freshly computed price may overwrite a booking field.

Guarded fields::

    base_price, midnight_surcharge                 (coarse)
    pickup_stop_{1..5}_price, dropoff_stop_{1..5}_price   (per slot)

Each guarded field is in one of two states::

    AUTO  --(direct user edit)-->  MANUAL
    MANUAL --(identity triple changes)--> AUTO      (all fields)
    MANUAL --(stop removed from slot)--> AUTO       (that slot only)

A tracker seeded from a stored booking also remembers the stored pickup
time.  The stored midnight surcharge goes back to AUTO once the pickup time
differs from it, unless a user has since edited the surcharge directly.

A computed value is written only when the field is AUTO *and* the value
differs from what is stored, so a recompute pass never produces a write that
changes nothing.

Identity changes are detected by comparing the draft's ``BookingIdentity``
with the last one observed, never by watching individual fields.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from booking_pricing.core.config import settings
from booking_pricing.models import BookingDraft, BookingIdentity, StopKind, ZERO, to_money

logger = logging.getLogger(__name__)


BASE_PRICE_FIELD = "base_price"
MIDNIGHT_SURCHARGE_FIELD = "midnight_surcharge"


def stop_price_field(kind: StopKind, index: int) -> str:
    """Tracking id of a stop slot's price; ``index`` is 1-based."""
    if not 1 <= index <= settings.max_extra_stops:
        raise ValueError(
            f"Stop index {index} out of range 1-{settings.max_extra_stops}."
        )
    return f"{kind.value}_stop_{index}_price"


STOP_PRICE_FIELDS: tuple[str, ...] = tuple(
    stop_price_field(kind, index)
    for kind in (StopKind.PICKUP, StopKind.DROPOFF)
    for index in range(1, settings.max_extra_stops + 1)
)

GUARDED_FIELDS: frozenset[str] = frozenset(
    {BASE_PRICE_FIELD, MIDNIGHT_SURCHARGE_FIELD, *STOP_PRICE_FIELDS}
)


class UnknownFieldError(ValueError):
    """Raised when a field id is not one the caller knows how to handle."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"'{field_name}' is not a recognised booking field.")


class FieldMode(str, enum.Enum):
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True)
class IdentityChange:
    """Discrete event: the booking's pricing identity moved."""
    previous: BookingIdentity
    current: BookingIdentity
    released_fields: tuple[str, ...]


def _check_field(field_name: str) -> None:
    if field_name not in GUARDED_FIELDS:
        raise UnknownFieldError(field_name)


class EditTracker:
    """The edit-tracking set for one booking draft."""

    def __init__(
        self,
        manual_fields: Iterable[str] = (),
        last_identity: Optional[BookingIdentity] = None,
        stored_pickup_time: Optional[str] = None,
    ) -> None:
        self._manual: set[str] = set()
        for field_name in manual_fields:
            _check_field(field_name)
            self._manual.add(field_name)
        self._last_identity = last_identity
        # Pickup time the stored midnight surcharge was priced for; None once
        # the surcharge is user-owned or back under automatic pricing.
        self._stored_pickup_time = stored_pickup_time

    @classmethod
    def for_existing_booking(cls, draft: BookingDraft) -> EditTracker:
        """Tracker for a draft pre-populated from a stored booking.

        A stored booking with a non-zero base price keeps its base price and
        midnight surcharge until the identity changes.  The midnight surcharge
        is also recomputed as soon as the pickup time moves away from the
        stored one.  Occupied stop slots keep their stored prices.  The
        current identity is taken as already observed.
        """
        manual: list[str] = []
        stored_pickup_time = None
        if to_money(draft.base_price) != ZERO:
            manual += [BASE_PRICE_FIELD, MIDNIGHT_SURCHARGE_FIELD]
            stored_pickup_time = (draft.pickup_time or "").strip()
        for kind in (StopKind.PICKUP, StopKind.DROPOFF):
            for index, stop in enumerate(draft.stops(kind), start=1):
                if stop.is_occupied:
                    manual.append(stop_price_field(kind, index))
        return cls(
            manual_fields=manual,
            last_identity=draft.identity(),
            stored_pickup_time=stored_pickup_time,
        )

    # -- State queries --

    @property
    def manual_fields(self) -> frozenset[str]:
        return frozenset(self._manual)

    @property
    def last_identity(self) -> Optional[BookingIdentity]:
        return self._last_identity

    @property
    def stored_pickup_time(self) -> Optional[str]:
        return self._stored_pickup_time

    def mode(self, field_name: str) -> FieldMode:
        _check_field(field_name)
        return FieldMode.MANUAL if field_name in self._manual else FieldMode.AUTO

    def is_manual(self, field_name: str) -> bool:
        return self.mode(field_name) == FieldMode.MANUAL

    # -- Transitions --

    def mark_manual(self, field_name: str) -> bool:
        """AUTO -> MANUAL on a direct user edit.  Returns True on a transition."""
        _check_field(field_name)
        if field_name == MIDNIGHT_SURCHARGE_FIELD:
            self._stored_pickup_time = None
        if field_name in self._manual:
            return False
        self._manual.add(field_name)
        return True

    def release(self, field_name: str) -> bool:
        """MANUAL -> AUTO.  Returns True on a transition."""
        _check_field(field_name)
        if field_name == MIDNIGHT_SURCHARGE_FIELD:
            self._stored_pickup_time = None
        if field_name not in self._manual:
            return False
        self._manual.discard(field_name)
        return True

    def release_stop(self, kind: StopKind, index: int) -> bool:
        return self.release(stop_price_field(kind, index))

    def release_all(self) -> tuple[str, ...]:
        released = tuple(sorted(self._manual))
        self._manual.clear()
        self._stored_pickup_time = None
        return released

    def observe_identity(self, identity: BookingIdentity) -> Optional[IdentityChange]:
        """Record ``identity`` and report whether it differs from the last one.

        The first observation only records.  A change releases every MANUAL
        field.
        """
        previous = self._last_identity
        self._last_identity = identity
        if previous is None or previous == identity:
            return None
        released = self.release_all()
        logger.debug(
            "Identity changed from %s to %s; released %s",
            previous,
            identity,
            released or "nothing",
        )
        return IdentityChange(previous=previous, current=identity, released_fields=released)

    def observe_pickup_time(self, pickup_time: Optional[str]) -> bool:
        """Release a stored midnight surcharge once the pickup time has moved.

        Returns True when ``midnight_surcharge`` went back to AUTO.
        """
        if self._stored_pickup_time is None:
            return False
        if (pickup_time or "").strip() == self._stored_pickup_time:
            return False
        return self.release(MIDNIGHT_SURCHARGE_FIELD)

    # -- Write gate --

    def permits_write(self, field_name: str, current: Any, candidate: Any) -> bool:
        if self.is_manual(field_name):
            return False
        return candidate != current

    def copy(self) -> EditTracker:
        return EditTracker(
            manual_fields=self._manual,
            last_identity=self._last_identity,
            stored_pickup_time=self._stored_pickup_time,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EditTracker):
            return NotImplemented
        return (
            self._manual == other._manual
            and self._last_identity == other._last_identity
            and self._stored_pickup_time == other._stored_pickup_time
        )

    def __repr__(self) -> str:
        return (
            f"EditTracker(manual_fields={sorted(self._manual)!r}, "
            f"last_identity={self._last_identity!r}, "
            f"stored_pickup_time={self._stored_pickup_time!r})"
        )
