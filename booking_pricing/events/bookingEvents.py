"""
Booking Pricing Events
======================

Events raised while a booking draft is being priced.  Each emitter logs the
event and returns the standardised payload dict so callers (the editor
session, the HTTP layer) can pass it on to whatever consumes them.

Events emitted:
  - booking.identity_changed
  - booking.field_locked
  - booking.field_released
  - booking.recomputed
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def _build_event(
    event_type: str,
    *,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct a standardised event payload."""
    return {
        "event_type": event_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data or {},
    }


def emit_identity_changed(
    previous: dict[str, Any],
    current: dict[str, Any],
    released_fields: list[str],
) -> dict[str, Any]:
    """Emit event when the customer / service / vehicle type triple changes."""
    event = _build_event(
        "booking.identity_changed",
        data={
            "previous": previous,
            "current": current,
            "released_fields": released_fields,
        },
    )
    logger.info(
        "Event emitted: %s (%d manual field(s) released)",
        event["event_type"],
        len(released_fields),
    )
    return event


def emit_field_locked(field_name: str) -> dict[str, Any]:
    """Emit event when a user edit takes a field out of automatic pricing."""
    event = _build_event("booking.field_locked", data={"field": field_name})
    logger.info("Event emitted: %s for %s", event["event_type"], field_name)
    return event


def emit_field_released(field_name: str, reason: str) -> dict[str, Any]:
    """Emit event when a field goes back to automatic pricing."""
    event = _build_event(
        "booking.field_released",
        data={"field": field_name, "reason": reason},
    )
    logger.info(
        "Event emitted: %s for %s (%s)",
        event["event_type"],
        field_name,
        reason,
    )
    return event


def emit_recomputed(changed_fields: list[str], final_price: str) -> dict[str, Any]:
    """Emit event after a recompute pass that wrote at least one field."""
    event = _build_event(
        "booking.recomputed",
        data={"changed_fields": changed_fields, "final_price": final_price},
    )
    logger.info(
        "Event emitted: %s (%s changed, final_price=%s)",
        event["event_type"],
        ", ".join(changed_fields),
        final_price,
    )
    return event
