"""
Ancillary condition parsing.

Ancillary services (midnight pricing, additional stops, ...) store their
trigger rules as a JSON string in ``condition_config``.  The string is parsed
exactly once, when a pricing snapshot is built, into one of the tagged
``Condition`` variants.  Recomputation never touches JSON again.

Accepted payloads::

    time_window / time_range   {"start_time": "23:00", "end_time": "06:59"}
    additional_stops           {"trigger_count": 1}
    always                     (ignored)

A malformed payload is logged as a warning and yields ``None`` for time
windows (callers use the configured default window) or a zero trigger count
for stop thresholds.  It is never fatal.
"""

from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from booking_pricing.core.config import settings
from booking_pricing.models import (
    AncillaryService,
    Condition,
    ConditionType,
    StopThreshold,
    TimeWindow,
    Unconditional,
)

logger = logging.getLogger(__name__)


# Legacy names used by older service records
CONDITION_TYPE_ALIASES: dict[str, ConditionType] = {
    "time_range": ConditionType.TIME_WINDOW,
}


# ---------------------------------------------------------------------------
# Raw config payloads
# ---------------------------------------------------------------------------

class _TimeWindowConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    start_time: time
    end_time: time


class _StopThresholdConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    trigger_count: int = Field(default=0, ge=0)

    @field_validator("trigger_count", mode="before")
    @classmethod
    def _blank_is_zero(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0
        return value


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` setting value."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def default_time_window() -> TimeWindow:
    """The configured fallback surcharge window (23:00-06:59 unless overridden)."""
    return TimeWindow(
        start_minute=_minutes(parse_clock(settings.default_surcharge_window_start)),
        end_minute=_minutes(parse_clock(settings.default_surcharge_window_end)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_condition_type(raw: Optional[str]) -> Optional[ConditionType]:
    """Map a stored condition type string to ``ConditionType``.

    Returns ``None`` for unknown or empty values.
    """
    key = (raw or "").strip().lower()
    if not key:
        return None
    if key in CONDITION_TYPE_ALIASES:
        return CONDITION_TYPE_ALIASES[key]
    try:
        return ConditionType(key)
    except ValueError:
        return None


def parse_condition(
    condition_type: ConditionType,
    condition_config: Optional[str],
    is_per_occurrence: bool = False,
    *,
    service_name: str = "",
) -> Optional[Condition]:
    """Parse a ``condition_config`` JSON string into a condition variant."""
    if condition_type == ConditionType.ALWAYS:
        return Unconditional()

    if condition_type == ConditionType.ADDITIONAL_STOPS:
        trigger_count = 0
        if condition_config and condition_config.strip():
            try:
                trigger_count = _StopThresholdConfig.model_validate_json(condition_config).trigger_count
            except ValidationError as exc:
                logger.warning(
                    "Invalid condition_config for ancillary service '%s' (%s); "
                    "using trigger_count=0: %s",
                    service_name,
                    condition_type.value,
                    exc.errors(include_url=False),
                )
        return StopThreshold(trigger_count=trigger_count, per_occurrence=is_per_occurrence)

    # Time window
    if not condition_config or not condition_config.strip():
        return None
    try:
        parsed = _TimeWindowConfig.model_validate_json(condition_config)
    except ValidationError as exc:
        logger.warning(
            "Invalid condition_config for ancillary service '%s' (%s); "
            "falling back to default window %s: %s",
            service_name,
            condition_type.value,
            default_time_window().label(),
            exc.errors(include_url=False),
        )
        return None
    return TimeWindow(
        start_minute=_minutes(parsed.start_time),
        end_minute=_minutes(parsed.end_time),
    )


def build_ancillary_service(record: Mapping[str, Any]) -> Optional[AncillaryService]:
    """Build an ``AncillaryService`` from a raw service record.

    Records without a recognised ``condition_type`` are not ancillary
    surcharges this engine knows how to apply and yield ``None``.
    """
    condition_type = parse_condition_type(record.get("condition_type"))
    if condition_type is None:
        logger.debug(
            "Skipping service '%s': unsupported condition_type %r",
            record.get("name"),
            record.get("condition_type"),
        )
        return None

    name = str(record.get("name") or "")
    is_per_occurrence = bool(record.get("is_per_occurrence") or False)
    condition = parse_condition(
        condition_type,
        record.get("condition_config"),
        is_per_occurrence,
        service_name=name,
    )
    return AncillaryService(
        id=int(record["id"]),
        name=name,
        condition_type=condition_type,
        condition=condition,
        is_per_occurrence=is_per_occurrence,
    )
