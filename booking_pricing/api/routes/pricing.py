"""
Booking pricing API routes
==========================

Stateless endpoints: the client sends the draft, its edit-tracking state and
the pricing snapshot on every call and receives the recomputed draft back.
Nothing is stored server-side.

  POST /api/v1/pricing/recompute   -- Run one pricing pass over a draft
  POST /api/v1/pricing/edit        -- Apply one user edit, then recompute
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from booking_pricing.api.schemas.booking import (
    BookingEditIn,
    EditRequest,
    FieldChangeOut,
    RecomputeOut,
    RecomputeRequest,
)
from booking_pricing.services.bookingEditor import (
    BookingEditError,
    BookingEditor,
    FieldLockedError,
)
from booking_pricing.services.recomputeEngine import RecomputeResult, recompute

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricing", tags=["Pricing"])


def _change_list(*results: RecomputeResult) -> list[FieldChangeOut]:
    return [
        FieldChangeOut(field=change.field, old=change.old, new=change.new)
        for result in results
        for change in result.changes
    ]


def _apply_edit(editor: BookingEditor, edit: BookingEditIn) -> None:
    if edit.action == "set_field":
        if not edit.field:
            raise ValueError("'field' is required for set_field.")
        editor.edit_field(edit.field, edit.value)
        return

    if edit.stop_kind is None:
        raise ValueError(f"'stop_kind' is required for {edit.action}.")

    if edit.action == "add_stop":
        editor.add_stop(edit.stop_kind, edit.location or "", edit.price)
        return

    if edit.stop_index is None:
        raise ValueError(f"'stop_index' is required for {edit.action}.")

    if edit.action == "update_stop":
        editor.update_stop(
            edit.stop_kind,
            edit.stop_index,
            location=edit.location,
            price=edit.price,
        )
    else:
        editor.remove_stop(edit.stop_kind, edit.stop_index)


# ---------------------------------------------------------------------------
# POST /api/v1/pricing/recompute
# ---------------------------------------------------------------------------

@router.post(
    "/recompute",
    response_model=RecomputeOut,
    summary="Recompute the prices of a booking draft",
    description=(
        "Resolves the base price, midnight surcharge, additional stop prices "
        "and contractor claim for the draft, leaving manually edited fields "
        "untouched, and recalculates the final price."
    ),
)
async def recompute_booking(body: RecomputeRequest) -> RecomputeOut:
    result = recompute(
        body.draft.to_domain(),
        body.tracking.to_domain(),
        body.snapshot.to_snapshot(),
    )
    return RecomputeOut.from_result(result)


# ---------------------------------------------------------------------------
# POST /api/v1/pricing/edit
# ---------------------------------------------------------------------------

@router.post(
    "/edit",
    response_model=RecomputeOut,
    summary="Apply a user edit to a booking draft",
    description=(
        "Applies one direct user edit (a field value, or adding, updating or "
        "removing an extra stop) and recomputes the draft.  Directly edited "
        "price fields are locked against automatic recalculation until the "
        "customer, service or vehicle type changes."
    ),
)
async def edit_booking(body: EditRequest) -> RecomputeOut:
    try:
        editor = BookingEditor(
            body.snapshot.to_snapshot(),
            body.draft.to_domain(),
            body.tracking.to_domain(),
        )
        initial = editor.last_result
        _apply_edit(editor, body.edit)
    except FieldLockedError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        )
    except (BookingEditError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )

    final = editor.last_result
    return RecomputeOut.from_result(final, changes=_change_list(initial, final))
