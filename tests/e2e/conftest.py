"""
E2E test fixtures for the booking pricing API.

Provides:
- httpx AsyncClient wired to the FastAPI app via ASGI transport (no network needed)
- The reference pricing snapshot as a JSON payload
- A helper that builds request bodies
"""

from __future__ import annotations

from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from booking_pricing.main import app
from tests.factories import (
    CUSTOMER_ID,
    SERVICE_ID,
    SERVICE_NAME,
    VEHICLE_TYPE,
    VEHICLE_TYPE_ID,
    snapshot_payload,
)


RECOMPUTE_URL = "/api/v1/pricing/recompute"
EDIT_URL = "/api/v1/pricing/edit"


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient connected to the app via ASGI transport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def pricing_snapshot() -> dict[str, Any]:
    return snapshot_payload()


def draft_payload(**overrides: Any) -> dict[str, Any]:
    """Sedan airport transfer for customer 42 at 14:00 unless overridden."""
    draft: dict[str, Any] = {
        "customer_id": CUSTOMER_ID,
        "service_id": SERVICE_ID,
        "service_type": SERVICE_NAME,
        "vehicle_type_id": VEHICLE_TYPE_ID,
        "vehicle_type": VEHICLE_TYPE,
        "pickup_time": "14:00",
    }
    draft.update(overrides)
    return draft


def request_body(
    snapshot: dict[str, Any],
    *,
    draft: dict[str, Any] | None = None,
    tracking: dict[str, Any] | None = None,
    edit: dict[str, Any] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "draft": draft if draft is not None else draft_payload(),
        "snapshot": snapshot,
    }
    if tracking is not None:
        body["tracking"] = tracking
    if edit is not None:
        body["edit"] = edit
    return body
