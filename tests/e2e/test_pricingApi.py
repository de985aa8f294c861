"""
E2E: Booking pricing over HTTP.

Tests the stateless round trip a booking form makes: send the draft, its
edit-tracking state and the pricing tables, get the recomputed draft back,
then feed the response into the next edit.
"""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from tests.e2e.conftest import EDIT_URL, RECOMPUTE_URL, draft_payload, request_body
from tests.factories import CONTRACTOR_ID, OTHER_VEHICLE_TYPE, OTHER_VEHICLE_TYPE_ID, snapshot_payload


pytestmark = pytest.mark.asyncio


class TestHealth:

    async def test_health_returns_ok(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestRecompute:
    """POST /api/v1/pricing/recompute"""

    async def test_midnight_pickup(self, client: AsyncClient, pricing_snapshot):
        body = request_body(pricing_snapshot, draft=draft_payload(pickup_time="23:30"))
        resp = await client.post(RECOMPUTE_URL, json=body)

        assert resp.status_code == 200
        data = resp.json()
        assert data["draft"]["base_price"] == "50.00"
        assert data["draft"]["midnight_surcharge"] == "20.00"
        assert data["draft"]["final_price"] == "70.00"
        assert data["breakdown"]["midnight_status"] == "applied"
        assert data["breakdown"]["surcharge_window"] == "23:00-06:59"
        assert data["breakdown"]["currency"] == "SGD"
        assert [c["field"] for c in data["changes"]] == ["base_price", "midnight_surcharge", "final_price"]

    async def test_stops_are_padded_to_five_slots(self, client: AsyncClient, pricing_snapshot):
        draft = draft_payload(dropoff_stops=[{"location": "Changi T1"}, {"location": "Changi T3"}])
        resp = await client.post(RECOMPUTE_URL, json=request_body(pricing_snapshot, draft=draft))

        data = resp.json()
        assert len(data["draft"]["dropoff_stops"]) == 5
        assert [s["price"] for s in data["draft"]["dropoff_stops"][:3]] == ["5.00", "5.00", "0.00"]
        assert data["breakdown"]["stop_surcharge"] == "10.00"
        assert data["breakdown"]["effective_stop_count"] == 2
        assert data["draft"]["final_price"] == "60.00"

    async def test_flat_fee_mismatch_is_advised(self, client: AsyncClient):
        draft = draft_payload(dropoff_stops=[{"location": "Changi T1"}, {"location": "Changi T3"}])
        body = request_body(snapshot_payload(per_occurrence=False), draft=draft)
        resp = await client.post(RECOMPUTE_URL, json=body)

        data = resp.json()
        assert data["breakdown"]["stop_surcharge"] == "5.00"
        assert "stop_charge_mismatch" in data["breakdown"]["advisories"]

    async def test_contractor_job_cost(self, client: AsyncClient, pricing_snapshot):
        draft = draft_payload(contractor_id=CONTRACTOR_ID, cash_to_collect="50.00")
        resp = await client.post(RECOMPUTE_URL, json=request_body(pricing_snapshot, draft=draft))

        data = resp.json()
        assert data["draft"]["job_cost"] == "35.00"
        assert data["breakdown"]["job_cost_read_only"] is True
        assert data["breakdown"]["job_cost_mode"] == "matrix_match"
        assert data["breakdown"]["contractor_balance"] == "15.00"

    async def test_response_round_trip_is_stable(self, client: AsyncClient, pricing_snapshot):
        first = (await client.post(RECOMPUTE_URL, json=request_body(pricing_snapshot))).json()
        body = request_body(pricing_snapshot, draft=first["draft"], tracking=first["tracking"])
        second = (await client.post(RECOMPUTE_URL, json=body)).json()

        assert second["changes"] == []
        assert second["draft"] == first["draft"]

    async def test_manual_fields_survive(self, client: AsyncClient, pricing_snapshot):
        body = request_body(
            pricing_snapshot,
            draft=draft_payload(base_price="80.00"),
            tracking={"manual_fields": ["base_price"]},
        )
        resp = await client.post(RECOMPUTE_URL, json=body)
        assert resp.json()["draft"]["base_price"] == "80.00"

    async def test_unknown_tracked_field_is_rejected(self, client: AsyncClient, pricing_snapshot):
        body = request_body(pricing_snapshot, tracking={"manual_fields": ["final_price"]})
        resp = await client.post(RECOMPUTE_URL, json=body)
        assert resp.status_code == 422

    async def test_too_many_stops_is_rejected(self, client: AsyncClient, pricing_snapshot):
        draft = draft_payload(pickup_stops=[{"location": f"Stop {n}"} for n in range(6)])
        resp = await client.post(RECOMPUTE_URL, json=request_body(pricing_snapshot, draft=draft))
        assert resp.status_code == 422


class TestEdit:
    """POST /api/v1/pricing/edit"""

    async def test_set_field_locks_base_price(self, client: AsyncClient, pricing_snapshot):
        edit = {"action": "set_field", "field": "base_price", "value": "55"}
        resp = await client.post(EDIT_URL, json=request_body(pricing_snapshot, edit=edit))

        assert resp.status_code == 200
        data = resp.json()
        assert data["draft"]["base_price"] == "55.00"
        assert data["draft"]["final_price"] == "55.00"
        assert data["tracking"]["manual_fields"] == ["base_price"]

    async def test_add_stop(self, client: AsyncClient, pricing_snapshot):
        edit = {"action": "add_stop", "stop_kind": "pickup", "location": "Orchard Rd"}
        resp = await client.post(EDIT_URL, json=request_body(pricing_snapshot, edit=edit))

        data = resp.json()
        assert data["draft"]["pickup_stops"][0] == {"location": "Orchard Rd", "price": "5.00"}
        assert data["draft"]["final_price"] == "55.00"

    async def test_manual_stop_then_vehicle_change(self, client: AsyncClient, pricing_snapshot):
        draft = draft_payload(dropoff_stops=[{"location": "Changi T1"}, {"location": "Changi T3"}])
        edit = {"action": "update_stop", "stop_kind": "dropoff", "stop_index": 2, "price": "8.00"}
        first = (await client.post(
            EDIT_URL, json=request_body(pricing_snapshot, draft=draft, edit=edit)
        )).json()
        assert first["draft"]["dropoff_stops"][1]["price"] == "8.00"
        assert "dropoff_stop_2_price" in first["tracking"]["manual_fields"]

        next_draft = dict(first["draft"], vehicle_type_id=OTHER_VEHICLE_TYPE_ID, vehicle_type=OTHER_VEHICLE_TYPE)
        body = request_body(pricing_snapshot, draft=next_draft, tracking=first["tracking"])
        second = (await client.post(RECOMPUTE_URL, json=body)).json()

        assert second["draft"]["dropoff_stops"][1]["price"] == "7.50"
        assert second["tracking"]["manual_fields"] == []

    async def test_remove_stop(self, client: AsyncClient, pricing_snapshot):
        draft = draft_payload(pickup_stops=[{"location": "A"}, {"location": "B"}])
        edit = {"action": "remove_stop", "stop_kind": "pickup", "stop_index": 1}
        resp = await client.post(EDIT_URL, json=request_body(pricing_snapshot, draft=draft, edit=edit))

        data = resp.json()
        assert data["draft"]["pickup_stops"][0] == {"location": "", "price": "0.00"}
        assert data["draft"]["pickup_stops"][1]["price"] == "5.00"
        assert data["draft"]["final_price"] == "55.00"

    async def test_locked_status_returns_409(self, client: AsyncClient, pricing_snapshot):
        edit = {"action": "set_field", "field": "base_price", "value": "60"}
        body = request_body(pricing_snapshot, draft=draft_payload(status="pob"), edit=edit)
        resp = await client.post(EDIT_URL, json=body)
        assert resp.status_code == 409

    async def test_read_only_job_cost_returns_409(self, client: AsyncClient, pricing_snapshot):
        edit = {"action": "set_field", "field": "job_cost", "value": "20"}
        body = request_body(pricing_snapshot, draft=draft_payload(contractor_id=CONTRACTOR_ID), edit=edit)
        resp = await client.post(EDIT_URL, json=body)
        assert resp.status_code == 409

    async def test_unknown_field_returns_422(self, client: AsyncClient, pricing_snapshot):
        edit = {"action": "set_field", "field": "final_price", "value": "1"}
        resp = await client.post(EDIT_URL, json=request_body(pricing_snapshot, edit=edit))
        assert resp.status_code == 422

    async def test_non_numeric_price_returns_422(self, client: AsyncClient, pricing_snapshot):
        edit = {"action": "set_field", "field": "base_price", "value": "abc"}
        resp = await client.post(EDIT_URL, json=request_body(pricing_snapshot, edit=edit))
        assert resp.status_code == 422
        assert "base_price" in resp.json()["detail"]

    @pytest.mark.parametrize("value", [3.7, {}, [7]])
    async def test_invalid_id_returns_422(self, client: AsyncClient, pricing_snapshot, value):
        edit = {"action": "set_field", "field": "contractor_id", "value": value}
        resp = await client.post(EDIT_URL, json=request_body(pricing_snapshot, edit=edit))
        assert resp.status_code == 422

    async def test_existing_booking_pickup_time_change(self, client: AsyncClient, pricing_snapshot):
        draft = draft_payload(pickup_time="23:30", base_price="45.00", midnight_surcharge="10.00")
        tracking = {
            "manual_fields": ["base_price", "midnight_surcharge"],
            "last_identity": {key: draft[key] for key in
                              ("customer_id", "service_id", "service_type", "vehicle_type_id", "vehicle_type")},
            "stored_pickup_time": "23:30",
        }
        edit = {"action": "set_field", "field": "pickup_time", "value": "14:00"}
        body = request_body(pricing_snapshot, draft=draft, tracking=tracking, edit=edit)
        data = (await client.post(EDIT_URL, json=body)).json()

        assert data["draft"]["midnight_surcharge"] == "0.00"
        assert data["draft"]["base_price"] == "45.00"
        assert data["tracking"]["manual_fields"] == ["base_price"]
        assert data["tracking"]["stored_pickup_time"] is None

    async def test_missing_stop_index_returns_422(self, client: AsyncClient, pricing_snapshot):
        edit = {"action": "remove_stop", "stop_kind": "dropoff"}
        resp = await client.post(EDIT_URL, json=request_body(pricing_snapshot, edit=edit))
        assert resp.status_code == 422

    async def test_removing_empty_slot_returns_422(self, client: AsyncClient, pricing_snapshot):
        edit = {"action": "remove_stop", "stop_kind": "dropoff", "stop_index": 3}
        resp = await client.post(EDIT_URL, json=request_body(pricing_snapshot, edit=edit))
        assert resp.status_code == 422
