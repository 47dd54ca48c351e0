from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import create_app
from backend.controllers.allocation_controller import router as allocation_router
from backend.controllers.catalog_controller import router as catalog_router
from backend.repository.data_repository import DataRepository
from backend.services.allocation_engine import AllocationEngine
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    base = get_settings()
    return replace(
        base,
        database_path=tmp_path / filename,
        slot_default_capacity=2,
        slot_day_start_hour=9,
        slot_day_end_hour=11,
    )


def _build_test_app(tmp_path) -> FastAPI:
    settings = _build_test_settings(tmp_path, "api_flow.db")
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_reference_data()

    app = FastAPI()
    app.include_router(allocation_router)
    app.include_router(catalog_router)
    app.state.repository = repository
    app.state.allocation_engine = AllocationEngine.from_repository(repository, settings)
    return app


def _order_payload(order_id: int, priority: str) -> dict:
    return {
        "order_id": order_id,
        "customer_id": 918393,
        "created_at": "2024-12-22T15:00:00",
        "amount": "120.50",
        "priority": priority,
    }


def test_order_end_to_end_flow(tmp_path):
    client = TestClient(_build_test_app(tmp_path))

    created = client.post("/orders", json=_order_payload(101, "High"))
    assert created.status_code == 201
    body = created.json()
    assert body["zone_id"] == "A"
    assert body["status"] == "Preparing"
    assert client.get("/zones/A").json()["utilization"] == 51

    duplicate = client.post("/orders", json=_order_payload(101, "High"))
    assert duplicate.status_code == 409

    ready = client.patch("/orders/101/status", json={"status": "Ready for Pickup"})
    assert ready.status_code == 200
    assert client.get("/zones/A").json()["utilization"] == 51

    completed = client.patch("/orders/101/status", json={"status": "Completed"})
    assert completed.status_code == 200
    assert client.get("/zones/A").json()["utilization"] == 50

    again = client.patch("/orders/101/status", json={"status": "Completed"})
    assert again.status_code == 200
    assert client.get("/zones/A").json()["utilization"] == 50

    reverted = client.patch("/orders/101/status", json={"status": "Preparing"})
    assert reverted.status_code == 409

    fetched = client.get("/orders/101")
    assert fetched.status_code == 200
    assert fetched.json()["status"] == "Completed"


def test_unknown_order_and_bad_payload(tmp_path):
    client = TestClient(_build_test_app(tmp_path))

    assert client.get("/orders/999").status_code == 404
    assert client.patch("/orders/999/status", json={"status": "Completed"}).status_code == 404
    assert client.post("/orders", json=_order_payload(5, "Urgent")).status_code == 422
    assert client.patch("/orders/5/status", json={"status": "Lost"}).status_code == 422


def test_appointment_booking_flow(tmp_path):
    client = TestClient(_build_test_app(tmp_path))
    slot_id = client.get("/slots").json()[0]["slot_id"]

    def book(appointment_id: int, staff_id: int = 502, slot: int = slot_id):
        return client.post(
            "/appointments",
            json={
                "appointment_id": appointment_id,
                "order_id": 101,
                "customer_id": 918393,
                "slot_id": slot,
                "staff_id": staff_id,
            },
        )

    first = book(401)
    assert first.status_code == 201
    assert book(401).status_code == 409
    second = book(402)
    assert second.status_code == 201

    full = book(403)
    assert full.status_code == 409
    assert client.get(f"/slots/{slot_id}").json()["booked"] == 2

    assert book(404, staff_id=1).status_code == 404
    assert book(405, slot=999).status_code == 404

    assignment_id = first.json()["assignment_id"]
    assert client.get(f"/assignments/{assignment_id}").status_code == 200
    assert client.delete(f"/assignments/{assignment_id}").status_code == 200
    assert client.delete(f"/assignments/{assignment_id}").status_code == 404
    assert client.get(f"/slots/{slot_id}").json()["booked"] == 1


def test_lifespan_provisions_engine(tmp_path):
    settings = _build_test_settings(tmp_path, "lifespan.db")
    app = create_app(settings)

    with TestClient(app) as client:
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["status"] == "ok"
        zones = client.get("/zones").json()
        assert [zone["zone_id"] for zone in zones] == ["A", "B", "C"]
        assert len(client.get("/staff").json()) == 16


def test_rejected_settings_do_not_leave_catalog_without_slots(tmp_path):
    settings = _build_test_settings(tmp_path, "restart.db")
    inverted = replace(settings, slot_day_start_hour=12, slot_day_end_hour=9)

    with pytest.raises(ValueError):
        with TestClient(create_app(inverted)):
            pass

    with TestClient(create_app(settings)) as client:
        slots = client.get("/slots").json()
        assert [slot["start_time"] for slot in slots] == ["09:00:00", "10:00:00"]
        assert [zone["zone_id"] for zone in client.get("/zones").json()] == ["A", "B", "C"]


def test_routes_report_unavailable_before_startup(tmp_path):
    settings = _build_test_settings(tmp_path, "not_started.db")
    client = TestClient(create_app(settings), raise_server_exceptions=False)

    assert client.get("/health").json()["status"] == "starting"
    assert client.get("/zones").status_code == 503
    assert client.get("/slots").status_code == 503
    assert client.get("/staff").status_code == 503
    assert client.post("/orders", json=_order_payload(101, "High")).status_code == 503
