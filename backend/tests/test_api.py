# backend/tests/test_api.py

"""
HTTP tests for the allocation routes with get_db overridden to the test session.
"""

import pytest
from fastapi.testclient import TestClient

from allocation import service
from allocation.errors import DataAccessError
from core.database import get_db
from main import app


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestRunAllocation:
    def test_run_returns_result(self, client, three_rooms):
        resp = client.post("/api/allocations/run", json={"exam_date": "2025-05-12", "shift": "MORNING"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["statistics"]["rooms_used"] == 3
        assert body["statistics"]["students_allocated"] == 210
        assert sorted(a["seats"] for a in body["assignments"]) == [50, 70, 90]
        assert body["exam_session_id"]
        assert body["run_id"]

    def test_rule_overrides_apply_per_run(self, client, make_class, make_room):
        make_room(1, 100)
        make_class(1, 60, level="PG")
        make_class(2, 30, level="UG")

        strict = client.post("/api/allocations/run", json={"exam_date": "2025-05-12", "shift": "MORNING"}).json()
        relaxed = client.post(
            "/api/allocations/run",
            json={"exam_date": "2025-05-12", "shift": "MORNING", "rules": {"strict_ug_pg_separation": False}},
        ).json()

        assert [u["reason"] for u in strict["unallocated"]] == ["UG_PG_SEPARATION"]
        assert relaxed["unallocated"] == []

    def test_no_rooms_is_unsuccessful_but_ok(self, client, make_class):
        make_class(1, 40)
        resp = client.post("/api/allocations/run", json={"exam_date": "2025-05-12", "shift": "MORNING"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["unallocated"][0]["reason"] == "NO_ROOMS_AVAILABLE"
        assert body["unallocated"][0]["residual_seats"] == 40

    def test_invalid_shift_is_422(self, client, three_rooms):
        resp = client.post("/api/allocations/run", json={"exam_date": "2025-05-12", "shift": "NIGHT"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_SHIFT"

    def test_nothing_to_allocate_is_422(self, client):
        resp = client.post("/api/allocations/run", json={"exam_date": "2025-05-12", "shift": "MORNING"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "NOTHING_TO_ALLOCATE"

    def test_malformed_date_is_rejected_by_schema(self, client):
        resp = client.post("/api/allocations/run", json={"exam_date": "not-a-date", "shift": "MORNING"})
        assert resp.status_code == 422

    def test_data_access_error_is_503(self, client, monkeypatch):
        def unavailable(*_args, **_kwargs):
            raise DataAccessError("Allocation store unavailable")

        monkeypatch.setattr(service, "allocate", unavailable)
        resp = client.post("/api/allocations/run", json={"exam_date": "2025-05-12", "shift": "MORNING"})

        assert resp.status_code == 503
        assert resp.json()["code"] == "DATA_ACCESS_ERROR"


class TestReadRoutes:
    def test_summary_after_run(self, client, three_rooms):
        client.post("/api/allocations/run", json={"exam_date": "2025-05-12", "shift": "MORNING"})

        resp = client.get("/api/allocations/", params={"exam_date": "2025-05-12", "shift": "MORNING"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["total_allocations"] == 3
        assert body["total_seats_allocated"] == 210
        assert body["avg_seats_per_room"] == 70.0
        assert [r["room_code"] for r in body["rooms"]] == ["R-1", "R-2", "R-3"]
        assert body["rooms"][1]["classes"][0]["class_name"] == "CLS-2"

    def test_summary_unknown_shift_is_422(self, client):
        resp = client.get("/api/allocations/", params={"exam_date": "2025-05-12", "shift": "NIGHT"})
        assert resp.status_code == 422

    def test_runs_listing(self, client, three_rooms):
        client.post("/api/allocations/run", json={"exam_date": "2025-05-12", "shift": "MORNING", "created_by": "ops"})

        resp = client.get("/api/allocations/runs")

        assert resp.status_code == 200
        (run,) = resp.json()
        assert run["status"] == "COMMITTED"
        assert run["created_by"] == "ops"
        assert run["rooms_used"] == 3


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["app"] == "ok"
