#!/usr/bin/env python3
"""
Ledger API routes against an in-memory SQLite database, plus an end-to-end run
of the status engine talking to the API through the HTTP ledger client.
"""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from conftest import REFERENCE_POINT, offset_north
from core.config import get_reference_point
from core.deps import get_current_user
from db.session import get_session
from main import app
from models.attendance import AttendanceEventType, AttendanceLog, ReferencePoint
from models.session import SessionContext
from models.status import ActionRejection, AttendanceStatus
from services.attendance_service import AttendanceService
from services.ledger_client import HttpLedgerClient
from services.location_providers import ManualLocationProvider
from services.location_sensor import LocationSensorAdapter
from services.status_engine import StatusEngine

USER_ID = "student-1"
TEST_REFERENCE = ReferencePoint(point=REFERENCE_POINT, radius_meters=10)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def api(db_engine):
    def override_session():
        with Session(db_engine) as session:
            yield session

    async def override_user():
        return {"uid": USER_ID, "email": "student@example.com", "name": "Student"}

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_current_user] = override_user
    app.dependency_overrides[get_reference_point] = lambda: TEST_REFERENCE
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api):
    return TestClient(api)


def _event(kind: str, meters_north: float = 0.0) -> dict:
    point = offset_north(REFERENCE_POINT, meters_north)
    return {"type": kind, "latitude": point.latitude, "longitude": point.longitude}


def test_reference_geofence(client):
    response = client.get("/attendance/reference")
    assert response.status_code == 200
    assert response.json() == {
        "center_lat": REFERENCE_POINT.latitude,
        "center_lng": REFERENCE_POINT.longitude,
        "radius_meters": 10.0,
    }


def test_last_event_empty_is_success(client):
    response = client.get(f"/attendance/users/{USER_ID}/last")
    assert response.status_code == 200
    assert response.json()["data"] is None


def test_check_in_inside_geofence(client):
    response = client.post(f"/attendance/users/{USER_ID}/events", json=_event("check-in", 4))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["event_type"] == "check-in"
    assert data["user_id"] == USER_ID
    assert data["timestamp"].endswith("Z")


def test_check_in_outside_geofence_rejected(client):
    response = client.post(f"/attendance/users/{USER_ID}/events", json=_event("check-in", 50))
    assert response.status_code == 400
    assert "too far" in response.json()["detail"]


def test_double_check_in_conflicts(client):
    client.post(f"/attendance/users/{USER_ID}/events", json=_event("check-in"))
    response = client.post(f"/attendance/users/{USER_ID}/events", json=_event("check-in"))
    assert response.status_code == 409


def test_check_out_before_check_in_conflicts(client):
    response = client.post(f"/attendance/users/{USER_ID}/events", json=_event("check-out"))
    assert response.status_code == 409


def test_check_out_from_anywhere(client):
    client.post(f"/attendance/users/{USER_ID}/events", json=_event("check-in"))
    response = client.post(f"/attendance/users/{USER_ID}/events", json=_event("check-out", 2000))
    assert response.status_code == 200


def test_last_and_history_are_newest_first(client):
    client.post(f"/attendance/users/{USER_ID}/events", json=_event("check-in"))
    client.post(f"/attendance/users/{USER_ID}/events", json=_event("check-out", 30))

    last = client.get(f"/attendance/users/{USER_ID}/last").json()["data"]
    assert last["event_type"] == "check-out"

    history = client.get(f"/attendance/users/{USER_ID}/history").json()["data"]
    assert [e["event_type"] for e in history] == ["check-out", "check-in"]


def test_other_users_records_forbidden(client):
    assert client.get("/attendance/users/someone-else/last").status_code == 403
    response = client.post("/attendance/users/someone-else/events", json=_event("check-in"))
    assert response.status_code == 403


def test_non_finite_coordinates_rejected(client):
    response = client.post(
        f"/attendance/users/{USER_ID}/events",
        content='{"type": "check-in", "latitude": NaN, "longitude": 0}',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 422
    errors = response.json()["detail"]
    assert errors[0]["loc"] == ["body", "latitude"]
    assert "input" not in errors[0]


def test_missing_token_is_unauthorized(db_engine):
    app.dependency_overrides[get_reference_point] = lambda: TEST_REFERENCE
    try:
        response = TestClient(app).get(f"/attendance/users/{USER_ID}/last")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 401


def test_service_to_event_round_trip(db_engine):
    with Session(db_engine) as session:
        AttendanceService.record_event(
            USER_ID,
            AttendanceEventType.CHECK_IN,
            REFERENCE_POINT.latitude,
            REFERENCE_POINT.longitude,
            session,
            TEST_REFERENCE,
        )
        log = AttendanceService.last_event(USER_ID, session)
        assert isinstance(log, AttendanceLog)
        event = log.to_event()

    assert event.type == AttendanceEventType.CHECK_IN
    assert event.coordinates == REFERENCE_POINT
    assert event.server_timestamp.tzinfo is not None


def test_engine_end_to_end_over_http(api):
    """Screen flow with the real API behind the HTTP ledger client."""
    provider = ManualLocationProvider()

    async def run():
        transport = httpx.ASGITransport(app=api)
        async with HttpLedgerClient("http://ledger.test", id_token="t", transport=transport) as ledger:
            async with StatusEngine(
                SessionContext(user_id=USER_ID),
                TEST_REFERENCE,
                ledger,
                LocationSensorAdapter(provider),
            ) as engine:
                far = offset_north(REFERENCE_POINT, 50)
                provider.push_position(far.latitude, far.longitude)
                assert engine.status == AttendanceStatus.OUT_OF_RANGE
                assert (await engine.check_in()).rejection == ActionRejection.OUT_OF_RANGE

                provider.push_position(REFERENCE_POINT.latitude, REFERENCE_POINT.longitude)
                assert (await engine.check_in()).accepted
                assert engine.status == AttendanceStatus.CHECKED_IN

                # A fresh screen resolves the same state from the ledger
                await engine.refresh_last_event()
                assert engine.status == AttendanceStatus.CHECKED_IN
                assert engine.last_event.type == AttendanceEventType.CHECK_IN

                provider.push_position(far.latitude, far.longitude)
                assert (await engine.check_out()).accepted
                assert engine.status == AttendanceStatus.OUT_OF_RANGE

    asyncio.run(run())
