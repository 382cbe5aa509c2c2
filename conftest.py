import asyncio
import math
from typing import List, Optional

import pytest

from models.attendance import AttendanceEvent, AttendanceEventType, Coordinate, ReferencePoint
from models.session import SessionContext
from services.connectivity import ConnectivityMonitor
from services.ledger_client import LedgerClient
from services.location_providers import ManualLocationProvider
from services.location_sensor import LocationSensorAdapter
from services.status_engine import StatusEngine
from utils.geofence import EARTH_RADIUS_M

REFERENCE_POINT = Coordinate(latitude=26.158299181572236, longitude=32.72355294496741)


def offset_north(point: Coordinate, meters: float) -> Coordinate:
    """A coordinate exactly `meters` great-circle meters north of `point`."""
    return Coordinate(
        latitude=point.latitude + math.degrees(meters / EARTH_RADIUS_M),
        longitude=point.longitude,
    )


class FakeLedger(LedgerClient):
    """In-memory ledger; gates let a test hold a call open mid-flight."""

    def __init__(self, last_event: Optional[AttendanceEvent] = None):
        self.last_event = last_event
        self.appended: List[AttendanceEvent] = []
        self.append_calls = 0
        self.fetch_calls = 0
        self.append_error: Optional[Exception] = None
        self.fetch_error: Optional[Exception] = None
        self.append_gate: Optional[asyncio.Event] = None
        self.fetch_gate: Optional[asyncio.Event] = None

    async def append_event(self, user_id, event_type, coordinates) -> None:
        self.append_calls += 1
        if self.append_gate is not None:
            await self.append_gate.wait()
        else:
            await asyncio.sleep(0)
        if self.append_error is not None:
            raise self.append_error
        event = AttendanceEvent(
            user_id=user_id,
            type=event_type,
            coordinates=coordinates,
            server_timestamp="2025-01-01T08:00:00Z",
        )
        self.appended.append(event)
        self.last_event = event

    async def fetch_last_event(self, user_id):
        self.fetch_calls += 1
        # Answer with what the ledger held when the request was issued
        answer = self.last_event
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        else:
            await asyncio.sleep(0)
        if self.fetch_error is not None:
            raise self.fetch_error
        return answer


def make_event(event_type: AttendanceEventType, user_id: str = "student-1") -> AttendanceEvent:
    return AttendanceEvent(
        user_id=user_id,
        type=event_type,
        coordinates=REFERENCE_POINT,
        server_timestamp="2025-01-01T07:00:00Z",
    )


@pytest.fixture
def reference() -> ReferencePoint:
    return ReferencePoint(point=REFERENCE_POINT, radius_meters=10)


@pytest.fixture
def context() -> SessionContext:
    return SessionContext(user_id="student-1", email="student@example.com")


@pytest.fixture
def provider() -> ManualLocationProvider:
    return ManualLocationProvider()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def connectivity() -> ConnectivityMonitor:
    return ConnectivityMonitor(online=True)


@pytest.fixture
def engine(context, reference, ledger, provider, connectivity) -> StatusEngine:
    sensor = LocationSensorAdapter(provider)
    return StatusEngine(context, reference, ledger, sensor, connectivity=connectivity)
