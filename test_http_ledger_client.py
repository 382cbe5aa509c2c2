#!/usr/bin/env python3
"""
HTTP ledger client against a mocked transport: payloads and error mapping.
"""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from models.attendance import AttendanceEventType, Coordinate
from services.ledger_client import (
    HttpLedgerClient,
    LedgerNetworkError,
    LedgerReadError,
    LedgerWriteError,
)

HERE = Coordinate(latitude=26.1583, longitude=32.7235)


def _client(handler) -> HttpLedgerClient:
    return HttpLedgerClient(
        "http://ledger.test", id_token="token-123", transport=httpx.MockTransport(handler)
    )


def test_append_posts_event_with_bearer_token():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"status": "success", "data": {}})

    async def run():
        async with _client(handler) as client:
            await client.append_event("student-1", AttendanceEventType.CHECK_IN, HERE)

    asyncio.run(run())

    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/attendance/users/student-1/events"
    assert request.headers["Authorization"] == "Bearer token-123"
    assert json.loads(request.content) == {
        "type": "check-in",
        "latitude": 26.1583,
        "longitude": 32.7235,
    }


def test_append_rejection_is_write_error():
    def handler(request):
        return httpx.Response(409, json={"detail": "Already checked in."})

    async def run():
        async with _client(handler) as client:
            await client.append_event("student-1", AttendanceEventType.CHECK_IN, HERE)

    with pytest.raises(LedgerWriteError, match="Already checked in."):
        asyncio.run(run())


def test_append_unreachable_is_network_error():
    def handler(request):
        raise httpx.ConnectError("no route to host", request=request)

    async def run():
        async with _client(handler) as client:
            await client.append_event("student-1", AttendanceEventType.CHECK_OUT, HERE)

    with pytest.raises(LedgerNetworkError):
        asyncio.run(run())


def test_fetch_empty_ledger_is_none():
    def handler(request):
        return httpx.Response(200, json={"status": "success", "data": None, "message": "No attendance events found."})

    async def run():
        async with _client(handler) as client:
            return await client.fetch_last_event("student-1")

    assert asyncio.run(run()) is None


def test_fetch_parses_event():
    def handler(request):
        assert request.url.path == "/attendance/users/student-1/last"
        return httpx.Response(
            200,
            json={
                "status": "success",
                "data": {
                    "id": 7,
                    "user_id": "student-1",
                    "event_type": "check-in",
                    "latitude": 26.1583,
                    "longitude": 32.7235,
                    "timestamp": "2025-06-07T13:25:39.765881Z",
                },
            },
        )

    async def run():
        async with _client(handler) as client:
            return await client.fetch_last_event("student-1")

    event = asyncio.run(run())
    assert event.type == AttendanceEventType.CHECK_IN
    assert event.coordinates == HERE
    assert event.server_timestamp == datetime(2025, 6, 7, 13, 25, 39, 765881, tzinfo=timezone.utc)


def test_fetch_server_error_is_read_error():
    def handler(request):
        return httpx.Response(500, text="Internal Server Error")

    async def run():
        async with _client(handler) as client:
            await client.fetch_last_event("student-1")

    with pytest.raises(LedgerReadError):
        asyncio.run(run())


def test_fetch_unreachable_is_network_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async def run():
        async with _client(handler) as client:
            await client.fetch_last_event("student-1")

    with pytest.raises(LedgerNetworkError):
        asyncio.run(run())
