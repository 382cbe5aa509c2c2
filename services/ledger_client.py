"""Client side of the attendance ledger: append an event, read the latest one."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from models.attendance import AttendanceEvent, AttendanceEventType, Coordinate
from utils.datetime_helpers import parse_utc_datetime

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for ledger read/write failures."""


class LedgerNetworkError(LedgerError):
    """The ledger could not be reached (offline, DNS, timeout, ...)."""


class LedgerWriteError(LedgerError):
    """The ledger rejected or failed an append."""


class LedgerReadError(LedgerError):
    """The ledger failed to answer a read."""


class LedgerClient(ABC):

    @abstractmethod
    async def append_event(
        self,
        user_id: str,
        event_type: AttendanceEventType,
        coordinates: Coordinate,
    ) -> None:
        """Write one event; either it is stored completely or an error is raised."""

    @abstractmethod
    async def fetch_last_event(self, user_id: str) -> Optional[AttendanceEvent]:
        """Latest event for the user by server timestamp, or None when there are none."""


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return response.text


class HttpLedgerClient(LedgerClient):
    """LedgerClient backed by the /attendance HTTP routes."""

    def __init__(
        self,
        base_url: str,
        id_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {id_token}"} if id_token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def append_event(
        self,
        user_id: str,
        event_type: AttendanceEventType,
        coordinates: Coordinate,
    ) -> None:
        payload = {
            "type": event_type.value,
            "latitude": coordinates.latitude,
            "longitude": coordinates.longitude,
        }
        try:
            response = await self._client.post(
                f"/attendance/users/{user_id}/events", json=payload
            )
        except httpx.TransportError as e:
            logger.warning(f"[LEDGER] Append {event_type.value} for {user_id} failed: {e}")
            raise LedgerNetworkError(str(e)) from e

        if response.is_error:
            detail = _detail(response)
            logger.warning(
                f"[LEDGER] Append {event_type.value} for {user_id} rejected "
                f"({response.status_code}): {detail}"
            )
            raise LedgerWriteError(detail)

        logger.info(f"[LEDGER] Recorded {event_type.value} for {user_id}")

    async def fetch_last_event(self, user_id: str) -> Optional[AttendanceEvent]:
        try:
            response = await self._client.get(f"/attendance/users/{user_id}/last")
        except httpx.TransportError as e:
            logger.warning(f"[LEDGER] Fetching last event for {user_id} failed: {e}")
            raise LedgerNetworkError(str(e)) from e

        if response.is_error:
            detail = _detail(response)
            logger.warning(
                f"[LEDGER] Last event read for {user_id} failed "
                f"({response.status_code}): {detail}"
            )
            raise LedgerReadError(detail)

        data = response.json().get("data")
        if data is None:
            return None

        return AttendanceEvent(
            user_id=data["user_id"],
            type=AttendanceEventType(data["event_type"]),
            coordinates=Coordinate(latitude=data["latitude"], longitude=data["longitude"]),
            server_timestamp=parse_utc_datetime(data["timestamp"]),
        )
