"""
Attendance status derivation and the rules for check-in / check-out.

Two sources feed the engine independently: the location watch (pushed samples
and errors) and the one-shot fetch of the user's last attendance event. Either
may resolve first. Each is kept as its own cell and the status is re-derived
whenever any cell changes.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from models.attendance import (
    AttendanceEvent,
    AttendanceEventType,
    Coordinate,
    LocationSample,
    ReferencePoint,
)
from models.sensor import SensorError
from models.session import SessionContext
from models.status import ActionOutcome, ActionRejection, AttendanceStatus, StatusSnapshot
from services.connectivity import ConnectivityMonitor
from services.ledger_client import LedgerClient, LedgerError, LedgerNetworkError
from services.location_sensor import LocationSensorAdapter
from utils.geofence import distance_between

logger = logging.getLogger(__name__)

# None means the current watch cycle has not produced a fix yet
SensorResult = Union[LocationSample, SensorError, None]
StatusListener = Callable[[StatusSnapshot], None]

OFFLINE_ACTION_MESSAGE = (
    "You seem to be offline. Please check your connection to record your attendance."
)


def derive_status(
    sensor_result: SensorResult,
    last_event_loading: bool,
    last_event: Optional[AttendanceEvent],
    reference: ReferencePoint,
    online: bool = True,
    write_in_flight: bool = False,
) -> StatusSnapshot:
    """
    Project the inputs onto exactly one AttendanceStatus. First match wins:

    1. no fix yet, or last event still loading -> PENDING
    2. sensor error                            -> SENSOR_ERROR
    3. last event is a check-in                -> CHECKED_IN (distance ignored)
    4. distance <= radius                      -> IN_RANGE
    5. otherwise                               -> OUT_OF_RANGE
    """
    common = {"online": online, "write_in_flight": write_in_flight}

    if sensor_result is None or last_event_loading:
        return StatusSnapshot(status=AttendanceStatus.PENDING, **common)

    if isinstance(sensor_result, SensorError):
        return StatusSnapshot(
            status=AttendanceStatus.SENSOR_ERROR,
            message=sensor_result.message,
            **common,
        )

    if not isinstance(sensor_result, LocationSample):
        raise TypeError(f"Unexpected sensor result: {sensor_result!r}")

    distance = distance_between(sensor_result.coordinates, reference.point)

    if last_event is not None and last_event.type == AttendanceEventType.CHECK_IN:
        return StatusSnapshot(
            status=AttendanceStatus.CHECKED_IN, distance_meters=distance, **common
        )

    if distance <= reference.radius_meters:
        return StatusSnapshot(
            status=AttendanceStatus.IN_RANGE, distance_meters=distance, **common
        )

    return StatusSnapshot(
        status=AttendanceStatus.OUT_OF_RANGE, distance_meters=distance, **common
    )


class StatusEngine:
    """
    Holds the inputs of one check-in screen for one signed-in user.

    The "checked in" state is only changed by the last-event fetch resolving
    and by a successful ledger write. Every fetch and every successful write
    takes a new generation number; a fetch result is applied only if no newer
    generation was issued while it was in flight, so it can never clobber a
    later optimistic update.
    """

    def __init__(
        self,
        context: SessionContext,
        reference: ReferencePoint,
        ledger: LedgerClient,
        sensor: LocationSensorAdapter,
        connectivity: Optional[ConnectivityMonitor] = None,
        listener: Optional[StatusListener] = None,
    ):
        self._context = context
        self._reference = reference
        self._ledger = ledger
        self._sensor = sensor
        self._connectivity = connectivity or ConnectivityMonitor()
        self._listener = listener

        self._sensor_result: SensorResult = None
        self._last_event: Optional[AttendanceEvent] = None
        # Pending until the first fetch resolves
        self._last_event_loading = True
        self.last_event_error: Optional[str] = None

        self._generation = 0
        self._fetch_generation = 0
        self._write_in_flight = False
        self._active = False
        self._closed = False

        self._snapshot = self._derive()

        self._sensor.bind(self._handle_sample, self._handle_sensor_error)
        self._unsubscribe_connectivity = self._connectivity.subscribe(
            self._handle_connectivity
        )

    # --- Read-only views ---

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def reference(self) -> ReferencePoint:
        return self._reference

    @property
    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    @property
    def status(self) -> AttendanceStatus:
        return self._snapshot.status

    @property
    def last_event(self) -> Optional[AttendanceEvent]:
        return self._last_event

    @property
    def last_event_loading(self) -> bool:
        return self._last_event_loading

    @property
    def sensor_result(self) -> SensorResult:
        return self._sensor_result

    @property
    def write_in_flight(self) -> bool:
        return self._write_in_flight

    @property
    def closed(self) -> bool:
        return self._closed

    def set_listener(self, listener: Optional[StatusListener]) -> None:
        self._listener = listener

    # --- Lifecycle ---

    async def activate(self) -> None:
        """Start the location watch and resolve the user's last event."""
        if self._closed:
            raise RuntimeError("Cannot activate a closed StatusEngine")
        if self._active:
            return
        self._active = True
        logger.info(f"[STATUS] Activating check-in session for {self._context.user_id}")
        self._sensor.start()
        await self.refresh_last_event()

    def close(self) -> None:
        """Tear down: cancel the location watch; later responses are ignored."""
        if self._closed:
            return
        self._closed = True
        self._sensor.stop()
        self._unsubscribe_connectivity()
        logger.info(f"[STATUS] Closed check-in session for {self._context.user_id}")

    async def __aenter__(self):
        await self.activate()
        return self

    async def __aexit__(self, *exc_info):
        self.close()

    # --- Inputs ---

    async def refresh_last_event(self) -> None:
        if self._closed:
            return

        self._generation += 1
        generation = self._generation
        self._fetch_generation = generation
        self._last_event_loading = True
        self._recompute()

        error: Optional[str] = None
        try:
            event = await self._ledger.fetch_last_event(self._context.user_id)
        except LedgerError as e:
            # Before anything is known this reads as "no prior event"; after
            # that the last known or optimistic event stands
            fallback = "Checked Out" if self._last_event is None else "last known event"
            logger.error(
                f"[STATUS] Failed to fetch last attendance event for "
                f"{self._context.user_id}, keeping '{fallback}': {e}"
            )
            event, error = None, str(e)

        if self._closed:
            logger.debug("[STATUS] Last-event response arrived after close; ignored")
            return

        if generation == self._generation:
            if error is None:
                self._last_event = event
            self.last_event_error = error
        else:
            logger.info(
                f"[STATUS] Discarding stale last-event result "
                f"(generation {generation}, latest {self._generation})"
            )

        if generation == self._fetch_generation:
            self._last_event_loading = False
        self._recompute()

    def retry_location(self) -> None:
        if self._closed:
            return
        self._sensor_result = None
        self._recompute()
        self._sensor.retry()

    def _handle_sample(self, sample: LocationSample) -> None:
        if self._closed:
            return
        self._sensor_result = sample
        self._recompute()

    def _handle_sensor_error(self, error: SensorError) -> None:
        if self._closed:
            return
        self._sensor_result = error
        self._recompute()

    def _handle_connectivity(self, online: bool) -> None:
        self._recompute()

    # --- Actions ---

    async def check_in(self) -> ActionOutcome:
        return await self._submit(AttendanceEventType.CHECK_IN)

    async def check_out(self) -> ActionOutcome:
        return await self._submit(AttendanceEventType.CHECK_OUT)

    async def _submit(self, action: AttendanceEventType) -> ActionOutcome:
        if self._closed:
            return self._reject(action, ActionRejection.CLOSED, "This check-in session has ended.")

        # Only one write per session; a second tap is dropped
        if self._write_in_flight:
            return self._reject(
                action,
                ActionRejection.IN_FLIGHT,
                "Your previous request is still being recorded.",
            )

        snapshot = self._derive()
        radius = self._reference.radius_meters

        if action == AttendanceEventType.CHECK_OUT:
            if snapshot.status != AttendanceStatus.CHECKED_IN:
                return self._reject(action, ActionRejection.NOT_ALLOWED, "You are not checked in.")
        else:
            if snapshot.status == AttendanceStatus.OUT_OF_RANGE:
                return self._reject(
                    action,
                    ActionRejection.OUT_OF_RANGE,
                    f"You are too far to check in. You must be within {radius:g} meters.",
                )
            if snapshot.status != AttendanceStatus.IN_RANGE:
                return self._reject(
                    action,
                    ActionRejection.NOT_ALLOWED,
                    f"Check-in is not available while status is '{snapshot.status.value}'.",
                )

        coordinates = self._current_coordinates()
        if coordinates is None:
            return self._reject(action, ActionRejection.NOT_ALLOWED, "Your location is not known yet.")

        if action == AttendanceEventType.CHECK_IN:
            # The displayed status may be a tick behind the newest sample
            distance = distance_between(coordinates, self._reference.point)
            if distance > radius:
                return self._reject(
                    action,
                    ActionRejection.OUT_OF_RANGE,
                    f"You are too far to check in. You must be within {radius:g} meters.",
                )

        if not self._connectivity.is_online():
            return self._reject(action, ActionRejection.OFFLINE, OFFLINE_ACTION_MESSAGE)

        self._write_in_flight = True
        self._recompute()
        failure: Optional[LedgerError] = None
        try:
            await self._ledger.append_event(self._context.user_id, action, coordinates)
        except LedgerError as e:
            failure = e
        else:
            self._apply_optimistic(action, coordinates)
        finally:
            self._write_in_flight = False
            self._recompute()

        if failure is not None:
            logger.error(f"[STATUS] Failed to {action.value} for {self._context.user_id}: {failure}")
            if isinstance(failure, LedgerNetworkError):
                message = OFFLINE_ACTION_MESSAGE
            else:
                message = f"There was an error trying to {action.value}. Please try again."
            return self._reject(action, ActionRejection.LEDGER_FAILURE, message)

        logger.info(f"[STATUS] {self._context.user_id} completed {action.value}")
        return ActionOutcome(action=action, accepted=True)

    def _apply_optimistic(self, action: AttendanceEventType, coordinates: Coordinate) -> None:
        if self._closed:
            return
        self._generation += 1
        self._last_event = AttendanceEvent(
            user_id=self._context.user_id,
            type=action,
            coordinates=coordinates,
            server_timestamp=datetime.now(timezone.utc),
        )
        self.last_event_error = None

    def _reject(
        self, action: AttendanceEventType, rejection: ActionRejection, message: str
    ) -> ActionOutcome:
        logger.info(f"[STATUS] {action.value} rejected for {self._context.user_id}: {rejection.value}")
        return ActionOutcome(action=action, accepted=False, rejection=rejection, message=message)

    def _current_coordinates(self) -> Optional[Coordinate]:
        sample = self._sensor.latest_sample
        if sample is None and isinstance(self._sensor_result, LocationSample):
            sample = self._sensor_result
        return sample.coordinates if sample is not None else None

    # --- Derivation ---

    def _derive(self) -> StatusSnapshot:
        return derive_status(
            self._sensor_result,
            self._last_event_loading,
            self._last_event,
            self._reference,
            online=self._connectivity.is_online(),
            write_in_flight=self._write_in_flight,
        )

    def _recompute(self) -> None:
        if self._closed:
            return
        snapshot = self._derive()
        if snapshot == self._snapshot:
            return
        if snapshot.status != self._snapshot.status:
            logger.debug(
                f"[STATUS] {self._snapshot.status.value} -> {snapshot.status.value}"
            )
        self._snapshot = snapshot
        if self._listener is not None:
            self._listener(snapshot)
