"""Wraps a platform location watch into a stream of samples and classified errors."""

import logging
from typing import Callable, Hashable, Optional, Protocol

from models.attendance import Coordinate, LocationSample
from models.sensor import SensorError, SensorState, WatchOptions

logger = logging.getLogger(__name__)

SampleCallback = Callable[[LocationSample], None]
ErrorCallback = Callable[[SensorError], None]


class LocationProvider(Protocol):
    """Platform capability that pushes position fixes to callbacks."""

    def is_supported(self) -> bool: ...

    def watch(
        self,
        on_position: Callable[[float, float], None],
        on_error: Callable[[int], None],
        options: WatchOptions,
    ) -> Hashable: ...

    def cancel(self, handle: Hashable) -> None: ...


class LocationSensorAdapter:
    """
    Owns at most one platform watch at a time.

    State starts IDLE, becomes WATCHING on start() and ERROR(kind) on the first
    failure of a watch cycle. Failures are not retried automatically; the
    failing watch is cancelled and stays down until retry() is called.

    `latest_sample` is the freshest fix of the current watch cycle and is read
    again by consumers at submit time. Integrations that receive fixes outside
    the callback path (a background thread, a batched platform API) may set it
    directly; the consumer picks it up on its next read.
    """

    def __init__(self, provider: LocationProvider, options: Optional[WatchOptions] = None):
        self._provider = provider
        self._options = options or WatchOptions()
        self._handle: Optional[Hashable] = None
        # Bumped on every new watch so callbacks from a cancelled watch are dropped
        self._watch_generation = 0
        self._on_sample: Optional[SampleCallback] = None
        self._on_error: Optional[ErrorCallback] = None

        self.state = SensorState.IDLE
        self.error: Optional[SensorError] = None
        self.latest_sample: Optional[LocationSample] = None

    @property
    def options(self) -> WatchOptions:
        return self._options

    @property
    def is_watching(self) -> bool:
        return self._handle is not None

    def bind(self, on_sample: SampleCallback, on_error: ErrorCallback) -> None:
        """Register the single consumer; a later bind replaces the earlier one."""
        self._on_sample = on_sample
        self._on_error = on_error

    def start(self) -> None:
        self._cancel_active_watch()
        self._watch_generation += 1
        generation = self._watch_generation
        self.error = None
        self.latest_sample = None

        if not self._provider.is_supported():
            logger.warning("[SENSOR] Location capability missing; not starting a watch")
            self._fail(SensorError.unsupported())
            return

        self.state = SensorState.WATCHING

        def on_position(latitude: float, longitude: float) -> None:
            if generation != self._watch_generation:
                return
            self._handle_position(latitude, longitude)

        def on_error(code: int) -> None:
            if generation != self._watch_generation:
                return
            self._handle_error(code)

        handle = self._provider.watch(on_position, on_error, self._options)
        if generation != self._watch_generation:
            # Failed synchronously inside watch(); the handle is already dead
            self._provider.cancel(handle)
            return
        self._handle = handle
        logger.debug(f"[SENSOR] Watch started (generation {generation})")

    def retry(self) -> None:
        # start() cancels whatever is still active first
        logger.info("[SENSOR] Retrying location watch")
        self.start()

    def stop(self) -> None:
        self._watch_generation += 1
        self._cancel_active_watch()
        self.state = SensorState.IDLE

    def _cancel_active_watch(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self._provider.cancel(handle)
        logger.debug("[SENSOR] Watch cancelled")

    def _handle_position(self, latitude: float, longitude: float) -> None:
        sample = LocationSample(
            coordinates=Coordinate(latitude=latitude, longitude=longitude)
        )
        self.latest_sample = sample
        if self._on_sample is not None:
            self._on_sample(sample)

    def _handle_error(self, code: int) -> None:
        error = SensorError.from_platform_code(code)
        logger.warning(f"[SENSOR] Watch failed with code {code} ({error.kind.value})")
        # The failing watch ends this cycle
        self._watch_generation += 1
        self._cancel_active_watch()
        self._fail(error)

    def _fail(self, error: SensorError) -> None:
        self.state = SensorState.ERROR
        self.error = error
        if self._on_error is not None:
            self._on_error(error)
