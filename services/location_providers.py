"""Location providers for development, simulations and tests."""

import itertools
from typing import Callable, Dict, Hashable, Optional, Tuple

from models.sensor import WatchOptions


class ManualLocationProvider:
    """
    Push-driven provider: positions and error codes are fed in by the caller
    and delivered to every active watch.
    """

    def __init__(self, supported: bool = True):
        self.supported = supported
        self._ids = itertools.count(1)
        self._watches: Dict[int, Tuple[Callable[[float, float], None], Callable[[int], None]]] = {}
        self.last_options: Optional[WatchOptions] = None
        self.watch_calls = 0
        self.cancel_calls = 0

    @property
    def active_handles(self) -> list:
        return list(self._watches)

    def is_supported(self) -> bool:
        return self.supported

    def watch(self, on_position, on_error, options: WatchOptions) -> Hashable:
        handle = next(self._ids)
        self._watches[handle] = (on_position, on_error)
        self.last_options = options
        self.watch_calls += 1
        return handle

    def cancel(self, handle: Hashable) -> None:
        self.cancel_calls += 1
        self._watches.pop(handle, None)

    def push_position(self, latitude: float, longitude: float) -> None:
        for on_position, _ in list(self._watches.values()):
            on_position(latitude, longitude)

    def push_error(self, code: int) -> None:
        for _, on_error in list(self._watches.values()):
            on_error(code)


class UnsupportedLocationProvider:
    """A device without any location capability."""

    def is_supported(self) -> bool:
        return False

    def watch(self, on_position, on_error, options: WatchOptions) -> Hashable:
        raise RuntimeError("watch() called on a device without location support")

    def cancel(self, handle: Hashable) -> None:
        pass
