import logging
from typing import Callable, List, Optional

import httpx

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "You are currently offline. Some features may be limited."


class ConnectivityMonitor:
    """
    Device online/offline flag.

    The flag is pushed by the host (set_online) or refreshed by probing a URL
    with httpx. Listeners are told about every change.
    """

    def __init__(
        self,
        online: bool = True,
        probe_url: Optional[str] = None,
        timeout: float = 5.0,
    ):
        self._online = online
        self._probe_url = probe_url
        self._timeout = timeout
        self._listeners: List[Callable[[bool], None]] = []

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info(f"[CONNECTIVITY] Device is now {'online' if online else 'offline'}")
        for listener in list(self._listeners):
            listener(online)

    async def probe(self, client: Optional[httpx.AsyncClient] = None) -> bool:
        """Check reachability of the probe URL and update the flag."""
        if not self._probe_url:
            return self._online

        owns_client = client is None
        if owns_client:
            client = httpx.AsyncClient(timeout=self._timeout)
        try:
            await client.head(self._probe_url)
            online = True
        except httpx.TransportError as e:
            logger.warning(f"[CONNECTIVITY] Probe of {self._probe_url} failed: {e}")
            online = False
        finally:
            if owns_client:
                await client.aclose()

        self.set_online(online)
        return online
