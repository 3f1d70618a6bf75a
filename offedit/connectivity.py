from __future__ import annotations

import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

ConnectivityCallback = Callable[[bool], None]


class ConnectivityMonitor(Protocol):
    """Source of network up/down transitions."""

    def is_online(self) -> bool:
        ...

    def subscribe(self, callback: ConnectivityCallback) -> None:
        """Call callback(online) on every state change."""
        ...


class ManualConnectivityMonitor:
    """
    ConnectivityMonitor driven by the host.

    Hosts that already have a reachability signal (OS hooks, a health-check
    loop) feed it through set_online(). Setting the current state again does
    not notify subscribers.
    """

    def __init__(self, online: bool = False) -> None:
        self._online = bool(online)
        self._callbacks: list[ConnectivityCallback] = []

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, callback: ConnectivityCallback) -> None:
        self._callbacks.append(callback)

    def set_online(self, online: bool) -> None:
        online = bool(online)
        if online == self._online:
            return
        self._online = online
        logger.info("Network is %s", "up" if online else "down")
        for callback in list(self._callbacks):
            callback(online)
