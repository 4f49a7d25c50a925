"""
Connectivity observer.

The platform (or the host application) reports reachability through
``set_online``; subscribers are told about transitions only, never about
repeated reports of the same state.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    def __init__(self, online: bool = False) -> None:
        self._online = bool(online)
        self._callbacks: list[Callable[[bool], None]] = []

    @property
    def online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> bool:
        """Record the current reachability. Returns True when it changed."""
        online = bool(online)
        if online == self._online:
            return False

        self._online = online
        logger.info(f"Connectivity {'restored' if online else 'lost'}")

        for callback in list(self._callbacks):
            try:
                callback(online)
            except Exception as exc:
                logger.warning(f"Connectivity callback failed: {exc}")
        return True

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Register a transition callback; returns a function that removes it."""
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe
