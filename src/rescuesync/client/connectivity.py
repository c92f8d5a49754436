"""Connectivity signal consumed by the sync engine.

Network presence detection lives outside the sync client. Whatever detects
it (OS events, a health probe, a test) feeds this observable with
set_online(); subscribers are notified on edges only.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

ConnectivityCallback = Callable[[bool], None]


class ConnectivitySignal:
    """Boolean observable with edge-triggered notifications."""

    def __init__(self, online: bool = False) -> None:
        self._online = online
        self._lock = threading.Lock()
        self._callbacks: list[ConnectivityCallback] = []

    @property
    def is_online(self) -> bool:
        """Current connectivity state."""
        return self._online

    def subscribe(self, callback: ConnectivityCallback) -> Callable[[], None]:
        """Register a callback invoked with the new state on each transition.

        Returns:
            A function that unsubscribes the callback.
        """
        with self._lock:
            self._callbacks.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def set_online(self, online: bool) -> bool:
        """Update the state and notify subscribers on change.

        Callbacks run synchronously in the caller's thread.

        Returns:
            True if the state changed.
        """
        with self._lock:
            if online == self._online:
                return False
            self._online = online
            callbacks = list(self._callbacks)

        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for callback in callbacks:
            try:
                callback(online)
            except Exception:
                logger.exception("Connectivity callback failed")
        return True
