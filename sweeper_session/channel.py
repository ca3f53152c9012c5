"""Publish/subscribe channel carrying game state changes."""
import asyncio
import logging
import threading
from typing import Callable, List, Optional

from sweeper_session.types import StateChange

logger = logging.getLogger(__name__)

ChangeListener = Callable[[StateChange], None]


class ChangeChannel:
    """Delivers each published change to every subscribed listener in order.

    Listeners are matched by identity, so the exact callable passed to
    subscribe() must be passed to unsubscribe(). Membership is checked again
    right before each call while holding the same lock unsubscribe() takes:
    once unsubscribe() has returned, the listener is never invoked again, even
    for changes that were already queued.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._listeners: List[ChangeListener] = []
        self._lock = threading.RLock()

    def subscribe(self, listener: ChangeListener) -> None:
        with self._lock:
            if not self._is_subscribed(listener):
                self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        with self._lock:
            self._listeners = [l for l in self._listeners if l is not listener]

    def _is_subscribed(self, listener: ChangeListener) -> bool:
        return any(l is listener for l in self._listeners)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def publish(self, change: StateChange) -> None:
        """Queue a change for delivery, or deliver it now without a loop."""
        if self._loop is None:
            self._deliver(change)
        else:
            self._loop.call_soon_threadsafe(self._deliver, change)

    def _deliver(self, change: StateChange) -> None:
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            with self._lock:
                if not self._is_subscribed(listener):
                    continue
                try:
                    listener(change)
                except Exception:
                    logger.exception(f"Change listener {listener!r} failed")
