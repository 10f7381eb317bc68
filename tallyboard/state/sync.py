"""
Cross-Controller State Sync

Each controller holds its own in-memory copy of a persisted root. After a
controller writes, it publishes on the bus and every other subscriber
reloads the whole root from the store. There is no partial sync.
"""

from typing import Any, Callable

from tallyboard.audit import get_logger


logger = get_logger(__name__)

Listener = Callable[[Any], None]


class StateChangeBus:
    """Synchronous publish/subscribe channel for 'state changed' signals."""

    def __init__(self):
        self._listeners: list[tuple[Any, Listener]] = []

    def subscribe(self, owner: Any, callback: Listener) -> Callable[[], None]:
        """
        Register a callback for changes published by anyone but ``owner``.

        Returns:
            A function that removes the subscription
        """
        entry = (owner, callback)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def publish(self, source: Any) -> None:
        """Notify every subscriber except the publisher itself."""
        for owner, callback in list(self._listeners):
            if owner is source:
                continue
            try:
                callback(source)
            except Exception:
                logger.exception("state_listener_failed", listener=repr(callback))

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)
