"""Named-event emitter backing store change notifications.

Listeners are kept per event name in subscription order. add_listener()
returns a disposer, so callers can unsubscribe without holding on to the
listener itself.
"""

from __future__ import annotations

from typing import Callable

Disposer = Callable[[], None]


class ChangeEmitter:
    """Subscribe to named events, unsubscribe, emit to all subscribers."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable]] = {}

    def add_listener(self, event: str, listener: Callable) -> Disposer:
        """Register a listener. Returns a function that removes it."""
        self._listeners.setdefault(event, []).append(listener)

        def _remove() -> None:
            self.remove_listener(event, listener)

        return _remove

    def remove_listener(self, event: str, listener: Callable) -> None:
        try:
            self._listeners.get(event, []).remove(listener)
        except ValueError:
            pass  # already removed

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listeners(self, event: str) -> list[Callable]:
        return list(self._listeners.get(event, ()))

    def emit(self, event: str, *args) -> bool:
        """Call every listener of event. Returns whether any were called."""
        # Snapshot: listeners may unsubscribe while being notified.
        listeners = self.listeners(event)
        for listener in listeners:
            listener(*args)
        return bool(listeners)
