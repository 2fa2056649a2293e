"""
Explicit observer registry.

The lifecycle manager and the polling watcher both publish named events.
Each owns its own ``EventEmitter``; there is no global bus.

    emitter = EventEmitter()
    emitter.on("listening", callback)
    emitter.emit("listening")        # callback()
    emitter.off("listening", callback)
"""

import logging
from typing import Any, Callable, Dict, List


logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Name → ordered list of callbacks."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, listener: Listener) -> "EventEmitter":
        """Subscribe ``listener`` to ``event``. Returns self for chaining."""
        self._listeners.setdefault(event, []).append(listener)
        return self

    def off(self, event: str, listener: Listener) -> "EventEmitter":
        """
        Remove one subscription of ``listener``.

        Unknown listeners are ignored so callers can unsubscribe
        unconditionally during shutdown.
        """
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)
            if not listeners:
                del self._listeners[event]
        return self

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener of ``event`` in subscription order.

        Listener exceptions propagate to the emitter, the same way a
        failing callback would surface in any synchronous call.

        Returns:
            True if at least one listener was called.
        """
        # Snapshot so listeners may unsubscribe themselves while running
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            listener(*args)
        if listeners:
            logger.debug(f"Emitted {event!r} to {len(listeners)} listener(s)")
        return bool(listeners)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))
