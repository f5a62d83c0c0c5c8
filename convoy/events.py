"""Publish/subscribe channel shared by the runner and its plugins.

Every run owns two channels:

- the report channel, carrying assertion and lifecycle events to reporters
- the driver channel, carrying control signals (``tests:complete``, ``killAll``)
  to drivers
"""

from collections import defaultdict
from typing import Any, Callable

Listener = Callable[..., Any]

# Report channel
RUNNER_STARTED = "report:runner:started"
RUNNER_FINISHED = "report:runner:finished"
DRIVER_STARTED = "report:driver:started"
DRIVER_FINISHED = "report:driver:finished"
TEST_STARTED = "report:test:started"
TEST_FINISHED = "report:test:finished"
ASSERTION = "report:assertion"
LOG = "report:log"
ERROR = "error"
WARNING = "warning"

# Driver channel
TESTS_COMPLETE = "tests:complete"
KILL_ALL = "killAll"


class EventChannel:
    """Synchronous event emitter with unbounded listeners."""

    def __init__(self, name: str = "events"):
        self.name = name
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> "EventChannel":
        """Subscribe ``listener`` to ``event``."""
        self._listeners[event].append(listener)
        return self

    def once(self, event: str, listener: Listener) -> "EventChannel":
        """Subscribe ``listener`` for the next ``event`` only."""

        def wrapper(*args):
            self.off(event, wrapper)
            return listener(*args)

        wrapper.listener = listener
        return self.on(event, wrapper)

    def off(self, event: str, listener: Listener) -> "EventChannel":
        """Remove ``listener`` (or its once-wrapper) from ``event``."""
        listeners = self._listeners.get(event, [])
        for registered in listeners:
            if registered == listener or getattr(registered, "listener", None) == listener:
                listeners.remove(registered)
                break
        return self

    def emit(self, event: str, *args) -> bool:
        """Deliver ``event`` to its listeners in subscription order.

        Returns:
            True if at least one listener was called.
        """
        listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            listener(*args)
        return len(listeners) > 0

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, []))

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def __repr__(self) -> str:
        return f"EventChannel({self.name!r})"
