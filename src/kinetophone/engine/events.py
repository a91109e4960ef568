"""
Event Bus - named publish/subscribe with instance-scoped listeners.

Each EventBus owns its listener table; nothing is shared between
instances. Listeners for one event run in registration order. A listener
may add or remove listeners (including itself) while an event is being
delivered; the delivery in progress uses the listener list as it was when
``emit`` was called.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class _Once:
    """Wrapper that removes itself after the first call."""

    def __init__(self, bus: 'EventBus', event: str, fn: Listener):
        self.bus = bus
        self.event = event
        self.fn = fn

    def __call__(self, *args):
        self.bus.off(self.event, self)
        return self.fn(*args)


class EventBus:
    """Synchronous event emitter."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, fn: Listener) -> Listener:
        """Register ``fn`` for ``event``. Returns ``fn`` (usable as decorator)."""
        self._listeners[event].append(fn)
        return fn

    def once(self, event: str, fn: Listener) -> Listener:
        """Register ``fn`` for a single delivery of ``event``."""
        self._listeners[event].append(_Once(self, event, fn))
        return fn

    def off(self, event: str, fn: Optional[Listener] = None):
        """
        Remove a listener.

        Args:
            event: Event name
            fn: Listener to remove (None removes every listener for event)
        """
        if event not in self._listeners:
            return
        if fn is None:
            del self._listeners[event]
            return

        listeners = self._listeners[event]
        for i, registered in enumerate(listeners):
            if registered == fn or (isinstance(registered, _Once) and registered.fn == fn):
                del listeners[i]
                break
        if not listeners:
            del self._listeners[event]

    def listeners(self, event: str) -> List[Listener]:
        """Listeners currently registered for ``event``."""
        return [
            registered.fn if isinstance(registered, _Once) else registered
            for registered in self._listeners.get(event, [])
        ]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args) -> bool:
        """
        Deliver ``event`` to its listeners.

        Listener exceptions propagate to the caller.

        Returns:
            True if at least one listener was called
        """
        listeners = self._listeners.get(event)
        if not listeners:
            return False

        for fn in list(listeners):
            fn(*args)
        return True
