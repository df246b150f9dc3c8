from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Minimal synchronous event emitter.

    Listeners run in registration order on the caller's stack. A failing
    listener is logged and does not prevent the remaining ones from running.
    """

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe to an event; returns a callable that unsubscribes."""
        self._listeners[event].append(listener)

        def _off() -> None:
            self.off(event, listener)

        return _off

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for %r failed", event)

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))
