"""Subscribable run events: ``output``, ``ready``, ``exit`` and ``error``."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

EVENTS = ("output", "ready", "exit", "error")


class EventEmitter:
    def __init__(self) -> None:
        self._listeners: Dict[str, List[Callable[..., Any]]] = {name: [] for name in EVENTS}
        self._lock = threading.Lock()

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[[], None]:
        """Subscribe ``callback``; returns a function that unsubscribes it."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event {event!r}; expected one of {', '.join(EVENTS)}")
        with self._lock:
            self._listeners[event].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners[event]:
                    self._listeners[event].remove(callback)

        return unsubscribe

    def emit(self, event: str, *args: Any) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event, ()))
        for callback in listeners:
            try:
                callback(*args)
            except Exception:  # noqa: BLE001 - a listener must not break the output pump
                logger.exception("Listener for %s event failed", event)

    def clear(self) -> None:
        with self._lock:
            for listeners in self._listeners.values():
                listeners.clear()


__all__ = ["EVENTS", "EventEmitter"]
