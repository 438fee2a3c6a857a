"""Subscription channel the coordinator publishes state changes on."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, NamedTuple

__all__ = [
    "BUDGET_CHANGED",
    "CATEGORIES_CHANGED",
    "ERROR_RECORDED",
    "EXPENSES_CHANGED",
    "REMOTE_REFRESHED",
    "Event",
    "EventBus",
]

logger = logging.getLogger(__name__)

EXPENSES_CHANGED = "EXPENSES_CHANGED"
CATEGORIES_CHANGED = "CATEGORIES_CHANGED"
BUDGET_CHANGED = "BUDGET_CHANGED"
ERROR_RECORDED = "ERROR_RECORDED"
REMOTE_REFRESHED = "REMOTE_REFRESHED"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event], Any]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, name: str, handler: Handler) -> None:
        with self._lock:
            self._subscribers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        with self._lock:
            handlers = self._subscribers.get(name, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, name: str, payload: dict = None) -> List[Any]:
        with self._lock:
            handlers = list(self._subscribers.get(name, []))
        if not handlers:
            return []

        event = Event(
            name=name,
            ts=datetime.now(timezone.utc).isoformat(),
            payload=dict(payload or {}),
        )

        results = []
        for handler in handlers:
            try:
                results.append(handler(event))
            except Exception:
                # A failing listener must not break the coordinator or other listeners.
                logger.exception("Listener %r failed handling %s", handler, name)
        return results
