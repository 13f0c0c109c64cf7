"""In-process fan-out of device notifications to widget subscribers."""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, List, Union

from models.events import EventType

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]
Unsubscribe = Callable[[], None]


def _topic(event_type: Union[EventType, str]) -> str:
    return event_type.value if isinstance(event_type, Enum) else event_type


class NotificationBus:
    """Routes published payloads to every callback subscribed to the event type.

    Callbacks run synchronously inside ``publish``; one failing callback is
    logged and does not prevent delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Callback]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, event_type: Union[EventType, str], callback: Callback) -> Unsubscribe:
        name = _topic(event_type)
        with self._lock:
            self._subscribers[name].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(name, [])
                try:
                    callbacks.remove(callback)
                except ValueError:
                    return

        return unsubscribe

    def publish(self, event_type: Union[EventType, str], payload: Any) -> int:
        """Deliver ``payload`` and return how many callbacks received it."""
        name = _topic(event_type)
        with self._lock:
            callbacks = list(self._subscribers.get(name, []))

        delivered = 0
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.exception("Subscriber failed while handling event", extra={"event_type": name})
                continue
            delivered += 1
        return delivered

    def subscriber_count(self, event_type: Union[EventType, str]) -> int:
        with self._lock:
            return len(self._subscribers.get(_topic(event_type), []))
