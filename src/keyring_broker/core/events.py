"""In-process async event bus delivering keyring lifecycle notifications."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from keyring_broker.storage.models import KeyringEvent

logger = logging.getLogger("keyring_broker.events")


@dataclass
class EventRecord:
    event: KeyringEvent
    payload: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Callback = Callable[[KeyringEvent, dict[str, Any]], Awaitable[None]]


class EventBus:
    """Async pub/sub bus for keyring events.

    Unlike a fire-and-forget bus, a failing listener makes :meth:`emit`
    raise, so the keyring can tell whether the host was notified.
    """

    def __init__(self, history_limit: int = 200) -> None:
        self._subscribers: dict[KeyringEvent, list[Callback]] = {}
        self._listeners: list[Callback] = []  # receive every event
        self._history: deque[EventRecord] = deque(maxlen=history_limit)

    def add_listener(self, callback: Callback) -> None:
        self._listeners.append(callback)

    def subscribe(self, event: KeyringEvent, callback: Callback) -> None:
        self._subscribers.setdefault(KeyringEvent(event), []).append(callback)

    def unsubscribe(self, event: KeyringEvent, callback: Callback) -> None:
        callbacks = self._subscribers.get(KeyringEvent(event), [])
        if callback in callbacks:
            callbacks.remove(callback)

    async def emit(self, event: KeyringEvent, payload: dict[str, Any]) -> None:
        event = KeyringEvent(event)
        self._history.append(EventRecord(event=event, payload=payload))

        failure: Exception | None = None
        for callback in [*self._listeners, *self._subscribers.get(event, [])]:
            try:
                await callback(event, payload)
            except Exception as e:
                logger.error(f"Listener error on '{event.value}': {e}")
                if failure is None:
                    failure = e
        if failure is not None:
            raise failure

    def get_history(
        self, limit: int = 50, event: KeyringEvent | None = None
    ) -> list[EventRecord]:
        records = list(self._history)
        if event is not None:
            records = [r for r in records if r.event == event]
        return records[-limit:]
