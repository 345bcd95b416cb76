"""Host gateway contract: durable persistence and lifecycle notifications.

The two halves are injected separately so the keyring can run against
in-memory fakes in tests and against SQLite plus the event bus in a real
deployment.
"""

from __future__ import annotations

from typing import Any, Protocol

from keyring_broker.storage.models import KeyringEvent, KeyringState


class StatePersister(Protocol):
    async def persist(self, state: KeyringState) -> None:
        """Durably write the full aggregate. Raises ``StorageError`` on failure."""
        ...


class EventEmitter(Protocol):
    async def emit(self, event: KeyringEvent, payload: dict[str, Any]) -> None:
        """Notify the host of a lifecycle event.

        Failures propagate; each caller decides whether they are fatal.
        """
        ...
