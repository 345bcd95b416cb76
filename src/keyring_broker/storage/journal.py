"""Durable journal of keyring notifications.

Every event the keyring emits is appended here so the host can pick it up
later, even when the emitting process (a CLI invocation, for instance) has
already exited.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Optional

from keyring_broker.errors import StorageError
from keyring_broker.storage.database import Database
from keyring_broker.storage.models import KeyringEvent

logger = logging.getLogger("keyring_broker.storage.journal")


@dataclass
class JournalEntry:
    id: int
    event: KeyringEvent
    payload: dict[str, Any]
    created_at: str


class EventJournal:
    """Event bus listener that appends notifications to the database."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def record(self, event: KeyringEvent, payload: dict[str, Any]) -> None:
        event = KeyringEvent(event)
        try:
            entry_id = await self.db.append_event(event.value, json.dumps(payload))
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to journal '{event.value}': {exc}") from exc
        logger.debug(f"Journaled {event.value} (#{entry_id})")

    async def entries(self, limit: Optional[int] = None) -> list[JournalEntry]:
        """Return journaled notifications, oldest first, without removing them."""
        try:
            rows = await self.db.fetch_events(limit)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to read event journal: {exc}") from exc
        return [
            JournalEntry(
                id=row["id"],
                event=KeyringEvent(row["event"]),
                payload=json.loads(row["payload"]),
                created_at=str(row["created_at"]),
            )
            for row in rows
        ]

    async def drain(self, limit: Optional[int] = None) -> list[JournalEntry]:
        """Return the oldest notifications and remove them from the journal."""
        entries = await self.entries(limit)
        if entries:
            try:
                await self.db.delete_events(entries[-1].id)
            except (sqlite3.Error, OSError) as exc:
                raise StorageError(f"Failed to drain event journal: {exc}") from exc
            logger.info(f"Drained {len(entries)} journaled events")
        return entries
