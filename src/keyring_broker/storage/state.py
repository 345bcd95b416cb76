"""Durable storage for the keyring state document."""

from __future__ import annotations

import json
import logging
import sqlite3

from pydantic import ValidationError

from keyring_broker.errors import StorageError
from keyring_broker.storage.database import Database
from keyring_broker.storage.models import KeyringState

logger = logging.getLogger("keyring_broker.storage.state")


class StateRepository:
    """Loads and persists :class:`KeyringState` as one JSON document.

    Implements the ``persist`` half of the host gateway.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def load(self) -> KeyringState:
        """Return the stored state, or a fresh empty state if none exists."""
        try:
            document = await self.db.load_document()
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to read keyring state: {exc}") from exc

        if document is None:
            logger.info("No stored keyring state, starting empty")
            return KeyringState()

        try:
            return KeyringState.model_validate(json.loads(document))
        except (ValueError, ValidationError) as exc:
            raise StorageError(f"Stored keyring state is corrupt: {exc}") from exc

    async def persist(self, state: KeyringState) -> None:
        """Write the full aggregate, replacing the previous document."""
        try:
            await self.db.store_document(json.dumps(state.to_document()))
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Failed to persist keyring state: {exc}") from exc
        logger.debug(
            f"Keyring state persisted ({len(state.wallets)} wallets, "
            f"{len(state.pending_requests)} pending requests)"
        )
