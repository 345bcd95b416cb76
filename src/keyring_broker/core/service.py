"""KeyringService - wires config, storage, the event bus and the keyring."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from keyring_broker.config import BrokerConfig, get_profile_dir, load_config, save_config
from keyring_broker.core.events import EventBus
from keyring_broker.core.keyring import Keyring
from keyring_broker.storage.database import Database, get_database
from keyring_broker.storage.journal import EventJournal
from keyring_broker.storage.state import StateRepository

logger = logging.getLogger("keyring_broker.service")


class KeyringService:
    """One broker profile: its configuration, database and live keyring."""

    def __init__(
        self,
        config: BrokerConfig,
        profile_dir: Path,
        db: Database,
        repository: StateRepository,
        bus: EventBus,
        keyring: Keyring,
        journal: Optional[EventJournal] = None,
    ) -> None:
        self.config = config
        self.profile_dir = profile_dir
        self.db = db
        self.repository = repository
        self.bus = bus
        self.keyring = keyring
        self.journal = journal

    @classmethod
    async def load(cls, base_path: Path | None = None, profile: str = "default") -> KeyringService:
        """Open a profile, loading its keyring state from storage."""
        profile_dir = get_profile_dir(profile, base_path)
        config = load_config(profile_dir / "config.yaml")

        db = get_database(profile_dir)
        await db.connect()
        repository = StateRepository(db)
        state = await repository.load()

        bus = EventBus()
        journal = None
        if config.journal_events:
            journal = EventJournal(db)
            bus.add_listener(journal.record)

        keyring = Keyring(
            state,
            repository,
            bus,
            redirect_url=config.redirect_url(),
            redirect_message=config.redirect.message,
            reject_orphaned_requests=config.reject_orphaned_requests,
        )
        logger.info(
            f"Keyring '{config.name}' loaded from {profile_dir} "
            f"({len(state.wallets)} accounts, {len(state.pending_requests)} pending requests)"
        )
        return cls(config, profile_dir, db, repository, bus, keyring, journal)

    @classmethod
    async def init(
        cls,
        base_path: Path | None = None,
        name: str = "Keyring Broker",
        profile: str = "default",
    ) -> KeyringService:
        """Write a default config for a new profile and open it."""
        profile_dir = get_profile_dir(profile, base_path)
        save_config(BrokerConfig(name=name), profile_dir / "config.yaml")
        return await cls.load(base_path, profile)

    async def shutdown(self) -> None:
        """Clean shutdown."""
        await self.db.close()
