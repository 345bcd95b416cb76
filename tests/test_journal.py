"""Tests for the durable event journal."""

from __future__ import annotations

from pathlib import Path

import pytest

from keyring_broker.config import BrokerConfig, get_profile_dir, save_config
from keyring_broker.core.service import KeyringService
from keyring_broker.errors import StorageError
from keyring_broker.storage.database import get_database
from keyring_broker.storage.journal import EventJournal
from keyring_broker.storage.models import KeyringEvent


@pytest.mark.asyncio()
async def test_entries_are_kept_until_drained(tmp_path: Path) -> None:
    db = get_database(tmp_path)
    await db.connect()
    journal = EventJournal(db)
    try:
        await journal.record(KeyringEvent.ACCOUNT_DELETED, {"id": "a"})
        await journal.record(KeyringEvent.REQUEST_REJECTED, {"id": "r"})
        await journal.record(KeyringEvent.REQUEST_REJECTED, {"id": "s"})

        assert [e.payload["id"] for e in await journal.entries()] == ["a", "r", "s"]

        drained = await journal.drain(limit=2)
        assert [(e.event, e.payload) for e in drained] == [
            (KeyringEvent.ACCOUNT_DELETED, {"id": "a"}),
            (KeyringEvent.REQUEST_REJECTED, {"id": "r"}),
        ]
        assert [e.payload["id"] for e in await journal.entries()] == ["s"]
        assert len(await journal.drain()) == 1
        assert await journal.drain() == []
    finally:
        await db.close()


@pytest.mark.asyncio()
async def test_closed_database_raises_storage_error(tmp_path: Path) -> None:
    db = get_database(tmp_path)
    await db.connect()
    await db.close()

    with pytest.raises(StorageError):
        await EventJournal(db).record(KeyringEvent.ACCOUNT_DELETED, {"id": "a"})


@pytest.mark.asyncio()
async def test_approval_result_outlives_the_process(tmp_path: Path) -> None:
    service = await KeyringService.load(tmp_path)
    try:
        await service.keyring.submit_request({"id": "r1", "method": "personal_sign", "params": ["0x00"]})
        await service.keyring.approve_request("r1", {"data": "0xsig"})
    finally:
        await service.shutdown()

    service = await KeyringService.load(tmp_path)
    try:
        entries = await service.journal.entries()
    finally:
        await service.shutdown()

    assert [(e.event, e.payload) for e in entries] == [
        (KeyringEvent.REQUEST_APPROVED, {"id": "r1", "result": "0xsig"}),
    ]


@pytest.mark.asyncio()
async def test_journaling_can_be_disabled(tmp_path: Path) -> None:
    save_config(BrokerConfig(journal_events=False), get_profile_dir(base=tmp_path) / "config.yaml")

    service = await KeyringService.load(tmp_path)
    try:
        await service.keyring.create_account({"address": "0xAAA"})
        assert service.journal is None
        assert await service.db.fetch_events() == []
    finally:
        await service.shutdown()
