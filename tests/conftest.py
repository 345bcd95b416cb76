"""Shared test fixtures for the keyring broker."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from keyring_broker.core.keyring import Keyring
from keyring_broker.errors import StorageError
from keyring_broker.storage.models import KeyringEvent, KeyringState


class FakePersister:
    """Records a deep copy of every persisted state."""

    def __init__(self) -> None:
        self.snapshots: list[dict[str, Any]] = []
        self.fail = False

    async def persist(self, state: KeyringState) -> None:
        if self.fail:
            raise StorageError("disk full")
        self.snapshots.append(copy.deepcopy(state.to_document()))

    @property
    def last(self) -> dict[str, Any]:
        return self.snapshots[-1]


class FakeEmitter:
    """Records emitted events; can be told to fail for chosen event kinds."""

    def __init__(self) -> None:
        self.events: list[tuple[KeyringEvent, dict[str, Any]]] = []
        self.failing: set[KeyringEvent] = set()

    async def emit(self, event: KeyringEvent, payload: dict[str, Any]) -> None:
        if event in self.failing:
            raise RuntimeError(f"host rejected {event.value}")
        self.events.append((event, payload))

    def of(self, event: KeyringEvent) -> list[dict[str, Any]]:
        return [payload for kind, payload in self.events if kind == event]


@pytest.fixture()
def state() -> KeyringState:
    return KeyringState()


@pytest.fixture()
def persister() -> FakePersister:
    return FakePersister()


@pytest.fixture()
def emitter() -> FakeEmitter:
    return FakeEmitter()


@pytest.fixture()
def keyring(state: KeyringState, persister: FakePersister, emitter: FakeEmitter) -> Keyring:
    return Keyring(
        state,
        persister,
        emitter,
        redirect_url="https://approve.example/v1",
        redirect_message="Open the approval app",
    )
