"""Keyring broker storage layer -- async SQLite database and Pydantic models."""

from keyring_broker.storage.database import Database, get_database
from keyring_broker.storage.journal import EventJournal, JournalEntry
from keyring_broker.storage.models import (
    ACCOUNT_METHODS,
    EthAccountType,
    EthMethod,
    KeyringAccount,
    KeyringEvent,
    KeyringRequest,
    KeyringState,
    Redirect,
    SubmitRequestResponse,
    Wallet,
    WalletStatus,
)
from keyring_broker.storage.state import StateRepository

__all__ = [
    "Database",
    "get_database",
    "EventJournal",
    "JournalEntry",
    "StateRepository",
    "ACCOUNT_METHODS",
    "EthAccountType",
    "EthMethod",
    "KeyringAccount",
    "KeyringEvent",
    "KeyringRequest",
    "KeyringState",
    "Redirect",
    "SubmitRequestResponse",
    "Wallet",
    "WalletStatus",
]
