"""Account store: owns the wallets map of the keyring state."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from eth_account.hdaccount import ETHEREUM_DEFAULT_PATH
from pydantic import ValidationError

from keyring_broker.core.chains import is_evm_chain
from keyring_broker.core.gateway import EventEmitter, StatePersister
from keyring_broker.errors import DuplicateAddressError, InvalidDataError, NotFoundError
from keyring_broker.storage.models import (
    ACCOUNT_METHODS,
    EthAccountType,
    KeyringAccount,
    KeyringEvent,
    KeyringState,
    Wallet,
    WalletStatus,
)

logger = logging.getLogger("keyring_broker.accounts")

ACCOUNT_NAME_PREFIX = "Account"


def is_unique_address(address: str, wallets: list[Wallet]) -> bool:
    """Addresses compare case-insensitively (hex checksums vary in case)."""
    wanted = address.lower()
    return all(w.account.address.lower() != wanted for w in wallets)


class AccountStore:
    """Creates, updates and deletes accounts, notifying the host of each change."""

    def __init__(
        self,
        state: KeyringState,
        persister: StatePersister,
        emitter: EventEmitter,
    ) -> None:
        self.state = state
        self.persister = persister
        self.emitter = emitter

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_accounts(self) -> list[KeyringAccount]:
        return [wallet.account for wallet in self.state.wallets.values()]

    def get_wallet(self, account_id: str) -> Wallet:
        wallet = self.state.wallets.get(account_id)
        if wallet is None:
            raise NotFoundError(f"Account '{account_id}' not found")
        return wallet

    def get_account(self, account_id: str) -> KeyringAccount:
        return self.get_wallet(account_id).account

    def is_pending_creation(self) -> bool:
        return any(w.pending_creation for w in self.state.wallets.values())

    def filter_account_chains(self, account_id: str, chains: list[str]) -> list[str]:
        # Every account is an EOA, usable on any EVM chain, so the id is
        # not consulted.
        return [chain for chain in chains if is_evm_chain(chain)]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_account(self, options: Mapping[str, Any] | None = None) -> KeyringAccount:
        """Register a new account for ``options["address"]``.

        The uniqueness check and the insert happen before the first await,
        so two concurrent creations for one address cannot both succeed.
        """
        options = dict(options or {})
        address = options.get("address")
        if not isinstance(address, str) or not address:
            raise InvalidDataError("Account address must be a non-empty string")
        if not is_unique_address(address, list(self.state.wallets.values())):
            raise DuplicateAddressError(f"Account address already in use: {address}")

        account_type = EthAccountType.EOA
        account = KeyringAccount(
            id=str(uuid.uuid4()),
            address=address,
            options=options,
            methods=[m.value for m in ACCOUNT_METHODS[account_type]],
            type=account_type.value,
        )
        hd_path = options.get("hdPath")
        wallet = Wallet(
            account=account,
            derivation_path=hd_path if isinstance(hd_path, str) and hd_path else ETHEREUM_DEFAULT_PATH,
            status=WalletStatus.CREATING,
        )
        self.state.wallets[account.id] = wallet
        self.state.account_counter += 1
        suggestion = f"{ACCOUNT_NAME_PREFIX} {self.state.account_counter}"

        try:
            await self.emitter.emit(
                KeyringEvent.ACCOUNT_CREATED,
                {
                    "account": account.to_document(),
                    "accountNameSuggestion": suggestion,
                },
            )
        except Exception:
            # The host never learned about the account: forget it again.
            self.state.wallets.pop(account.id, None)
            self.state.account_counter -= 1
            raise

        wallet.status = WalletStatus.ACTIVE
        await self.persister.persist(self.state)
        logger.info(f"Account created: {account.address} (id={account.id})")
        return account

    async def update_account(self, account: KeyringAccount | Mapping[str, Any]) -> KeyringAccount:
        """Merge *account* over the stored record. ``id`` and ``address`` never change."""
        incoming = (
            account.model_dump(exclude_unset=True)
            if isinstance(account, KeyringAccount)
            else dict(account)
        )
        account_id = incoming.get("id")
        if not isinstance(account_id, str):
            raise InvalidDataError("Account update requires an 'id'")
        wallet = self.get_wallet(account_id)

        try:
            merged = KeyringAccount.model_validate(
                {
                    **wallet.account.model_dump(),
                    **incoming,
                    # Restore read-only properties.
                    "id": wallet.account.id,
                    "address": wallet.account.address,
                }
            )
        except ValidationError as exc:
            raise InvalidDataError(f"Invalid account update: {exc}") from exc

        await self.emitter.emit(
            KeyringEvent.ACCOUNT_UPDATED, {"account": merged.to_document()}
        )
        wallet.account = merged
        await self.persister.persist(self.state)
        logger.info(f"Account updated: {merged.address} (id={merged.id})")
        return merged

    async def delete_account(self, account_id: str) -> None:
        """Notify the host, then drop the wallet. A failed notification keeps it."""
        self.get_wallet(account_id)
        await self.emitter.emit(KeyringEvent.ACCOUNT_DELETED, {"id": account_id})
        self.state.wallets.pop(account_id, None)
        await self.persister.persist(self.state)
        logger.info(f"Account deleted (id={account_id})")
