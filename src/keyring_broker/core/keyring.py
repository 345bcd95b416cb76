"""Keyring - the public operation set exposed to callers.

Every operation is a thin dispatch onto the account store, the request
queue or the approval coordinator. The keyring itself never derives keys
or signs; approval happens on an external surface that reports back
through :meth:`Keyring.approve_request` / :meth:`Keyring.reject_request`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from keyring_broker.core.accounts import AccountStore
from keyring_broker.core.approval import ApprovalCoordinator
from keyring_broker.core.gateway import EventEmitter, StatePersister
from keyring_broker.core.requests import RequestQueue
from keyring_broker.errors import InvalidDataError
from keyring_broker.storage.models import (
    KeyringAccount,
    KeyringRequest,
    KeyringState,
    SubmitRequestResponse,
)

logger = logging.getLogger("keyring_broker.keyring")

DEFAULT_REDIRECT_MESSAGE = "Redirecting to the approval app to sign the request"


class Keyring:
    """Account and signing-request broker over one :class:`KeyringState`.

    Parameters
    ----------
    state:
        The aggregate root, mutated in place.
    persister:
        Writes *state* after every successful mutation.
    emitter:
        Delivers lifecycle notifications to the host.
    redirect_url:
        Where :meth:`submit_request` sends callers to approve. May be
        ``None`` when the environment is not configured.
    redirect_message:
        Human-readable prompt returned alongside *redirect_url*.
    reject_orphaned_requests:
        When true, deleting an account also rejects its pending requests.
    """

    def __init__(
        self,
        state: KeyringState,
        persister: StatePersister,
        emitter: EventEmitter,
        *,
        redirect_url: Optional[str] = None,
        redirect_message: str = DEFAULT_REDIRECT_MESSAGE,
        reject_orphaned_requests: bool = False,
    ) -> None:
        self.state = state
        self.persister = persister
        self.redirect_url = redirect_url
        self.redirect_message = redirect_message
        self.reject_orphaned_requests = reject_orphaned_requests

        self.accounts = AccountStore(state, persister, emitter)
        self.requests = RequestQueue(state, persister)
        self.approvals = ApprovalCoordinator(self.requests, emitter)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def list_accounts(self) -> list[KeyringAccount]:
        return self.accounts.list_accounts()

    async def get_account(self, account_id: str) -> KeyringAccount:
        return self.accounts.get_account(account_id)

    async def create_account(
        self, options: Mapping[str, Any] | None = None
    ) -> KeyringAccount:
        return await self.accounts.create_account(options)

    async def filter_account_chains(self, account_id: str, chains: list[str]) -> list[str]:
        return self.accounts.filter_account_chains(account_id, chains)

    async def update_account(self, account: KeyringAccount | Mapping[str, Any]) -> None:
        await self.accounts.update_account(account)

    async def delete_account(self, account_id: str) -> None:
        await self.accounts.delete_account(account_id)
        if self.reject_orphaned_requests:
            for request in self.requests.requests_for_account(account_id):
                logger.info(
                    f"Rejecting request {request.id} of deleted account {account_id}"
                )
                await self.approvals.reject(request.id)

    async def is_pending_creation(self) -> bool:
        return self.accounts.is_pending_creation()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def list_requests(self) -> list[KeyringRequest]:
        return self.requests.list_requests()

    async def get_request(self, request_id: str) -> KeyringRequest:
        return self.requests.get_request(request_id)

    async def submit_request(
        self, request: KeyringRequest | Mapping[str, Any]
    ) -> SubmitRequestResponse:
        if not isinstance(request, KeyringRequest):
            request = _coerce_request(request)
        return await self.requests.submit(
            request, self.redirect_url, self.redirect_message
        )

    async def approve_request(self, request_id: str, data: Any = None) -> None:
        await self.approvals.approve(request_id, data)

    async def reject_request(self, request_id: str) -> None:
        await self.approvals.reject(request_id)

    # ------------------------------------------------------------------
    # Approval mode
    # ------------------------------------------------------------------

    async def get_approval_mode(self) -> bool:
        return self.state.approval_mode

    async def set_approval_mode(self, enabled: bool) -> None:
        self.state.approval_mode = bool(enabled)
        await self.persister.persist(self.state)


def _coerce_request(raw: Mapping[str, Any]) -> KeyringRequest:
    """Validate a flat or ``{request: {method, params}}`` shaped request."""
    try:
        return KeyringRequest.model_validate(dict(raw))
    except ValueError as exc:
        raise InvalidDataError(f"Invalid request: {exc}") from exc
