"""Request queue: owns the pending-requests map of the keyring state."""

from __future__ import annotations

import logging
from typing import Optional

from keyring_broker.core.gateway import StatePersister
from keyring_broker.errors import NotFoundError
from keyring_broker.storage.models import (
    KeyringRequest,
    KeyringState,
    Redirect,
    SubmitRequestResponse,
)

logger = logging.getLogger("keyring_broker.requests")


class RequestQueue:
    """Stores submitted requests until they are approved or rejected."""

    def __init__(self, state: KeyringState, persister: StatePersister) -> None:
        self.state = state
        self.persister = persister

    def list_requests(self) -> list[KeyringRequest]:
        return list(self.state.pending_requests.values())

    def get_request(self, request_id: str) -> KeyringRequest:
        request = self.state.pending_requests.get(request_id)
        if request is None:
            raise NotFoundError(f"Request '{request_id}' not found")
        return request

    def requests_for_account(self, account_id: str) -> list[KeyringRequest]:
        return [
            r for r in self.state.pending_requests.values() if r.account == account_id
        ]

    async def submit(
        self,
        request: KeyringRequest,
        redirect_url: Optional[str],
        message: str,
    ) -> SubmitRequestResponse:
        """Queue *request* (replacing any request with the same id).

        The response only tells the caller where to go to approve it; the
        result arrives later through the host's event channel.
        """
        self.state.pending_requests[request.id] = request
        await self.persister.persist(self.state)
        logger.info(f"Request submitted: {request.method} (id={request.id})")
        return SubmitRequestResponse(
            pending=True,
            redirect=Redirect(url=redirect_url, message=message),
        )

    async def remove(self, request_id: str) -> KeyringRequest:
        """Drop a resolved request and persist, as one step."""
        request = self.state.pending_requests.pop(request_id)
        await self.persister.persist(self.state)
        return request
