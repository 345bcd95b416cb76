"""Approval coordinator: validates approval payloads and resolves requests."""

from __future__ import annotations

import json
import logging
from typing import Any

from keyring_broker.core.gateway import EventEmitter
from keyring_broker.core.requests import RequestQueue
from keyring_broker.errors import InvalidDataError, UnsupportedMethodError
from keyring_broker.storage.models import EthMethod, KeyringEvent

logger = logging.getLogger("keyring_broker.approval")

# Methods whose result is the signature string in ``data["data"]``.
STRING_PAYLOAD_METHODS = frozenset(
    {
        EthMethod.PERSONAL_SIGN.value,
        EthMethod.SIGN.value,
        EthMethod.SIGN_TYPED_DATA_V1.value,
        EthMethod.SIGN_TYPED_DATA_V3.value,
        EthMethod.SIGN_TYPED_DATA_V4.value,
        EthMethod.SIGN_USER_OPERATION.value,
    }
)

# Methods whose result is the whole approval object.
STRUCTURED_PAYLOAD_METHODS = frozenset(
    {
        EthMethod.SIGN_TRANSACTION.value,
        EthMethod.PREPARE_USER_OPERATION.value,
        EthMethod.PATCH_USER_OPERATION.value,
    }
)


def _describe(data: Any) -> str:
    try:
        return json.dumps(data)
    except (TypeError, ValueError):
        return repr(data)


def shape_result(method: str, data: Any) -> str | dict[str, Any]:
    """Turn an approval payload into the result for *method*.

    Raises
    ------
    InvalidDataError
        If *data* does not have the shape *method* expects.
    UnsupportedMethodError
        If *method* is not a known signing method.
    """
    if method in STRING_PAYLOAD_METHODS:
        if isinstance(data, dict) and isinstance(data.get("data"), str):
            return data["data"]
        raise InvalidDataError(f"Invalid Data {_describe(data)}")
    if method in STRUCTURED_PAYLOAD_METHODS:
        if isinstance(data, dict):
            return data
        raise InvalidDataError(f"Invalid Data {_describe(data)}")
    raise UnsupportedMethodError(f"EVM method '{method}' not supported")


class ApprovalCoordinator:
    """Resolves queued requests.

    Resolution is final once the request is removed and persisted; a failed
    notification afterwards is logged, not raised.
    """

    def __init__(self, queue: RequestQueue, emitter: EventEmitter) -> None:
        self.queue = queue
        self.emitter = emitter

    async def approve(self, request_id: str, data: Any) -> str | dict[str, Any]:
        request = self.queue.get_request(request_id)
        result = shape_result(request.method, data)

        await self.queue.remove(request_id)
        logger.info(f"Request approved: {request.method} (id={request_id})")
        await self._notify(
            KeyringEvent.REQUEST_APPROVED, {"id": request_id, "result": result}
        )
        return result

    async def reject(self, request_id: str) -> None:
        request = self.queue.get_request(request_id)

        await self.queue.remove(request_id)
        logger.info(f"Request rejected: {request.method} (id={request_id})")
        await self._notify(KeyringEvent.REQUEST_REJECTED, {"id": request_id})

    async def _notify(self, event: KeyringEvent, payload: dict[str, Any]) -> None:
        try:
            await self.emitter.emit(event, payload)
        except Exception as e:
            logger.warning(
                f"Failed to emit {event.value} for request {payload['id']}: {e}"
            )
