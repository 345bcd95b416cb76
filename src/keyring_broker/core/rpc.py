"""Keyring JSON-RPC dispatch and the origin permission gate.

``on_keyring_request`` is the entry point a host transport calls for each
incoming request. The process-wide keyring behind it is created lazily on
first use and lives until the process exits.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from keyring_broker.config import BrokerConfig, get_profile_dir, load_config
from keyring_broker.core.keyring import Keyring
from keyring_broker.core.permissions import InternalMethod, KeyringRpcMethod, has_permission
from keyring_broker.core.service import KeyringService
from keyring_broker.errors import InvalidDataError, PermissionDeniedError, UnsupportedMethodError

logger = logging.getLogger("keyring_broker.rpc")


# ---------------------------------------------------------------------------
# Request / params models
# ---------------------------------------------------------------------------

class RpcRequest(BaseModel):
    jsonrpc: str = "2.0"
    id: Optional[str | int] = None
    method: str
    params: Any = None


class _IdParams(BaseModel):
    id: str


class _CreateAccountParams(BaseModel):
    options: dict[str, Any] = Field(default_factory=dict)


class _FilterChainsParams(BaseModel):
    id: str
    chains: list[str]


class _UpdateAccountParams(BaseModel):
    account: dict[str, Any]


class _ApproveParams(BaseModel):
    id: str
    data: Any = None


def _params(model: type[BaseModel], params: Any) -> Any:
    try:
        return model.model_validate(params if params is not None else {})
    except ValidationError as exc:
        raise InvalidDataError(f"Invalid params: {exc}") from exc


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

async def handle_keyring_request(keyring: Keyring, request: dict[str, Any]) -> Any:
    """Run one keyring RPC request and return a JSON-ready result."""
    try:
        rpc = RpcRequest.model_validate(request)
    except ValidationError as exc:
        raise InvalidDataError(f"Invalid keyring request: {exc}") from exc

    method, params = rpc.method, rpc.params

    if method == KeyringRpcMethod.LIST_ACCOUNTS:
        return [a.to_document() for a in await keyring.list_accounts()]

    if method == KeyringRpcMethod.GET_ACCOUNT:
        p = _params(_IdParams, params)
        return (await keyring.get_account(p.id)).to_document()

    if method == KeyringRpcMethod.CREATE_ACCOUNT:
        p = _params(_CreateAccountParams, params)
        return (await keyring.create_account(p.options)).to_document()

    if method == KeyringRpcMethod.FILTER_ACCOUNT_CHAINS:
        p = _params(_FilterChainsParams, params)
        return await keyring.filter_account_chains(p.id, p.chains)

    if method == KeyringRpcMethod.UPDATE_ACCOUNT:
        p = _params(_UpdateAccountParams, params)
        await keyring.update_account(p.account)
        return None

    if method == KeyringRpcMethod.DELETE_ACCOUNT:
        p = _params(_IdParams, params)
        await keyring.delete_account(p.id)
        return None

    if method == KeyringRpcMethod.LIST_REQUESTS:
        return [r.to_document() for r in await keyring.list_requests()]

    if method == KeyringRpcMethod.GET_REQUEST:
        p = _params(_IdParams, params)
        return (await keyring.get_request(p.id)).to_document()

    if method == KeyringRpcMethod.SUBMIT_REQUEST:
        if not isinstance(params, dict):
            raise InvalidDataError("submitRequest expects a request object")
        return (await keyring.submit_request(params)).to_document()

    if method == KeyringRpcMethod.APPROVE_REQUEST:
        p = _params(_ApproveParams, params)
        await keyring.approve_request(p.id, p.data)
        return None

    if method == KeyringRpcMethod.REJECT_REQUEST:
        p = _params(_IdParams, params)
        await keyring.reject_request(p.id)
        return None

    if method == InternalMethod.IS_PENDING_CREATION:
        return await keyring.is_pending_creation()

    raise UnsupportedMethodError(f"Method '{method}' not supported")


# ---------------------------------------------------------------------------
# Process-wide keyring
# ---------------------------------------------------------------------------

ServiceFactory = Callable[[], Awaitable[KeyringService]]
ConfigLoader = Callable[[], BrokerConfig]


def _default_config() -> BrokerConfig:
    return load_config(get_profile_dir(create=False) / "config.yaml")


_service: KeyringService | None = None
_service_factory: ServiceFactory = KeyringService.load
_config_loader: ConfigLoader = _default_config


def set_service_factory(factory: ServiceFactory) -> None:
    """Choose how the process-wide service is built (called by the host on startup)."""
    global _service_factory
    _service_factory = factory


def set_config_loader(loader: ConfigLoader) -> None:
    """Choose where permissions come from before the service is loaded."""
    global _config_loader
    _config_loader = loader


def set_service(service: KeyringService | None) -> None:
    """Install (or clear, with ``None``) the process-wide service."""
    global _service
    _service = service


async def get_service() -> KeyringService:
    """Return the service, creating it from storage on first use."""
    global _service
    if _service is None:
        service = await _service_factory()
        # Another caller may have finished loading while we awaited.
        if _service is None:
            _service = service
        else:
            await service.shutdown()
    return _service


async def get_keyring() -> Keyring:
    return (await get_service()).keyring


async def on_keyring_request(origin: str, request: dict[str, Any]) -> Any:
    """Check *origin* against the permission table, then dispatch *request*."""
    logger.debug(
        f'Keyring request (origin="{origin}"): {json.dumps(request, indent=2, default=str)}'
    )
    method = request.get("method") if isinstance(request, dict) else None
    # Storage is only opened once the origin is known to be allowed.
    config = _service.config if _service is not None else _config_loader()
    if not isinstance(method, str) or not has_permission(
        config.permissions, origin, method
    ):
        raise PermissionDeniedError(
            f"Origin '{origin}' is not allowed to call '{method}'"
        )
    service = await get_service()
    return await handle_keyring_request(service.keyring, request)
