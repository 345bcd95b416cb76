"""Origin permission table for keyring RPC methods."""

from __future__ import annotations

from enum import Enum
from typing import Mapping, Sequence


class KeyringRpcMethod(str, Enum):
    LIST_ACCOUNTS = "keyring_listAccounts"
    GET_ACCOUNT = "keyring_getAccount"
    CREATE_ACCOUNT = "keyring_createAccount"
    FILTER_ACCOUNT_CHAINS = "keyring_filterAccountChains"
    UPDATE_ACCOUNT = "keyring_updateAccount"
    DELETE_ACCOUNT = "keyring_deleteAccount"
    LIST_REQUESTS = "keyring_listRequests"
    GET_REQUEST = "keyring_getRequest"
    SUBMIT_REQUEST = "keyring_submitRequest"
    APPROVE_REQUEST = "keyring_approveRequest"
    REJECT_REQUEST = "keyring_rejectRequest"


class InternalMethod(str, Enum):
    IS_PENDING_CREATION = "snap.internal.isPendingCreation"


def default_origin_permissions() -> dict[str, list[str]]:
    """Return the built-in origin -> allowed methods table.

    The host wallet may read accounts, delete them and queue requests. The
    companion approval app, served locally in development and from its
    hosted origin otherwise, manages accounts and resolves requests.
    """
    companion_methods = [
        KeyringRpcMethod.LIST_ACCOUNTS.value,
        KeyringRpcMethod.GET_ACCOUNT.value,
        KeyringRpcMethod.CREATE_ACCOUNT.value,
        KeyringRpcMethod.UPDATE_ACCOUNT.value,
        KeyringRpcMethod.DELETE_ACCOUNT.value,
        KeyringRpcMethod.LIST_REQUESTS.value,
        KeyringRpcMethod.GET_REQUEST.value,
        KeyringRpcMethod.APPROVE_REQUEST.value,
        KeyringRpcMethod.REJECT_REQUEST.value,
        InternalMethod.IS_PENDING_CREATION.value,
    ]
    return {
        "metamask": [
            KeyringRpcMethod.LIST_ACCOUNTS.value,
            KeyringRpcMethod.GET_ACCOUNT.value,
            KeyringRpcMethod.DELETE_ACCOUNT.value,
            KeyringRpcMethod.LIST_REQUESTS.value,
            KeyringRpcMethod.GET_REQUEST.value,
            KeyringRpcMethod.SUBMIT_REQUEST.value,
            KeyringRpcMethod.REJECT_REQUEST.value,
        ],
        "http://localhost:8000": list(companion_methods),
        "https://gardiometamasksnap.web.app": list(companion_methods),
    }


def has_permission(
    permissions: Mapping[str, Sequence[str]], origin: str, method: str
) -> bool:
    """Check whether *origin* may call *method*."""
    return method in permissions.get(origin, ())
