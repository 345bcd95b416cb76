"""Pydantic models for the keyring state document.

The persisted layout uses camelCase keys (``pendingRequests``,
``derivationPath``, ...) so the document stays readable by the host
application; Python code uses the snake_case attribute names.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    SerializerFunctionWrapHandler,
    model_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class EthMethod(str, Enum):
    PERSONAL_SIGN = "personal_sign"
    SIGN = "eth_sign"
    SIGN_TRANSACTION = "eth_signTransaction"
    SIGN_TYPED_DATA_V1 = "eth_signTypedData_v1"
    SIGN_TYPED_DATA_V3 = "eth_signTypedData_v3"
    SIGN_TYPED_DATA_V4 = "eth_signTypedData_v4"
    PREPARE_USER_OPERATION = "eth_prepareUserOperation"
    PATCH_USER_OPERATION = "eth_patchUserOperation"
    SIGN_USER_OPERATION = "eth_signUserOperation"


class EthAccountType(str, Enum):
    EOA = "eip155:eoa"
    ERC4337 = "eip155:erc4337"


class KeyringEvent(str, Enum):
    ACCOUNT_CREATED = "notify:accountCreated"
    ACCOUNT_UPDATED = "notify:accountUpdated"
    ACCOUNT_DELETED = "notify:accountDeleted"
    REQUEST_APPROVED = "notify:requestApproved"
    REQUEST_REJECTED = "notify:requestRejected"


class WalletStatus(str, Enum):
    CREATING = "creating"
    ACTIVE = "active"


# Methods every account of a given type declares support for.
ACCOUNT_METHODS: dict[EthAccountType, list[EthMethod]] = {
    EthAccountType.EOA: [
        EthMethod.PERSONAL_SIGN,
        EthMethod.SIGN,
        EthMethod.SIGN_TRANSACTION,
        EthMethod.SIGN_TYPED_DATA_V1,
        EthMethod.SIGN_TYPED_DATA_V3,
        EthMethod.SIGN_TYPED_DATA_V4,
    ],
}


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class _DocumentModel(BaseModel):
    """Base for models that round-trip through the persisted JSON document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Record models
# ---------------------------------------------------------------------------

class KeyringAccount(_DocumentModel):
    """An address record exposed to callers."""

    id: str
    address: str
    options: dict[str, Any] = Field(default_factory=dict)
    methods: list[str] = Field(default_factory=list)
    type: str = EthAccountType.EOA.value


class Wallet(_DocumentModel):
    """Internal record pairing an account with its derivation metadata."""

    account: KeyringAccount
    derivation_path: str = ""
    status: WalletStatus = WalletStatus.ACTIVE

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_flag(cls, data: Any) -> Any:
        # Older documents stored a bare ``pendingCreation`` boolean.
        if isinstance(data, dict) and "pendingCreation" in data and "status" not in data:
            data = dict(data)
            pending = data.pop("pendingCreation")
            data["status"] = WalletStatus.CREATING if pending else WalletStatus.ACTIVE
        return data

    @property
    def pending_creation(self) -> bool:
        return self.status == WalletStatus.CREATING


class KeyringRequest(_DocumentModel):
    """A signing or transaction request awaiting approval.

    Accepts both the flat ``{id, method, params}`` shape and the host's
    ``{id, scope, account, request: {method, params}}`` envelope, and
    serializes back to whichever shape it was given.
    """

    id: str
    method: str
    params: Any = None
    account: Optional[str] = None
    scope: Optional[str] = None

    _enveloped: bool = PrivateAttr(default=False)

    @model_validator(mode="wrap")
    @classmethod
    def _unwrap_envelope(cls, data: Any, handler: Any) -> Any:
        if not isinstance(data, dict):
            return handler(data)
        inner = data.get("request")
        if isinstance(inner, dict):
            data = {k: v for k, v in data.items() if k != "request"}
            data.setdefault("method", inner.get("method"))
            if "params" in inner:
                data.setdefault("params", inner["params"])
        request = handler(data)
        request._enveloped = isinstance(inner, dict)
        return request

    @model_serializer(mode="wrap")
    def _rewrap_envelope(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if self._enveloped:
            inner = {"method": data.pop("method")}
            if "params" in data:
                inner["params"] = data.pop("params")
            data["request"] = inner
        return data


class KeyringState(_DocumentModel):
    """The single aggregate root, loaded once and mutated in place."""

    wallets: dict[str, Wallet] = Field(default_factory=dict)
    pending_requests: dict[str, KeyringRequest] = Field(default_factory=dict)
    approval_mode: bool = False
    account_counter: int = 0

    @model_validator(mode="after")
    def _counter_covers_wallets(self) -> KeyringState:
        if self.account_counter < len(self.wallets):
            self.account_counter = len(self.wallets)
        return self


class Redirect(_DocumentModel):
    url: Optional[str] = None
    message: str = ""


class SubmitRequestResponse(_DocumentModel):
    """Acknowledgement returned by ``submit_request``.

    ``pending`` is always true: the request is resolved out-of-band on the
    approval surface, never through this response.
    """

    pending: bool = True
    redirect: Redirect = Field(default_factory=Redirect)

    def to_document(self) -> dict[str, Any]:
        # ``url`` may be unset, but the key stays in the payload.
        return self.model_dump(mode="json", by_alias=True)
