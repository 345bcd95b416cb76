"""Tests for the request queue and the approval coordinator."""

from __future__ import annotations

import pytest

from keyring_broker.core.approval import shape_result
from keyring_broker.core.keyring import Keyring
from keyring_broker.errors import (
    InvalidDataError,
    NotFoundError,
    StorageError,
    UnsupportedMethodError,
)
from keyring_broker.storage.models import KeyringEvent, KeyringRequest


def _request(request_id: str = "req-1", method: str = "personal_sign", **extra) -> KeyringRequest:
    return KeyringRequest(id=request_id, method=method, params=["0x68656c6c6f", "0xAAA"], **extra)


@pytest.mark.asyncio()
async def test_submit_then_get_returns_same_request(keyring, persister) -> None:
    request = _request()

    response = await keyring.submit_request(request)

    assert await keyring.get_request("req-1") == request
    assert persister.last["pendingRequests"]["req-1"]["method"] == "personal_sign"
    assert response.to_document() == {
        "pending": True,
        "redirect": {"url": "https://approve.example/v1", "message": "Open the approval app"},
    }


@pytest.mark.asyncio()
async def test_submit_without_configured_url_still_succeeds(state, persister, emitter) -> None:
    keyring = Keyring(state, persister, emitter)

    response = await keyring.submit_request(_request())

    assert response.pending is True
    assert response.redirect.url is None
    assert response.to_document()["redirect"]["url"] is None


@pytest.mark.asyncio()
async def test_resubmitting_same_id_overwrites(keyring) -> None:
    await keyring.submit_request(_request(method="personal_sign"))
    await keyring.submit_request(_request(method="eth_signTransaction"))

    requests = await keyring.list_requests()
    assert [r.method for r in requests] == ["eth_signTransaction"]


@pytest.mark.asyncio()
async def test_submit_accepts_nested_envelope(keyring) -> None:
    await keyring.submit_request(
        {
            "id": "req-9",
            "scope": "eip155:1",
            "account": "acc-1",
            "request": {"method": "eth_signTypedData_v4", "params": {"a": 1}},
        }
    )

    stored = await keyring.get_request("req-9")
    assert stored.method == "eth_signTypedData_v4"
    assert stored.params == {"a": 1}
    assert stored.scope == "eip155:1"


@pytest.mark.asyncio()
async def test_submit_rejects_envelope_without_method(keyring) -> None:
    with pytest.raises(InvalidDataError):
        await keyring.submit_request({"id": "req-1"})


@pytest.mark.asyncio()
async def test_get_unknown_request_is_not_found(keyring) -> None:
    with pytest.raises(NotFoundError):
        await keyring.get_request("nope")


@pytest.mark.asyncio()
async def test_approve_string_payload_method(keyring, emitter) -> None:
    await keyring.submit_request(_request())

    await keyring.approve_request("req-1", {"data": "0xdead"})

    assert emitter.of(KeyringEvent.REQUEST_APPROVED) == [{"id": "req-1", "result": "0xdead"}]
    with pytest.raises(NotFoundError):
        await keyring.get_request("req-1")


@pytest.mark.asyncio()
async def test_approve_string_payload_without_data_is_invalid(keyring, emitter) -> None:
    await keyring.submit_request(_request())

    with pytest.raises(InvalidDataError):
        await keyring.approve_request("req-1", {})
    with pytest.raises(InvalidDataError):
        await keyring.approve_request("req-1", {"data": 42})
    with pytest.raises(InvalidDataError):
        await keyring.approve_request("req-1", None)

    assert await keyring.get_request("req-1")
    assert emitter.events == []


@pytest.mark.asyncio()
async def test_approve_structured_payload_method(keyring, emitter) -> None:
    await keyring.submit_request(_request(method="eth_signTransaction"))

    await keyring.approve_request("req-1", {"to": "0x1", "value": "1"})

    assert emitter.of(KeyringEvent.REQUEST_APPROVED) == [
        {"id": "req-1", "result": {"to": "0x1", "value": "1"}}
    ]


@pytest.mark.asyncio()
async def test_approve_structured_payload_rejects_non_object(keyring) -> None:
    await keyring.submit_request(_request(method="eth_signTransaction"))

    with pytest.raises(InvalidDataError):
        await keyring.approve_request("req-1", "not-an-object")

    assert await keyring.get_request("req-1")


@pytest.mark.asyncio()
async def test_approve_unknown_method_is_unsupported(keyring) -> None:
    await keyring.submit_request(_request(method="eth_sendTransaction"))

    with pytest.raises(UnsupportedMethodError):
        await keyring.approve_request("req-1", {"data": "0x"})

    assert await keyring.get_request("req-1")


@pytest.mark.asyncio()
async def test_approve_unknown_request_is_not_found(keyring) -> None:
    with pytest.raises(NotFoundError):
        await keyring.approve_request("missing", {"data": "0x"})


@pytest.mark.asyncio()
async def test_reject_removes_request_and_notifies(keyring, emitter, persister) -> None:
    await keyring.submit_request(_request())

    await keyring.reject_request("req-1")

    assert emitter.of(KeyringEvent.REQUEST_REJECTED) == [{"id": "req-1"}]
    assert persister.last["pendingRequests"] == {}
    with pytest.raises(NotFoundError):
        await keyring.reject_request("req-1")


@pytest.mark.asyncio()
async def test_resolution_survives_notification_failure(keyring, emitter) -> None:
    await keyring.submit_request(_request("a"))
    await keyring.submit_request(_request("b"))
    emitter.failing.update({KeyringEvent.REQUEST_APPROVED, KeyringEvent.REQUEST_REJECTED})

    await keyring.approve_request("a", {"data": "0x01"})
    await keyring.reject_request("b")

    assert await keyring.list_requests() == []


@pytest.mark.asyncio()
async def test_storage_failure_surfaces_after_removal(keyring, persister) -> None:
    await keyring.submit_request(_request())
    persister.fail = True

    with pytest.raises(StorageError):
        await keyring.reject_request("req-1")

    assert await keyring.list_requests() == []


@pytest.mark.asyncio()
async def test_delete_account_leaves_orphaned_requests_by_default(keyring) -> None:
    account = await keyring.create_account({"address": "0xAAA"})
    await keyring.submit_request(_request(account=account.id))

    await keyring.delete_account(account.id)

    assert [r.id for r in await keyring.list_requests()] == ["req-1"]


@pytest.mark.asyncio()
async def test_delete_account_can_reject_orphaned_requests(state, persister, emitter) -> None:
    keyring = Keyring(state, persister, emitter, reject_orphaned_requests=True)
    account = await keyring.create_account({"address": "0xAAA"})
    await keyring.submit_request(_request("mine", account=account.id))
    await keyring.submit_request(_request("other", account="someone-else"))

    await keyring.delete_account(account.id)

    assert [r.id for r in await keyring.list_requests()] == ["other"]
    assert emitter.of(KeyringEvent.REQUEST_REJECTED) == [{"id": "mine"}]


@pytest.mark.asyncio()
async def test_approval_mode_is_persisted(keyring, persister) -> None:
    assert await keyring.get_approval_mode() is False

    await keyring.set_approval_mode(True)

    assert await keyring.get_approval_mode() is True
    assert persister.last["approvalMode"] is True


@pytest.mark.parametrize(
    "method",
    [
        "personal_sign",
        "eth_sign",
        "eth_signTypedData_v1",
        "eth_signTypedData_v3",
        "eth_signTypedData_v4",
        "eth_signUserOperation",
    ],
)
def test_shape_result_string_methods(method: str) -> None:
    assert shape_result(method, {"data": "0xbeef", "extra": 1}) == "0xbeef"


@pytest.mark.parametrize(
    "method",
    ["eth_signTransaction", "eth_prepareUserOperation", "eth_patchUserOperation"],
)
def test_shape_result_structured_methods(method: str) -> None:
    payload = {"callData": "0x", "gasLimits": {"callGas": "0x1"}}
    assert shape_result(method, payload) is payload


@pytest.mark.asyncio()
async def test_enveloped_request_is_persisted_in_its_envelope(keyring, persister) -> None:
    submitted = {
        "id": "req-9",
        "scope": "eip155:1",
        "account": "acc-1",
        "request": {"method": "personal_sign", "params": ["0x1", "0x2"]},
    }

    await keyring.submit_request(submitted)

    assert persister.last["pendingRequests"]["req-9"] == submitted
    reloaded = KeyringRequest.model_validate(persister.last["pendingRequests"]["req-9"])
    assert reloaded == await keyring.get_request("req-9")
    assert reloaded.to_document() == submitted
