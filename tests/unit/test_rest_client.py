"""Tests for FirestoreRESTClient request building and status classification."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from firestore_connector.application.dtos.batch import BatchOperation
from firestore_connector.domain.exceptions import (
    AuthenticationException,
    DocumentExistsException,
    ResourceNotFoundException,
    TransportException,
    ValidationException,
)
from firestore_connector.infrastructure.firebase._rest_client import FirestoreRESTClient
from firestore_connector.infrastructure.firebase.credentials import CredentialManager
from tests.conftest import PROJECT_ID

ROOT = f"projects/{PROJECT_ID}/databases/(default)/documents"


class FirestoreStub:
    """MockTransport handler returning queued (status, body) pairs."""

    def __init__(self, *responses: tuple[int, object]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.pop(0) if self.responses else (200, {})
        return httpx.Response(status, json=body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> dict:
        return json.loads(self.last.content)


def _client(stub: FirestoreStub) -> tuple[FirestoreRESTClient, MagicMock]:
    creds = MagicMock(spec=CredentialManager)
    creds.get_bearer_token.return_value = "test-token"
    http = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    return FirestoreRESTClient(PROJECT_ID, creds, http_client=http), creds


def _doc(doc_id: str, **fields) -> dict:
    return {"name": f"{ROOT}/users/{doc_id}", "fields": fields}


@pytest.mark.asyncio
async def test_get_decodes_document_and_sends_bearer_token() -> None:
    stub = FirestoreStub((200, _doc("u1", name={"stringValue": "Ann"})))
    db, creds = _client(stub)
    assert await db.get("users", "u1") == {"name": "Ann", "id": "u1"}
    assert stub.last.method == "GET"
    assert stub.last.url.path.endswith("/documents/users/u1")
    assert stub.last.headers["Authorization"] == "Bearer test-token"
    creds.get_bearer_token.assert_called_once()


@pytest.mark.asyncio
async def test_get_missing_document_returns_none() -> None:
    db, _ = _client(FirestoreStub((404, {"error": {"status": "NOT_FOUND"}})))
    assert await db.get("users", "nope") is None


@pytest.mark.asyncio
async def test_get_document_without_fields() -> None:
    db, _ = _client(FirestoreStub((200, {"name": f"{ROOT}/users/empty"})))
    assert await db.get("users", "empty") == {"id": "empty"}


@pytest.mark.asyncio
async def test_add_with_id_and_conflict() -> None:
    stub = FirestoreStub((200, _doc("u1")), (409, {"error": {"status": "ALREADY_EXISTS"}}))
    db, _ = _client(stub)
    assert await db.add("users", {"age": 30}, document_id="u1") == "u1"
    assert stub.last.method == "POST"
    assert stub.last.url.params["documentId"] == "u1"
    assert stub.last_json() == {"fields": {"age": {"integerValue": "30"}}}

    with pytest.raises(DocumentExistsException):
        await db.add("users", {"age": 30}, document_id="u1")


@pytest.mark.asyncio
async def test_add_returns_server_assigned_id() -> None:
    db, _ = _client(FirestoreStub((200, _doc("auto123"))))
    assert await db.add("users", {"a": 1}) == "auto123"


@pytest.mark.asyncio
async def test_set_merge_sends_mask_of_data_keys() -> None:
    stub = FirestoreStub()
    db, _ = _client(stub)
    await db.set("users", "u1", {"age": 29, "city": "Boston"}, merge=True)
    assert stub.last.method == "PATCH"
    assert stub.last.url.params.get_list("updateMask.fieldPaths") == ["age", "city"]

    await db.set("users", "u1", {"age": 29})
    assert "updateMask.fieldPaths" not in stub.last.url.params


@pytest.mark.asyncio
async def test_update_requires_existing_document() -> None:
    stub = FirestoreStub((200, {}), (404, {}))
    db, _ = _client(stub)
    await db.update("users", "u1", {"age": 29, "city": "Boston"}, update_mask=["age"])
    assert stub.last.url.params.get_list("updateMask.fieldPaths") == ["age"]
    assert stub.last.url.params["currentDocument.exists"] == "true"

    with pytest.raises(ResourceNotFoundException) as exc_info:
        await db.update("users", "gone", {"age": 1})
    assert exc_info.value.error_code == "RESOURCE_NOT_FOUND"


@pytest.mark.asyncio
async def test_writes_with_no_fields_send_no_request() -> None:
    stub = FirestoreStub()
    db, creds = _client(stub)
    await db.update("users", "u1", {})
    await db.update("users", "u1", {"age": 1}, update_mask=[])
    await db.set("users", "u1", {}, merge=True)
    assert stub.requests == []
    creds.get_bearer_token.assert_not_called()


@pytest.mark.asyncio
async def test_set_replace_with_empty_data_is_sent() -> None:
    stub = FirestoreStub()
    db, _ = _client(stub)
    await db.set("users", "u1", {})
    assert stub.last.method == "PATCH"
    assert stub.last_json() == {"fields": {}}


@pytest.mark.asyncio
async def test_update_and_merge_masks_quote_data_keys() -> None:
    stub = FirestoreStub()
    db, _ = _client(stub)
    await db.update("users", "u1", {"first-name": "A", "a.b": 1})
    assert stub.last.url.params.get_list("updateMask.fieldPaths") == ["`first-name`", "`a.b`"]
    assert set(stub.last_json()["fields"]) == {"first-name", "a.b"}

    await db.set("users", "u1", {"first-name": "B"}, merge=True)
    assert stub.last.url.params.get_list("updateMask.fieldPaths") == ["`first-name`"]

    await db.update("users", "u1", {"address": {"city": "X"}}, update_mask=["address.city"])
    assert stub.last.url.params.get_list("updateMask.fieldPaths") == ["address.city"]


@pytest.mark.asyncio
async def test_delete_is_idempotent() -> None:
    stub = FirestoreStub((404, {}))
    db, _ = _client(stub)
    await db.delete("users", "gone")
    assert stub.last.method == "DELETE"


@pytest.mark.asyncio
async def test_query_posts_structured_query_to_parent() -> None:
    stub = FirestoreStub(
        (200, [{"document": _doc("u1", age={"integerValue": "40"})}, {"readTime": "t"}])
    )
    db, _ = _client(stub)
    out = await db.query(
        "users", {"age": {">=": 18, "<": 65}}, order_by=[("age", "desc")], limit=10
    )
    assert out == [{"age": 40, "id": "u1"}]
    assert stub.last.url.path.endswith("/documents:runQuery")
    structured = stub.last_json()["structuredQuery"]
    assert structured["from"] == [{"collectionId": "users"}]
    assert len(structured["where"]["compositeFilter"]["filters"]) == 2
    assert structured["limit"] == 10


@pytest.mark.asyncio
async def test_find_on_subcollection_uses_parent_document() -> None:
    stub = FirestoreStub((200, []))
    db, _ = _client(stub)
    assert await db.find("users/u1/orders", {"status": "open"}) == []
    assert stub.last.url.path.endswith("/documents/users/u1:runQuery")
    structured = stub.last_json()["structuredQuery"]
    assert structured["from"] == [{"collectionId": "orders"}]
    assert structured["where"]["fieldFilter"]["op"] == "EQUAL"


@pytest.mark.asyncio
async def test_count() -> None:
    stub = FirestoreStub(
        (200, [{"result": {"aggregateFields": {"count": {"integerValue": "7"}}}}])
    )
    db, _ = _client(stub)
    assert await db.count("users", {"active": True}) == 7
    assert stub.last.url.path.endswith("/documents:runAggregationQuery")


@pytest.mark.asyncio
async def test_batch_write_correlates_results() -> None:
    stub = FirestoreStub(
        (200, {"writeResults": [{"updateTime": "2025-01-15T12:00:00Z"}, {}], "status": [{}, {"code": 9}]})
    )
    db, _ = _client(stub)
    ops = [
        BatchOperation("create", "users", document_id="u1", data={"a": 1}),
        BatchOperation("delete", "users", document_id="u2"),
    ]
    results = await db.batch_write(ops)
    assert [r.success for r in results] == [True, False]
    assert stub.last.url.path.endswith("/documents:batchWrite")
    writes = stub.last_json()["writes"]
    assert writes[0]["currentDocument"] == {"exists": False}
    assert writes[1] == {"delete": f"{ROOT}/users/u2"}


@pytest.mark.asyncio
async def test_batch_write_validation_sends_nothing() -> None:
    stub = FirestoreStub()
    db, _ = _client(stub)
    with pytest.raises(ValidationException):
        await db.batch_write([BatchOperation("delete", "users")])
    assert stub.requests == []


@pytest.mark.asyncio
async def test_server_error_is_transport_exception() -> None:
    db, _ = _client(FirestoreStub((503, {"error": {"status": "UNAVAILABLE"}})))
    with pytest.raises(TransportException) as exc_info:
        await db.get("users", "u1")
    assert exc_info.value.status_code == 503
    assert exc_info.value.details["body"] == {"error": {"status": "UNAVAILABLE"}}


@pytest.mark.asyncio
async def test_unauthorized_invalidates_cached_token() -> None:
    db, creds = _client(FirestoreStub((401, {"error": {"status": "UNAUTHENTICATED"}})))
    with pytest.raises(AuthenticationException):
        await db.get("users", "u1")
    creds.invalidate.assert_called_once()


@pytest.mark.asyncio
async def test_invalid_document_id() -> None:
    db, _ = _client(FirestoreStub())
    with pytest.raises(ValidationException):
        await db.get("users", "a/b")


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open() -> None:
    stub = FirestoreStub()
    db, _ = _client(stub)
    await db.aclose()
    assert not db._http.is_closed
