"""Thin Firestore REST API client (no firebase-admin).

Uses CredentialManager for service account tokens and Firestore REST v1.
All HTTP calls use httpx.AsyncClient so they do not block the event loop;
token refresh (synchronous, lock-protected) runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx

from firestore_connector.application.dtos.batch import (
    BatchOperation,
    BatchWriteResult,
    UpdateOptions,
)
from firestore_connector.core.constants import (
    DEFAULT_DATABASE_ID,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    FIRESTORE_BASE_URL,
)
from firestore_connector.domain.exceptions import (
    AuthenticationException,
    DocumentExistsException,
    ResourceNotFoundException,
    TransportException,
    ValidationException,
)
from firestore_connector.infrastructure.firebase._batch import (
    compose_writes_with_paths,
    correlate_write_results,
    resolve_update_mask,
)
from firestore_connector.infrastructure.firebase._query import (
    build_advanced_filter,
    build_count_query,
    build_equality_filter,
    build_structured_query,
)
from firestore_connector.infrastructure.firebase._response import (
    document_id_from_name,
    parse_count,
    parse_document,
    parse_documents,
)
from firestore_connector.infrastructure.firebase._rest_encoding import (
    encode_document,
)
from firestore_connector.infrastructure.firebase.credentials import CredentialManager
from firestore_connector.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def _response_body(resp: httpx.Response) -> Any:
    raw = resp.content
    if not raw:
        return None
    try:
        return json.loads(raw.decode())
    except ValueError:
        return resp.text


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    body: Any = None,
    access_token: str | None = None,
    params: Sequence[tuple[str, str]] | None = None,
) -> Any:
    """Perform async HTTP request to Firestore REST API and classify failures.

    Raises:
        ResourceNotFoundException: 404.
        DocumentExistsException: 409.
        AuthenticationException: 401/403.
        TransportException: Any other non-2xx status, or a network error.
    """
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    if method not in ("GET", "POST", "PATCH", "DELETE"):
        raise ValueError(f"Unsupported method: {method!r}")
    try:
        resp = await client.request(
            method,
            url,
            headers=headers,
            params=list(params) if params else None,
            json=body if method in ("POST", "PATCH") else None,
        )
    except httpx.HTTPError as e:
        raise TransportException(f"{method} {url} failed: {e!s}") from e

    if resp.status_code == 404:
        raise ResourceNotFoundException("document", url.split("/v1/", 1)[-1])
    if resp.status_code == 409:
        raise DocumentExistsException(url.split("/v1/", 1)[-1])
    if resp.status_code in (401, 403):
        raise AuthenticationException(
            f"Firestore rejected credentials (HTTP {resp.status_code})",
            {"status_code": resp.status_code, "body": _response_body(resp)},
        )
    if not 200 <= resp.status_code < 300:
        raise TransportException(
            f"{method} {url} returned HTTP {resp.status_code}",
            status_code=resp.status_code,
            body=_response_body(resp),
        )
    if method == "DELETE":
        return {}
    body_out = _response_body(resp)
    return {} if body_out is None else body_out


def _mask_params(mask: Sequence[str] | None) -> list[tuple[str, str]]:
    return [("updateMask.fieldPaths", path) for path in mask or ()]


def _split_collection(path: str) -> tuple[str, str]:
    """'users/u1/orders' -> ('users/u1', 'orders'); 'users' -> ('', 'users')."""
    path = path.strip("/")
    if not path:
        raise ValidationException("Collection path is empty", field="collection")
    parent, _, collection_id = path.rpartition("/")
    return parent, collection_id


class FirestoreRESTClient:
    """Lightweight Firestore client using the REST API (no firebase-admin).

    Collections may be nested paths such as 'users/u1/orders'. Documents are
    returned as plain dicts with their ID under "id".
    """

    def __init__(
        self,
        project_id: str,
        credentials: CredentialManager,
        *,
        database_id: str = DEFAULT_DATABASE_ID,
        base_url: str = FIRESTORE_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._base = base_url.rstrip("/")
        self._prefix = f"projects/{project_id}/databases/{database_id}/documents"
        self._http = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(timeout=timeout)
        )
        self._owns_http = http_client is None

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def documents_root(self) -> str:
        """projects/{project}/databases/{database}/documents."""
        return self._prefix

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str:
        """Return a valid access token; refreshes in thread pool to avoid blocking."""
        return await asyncio.to_thread(self._credentials.get_bearer_token)

    async def _call(
        self,
        url: str,
        method: str = "GET",
        body: Any = None,
        params: Sequence[tuple[str, str]] | None = None,
    ) -> Any:
        try:
            return await _request_async(
                self._http,
                url,
                method=method,
                body=body,
                access_token=await self.get_token(),
                params=params,
            )
        except AuthenticationException as e:
            if e.details.get("status_code") == 401:
                # Revoked or rotated key: force a fresh exchange on the next call.
                self._credentials.invalidate()
            raise

    def _document_url(self, collection: str, document_id: str) -> str:
        if not document_id or "/" in document_id:
            raise ValidationException(
                f"Invalid document ID: {document_id!r}", field="document_id"
            )
        return f"{self._base}/{self._prefix}/{collection.strip('/')}/{quote(document_id, safe='')}"

    def _parent_url(self, collection: str) -> tuple[str, str]:
        parent, collection_id = _split_collection(collection)
        parent_path = f"{self._prefix}/{parent}" if parent else self._prefix
        return f"{self._base}/{parent_path}", collection_id

    async def add(
        self,
        collection: str,
        data: Mapping[str, Any],
        document_id: str | None = None,
    ) -> str:
        """Create a document and return its ID (server-assigned when not given).

        Raises:
            DocumentExistsException: document_id is already taken.
        """
        parent_url, collection_id = self._parent_url(collection)
        url = f"{parent_url}/{collection_id}"
        params = [("documentId", document_id)] if document_id else None
        out = await self._call(url, method="POST", body=encode_document(data), params=params)
        doc_id = document_id_from_name(out.get("name", "")) or (document_id or "")
        logger.debug("Created document %s/%s", collection, doc_id)
        return doc_id

    async def set(
        self,
        collection: str,
        document_id: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        """Create or overwrite the document (PATCH).

        With merge=True only the fields in data are written; other existing
        fields are kept, and an empty data mapping writes nothing.
        """
        url = self._document_url(collection, document_id)
        mask = resolve_update_mask(data, UpdateOptions(merge=merge))
        if mask == []:
            logger.debug(
                "Merge of no fields into %s/%s skipped", collection, document_id
            )
            return
        params = _mask_params(mask)
        await self._call(url, method="PATCH", body=encode_document(data), params=params)

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Fetch the document; returns None if not found."""
        url = self._document_url(collection, document_id)
        try:
            out = await self._call(url)
        except ResourceNotFoundException:
            return None
        if "fields" not in out:
            # A document with no fields is valid; the API omits the member.
            return {"id": document_id_from_name(out.get("name", "")) or document_id}
        return parse_document(out)

    async def update(
        self,
        collection: str,
        document_id: str,
        data: Mapping[str, Any],
        *,
        update_mask: Sequence[str] | None = None,
    ) -> None:
        """Update fields of an existing document.

        The mask defaults to the keys of data, so fields not mentioned are
        left untouched. An empty mask writes nothing and sends no request.

        Raises:
            ResourceNotFoundException: The document does not exist.
        """
        url = self._document_url(collection, document_id)
        mask = resolve_update_mask(data, UpdateOptions(update_mask=update_mask))
        if not mask:
            # A query string cannot carry an empty mask; a maskless PATCH
            # would replace the whole document.
            logger.debug(
                "Update of no fields on %s/%s skipped", collection, document_id
            )
            return
        params = _mask_params(mask)
        params.append(("currentDocument.exists", "true"))
        await self._call(url, method="PATCH", body=encode_document(data), params=params)

    async def delete(self, collection: str, document_id: str) -> None:
        """Delete the document. Idempotent if document is already missing (404)."""
        url = self._document_url(collection, document_id)
        try:
            await self._call(url, method="DELETE")
        except ResourceNotFoundException:
            logger.debug("Delete of missing document %s/%s", collection, document_id)

    async def _run_query(
        self, collection: str, where: dict[str, Any] | None, **options: Any
    ) -> list[dict[str, Any]]:
        parent_url, collection_id = self._parent_url(collection)
        structured = build_structured_query(collection_id, where=where, **options)
        out = await self._call(
            f"{parent_url}:runQuery",
            method="POST",
            body={"structuredQuery": structured},
        )
        return parse_documents(out)

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        order_by: Sequence[str | Sequence[str]] | None = None,
        limit: int | None = None,
        offset: int | None = None,
        select: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Run a structured query; filters may use operator maps.

        Example:
            await db.query("users", {"age": {">=": 18, "<": 65}, "active": True},
                           order_by=[("age", "desc")], limit=10)
        """
        where = build_advanced_filter(filters) if filters else None
        return await self._run_query(
            collection,
            where,
            order_by=order_by,
            limit=limit,
            offset=offset,
            select=select,
        )

    async def find(
        self,
        collection: str,
        equals: Mapping[str, Any],
        *,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents whose fields equal every value in equals."""
        return await self._run_query(
            collection, build_equality_filter(equals), limit=limit
        )

    async def count(
        self, collection: str, filters: Mapping[str, Any] | None = None
    ) -> int:
        """Count matching documents server-side (runAggregationQuery)."""
        parent_url, collection_id = self._parent_url(collection)
        where = build_advanced_filter(filters) if filters else None
        body = build_count_query(build_structured_query(collection_id, where=where))
        out = await self._call(
            f"{parent_url}:runAggregationQuery", method="POST", body=body
        )
        return parse_count(out)

    async def batch_write(
        self, operations: Sequence[BatchOperation]
    ) -> list[BatchWriteResult]:
        """Apply up to 500 writes in one documents:batchWrite request.

        Writes are not atomic: each result reports its own success.

        Raises:
            ValidationException: Invalid or too many operations (nothing sent).
        """
        writes, paths = compose_writes_with_paths(operations, self._prefix)
        if not writes:
            return []
        out = await self._call(
            f"{self._base}/{self._prefix}:batchWrite",
            method="POST",
            body={"writes": writes},
        )
        results = correlate_write_results(operations, paths, out)
        failed = sum(1 for r in results if not r.success)
        if failed:
            logger.warning("batchWrite: %d of %d writes failed", failed, len(results))
        return results
