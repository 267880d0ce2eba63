"""Compose documents:batchWrite requests and match their results.

Write shapes:

    create  {"update": {"name", "fields"}, "currentDocument": {"exists": false}}
    update  {"update": {"name", "fields"}, "updateMask": {"fieldPaths": [...]}}
    delete  {"delete": "<document path>"}

A create carries an exists=false precondition so a duplicate ID is rejected by
Firestore instead of overwriting the document.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from firestore_connector.application.dtos.batch import (
    BatchOperation,
    BatchWriteResult,
    UpdateOptions,
)
from firestore_connector.core.constants import MAX_BATCH_WRITES
from firestore_connector.domain.enums import WriteKind
from firestore_connector.domain.exceptions import (
    TransportException,
    ValidationException,
)
from firestore_connector.infrastructure.firebase._field_path import quote_field_path
from firestore_connector.infrastructure.firebase._rest_encoding import (
    decode_timestamp,
    encode_fields,
)
from firestore_connector.shared.utils.generators import generate_document_id


def resolve_update_mask(
    data: Mapping[str, Any], options: UpdateOptions | None = None
) -> list[str] | None:
    """Return the field mask for an update, or None to replace every field.

    Precedence: merge disabled (full replace) > explicit mask > data keys.
    An explicit mask is used verbatim; data keys are quoted as single
    field-path segments, so "a.b" names a top-level field, not a nested one.
    """
    if options is not None:
        if not options.merge:
            return None
        if options.update_mask is not None:
            return list(options.update_mask)
    return [quote_field_path(key) for key in data]


def _kind_of(op: BatchOperation, index: int) -> WriteKind:
    try:
        return WriteKind(op.kind)
    except ValueError:
        raise ValidationException(
            f"Operation {index}: unknown kind {op.kind!r}; "
            f"expected one of {WriteKind.values()}",
            field="kind",
        ) from None


def document_path(documents_root: str, collection: str, document_id: str) -> str:
    """Full resource name: projects/{p}/databases/{d}/documents/{collection}/{id}."""
    return f"{documents_root}/{collection.strip('/')}/{document_id}"


def _compose_one(
    op: BatchOperation,
    index: int,
    documents_root: str,
    id_factory: Callable[[], str],
) -> tuple[dict[str, Any], str]:
    kind = _kind_of(op, index)
    if kind is WriteKind.DELETE:
        if not op.document_id:
            raise ValidationException(
                f"Operation {index}: delete requires document_id", field="document_id"
            )
        path = document_path(documents_root, op.collection, op.document_id)
        return {"delete": path}, path

    if op.data is None:
        raise ValidationException(
            f"Operation {index}: {kind.value} requires data", field="data"
        )
    if kind is WriteKind.CREATE:
        path = document_path(
            documents_root, op.collection, op.document_id or id_factory()
        )
        return (
            {
                "update": {"name": path, "fields": encode_fields(op.data)},
                "currentDocument": {"exists": False},
            },
            path,
        )

    if not op.document_id:
        raise ValidationException(
            f"Operation {index}: update requires document_id", field="document_id"
        )
    path = document_path(documents_root, op.collection, op.document_id)
    write: dict[str, Any] = {"update": {"name": path, "fields": encode_fields(op.data)}}
    mask = resolve_update_mask(op.data, op.update_options)
    if mask is not None:
        write["updateMask"] = {"fieldPaths": mask}
    return write, path


def compose_writes_with_paths(
    operations: Sequence[BatchOperation],
    documents_root: str,
    *,
    id_factory: Callable[[], str] = generate_document_id,
) -> tuple[list[dict[str, Any]], list[str]]:
    """Like compose_writes, also returning each write's document path."""
    if len(operations) > MAX_BATCH_WRITES:
        raise ValidationException(
            f"Batch has {len(operations)} operations; "
            f"at most {MAX_BATCH_WRITES} are allowed",
            field="operations",
        )
    writes: list[dict[str, Any]] = []
    paths: list[str] = []
    for index, op in enumerate(operations):
        write, path = _compose_one(op, index, documents_root, id_factory)
        writes.append(write)
        paths.append(path)
    return writes, paths


def compose_writes(
    operations: Sequence[BatchOperation],
    documents_root: str,
    *,
    id_factory: Callable[[], str] = generate_document_id,
) -> list[dict[str, Any]]:
    """Build the 'writes' array of a documents:batchWrite request.

    Args:
        operations: Up to MAX_BATCH_WRITES operations.
        documents_root: projects/{project}/databases/{database}/documents.
        id_factory: Generates IDs for creates that name no document.

    Raises:
        ValidationException: Too many operations, unknown kind, missing data
            (create/update) or missing document_id (update/delete).
    """
    writes, _ = compose_writes_with_paths(
        operations, documents_root, id_factory=id_factory
    )
    return writes


def correlate_write_results(
    operations: Sequence[BatchOperation],
    paths: Sequence[str],
    response: Mapping[str, Any] | None,
) -> list[BatchWriteResult]:
    """Match a batchWrite response to its operations by position.

    writeResults and status are expected in request order; a length mismatch
    means that assumption does not hold and is reported as a transport error.
    """
    response = response or {}
    write_results = response.get("writeResults") or []
    statuses = response.get("status") or []
    if len(write_results) != len(operations) or (
        statuses and len(statuses) != len(operations)
    ):
        raise TransportException(
            "batchWrite response does not match request: "
            f"{len(operations)} writes, {len(write_results)} results, "
            f"{len(statuses)} statuses",
            body=dict(response),
        )

    results: list[BatchWriteResult] = []
    for index, (op, path) in enumerate(zip(operations, paths)):
        status = statuses[index] if statuses else {}
        code = status.get("code", 0)
        update_time = write_results[index].get("updateTime")
        results.append(
            BatchWriteResult(
                operation=op,
                document_path=path,
                success=code == 0,
                update_time=decode_timestamp(update_time) if update_time else None,
                error_code=code or None,
                error_message=status.get("message") if code else None,
            )
        )
    return results
