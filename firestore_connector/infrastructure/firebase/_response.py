"""Parse Firestore REST document and runQuery responses into plain dicts."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from firestore_connector.domain.exceptions import DecodeException
from firestore_connector.infrastructure.firebase._rest_encoding import decode_value
from firestore_connector.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def document_id_from_name(name: Any) -> str:
    """Return the last segment of a document resource name ('' if empty or not a string)."""
    return name.split("/")[-1] if isinstance(name, str) and name else ""


def parse_document(envelope: Any) -> dict[str, Any]:
    """Decode a Document envelope to {field: value, ..., "id": <document id>}.

    A field that fails to decode is logged and left out; the rest of the
    document is still returned.

    Raises:
        DecodeException: envelope is not an object, has no 'fields' member,
            or its name or fields have the wrong type.
    """
    if not isinstance(envelope, Mapping):
        raise DecodeException(
            f"Document must be an object, got {type(envelope).__name__}"
        )
    if "fields" not in envelope:
        raise DecodeException(
            f"Document {envelope.get('name', '<unnamed>')!r} has no 'fields' member"
        )
    name = envelope.get("name") or ""
    if not isinstance(name, str):
        raise DecodeException(
            f"Document name must be a string, got {type(name).__name__}"
        )
    fields = envelope["fields"] or {}
    if not isinstance(fields, Mapping):
        raise DecodeException(
            f"Document {name!r} fields must be an object, got {type(fields).__name__}"
        )
    result: dict[str, Any] = {}
    for field, wire in fields.items():
        try:
            result[field] = decode_value(wire)
        except DecodeException as e:
            logger.warning(
                "Skipping field %r of document %s: %s", field, name, e.message
            )
    result["id"] = document_id_from_name(name)
    return result


def parse_documents(body: Any) -> list[dict[str, Any]]:
    """Decode a runQuery response (one object or an array) to a list of dicts.

    Items without a 'document' member (e.g. the trailing readTime-only item)
    are skipped, as are documents that cannot be parsed.
    """
    if not body:
        return []
    items = body if isinstance(body, list) else [body]
    results: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, Mapping) or "document" not in item:
            continue
        try:
            results.append(parse_document(item["document"]))
        except DecodeException as e:
            logger.warning("Skipping query result: %s", e.message)
    return results


def parse_count(body: Any, alias: str = "count") -> int:
    """Read a count aggregation from a runAggregationQuery response.

    Raises:
        DecodeException: No result carries the aggregate alias.
    """
    items = body if isinstance(body, list) else [body]
    for item in items:
        if not isinstance(item, Mapping):
            continue
        fields = (item.get("result") or {}).get("aggregateFields") or {}
        if alias in fields:
            value = decode_value(fields[alias])
            if not isinstance(value, int) or isinstance(value, bool):
                raise DecodeException(
                    f"Aggregate {alias!r} is not an integer: {value!r}"
                )
            return value
    raise DecodeException(f"Aggregation response has no {alias!r} result")
