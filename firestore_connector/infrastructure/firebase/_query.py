"""Structured-query builders for the Firestore REST runQuery endpoints.

Filters are returned as the JSON shapes the API expects:

    {"fieldFilter": {"field": {"fieldPath": ...}, "op": ..., "value": ...}}
    {"compositeFilter": {"op": "AND", "filters": [...]}}

A single condition is always a bare fieldFilter; two or more are AND-combined
in the order they were given. No conditions means no filter (None).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from firestore_connector.domain.enums import FieldOperator, OrderDirection
from firestore_connector.domain.exceptions import ValidationException
from firestore_connector.infrastructure.firebase._field_path import dotted_field_path
from firestore_connector.infrastructure.firebase._rest_encoding import encode_value

_OP_MAP: dict[str, FieldOperator] = {
    "==": FieldOperator.EQUAL,
    "!=": FieldOperator.NOT_EQUAL,
    "<": FieldOperator.LESS_THAN,
    "<=": FieldOperator.LESS_THAN_OR_EQUAL,
    ">": FieldOperator.GREATER_THAN,
    ">=": FieldOperator.GREATER_THAN_OR_EQUAL,
    "in": FieldOperator.IN,
    "not-in": FieldOperator.NOT_IN,
    "not_in": FieldOperator.NOT_IN,
    "array-contains": FieldOperator.ARRAY_CONTAINS,
    "array_contains": FieldOperator.ARRAY_CONTAINS,
    "array-contains-any": FieldOperator.ARRAY_CONTAINS_ANY,
    "array_contains_any": FieldOperator.ARRAY_CONTAINS_ANY,
}

_DIRECTION_MAP: dict[str, OrderDirection] = {
    "asc": OrderDirection.ASCENDING,
    "ascending": OrderDirection.ASCENDING,
    "desc": OrderDirection.DESCENDING,
    "descending": OrderDirection.DESCENDING,
}


def operator_for(token: str | FieldOperator) -> FieldOperator:
    """Map an operator token ('>=', 'array-contains', 'IN', ...) to a FieldOperator.

    Unrecognized tokens fall back to EQUAL rather than failing.
    """
    if isinstance(token, FieldOperator):
        return token
    op = _OP_MAP.get(token)
    if op is not None:
        return op
    if token in FieldOperator.values():
        return FieldOperator(token)
    return FieldOperator.EQUAL


def build_field_filter(
    field_path: str, op: str | FieldOperator, value: Any
) -> dict[str, Any]:
    """Return a single fieldFilter with the operand encoded as a wire value."""
    return {
        "fieldFilter": {
            "field": {"fieldPath": dotted_field_path(field_path)},
            "op": operator_for(op).value,
            "value": encode_value(value),
        }
    }


def _combine(filters: list[dict[str, Any]]) -> dict[str, Any] | None:
    if not filters:
        return None
    if len(filters) == 1:
        return filters[0]
    return {"compositeFilter": {"op": "AND", "filters": filters}}


def build_equality_filter(conditions: Mapping[str, Any]) -> dict[str, Any] | None:
    """Build an AND of EQUAL filters from {field: value}."""
    return _combine(
        [
            build_field_filter(field, FieldOperator.EQUAL, value)
            for field, value in conditions.items()
        ]
    )


def build_advanced_filter(conditions: Mapping[str, Any]) -> dict[str, Any] | None:
    """Build a filter from {field: value} or {field: {operator_token: operand}}.

    A nested mapping contributes one fieldFilter per operator, so a field can
    carry both bounds of a range, e.g. {"age": {">=": 18, "<": 65}}.

    Raises:
        ValidationException: A field maps to an empty operator mapping.
    """
    filters: list[dict[str, Any]] = []
    for field, condition in conditions.items():
        if isinstance(condition, Mapping):
            if not condition:
                raise ValidationException(
                    f"No operator given for field {field!r}", field=field
                )
            for token, operand in condition.items():
                filters.append(build_field_filter(field, token, operand))
        else:
            filters.append(build_field_filter(field, FieldOperator.EQUAL, condition))
    return _combine(filters)


def _order_clause(item: str | Sequence[str]) -> dict[str, Any]:
    if isinstance(item, str):
        field, direction = item, OrderDirection.ASCENDING.value
    else:
        field, direction = item[0], item[1]
    resolved = _DIRECTION_MAP.get(direction.lower()) if isinstance(direction, str) else None
    if resolved is None:
        try:
            resolved = OrderDirection(direction)
        except ValueError:
            raise ValidationException(
                f"Invalid order direction {direction!r} for field {field!r}",
                field=field,
            ) from None
    return {
        "field": {"fieldPath": dotted_field_path(field)},
        "direction": resolved.value,
    }


def build_structured_query(
    collection_id: str,
    *,
    where: dict[str, Any] | None = None,
    order_by: Sequence[str | Sequence[str]] | None = None,
    limit: int | None = None,
    offset: int | None = None,
    select: Sequence[str] | None = None,
    all_descendants: bool = False,
) -> dict[str, Any]:
    """Return a StructuredQuery body (filter/order/offset/limit run on the server).

    Args:
        collection_id: Last segment of the collection path.
        where: Filter from build_equality_filter / build_advanced_filter.
        order_by: Field names, or (field, direction) pairs; direction is
            'asc'/'desc' or ASCENDING/DESCENDING.
        limit: Maximum documents to return.
        offset: Documents to skip.
        select: Field paths to project (others are omitted from results).
        all_descendants: Query every collection with this ID under the parent.

    Raises:
        ValidationException: Negative limit/offset or unknown direction.
    """
    structured: dict[str, Any] = {"from": [{"collectionId": collection_id}]}
    if all_descendants:
        structured["from"][0]["allDescendants"] = True
    if where:
        structured["where"] = where
    if order_by:
        structured["orderBy"] = [_order_clause(item) for item in order_by]
    if select is not None:
        structured["select"] = {
            "fields": [{"fieldPath": dotted_field_path(f)} for f in select]
        }
    if offset is not None:
        if offset < 0:
            raise ValidationException("offset must be >= 0", field="offset")
        if offset:
            structured["offset"] = offset
    if limit is not None:
        if limit < 0:
            raise ValidationException("limit must be >= 0", field="limit")
        structured["limit"] = limit
    return structured


def build_count_query(
    structured_query: dict[str, Any], alias: str = "count"
) -> dict[str, Any]:
    """Wrap a StructuredQuery in a count aggregation for runAggregationQuery."""
    return {
        "structuredAggregationQuery": {
            "structuredQuery": structured_query,
            "aggregations": [{"alias": alias, "count": {}}],
        }
    }
