"""Encode/decode Python values to/from Firestore REST API 'fields' format."""

import base64
import binascii
import math
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from firestore_connector.domain.exceptions import DecodeException
from firestore_connector.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

# Returned for wire values that carry no recognized type tag.
UNKNOWN_TYPE = "[unknown type]"

_VALUE_TAGS = (
    "nullValue",
    "booleanValue",
    "integerValue",
    "doubleValue",
    "timestampValue",
    "stringValue",
    "bytesValue",
    "referenceValue",
    "geoPointValue",
    "arrayValue",
    "mapValue",
)

# Firestore emits up to nanosecond precision; datetime holds microseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _textual(v: Any) -> str:
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    return str(v)


def _encode_double(v: float) -> dict:
    if math.isnan(v):
        return {"doubleValue": "NaN"}
    if math.isinf(v):
        return {"doubleValue": "Infinity" if v > 0 else "-Infinity"}
    return {"doubleValue": v}


def encode_value(v: Any) -> dict:
    """Convert a Python value to a Firestore REST Value.

    Never fails: values outside the supported shapes are sent as their text.
    """
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return _encode_double(v)
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(x) for x in v]}}
    if isinstance(v, Mapping):
        return {
            "mapValue": {"fields": {str(k): encode_value(x) for k, x in v.items()}}
        }
    return {"stringValue": _textual(v)}


def encode_fields(data: Mapping[str, Any]) -> dict:
    """Convert a Python dict to a Firestore REST 'fields' mapping."""
    return {k: encode_value(v) for k, v in data.items()}


def encode_document(data: Mapping[str, Any]) -> dict:
    """Convert a Python dict to Firestore REST Document.fields format."""
    return {"fields": encode_fields(data)}


def _decode_integer(raw: Any) -> int:
    if isinstance(raw, bool):
        raise DecodeException("integerValue must be a number, got bool", "integerValue")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw)
        except ValueError:
            raise DecodeException(
                f"integerValue is not an integer: {raw!r}", "integerValue"
            ) from None
    raise DecodeException(
        f"integerValue has unsupported payload type {type(raw).__name__}",
        "integerValue",
    )


def _decode_double(raw: Any) -> float:
    if isinstance(raw, bool):
        raise DecodeException("doubleValue must be a number, got bool", "doubleValue")
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError:
            raise DecodeException(
                f"doubleValue is not a number: {raw!r}", "doubleValue"
            ) from None
    raise DecodeException(
        f"doubleValue has unsupported payload type {type(raw).__name__}",
        "doubleValue",
    )


def decode_timestamp(raw: Any) -> datetime:
    if not isinstance(raw, str):
        raise DecodeException("timestampValue must be a string", "timestampValue")
    text = _FRACTION_RE.sub(r"\1", raw.replace("Z", "+00:00"))
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise DecodeException(
            f"timestampValue is not RFC 3339: {raw!r}", "timestampValue"
        ) from None


def _decode_bytes(raw: Any) -> bytes:
    if not isinstance(raw, str):
        raise DecodeException("bytesValue must be a base64 string", "bytesValue")
    try:
        return base64.standard_b64decode(raw)
    except (binascii.Error, ValueError):
        raise DecodeException("bytesValue is not valid base64", "bytesValue") from None


def _expect(raw: Any, kind: type | tuple[type, ...], tag: str) -> Any:
    if not isinstance(raw, kind):
        raise DecodeException(
            f"{tag} has unsupported payload type {type(raw).__name__}", tag
        )
    return raw


def decode_value(obj: Any) -> Any:
    """Convert a Firestore REST Value to a Python value.

    Raises:
        DecodeException: obj is not a mapping, carries more than one type tag,
            or its payload is malformed.
    """
    if not isinstance(obj, Mapping):
        raise DecodeException(
            f"Wire value must be an object, got {type(obj).__name__}"
        )
    tags = [t for t in _VALUE_TAGS if t in obj]
    if not tags:
        logger.warning("Unknown Firestore value type, keys=%s", sorted(obj))
        return UNKNOWN_TYPE
    if len(tags) > 1:
        raise DecodeException(f"Wire value has multiple type tags: {tags}")

    tag = tags[0]
    raw = obj[tag]
    if tag == "nullValue":
        return None
    if tag == "booleanValue":
        return _expect(raw, bool, tag)
    if tag == "integerValue":
        return _decode_integer(raw)
    if tag == "doubleValue":
        return _decode_double(raw)
    if tag == "timestampValue":
        return decode_timestamp(raw)
    if tag in ("stringValue", "referenceValue"):
        return _expect(raw, str, tag)
    if tag == "bytesValue":
        return _decode_bytes(raw)
    if tag == "geoPointValue":
        point = _expect(raw, Mapping, tag)
        return {
            "latitude": _decode_double(point.get("latitude", 0.0)),
            "longitude": _decode_double(point.get("longitude", 0.0)),
        }
    if tag == "arrayValue":
        vals = _expect(raw or {}, Mapping, tag).get("values") or []
        return [decode_value(x) for x in vals]
    fields = _expect(raw or {}, Mapping, tag).get("fields") or {}
    return decode_fields(fields)


def decode_fields(fields: Mapping[str, Any] | None) -> dict:
    """Convert a Firestore REST 'fields' mapping to a Python dict."""
    if not fields:
        return {}
    return {k: decode_value(v) for k, v in fields.items()}


def decode_document(document: Mapping[str, Any] | None) -> dict:
    """Convert Firestore REST Document.fields to a Python dict."""
    if not document:
        return {}
    return decode_fields(document.get("fields"))
