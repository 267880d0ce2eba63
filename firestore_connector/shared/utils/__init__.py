"""Shared utilities: datetime and generators."""

from firestore_connector.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_utc,
    utc_now,
)
from firestore_connector.shared.utils.generators import generate_document_id

__all__ = [
    "generate_document_id",
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
]
