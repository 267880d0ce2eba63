"""Shared utilities: telemetry (logging) and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from firestore_connector.shared.utils import (
    ensure_utc,
    from_timestamp_utc,
    generate_document_id,
    utc_now,
)

__all__ = [
    "generate_document_id",
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
]
