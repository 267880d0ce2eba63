"""Firestore REST connector.

Value codec, query/batch builders, response parsing and service-account
credential management over the Firestore REST API (no firebase-admin).
"""

from firestore_connector.infrastructure.firebase import (
    CredentialManager,
    FirestoreRESTClient,
    close_firestore,
    get_firestore_client,
    init_firestore,
)
from firestore_connector.shared.telemetry import setup_logging

__all__ = [
    "CredentialManager",
    "FirestoreRESTClient",
    "close_firestore",
    "get_firestore_client",
    "init_firestore",
    "setup_logging",
]
