"""Firestore integration over the REST API."""

from firestore_connector.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
)
from firestore_connector.infrastructure.firebase.client import (
    close_firestore,
    get_firestore_client,
    init_firestore,
)
from firestore_connector.infrastructure.firebase.credentials import (
    CachedCredential,
    CredentialManager,
)

__all__ = [
    "CachedCredential",
    "CredentialManager",
    "FirestoreRESTClient",
    "close_firestore",
    "get_firestore_client",
    "init_firestore",
]
