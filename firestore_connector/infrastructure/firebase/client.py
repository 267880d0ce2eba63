"""Process-wide Firestore client (REST-based, no firebase-admin).

Initialized at startup using either FIREBASE_SERVICE_ACCOUNT_KEY (JSON string)
or FIREBASE_SERVICE_ACCOUNT_PATH (file path).
"""

import json
from datetime import timedelta
from pathlib import Path
from typing import Any

from firestore_connector.core.config import Settings, get_settings
from firestore_connector.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
)
from firestore_connector.infrastructure.firebase.credentials import CredentialManager
from firestore_connector.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_firestore_client: FirestoreRESTClient | None = None
_credential_manager: CredentialManager | None = None


def load_service_account(settings: Settings | None = None) -> dict[str, Any] | None:
    """Return service account dict from env key or file path (None if neither is set).

    Raises:
        ValueError: FIREBASE_SERVICE_ACCOUNT_KEY or the file is not valid JSON.
    """
    settings = settings or get_settings()
    key_json = (
        settings.firebase_service_account_key.get_secret_value()
        if settings.firebase_service_account_key
        else None
    )
    if key_json:
        try:
            return json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    path = settings.firebase_service_account_path
    if path:
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            logger.warning(
                "FIREBASE_SERVICE_ACCOUNT_PATH set but file not found: %s (resolved: %s)",
                path,
                resolved,
            )
            return None
        with open(resolved, encoding="utf-8") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"{resolved} is not valid JSON") from e
    return None


def create_credential_manager(
    key_dict: dict[str, Any], settings: Settings | None = None
) -> CredentialManager:
    """Build a CredentialManager for the service account using configured lifetimes."""
    settings = settings or get_settings()
    return CredentialManager(
        key_dict,
        scope=settings.firestore_scope,
        token_uri=key_dict.get("token_uri") or settings.firestore_token_uri,
        assertion_lifetime=timedelta(
            seconds=settings.firestore_assertion_lifetime_seconds
        ),
        token_ttl=timedelta(seconds=settings.firestore_token_ttl_seconds),
    )


def init_firestore() -> bool:
    """Initialize the Firestore client (REST API + service account assertion).

    Uses FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string) if set, otherwise
    FIREBASE_SERVICE_ACCOUNT_PATH (file path). Safe to call when neither is set
    (no-op). Idempotent if already initialized. On invalid/malformed credentials
    or any initialization error, logs the exception and returns False.

    Returns:
        True if Firestore was initialized, False if disabled or on error.
    """
    global _firestore_client, _credential_manager
    if _firestore_client is not None:
        return True
    try:
        settings = get_settings()
        key_dict = load_service_account(settings)
        if not key_dict:
            return False

        project_id = key_dict.get("project_id")
        if not project_id:
            logger.error("Firebase service account JSON missing 'project_id'")
            return False

        _credential_manager = create_credential_manager(key_dict, settings)
        _firestore_client = FirestoreRESTClient(
            project_id,
            _credential_manager,
            database_id=settings.firestore_database_id,
            base_url=settings.firestore_base_url,
            timeout=settings.firestore_http_timeout_seconds,
        )
        logger.info("Firestore client initialized for project %s", project_id)
        return True
    except Exception:
        logger.exception("Firestore initialization failed")
        return False


def get_firestore_client() -> FirestoreRESTClient | None:
    """Return the Firestore client, or None if not configured.

    Operations (all async):
    - await db.add(collection, data) -> document id
    - await db.get(collection, id) -> dict | None
    - await db.query(collection, {"age": {">=": 18}}) -> list[dict]
    - await db.batch_write([BatchOperation(...), ...]) -> list[BatchWriteResult]
    """
    return _firestore_client


async def close_firestore() -> None:
    """Close the Firestore HTTP connection pools. Call from app shutdown."""
    global _firestore_client, _credential_manager
    if _firestore_client is not None:
        await _firestore_client.aclose()
        _firestore_client = None
    if _credential_manager is not None:
        _credential_manager.close()
        _credential_manager = None
    logger.info("Firestore HTTP client closed")
