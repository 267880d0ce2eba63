"""Connector configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Lifetimes are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from firestore_connector.core.constants import (
    DEFAULT_ASSERTION_LIFETIME_SECONDS,
    DEFAULT_DATABASE_ID,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_TOKEN_TTL_SECONDS,
    FIRESTORE_BASE_URL,
    FIRESTORE_SCOPE,
    GOOGLE_TOKEN_URI,
)


class Settings(BaseSettings):
    """Connector settings loaded from environment and .env.

    Service account credentials come from either FIREBASE_SERVICE_ACCOUNT_KEY
    (full JSON string) or FIREBASE_SERVICE_ACCOUNT_PATH (file path). Neither is
    required at load time; init_firestore() is a no-op without them.
    """

    debug: bool = False

    # Firebase / Firestore: use key (env) or path (file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None

    firestore_database_id: str = DEFAULT_DATABASE_ID
    firestore_base_url: str = FIRESTORE_BASE_URL
    firestore_scope: str = FIRESTORE_SCOPE
    # Used when the service account JSON carries no token_uri.
    firestore_token_uri: str = GOOGLE_TOKEN_URI
    firestore_assertion_lifetime_seconds: int = DEFAULT_ASSERTION_LIFETIME_SECONDS
    firestore_token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    firestore_http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_lifetimes(self) -> "Settings":
        """Validate credential lifetimes and HTTP timeout.

        - Assertion lifetime and token TTL must be positive.
        - Token TTL may not exceed the assertion lifetime (tokens are
          refreshed before the assertion that produced them would lapse).
        """
        if self.firestore_assertion_lifetime_seconds <= 0:
            raise ValueError(
                "FIRESTORE_ASSERTION_LIFETIME_SECONDS must be positive, got: "
                f"{self.firestore_assertion_lifetime_seconds}"
            )
        if self.firestore_token_ttl_seconds <= 0:
            raise ValueError(
                "FIRESTORE_TOKEN_TTL_SECONDS must be positive, got: "
                f"{self.firestore_token_ttl_seconds}"
            )
        if self.firestore_token_ttl_seconds > self.firestore_assertion_lifetime_seconds:
            raise ValueError(
                "FIRESTORE_TOKEN_TTL_SECONDS cannot exceed "
                "FIRESTORE_ASSERTION_LIFETIME_SECONDS "
                f"({self.firestore_token_ttl_seconds} > "
                f"{self.firestore_assertion_lifetime_seconds})"
            )
        if self.firestore_http_timeout_seconds <= 0:
            raise ValueError("FIRESTORE_HTTP_TIMEOUT_SECONDS must be positive")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached connector settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
