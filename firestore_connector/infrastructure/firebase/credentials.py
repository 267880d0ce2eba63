"""Service-account credentials for the Firestore REST API.

A signed RS256 assertion (RFC 7523) is exchanged at the OAuth token endpoint
for a short-lived bearer token. The token is cached and reused until 55
minutes after it was obtained, five minutes short of its nominal one-hour
lifetime.

CredentialManager is synchronous and thread-safe: every read and refresh of
the cached credential happens under one lock per instance, so at most one
exchange is in flight and readers never see a half-updated record. Async
callers run get_bearer_token in a worker thread (asyncio.to_thread).
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, cast

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from firestore_connector.core.constants import (
    ASSERTION_ALGORITHM,
    DEFAULT_ASSERTION_LIFETIME_SECONDS,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_TOKEN_TTL_SECONDS,
    FIRESTORE_SCOPE,
    GOOGLE_TOKEN_URI,
    JWT_BEARER_GRANT_TYPE,
)
from firestore_connector.domain.exceptions import AuthenticationException
from firestore_connector.shared.telemetry.logging import get_logger
from firestore_connector.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_utc,
    utc_now,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class CachedCredential:
    """Signed assertion and the bearer token obtained with it (if any)."""

    signed_assertion: str | None = None
    assertion_issued_at: datetime | None = None
    assertion_expires_at: datetime | None = None
    bearer_token: str | None = None
    bearer_expires_at: datetime | None = None

    def bearer_valid_at(self, now: datetime) -> bool:
        return (
            self.bearer_token is not None
            and self.bearer_expires_at is not None
            and now < self.bearer_expires_at
        )


class CredentialManager:
    """Issues assertions and caches the bearer token for one service account."""

    def __init__(
        self,
        service_account: Mapping[str, Any] | None,
        *,
        scope: str = FIRESTORE_SCOPE,
        token_uri: str | None = None,
        assertion_lifetime: timedelta = timedelta(
            seconds=DEFAULT_ASSERTION_LIFETIME_SECONDS
        ),
        token_ttl: timedelta = timedelta(seconds=DEFAULT_TOKEN_TTL_SECONDS),
        http_client: httpx.Client | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize with service account info (the parsed key JSON).

        Args:
            service_account: Dict with client_email, private_key and optionally
                private_key_id, token_uri, project_id. None is accepted; every
                credential operation then raises AuthenticationException.
            scope: OAuth scope requested for the token.
            token_uri: Token endpoint; defaults to the key's token_uri, then
                Google's endpoint. Also used as the assertion audience.
            assertion_lifetime: exp - iat of issued assertions.
            token_ttl: How long an exchanged token is reused.
            http_client: Client for the token exchange; one is created (and
                owned) when omitted.
            clock: Returns the current datetime; naive values are read as UTC.
        """
        self._service_account = dict(service_account) if service_account else None
        self._scope = scope
        self._token_uri = (
            token_uri
            or (self._service_account or {}).get("token_uri")
            or GOOGLE_TOKEN_URI
        )
        self._assertion_lifetime = assertion_lifetime
        self._token_ttl = token_ttl
        self._http = (
            http_client
            if http_client is not None
            else httpx.Client(timeout=DEFAULT_HTTP_TIMEOUT_SECONDS)
        )
        self._owns_http = http_client is None
        self._clock = clock
        self._lock = threading.Lock()
        self._cache = CachedCredential()

    @property
    def project_id(self) -> str | None:
        return (self._service_account or {}).get("project_id")

    @property
    def token_uri(self) -> str:
        return self._token_uri

    @property
    def cached(self) -> CachedCredential:
        """Snapshot of the cached credential record."""
        with self._lock:
            return self._cache

    def _now(self) -> datetime:
        # A naive clock reading is taken as UTC.
        return cast(datetime, ensure_utc(self._clock()))

    def close(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            self._http.close()

    def _signing_identity(self) -> tuple[str, str, str | None]:
        account = self._service_account
        if not account:
            raise AuthenticationException("No service account configured")
        email = account.get("client_email")
        key = account.get("private_key")
        if not email or not key:
            raise AuthenticationException(
                "Service account is missing client_email or private_key"
            )
        return email, key, account.get("private_key_id")

    def _issue(self, now: datetime) -> CachedCredential:
        email, key, key_id = self._signing_identity()
        expires_at = now + self._assertion_lifetime
        claims = {
            "iss": email,
            "aud": self._token_uri,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "scope": self._scope,
        }
        headers = {"kid": key_id} if key_id else None
        try:
            signed = jwt.encode(
                claims, key, algorithm=ASSERTION_ALGORITHM, headers=headers
            )
        except (JOSEError, ValueError, TypeError) as e:
            raise AuthenticationException(
                f"Failed to sign service account assertion: {e!s}"
            ) from e
        return CachedCredential(
            signed_assertion=cast(str, signed),
            assertion_issued_at=now,
            assertion_expires_at=expires_at,
        )

    def issue_assertion(self) -> str:
        """Sign a fresh assertion for the token endpoint.

        Raises:
            AuthenticationException: No service account/key, or signing failed.
        """
        issued = self._issue(self._now())
        return cast(str, issued.signed_assertion)

    def is_expired(self, assertion: str) -> bool:
        """Return True when the assertion's exp claim is at or before now.

        Raises:
            AuthenticationException: The assertion is undecodable or has no
                numeric exp claim.
        """
        try:
            claims = jwt.get_unverified_claims(assertion)
        except JOSEError as e:
            raise AuthenticationException(f"Undecodable assertion: {e!s}") from e
        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise AuthenticationException("Assertion has no valid 'exp' claim")
        return self._now() >= from_timestamp_utc(exp)

    def _exchange(self, assertion: str) -> str:
        try:
            resp = self._http.post(
                self._token_uri,
                data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            raise AuthenticationException(f"Token exchange failed: {e!s}") from e
        if resp.status_code != 200:
            raise AuthenticationException(
                f"Token exchange failed with HTTP {resp.status_code}",
                {"status_code": resp.status_code, "body": resp.text},
            )
        try:
            payload = resp.json()
        except ValueError as e:
            raise AuthenticationException("Token endpoint returned invalid JSON") from e
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AuthenticationException("Token endpoint response has no access_token")
        return token

    def get_bearer_token(self) -> str:
        """Return a bearer token, exchanging a new one when the cached one lapsed.

        Raises:
            AuthenticationException: Missing credentials, signing failure or a
                failed exchange. The cache is left unchanged on failure.
        """
        with self._lock:
            now = self._now()
            cache = self._cache
            if cache.bearer_valid_at(now):
                return cast(str, cache.bearer_token)

            if cache.signed_assertion is None or self.is_expired(cache.signed_assertion):
                cache = self._issue(now)
            token = self._exchange(cast(str, cache.signed_assertion))
            expires_at = now + self._token_ttl
            self._cache = replace(
                cache, bearer_token=token, bearer_expires_at=expires_at
            )
            logger.info(
                "Obtained Firestore access token for %s (reuse until %s)",
                (self._service_account or {}).get("client_email"),
                expires_at.isoformat(),
            )
            return token

    def invalidate(self) -> None:
        """Drop the cached bearer token so the next call exchanges a new one."""
        with self._lock:
            self._cache = replace(self._cache, bearer_token=None, bearer_expires_at=None)
