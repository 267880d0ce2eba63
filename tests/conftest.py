"""Pytest configuration and fixtures for firestore_connector.

Service account keys are generated per session with cryptography; HTTP is
served by httpx.MockTransport so no test reaches the network.
"""

import json
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from firestore_connector.core.config import get_settings

TOKEN_URI = "https://oauth2.example.test/token"
PROJECT_ID = "demo-project"


class FakeClock:
    """Callable clock returning a settable aware UTC datetime."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class TokenEndpoint:
    """MockTransport handler for the OAuth token endpoint; records requests."""

    def __init__(self) -> None:
        self.requests: list[dict[str, list[str]]] = []
        self.status_code = 200
        self.payload: dict | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        self.requests.append(form)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "invalid_grant"})
        payload = self.payload or {
            "access_token": f"token-{len(self.requests)}",
            "expires_in": 3599,
            "token_type": "Bearer",
        }
        return httpx.Response(200, json=payload)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def public_key_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    return rsa_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def service_account(private_key_pem: str) -> dict[str, str]:
    """Service account JSON as downloaded from the Cloud console (test key)."""
    return {
        "type": "service_account",
        "project_id": PROJECT_ID,
        "private_key_id": "test-key-id",
        "private_key": private_key_pem,
        "client_email": f"connector@{PROJECT_ID}.iam.gserviceaccount.com",
        "token_uri": TOKEN_URI,
    }


@pytest.fixture
def service_account_json(service_account: dict[str, str]) -> str:
    return json.dumps(service_account)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def token_endpoint() -> TokenEndpoint:
    return TokenEndpoint()


@pytest.fixture
def token_http(token_endpoint: TokenEndpoint) -> httpx.Client:
    """Sync httpx client whose requests are answered by token_endpoint."""
    client = httpx.Client(transport=httpx.MockTransport(token_endpoint))
    yield client
    client.close()
